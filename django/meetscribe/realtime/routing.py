from django.urls import path

from .consumers import UploadProgressConsumer

websocket_urlpatterns = [
    path("ws/uploads/<uuid:upload_id>/", UploadProgressConsumer.as_asgi()),
]
