from django.urls import path

from .views import AudioUploadDetailView, AudioUploadJobCreateView, AudioUploadView

urlpatterns = [
    path("upload/", AudioUploadView.as_view()),
    path("uploads/", AudioUploadJobCreateView.as_view()),
    path("uploads/<uuid:upload_id>/", AudioUploadDetailView.as_view()),
]
