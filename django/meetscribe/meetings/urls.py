from django.urls import path

from .views import MeetingDetailView, MeetingListView

urlpatterns = [
    path("", MeetingListView.as_view()),
    path("<uuid:meeting_id>/", MeetingDetailView.as_view()),
]
