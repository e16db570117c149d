import uuid

from django.conf import settings
from django.db import models


class Meeting(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="meetings",
    )
    audio_key = models.CharField(max_length=512)
    transcription = models.TextField(blank=True, default="")
    summary = models.JSONField(default=dict)
    title = models.CharField(max_length=255, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["owner", "-created_at", "-id"], name="meeting_owner_recent"),
        ]

    def __str__(self):
        return f"{self.id} {self.owner_id} {self.title}"
