import re
import time
import uuid
from pathlib import PurePath

from django.conf import settings
from django.db import models

from meetings.models import Meeting
from .constants import STATUS_CHOICES, STATUS_CREATED


def _sanitize_filename(name):
    cleaned = re.sub(r"[^a-zA-Z0-9._-]", "_", PurePath(name or "").name)
    return cleaned or "audio"


def audio_upload_to(instance, filename):
    stamp = int(time.time() * 1000)
    return f"{settings.AUDIO_UPLOAD_PREFIX}/{instance.owner_id}/{stamp}-{_sanitize_filename(filename)}"


class AudioUpload(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="audio_uploads",
    )
    file = models.FileField(upload_to=audio_upload_to, max_length=512)
    original_name = models.CharField(max_length=255, blank=True, default="")
    content_type = models.CharField(max_length=100, blank=True, default="")
    size = models.BigIntegerField(default=0)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_CREATED)
    stage = models.CharField(max_length=32, blank=True, default="")
    chunks_total = models.IntegerField(default=0)
    chunks_done = models.IntegerField(default=0)

    error_code = models.CharField(max_length=64, blank=True, default="")
    error_message = models.TextField(blank=True, default="")

    meeting = models.OneToOneField(
        Meeting,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="upload",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    started_at = models.DateTimeField(null=True, blank=True)
    finished_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"{self.id} {self.owner_id} {self.status}"
