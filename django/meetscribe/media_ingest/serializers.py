from django.conf import settings
from rest_framework import serializers

from meetings.services import audio_url
from .constants import STATUS_FAILED, STATUS_SUCCEEDED


class AudioUploadSerializer(serializers.Serializer):
    audio = serializers.FileField(allow_empty_file=False)

    def validate_audio(self, value):
        allowed_types = set(settings.AUDIO_ALLOWED_MIME_TYPES)
        if value.content_type not in allowed_types:
            raise serializers.ValidationError(
                "Invalid file type. Only MP3, WAV, and M4A files are allowed"
            )

        max_bytes = settings.AUDIO_MAX_UPLOAD_BYTES
        if max_bytes and value.size > max_bytes:
            raise serializers.ValidationError(
                f"File size exceeds {max_bytes // (1024 * 1024)}MB limit"
            )

        return value


def upload_status(upload, request=None) -> dict:
    result = None
    if upload.status == STATUS_SUCCEEDED and upload.meeting_id:
        result = {
            "summaryId": str(upload.meeting_id),
            "url": audio_url(upload.meeting, request),
        }

    error = None
    if upload.status == STATUS_FAILED:
        error = {
            "code": upload.error_code or None,
            "message": upload.error_message or None,
        }

    return {
        "upload_id": str(upload.id),
        "status": upload.status,
        "progress": {
            "stage": upload.stage or None,
            "chunks_done": upload.chunks_done,
            "chunks_total": upload.chunks_total,
        },
        "result": result,
        "error": error,
    }
