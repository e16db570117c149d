import logging
import math

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.views import APIView

from config.exceptions import error_response
from intelligence.services import IntelligenceError, RateLimitError
from meetings.services import StorageError, audio_url
from .constants import STATUS_QUEUED
from .models import AudioUpload
from .pipeline import process_upload, store_upload
from .serializers import AudioUploadSerializer, upload_status
from .tasks import process_audio_upload

logger = logging.getLogger(__name__)


def _pipeline_error(exc):
    headers = None
    if isinstance(exc, RateLimitError) and exc.retry_after is not None:
        headers = {"Retry-After": str(math.ceil(exc.retry_after))}
    return error_response(str(exc), exc.status_code, exc, headers=headers)


def _validated_audio(request):
    if "audio" not in request.FILES:
        return None
    s = AudioUploadSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    return s.validated_data["audio"]


class AudioUploadView(APIView):
    """Upload, transcribe and summarize in one request."""

    parser_classes = [MultiPartParser, FormParser]

    def post(self, request):
        audio = _validated_audio(request)
        if audio is None:
            return error_response("No file uploaded", status.HTTP_400_BAD_REQUEST)

        data = audio.read()
        audio.seek(0)

        try:
            upload = store_upload(request.user, audio)
            meeting = process_upload(upload, data=data)
        except (IntelligenceError, StorageError) as exc:
            return _pipeline_error(exc)
        except Exception as exc:
            logger.exception("Processing failed for %s", audio.name)
            return error_response("Failed to process file", status.HTTP_500_INTERNAL_SERVER_ERROR, exc)

        return Response({
            "success": True,
            "url": audio_url(meeting, request),
            "transcription": meeting.transcription,
            "summary": meeting.summary,
            "summaryId": str(meeting.id),
        })


class AudioUploadJobCreateView(APIView):
    """Store the upload and hand the pipeline to a worker."""

    parser_classes = [MultiPartParser, FormParser]

    def post(self, request):
        audio = _validated_audio(request)
        if audio is None:
            return error_response("No file uploaded", status.HTTP_400_BAD_REQUEST)

        try:
            upload = store_upload(request.user, audio, status=STATUS_QUEUED)
        except StorageError as exc:
            return _pipeline_error(exc)

        process_audio_upload.delay(str(upload.id))

        return Response(
            {
                "upload_id": str(upload.id),
                "status": STATUS_QUEUED,
                "status_url": f"/api/uploads/{upload.id}/",
            },
            status=status.HTTP_202_ACCEPTED,
        )


class AudioUploadDetailView(APIView):
    def get(self, request, upload_id):
        upload = get_object_or_404(
            AudioUpload.objects.select_related("meeting"),
            id=upload_id,
            owner=request.user,
        )
        return Response(upload_status(upload, request))
