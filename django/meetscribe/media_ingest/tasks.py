import logging

from celery import shared_task

from intelligence.services import IntelligenceError
from meetings.services import StorageError
from .constants import STATUS_QUEUED
from .models import AudioUpload
from .pipeline import process_upload

logger = logging.getLogger(__name__)


@shared_task
def process_audio_upload(upload_id: str) -> None:
    """
    Process a queued upload in the background:
    - Transcribe the stored audio chunk by chunk
    - Summarize the transcript
    - Store the meeting record
    Failures are recorded on the upload job.
    """
    try:
        upload = AudioUpload.objects.select_related("owner").get(id=upload_id)
    except AudioUpload.DoesNotExist:
        logger.warning("AudioUpload %s not found", upload_id)
        return

    if upload.status != STATUS_QUEUED:
        logger.info("AudioUpload %s not queued (status=%s)", upload_id, upload.status)
        return

    try:
        process_upload(upload)
    except (IntelligenceError, StorageError) as exc:
        logger.warning("AudioUpload %s failed: %s", upload_id, exc)
    except Exception:
        logger.exception("AudioUpload %s failed unexpectedly", upload_id)
