"""Upload → transcript → summary → meeting record.

Every step is awaited before the next one starts. The meeting record is
the last write, so a run that fails upstream leaves no meeting behind;
only the ``AudioUpload`` job row records what went wrong.
"""

import logging
import math
from typing import Optional

from django.conf import settings
from django.utils import timezone

from intelligence.services import IntelligenceError, generate_summary, transcribe_audio
from meetings.models import Meeting
from meetings.services import StorageError, create_meeting
from realtime.progress import publish_progress
from .constants import (
    ERROR_UNEXPECTED,
    STAGE_DONE,
    STAGE_SAVING,
    STAGE_SUMMARIZING,
    STAGE_TRANSCRIBING,
    STATUS_CREATED,
    STATUS_FAILED,
    STATUS_RUNNING,
    STATUS_SUCCEEDED,
)
from .models import AudioUpload

logger = logging.getLogger(__name__)


def store_upload(owner, audio, status=STATUS_CREATED) -> AudioUpload:
    """Write the uploaded file to blob storage and open a job for it."""
    try:
        upload = AudioUpload.objects.create(
            owner=owner,
            file=audio,
            original_name=(audio.name or "")[:255],
            content_type=audio.content_type or "",
            size=audio.size,
            status=status,
        )
    except Exception as exc:
        logger.exception("Failed to store audio %s for owner %s", audio.name, getattr(owner, "pk", owner))
        raise StorageError("Failed to store audio") from exc

    logger.info("Stored audio upload %s at %s (%s bytes)", upload.id, upload.file.name, upload.size)
    return upload


def _read_audio(upload: AudioUpload) -> bytes:
    try:
        with upload.file.open("rb") as fh:
            return fh.read()
    except Exception as exc:
        logger.exception("Failed to read stored audio for upload %s", upload.id)
        raise StorageError("Failed to read stored audio") from exc


def _set_stage(upload: AudioUpload, stage: str) -> None:
    upload.stage = stage
    upload.save(update_fields=["stage"])
    publish_progress(upload)


def _fail(upload: AudioUpload, code: str, message: str) -> None:
    upload.status = STATUS_FAILED
    upload.error_code = code
    upload.error_message = message
    upload.finished_at = timezone.now()
    upload.save(update_fields=["status", "error_code", "error_message", "finished_at"])
    publish_progress(upload)


def process_upload(upload: AudioUpload, *, data: Optional[bytes] = None, limiter=None) -> Meeting:
    """Run the whole pipeline for one stored upload and return the new meeting.

    ``data`` may carry the bytes already held in memory; otherwise they are
    read back from storage. Failures mark the job as failed and re-raise.
    """
    upload.status = STATUS_RUNNING
    upload.stage = STAGE_TRANSCRIBING
    upload.chunks_done = 0
    upload.chunks_total = max(1, math.ceil(upload.size / settings.TRANSCRIPTION_CHUNK_BYTES))
    upload.error_code = ""
    upload.error_message = ""
    upload.started_at = timezone.now()
    upload.save()
    publish_progress(upload)

    def _on_progress(done: int, total: int) -> None:
        upload.chunks_done = done
        upload.chunks_total = total
        upload.save(update_fields=["chunks_done", "chunks_total"])
        publish_progress(upload)

    try:
        if data is None:
            data = _read_audio(upload)

        transcription = transcribe_audio(
            data,
            upload.original_name,
            upload.content_type,
            limiter=limiter,
            on_progress=_on_progress,
        )

        _set_stage(upload, STAGE_SUMMARIZING)
        summary = generate_summary(transcription)

        _set_stage(upload, STAGE_SAVING)
        meeting = create_meeting(
            owner=upload.owner,
            audio_key=upload.file.name,
            transcription=transcription,
            summary=summary,
            filename=upload.original_name,
        )
    except (IntelligenceError, StorageError) as exc:
        logger.warning("Upload %s failed at stage %s: %s", upload.id, upload.stage, exc)
        _fail(upload, exc.error_code, str(exc))
        raise
    except Exception as exc:
        logger.exception("Upload %s failed unexpectedly at stage %s", upload.id, upload.stage)
        _fail(upload, ERROR_UNEXPECTED, str(exc))
        raise

    upload.meeting = meeting
    upload.status = STATUS_SUCCEEDED
    upload.stage = STAGE_DONE
    upload.finished_at = timezone.now()
    upload.save(update_fields=["meeting", "status", "stage", "finished_at"])
    publish_progress(upload)
    logger.info("Upload %s produced meeting %s", upload.id, meeting.id)
    return meeting
