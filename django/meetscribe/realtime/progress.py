import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

from media_ingest.serializers import upload_status

logger = logging.getLogger(__name__)


def group_name(upload_id) -> str:
    return f"upload_{upload_id}"


def publish_progress(upload) -> None:
    """Push the job's current state to anyone watching it. Never raises."""
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    try:
        async_to_sync(channel_layer.group_send)(group_name(upload.id), {
            "type": "upload.progress",
            "payload": upload_status(upload),
        })
    except Exception:
        logger.exception("Failed to publish progress for upload %s", upload.id)
