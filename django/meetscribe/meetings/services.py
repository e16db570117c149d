import logging
import re
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional

from django.conf import settings
from django.core.files.storage import default_storage
from django.db import DatabaseError

from .models import Meeting
from .pagination import InvalidCursor, after, decode_cursor, encode_cursor

logger = logging.getLogger(__name__)

_EXTENSION_RE = re.compile(r"\.[^/.]+$")


class StorageError(Exception):
    status_code = 500
    error_code = "storage_failed"


@dataclass
class MeetingPage:
    items: List[Meeting]
    has_more: bool
    next_cursor: Optional[str]


def derive_title(filename: str) -> str:
    return _EXTENSION_RE.sub("", filename or "")[:255]


def create_meeting(*, owner, audio_key: str, transcription: str, summary: Dict[str, List[str]], filename: str) -> Meeting:
    """Insert one meeting record; nothing is written if the insert fails."""
    try:
        meeting = Meeting.objects.create(
            owner=owner,
            audio_key=audio_key,
            transcription=transcription,
            summary=summary,
            title=derive_title(filename),
        )
    except DatabaseError as exc:
        logger.exception("Failed to store meeting for owner %s", getattr(owner, "pk", owner))
        raise StorageError("Failed to store summary") from exc

    logger.info("Stored meeting %s for owner %s", meeting.id, meeting.owner_id)
    return meeting


def list_meetings(
    owner,
    *,
    cursor: Optional[str] = None,
    last_id: Optional[str] = None,
    page_size: Optional[int] = None,
) -> MeetingPage:
    """Newest-first page of ``owner``'s meetings.

    ``cursor`` is the opaque token handed out as ``next_cursor``. ``last_id``
    is the id of the last meeting on the previous page; it costs an extra
    point lookup to resolve. One extra row is fetched so ``has_more`` is
    exact.
    """
    page_size = page_size or settings.MEETINGS_PAGE_SIZE
    if page_size < 1:
        raise ValueError("page_size must be positive")

    qs = Meeting.objects.filter(owner=owner).order_by("-created_at", "-id")
    try:
        if cursor:
            qs = after(qs, *decode_cursor(cursor))
        elif last_id:
            qs = after(qs, *_resolve_last_id(owner, last_id))
        rows = list(qs[:page_size + 1])
    except DatabaseError as exc:
        logger.exception("Failed to fetch meetings for owner %s", getattr(owner, "pk", owner))
        raise StorageError("Failed to fetch summaries") from exc

    has_more = len(rows) > page_size
    items = rows[:page_size]
    next_cursor = encode_cursor(items[-1].created_at, items[-1].id) if has_more else None
    return MeetingPage(items=items, has_more=has_more, next_cursor=next_cursor)


def _resolve_last_id(owner, last_id: str):
    try:
        meeting_id = uuid.UUID(str(last_id))
    except ValueError as exc:
        raise InvalidCursor("Invalid lastId") from exc
    row = (
        Meeting.objects.filter(owner=owner, id=meeting_id)
        .values_list("created_at", "id")
        .first()
    )
    if row is None:
        raise InvalidCursor("Unknown lastId")
    return row


def get_meeting(owner, meeting_id) -> Meeting:
    return Meeting.objects.get(owner=owner, id=meeting_id)


def audio_url(meeting: Meeting, request=None) -> str:
    """Resolve the stored audio key through the storage backend.

    Signed backend URLs expire, so the key is stored and the URL is built
    on every read.
    """
    if not meeting.audio_key:
        return ""
    url = default_storage.url(meeting.audio_key)
    return request.build_absolute_uri(url) if request else url
