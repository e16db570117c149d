"""Opaque keyset cursors for meeting listings.

A cursor encodes the ``(created_at, id)`` pair of the last row on a page.
Because the listing is ordered by that same pair, the next page is one
bounded query with no lookup of the cursor row.
"""

import base64
import uuid
from datetime import datetime

from django.db.models import Q
from django.utils import timezone


class InvalidCursor(Exception):
    status_code = 400


def encode_cursor(created_at: datetime, meeting_id: uuid.UUID) -> str:
    raw = f"{created_at.isoformat()}|{meeting_id.hex}"
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii").rstrip("=")


def decode_cursor(token: str):
    padded = token + "=" * (-len(token) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
        stamp, _, ident = raw.partition("|")
        created_at = datetime.fromisoformat(stamp)
        meeting_id = uuid.UUID(ident)
    except ValueError as exc:
        raise InvalidCursor("Invalid cursor") from exc
    if timezone.is_naive(created_at):
        raise InvalidCursor("Invalid cursor")
    return created_at, meeting_id


def after(queryset, created_at: datetime, meeting_id: uuid.UUID):
    """Rows strictly after ``(created_at, id)`` in newest-first order."""
    return queryset.filter(
        Q(created_at__lt=created_at) | Q(created_at=created_at, id__lt=meeting_id)
    )
