"""Opaque keyset cursors shared by every paginated listing.

A cursor wraps the last id the client saw, ``{"id": <int>}`` as Base64 JSON.
Listings fetch ``limit + 1`` rows so ``has_more`` needs no COUNT(*).
"""

import base64
import binascii
import json
from collections.abc import Callable, Sequence
from typing import TypeVar

T = TypeVar("T")


def cursor_encode(last_id: int) -> str:
    payload = json.dumps({"id": last_id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> int | None:
    """Last seen id, or None (start from the top) for a missing or garbled cursor."""
    if not cursor:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode(), validate=True).decode())
        return int(payload["id"])
    except (binascii.Error, UnicodeDecodeError, ValueError, KeyError, TypeError):
        return None


def split_page(
    rows: Sequence[T], limit: int, last_id_of: Callable[[T], int]
) -> tuple[list[T], str | None, bool]:
    """Cut a ``limit + 1`` fetch into (page, next_cursor, has_more)."""
    has_more = len(rows) > limit
    page = list(rows[:limit])
    next_cursor = cursor_encode(last_id_of(page[-1])) if has_more and page else None
    return page, next_cursor, has_more
