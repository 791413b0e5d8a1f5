"""Opaque keyset cursors and the bounded cursor history used for page navigation.

A cursor is the ``(at, id)`` sort key of the last row of a page. Rows are
traversed ``at DESC, id DESC``; the next page holds rows strictly below the
cursor in that order. The history is a list of cursors for pages
``cursor_base .. cursor_base + len(history) - 1``; page 1 never needs one.
"""

from __future__ import annotations

import base64
import binascii
import json
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

FIRST_CURSOR_PAGE = 2


@dataclass(frozen=True)
class ReportCursor:
    at: datetime
    id: str

    def to_dict(self) -> dict[str, str]:
        at = self.at if self.at.tzinfo else self.at.replace(tzinfo=timezone.utc)
        return {
            "at": at.astimezone(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z"),
            "id": self.id,
        }

    @property
    def at_naive_utc(self) -> datetime:
        if self.at.tzinfo is None:
            return self.at
        return self.at.astimezone(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class CursorPageState:
    page: int
    cursors: list[ReportCursor]
    cursor_base: int
    current_cursor: ReportCursor | None


def _b64encode(raw: str) -> str:
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii").rstrip("=")


def _b64decode(value: str) -> str:
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode((value + padding).encode("ascii")).decode("utf-8")


def _cursor_from_entry(entry) -> ReportCursor | None:
    if not isinstance(entry, dict):
        return None
    at_raw = entry.get("at")
    id_raw = entry.get("id")
    if not isinstance(at_raw, str) or not isinstance(id_raw, str):
        return None
    try:
        at = datetime.fromisoformat(at_raw.replace("Z", "+00:00"))
        cursor_id = str(uuid.UUID(id_raw))
    except ValueError:
        return None
    if at.tzinfo is None:
        at = at.replace(tzinfo=timezone.utc)
    try:
        return ReportCursor(at=at.astimezone(timezone.utc), id=cursor_id)
    except OverflowError:
        return None


def encode_cursor(cursor: ReportCursor | None) -> str | None:
    if cursor is None:
        return None
    return _b64encode(json.dumps(cursor.to_dict(), separators=(",", ":")))


def decode_cursor(value: str | None) -> ReportCursor | None:
    if not value:
        return None
    try:
        parsed = json.loads(_b64decode(value))
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None
    return _cursor_from_entry(parsed)


def encode_cursor_list(cursors: list[ReportCursor]) -> str:
    return _b64encode(json.dumps([cursor.to_dict() for cursor in cursors], separators=(",", ":")))


def decode_cursor_list(value: str | None) -> list[ReportCursor]:
    if not value:
        return []
    try:
        parsed = json.loads(_b64decode(value))
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return []
    if not isinstance(parsed, list):
        return []
    cursors = []
    for entry in parsed:
        cursor = _cursor_from_entry(entry)
        if cursor is not None:
            cursors.append(cursor)
    return cursors


def apply_cursor_limit(cursors: list[ReportCursor], base: int, max_history: int) -> tuple[list[ReportCursor], int]:
    """Drop the oldest cursors beyond ``max_history``, shifting ``base`` by the same amount."""
    if max_history < 1 or len(cursors) <= max_history:
        return list(cursors), base
    overflow = len(cursors) - max_history
    return list(cursors[overflow:]), base + overflow


def _first_page() -> CursorPageState:
    return CursorPageState(page=1, cursors=[], cursor_base=FIRST_CURSOR_PAGE, current_cursor=None)


def normalize_cursor_page_state(
    *,
    page: int | None,
    cursors: list[ReportCursor],
    cursor_base: int | None,
    max_history: int,
) -> CursorPageState:
    """Reconcile a requested page with the history that came with it.

    Any request the history cannot serve falls back to page 1.
    """
    safe_page = page if isinstance(page, int) else 1
    safe_base = cursor_base if isinstance(cursor_base, int) else FIRST_CURSOR_PAGE
    safe_base = max(safe_base, FIRST_CURSOR_PAGE)
    if safe_page <= 1:
        return _first_page()

    history, safe_base = apply_cursor_limit(cursors, safe_base, max_history)
    required = safe_page - safe_base + 1
    if required < 1 or len(history) < required:
        return _first_page()
    history = history[:required]
    return CursorPageState(
        page=safe_page,
        cursors=history,
        cursor_base=safe_base,
        current_cursor=history[safe_page - safe_base],
    )


def build_cursor_page_state(
    *,
    target_page: int,
    current_page: int,
    cursors: list[ReportCursor],
    cursor_base: int,
    next_cursor: ReportCursor | None,
    max_history: int,
) -> CursorPageState | None:
    """History to send for a link to ``target_page``, or ``None`` if it is not reachable."""
    if target_page <= 1:
        return _first_page()

    if target_page == current_page + 1 and next_cursor is not None:
        history, base = apply_cursor_limit([*cursors, next_cursor], cursor_base, max_history)
        return CursorPageState(
            page=target_page,
            cursors=history,
            cursor_base=base,
            current_cursor=history[-1],
        )

    if target_page <= current_page:
        if target_page < cursor_base:
            return None
        required = target_page - cursor_base + 1
        if len(cursors) < required:
            return None
        history = list(cursors[:required])
        return CursorPageState(
            page=target_page,
            cursors=history,
            cursor_base=cursor_base,
            current_cursor=history[-1],
        )

    return None
