"""Date range resolution for reports.

Caller supplied ``from``/``to`` values are either calendar days (``YYYY-MM-DD``),
read in the business timezone, or full ISO-8601 timestamps. Full timestamps keep
their time of day; they are never snapped to a day boundary. Values that do not
parse are dropped instead of rejected, so a bad filter falls back to the default
window.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.shopbook.core.config import settings
from app.shopbook.core.error_catalog import ValidationError

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_END_OF_DAY = time(23, 59, 59, 999000)
_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class ParsedRange:
    start: datetime | None
    end: datetime | None

    @property
    def is_empty(self) -> bool:
        return self.start is None and self.end is None


@dataclass(frozen=True)
class ReportRange:
    """A concrete ``[start, end]`` interval of aware UTC instants."""

    start: datetime
    end: datetime

    @property
    def span(self) -> timedelta:
        return self.end - self.start

    @property
    def start_naive_utc(self) -> datetime:
        return to_naive_utc(self.start)

    @property
    def end_naive_utc(self) -> datetime:
        return to_naive_utc(self.end)


def resolve_timezone(timezone_name: str | None = None) -> tzinfo:
    tz_name = timezone_name or settings.REPORTS_BUSINESS_TIMEZONE
    if tz_name in ("UTC", "Z", "Etc/UTC"):
        return timezone.utc
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValidationError(details={"message": "invalid business timezone", "timezone": tz_name}) from exc


def business_timezone() -> tzinfo:
    return resolve_timezone(settings.REPORTS_BUSINESS_TIMEZONE)


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_naive_utc(value: datetime) -> datetime:
    return ensure_utc(value).replace(tzinfo=None)


def business_date(value: datetime, tz: tzinfo) -> date:
    """Calendar day of a stored (naive UTC) or aware instant in ``tz``."""
    return ensure_utc(value).astimezone(tz).date()


def _parse_value(value: str | None, *, end_of_day: bool, tz: tzinfo) -> datetime | None:
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if _DATE_ONLY.match(value):
        try:
            day = date.fromisoformat(value)
        except ValueError:
            return None
        local = datetime.combine(day, _END_OF_DAY if end_of_day else time.min, tzinfo=tz)
        try:
            return local.astimezone(timezone.utc)
        except OverflowError:
            return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        # Timestamps without an offset are read as UTC.
        parsed = parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except OverflowError:
        return None


def _days_before(instant: datetime, days: int) -> datetime:
    try:
        return instant - timedelta(days=days)
    except OverflowError:
        return _EARLIEST


def parse_range(from_value: str | None, to_value: str | None, tz: tzinfo | None = None) -> ParsedRange:
    tz = tz or business_timezone()
    start = _parse_value(from_value, end_of_day=False, tz=tz)
    end = _parse_value(to_value, end_of_day=True, tz=tz)
    if start is not None and end is not None and start > end:
        # Reversed inputs: read them the other way round so both day bounds survive.
        start = _parse_value(to_value, end_of_day=False, tz=tz)
        end = _parse_value(from_value, end_of_day=True, tz=tz)
    return ParsedRange(start=start, end=end)


def ensure_bounded_range(
    start: datetime | None,
    end: datetime | None,
    fallback_days: int,
    *,
    now: datetime | None = None,
) -> ReportRange:
    end_at = ensure_utc(end) if end is not None else ensure_utc(now or now_utc())
    start_at = ensure_utc(start) if start is not None else _days_before(end_at, fallback_days)
    if start_at > end_at:
        start_at, end_at = end_at, start_at
    return ReportRange(start=start_at, end=end_at)


def clamp_range(
    start: datetime | None,
    end: datetime | None,
    max_days: int,
    *,
    now: datetime | None = None,
) -> ReportRange:
    bounded = ensure_bounded_range(start, end, max_days, now=now)
    if bounded.span > timedelta(days=max_days):
        return ReportRange(start=_days_before(bounded.end, max_days), end=bounded.end)
    return bounded


def resolve_list_range(
    from_value: str | None,
    to_value: str | None,
    *,
    max_days: int | None = None,
    tz: tzinfo | None = None,
    now: datetime | None = None,
) -> ReportRange | None:
    """Range for list and summary reports.

    Returns ``None`` (unbounded) when neither bound was supplied. A missing
    bound is derived from the other with the same fallback window profit
    reports use, and the result is clamped to ``max_days``.
    """
    if not from_value and not to_value:
        return None
    parsed = parse_range(from_value, to_value, tz)
    limit = max_days if max_days is not None else settings.REPORTS_MAX_DATE_RANGE_DAYS
    bounded = ensure_bounded_range(parsed.start, parsed.end, settings.REPORTS_DEFAULT_FALLBACK_DAYS, now=now)
    return clamp_range(bounded.start, bounded.end, limit, now=now)


def resolve_profit_range(
    from_value: str | None,
    to_value: str | None,
    *,
    tz: tzinfo | None = None,
    now: datetime | None = None,
) -> ReportRange:
    """Range for profit style reports, always bounded.

    With no bounds at all the long profit fallback stands in for "all time";
    with one bound the ordinary fallback window applies.
    """
    parsed = parse_range(from_value, to_value, tz)
    if parsed.is_empty:
        fallback_days = settings.REPORTS_PROFIT_FALLBACK_DAYS
    else:
        fallback_days = settings.REPORTS_DEFAULT_FALLBACK_DAYS
    return ensure_bounded_range(parsed.start, parsed.end, fallback_days, now=now)


def business_day_range(day: date, tz: tzinfo | None = None) -> ReportRange:
    tz = tz or business_timezone()
    start = datetime.combine(day, time.min, tzinfo=tz).astimezone(timezone.utc)
    end = datetime.combine(day, _END_OF_DAY, tzinfo=tz).astimezone(timezone.utc)
    return ReportRange(start=start, end=end)


def today_range(tz: tzinfo | None = None, *, now: datetime | None = None) -> ReportRange:
    tz = tz or business_timezone()
    current = ensure_utc(now or now_utc())
    return business_day_range(current.astimezone(tz).date(), tz)

