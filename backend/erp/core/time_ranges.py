"""Time Ranges — UTC instants, inclusive overlap, Madrid calendar helpers.

Invariants:
    - Every datetime returned is timezone-aware UTC
    - Naive datetimes (as read back from SQLite) are interpreted as UTC
    - overlaps() is inclusive: ranges that touch at an instant conflict
    - Variant times are wall-clock times in Europe/Madrid

Design Decisions:
    - DateRange is a frozen dataclass: hashable, comparable, no mutation after validation
    - zoneinfo for Madrid DST transitions (tzdata shipped as dependency)
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

MADRID = ZoneInfo("Europe/Madrid")

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_PARTS = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2}(?:\.\d+)?)?$")

DEFAULT_VARIANT_START = (9, 0)
DEFAULT_VARIANT_END = (11, 0)


@dataclass(frozen=True)
class DateRange:
    start: datetime
    end: datetime

    def overlaps(self, other: "DateRange") -> bool:
        return self.start <= other.end and self.end >= other.start


def as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def normalize_date_range(
    start: datetime | None, end: datetime | None,
) -> DateRange | None:
    """Fill a missing bound from the other; None when empty or inverted."""
    start, end = as_utc(start), as_utc(end)
    effective_start = start or end
    effective_end = end or start
    if effective_start is None or effective_end is None:
        return None
    if effective_end < effective_start:
        return None
    return DateRange(effective_start, effective_end)


def parse_datetime_param(text) -> datetime | None:
    """YYYY-MM-DD → midnight UTC; otherwise ISO-8601 (Z accepted)."""
    if isinstance(text, datetime):
        return as_utc(text)
    if not isinstance(text, str):
        return None
    raw = text.strip()
    if not raw:
        return None
    if _DATE_ONLY.match(raw):
        try:
            return datetime.fromisoformat(raw).replace(tzinfo=timezone.utc)
        except ValueError:
            return None
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    try:
        return as_utc(datetime.fromisoformat(raw))
    except ValueError:
        return None


def parse_time_parts(value) -> tuple[int, int] | None:
    """'HH:MM[:SS]' or a time → (hour, minute); None when invalid."""
    if isinstance(value, time):
        return value.hour, value.minute
    if isinstance(value, datetime):
        return value.hour, value.minute
    if not isinstance(value, str):
        return None
    match = _TIME_PARTS.match(value.strip())
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None
    return hour, minute


def madrid_datetime(day: date, hour: int, minute: int) -> datetime:
    """Wall-clock Madrid time on a calendar day, as UTC."""
    local = datetime(day.year, day.month, day.day, hour, minute, tzinfo=MADRID)
    return local.astimezone(timezone.utc)


def compute_variant_range(
    variant_date, hora_inicio, hora_fin,
) -> DateRange | None:
    """Occupied range of a variant on its calendar date (UTC day of the stored date)."""
    if variant_date is None:
        return None
    if isinstance(variant_date, datetime):
        day = as_utc(variant_date).date()
    elif isinstance(variant_date, date):
        day = variant_date
    else:
        parsed = parse_datetime_param(variant_date)
        if parsed is None:
            return None
        day = parsed.date()

    start_parts = parse_time_parts(hora_inicio)
    end_parts = parse_time_parts(hora_fin)
    start_hm = start_parts or DEFAULT_VARIANT_START
    end_hm = end_parts or start_parts or DEFAULT_VARIANT_END

    start = madrid_datetime(day, *start_hm)
    end = madrid_datetime(day, *end_hm)
    if end <= start:
        end = start + timedelta(hours=1)
    return DateRange(start, end)


def madrid_date(value: datetime) -> date:
    return as_utc(value).astimezone(MADRID).date()


def enumerate_madrid_days(span: DateRange) -> list[date]:
    """Inclusive list of Madrid calendar days covered by the range."""
    first = madrid_date(span.start)
    last = madrid_date(span.end)
    days = []
    current = first
    while current <= last:
        days.append(current)
        current += timedelta(days=1)
    return days


def to_iso(value: datetime | None) -> str | None:
    """Serialize as ISO-8601 UTC with a trailing Z."""
    if value is None:
        return None
    return as_utc(value).isoformat().replace("+00:00", "Z")
