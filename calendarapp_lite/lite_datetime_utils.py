"""DATE / DATE-TIME codec for ICS calendar processing - CalendarApp Lite.

Encodes occurrence fields to RFC 5545 text and decodes property values back
into ``date`` or UTC ``datetime`` objects.

Floating values (no ``Z`` suffix, with or without a ``TZID`` parameter) are
read as wall-clock time in the ambient local zone. TZID values are recorded
but never resolved against a time zone database; changing that would shift
the displayed time of data that has already been imported.
"""

import logging
import re
from collections.abc import Mapping
from datetime import UTC, date, datetime, time, timedelta, tzinfo
from typing import Optional, Union

from .exceptions import LiteDateTimeParseError

logger = logging.getLogger(__name__)

DateOrDateTime = Union[date, datetime]

_DATE_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})$")
_DATETIME_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})T(\d{2})(\d{2})(\d{2})?(Z)?$")


def ensure_utc(dt: datetime) -> datetime:
    """Normalize a datetime to UTC, treating naive values as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def format_ics_datetime(dt: datetime) -> str:
    """Encode an instant as ``YYYYMMDDTHHMMSSZ`` (always UTC)."""
    return ensure_utc(dt).strftime("%Y%m%dT%H%M%SZ")


def format_ics_date(d: date) -> str:
    """Encode a calendar date as ``YYYYMMDD``."""
    if isinstance(d, datetime):
        d = d.date()
    return f"{d.year:04d}{d.month:02d}{d.day:02d}"


def to_local_wallclock(dt: datetime, local_tz: Optional[tzinfo] = None) -> datetime:
    """Return the naive wall-clock reading of an instant in the ambient zone.

    With ``local_tz`` None the host's local zone is used.
    """
    aware = ensure_utc(dt)
    local = aware.astimezone(local_tz) if local_tz is not None else aware.astimezone()
    return local.replace(tzinfo=None)


def from_local_wallclock(naive: datetime, local_tz: Optional[tzinfo] = None) -> datetime:
    """Interpret a naive wall-clock value in the ambient zone and return UTC."""
    if naive.tzinfo is not None:
        return naive.astimezone(UTC)
    if local_tz is not None:
        return naive.replace(tzinfo=local_tz).astimezone(UTC)
    # Naive astimezone() treats the value as host local time
    return naive.astimezone(UTC)


def local_today(local_tz: Optional[tzinfo] = None, now: Optional[datetime] = None) -> date:
    """Calendar date of ``now`` in the ambient zone."""
    reference = now if now is not None else datetime.now(UTC)
    return to_local_wallclock(reference, local_tz).date()


def is_date_value(value: str, params: Optional[Mapping[str, str]] = None) -> bool:
    """Whether a raw property value denotes a calendar date."""
    if params and params.get("VALUE", "").upper() == "DATE":
        return True
    return len(value.strip()) == 8


def decode_ics_value(
    value: str,
    params: Optional[Mapping[str, str]] = None,
    local_tz: Optional[tzinfo] = None,
) -> DateOrDateTime:
    """Decode a DATE or DATE-TIME property value.

    Args:
        value: Raw value, e.g. ``20240101``, ``20240101T090000Z`` or
            ``20240101T090000``
        params: Property parameters (``VALUE``, ``TZID``)
        local_tz: Ambient zone for floating values; None means host local

    Returns:
        ``date`` for calendar dates, UTC-aware ``datetime`` otherwise

    Raises:
        LiteDateTimeParseError: If the value is not a recognizable date/time
    """
    raw = (value or "").strip()

    if is_date_value(raw, params):
        match = _DATE_RE.match(raw[:8])
        if not match:
            raise LiteDateTimeParseError(f"Invalid DATE value: {value!r}")
        try:
            return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        except ValueError as e:
            raise LiteDateTimeParseError(f"Invalid DATE value: {value!r}") from e

    match = _DATETIME_RE.match(raw)
    if not match:
        raise LiteDateTimeParseError(f"Invalid DATE-TIME value: {value!r}")

    year, month, day, hour, minute = (int(match.group(i)) for i in range(1, 6))
    second = int(match.group(6)) if match.group(6) else 0
    try:
        naive = datetime(year, month, day, hour, minute, second)
    except ValueError as e:
        raise LiteDateTimeParseError(f"Invalid DATE-TIME value: {value!r}") from e

    if match.group(7):
        return naive.replace(tzinfo=UTC)

    if params and params.get("TZID"):
        logger.debug("Treating TZID=%s value %s as floating local time", params["TZID"], raw)
    return from_local_wallclock(naive, local_tz)


def decode_ics_value_list(
    value: str,
    params: Optional[Mapping[str, str]] = None,
    local_tz: Optional[tzinfo] = None,
) -> list[DateOrDateTime]:
    """Decode a comma-separated list value (EXDATE), skipping bad entries."""
    decoded: list[DateOrDateTime] = []
    for part in (value or "").split(","):
        part = part.strip()
        if not part:
            continue
        try:
            decoded.append(decode_ics_value(part, params, local_tz))
        except LiteDateTimeParseError as e:
            logger.warning("Skipping malformed list entry %r: %s", part, e)
    return decoded


def occurrence_key(value: DateOrDateTime) -> str:
    """Stable key for one occurrence start.

    ISO date (``2024-01-01``) for calendar dates, ISO UTC instant
    (``2024-01-01T09:00:00Z``) for datetimes.
    """
    if isinstance(value, datetime):
        return ensure_utc(value).strftime("%Y-%m-%dT%H:%M:%SZ")
    return value.isoformat()


def occurrence_id(uid: str, value: DateOrDateTime) -> str:
    """``<UID>#<occurrence-key>``."""
    return f"{uid}#{occurrence_key(value)}"


def end_of_day(d: date) -> datetime:
    """Naive last second of a calendar date."""
    return datetime.combine(d, time(23, 59, 59))


def add_days(d: date, days: int) -> date:
    return d + timedelta(days=days)
