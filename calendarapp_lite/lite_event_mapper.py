"""Single VEVENT <-> occurrence mapping - CalendarApp Lite.

No recurrence logic lives here: one tokenized block becomes one
``RecurrenceSource`` (or nothing), one source becomes one occurrence, and one
occurrence becomes one VEVENT block.
"""

import logging
import uuid
from collections.abc import Callable, Sequence
from datetime import date, datetime, timedelta, tzinfo
from typing import Optional, Union

from .exceptions import LiteDateTimeParseError
from .lite_datetime_utils import (
    decode_ics_value,
    decode_ics_value_list,
    format_ics_date,
    format_ics_datetime,
    from_local_wallclock,
    to_local_wallclock,
)
from .lite_models import AllDayOccurrence, RecurrenceSource, TimedOccurrence
from .lite_tokenizer import ICSProperty, all_of, escape_text, first, text_value

logger = logging.getLogger(__name__)

IdFactory = Callable[[], str]
Occurrence = Union[AllDayOccurrence, TimedOccurrence]

DEFAULT_TIMED_DURATION = timedelta(hours=1)
DEFAULT_ALL_DAY_DURATION = timedelta(days=1)


def default_id_factory() -> str:
    """Fresh unique identifier for events whose feed carries no UID."""
    return uuid.uuid4().hex


def align_to_start(
    value: Union[date, datetime],
    start: Union[date, datetime],
    local_tz: Optional[tzinfo] = None,
) -> Union[date, datetime]:
    """Coerce a DATE/DATE-TIME value to the kind of ``start``.

    A datetime aligned to an all-day start becomes its local calendar date;
    a date aligned to a timed start takes the start's local time-of-day.
    """
    start_is_datetime = isinstance(start, datetime)
    value_is_datetime = isinstance(value, datetime)
    if start_is_datetime == value_is_datetime:
        return value
    if value_is_datetime:
        return to_local_wallclock(value, local_tz).date()
    start_local = to_local_wallclock(start, local_tz)
    return from_local_wallclock(datetime.combine(value, start_local.time()), local_tz)


def _decode_optional(prop: Optional[ICSProperty], local_tz: Optional[tzinfo]) -> Optional[Union[date, datetime]]:
    if prop is None:
        return None
    try:
        return decode_ics_value(prop.value, prop.params, local_tz)
    except LiteDateTimeParseError as e:
        logger.debug("Ignoring undecodable %s: %s", prop.name, e)
        return None


def build_source(
    props: Sequence[ICSProperty],
    id_factory: Optional[IdFactory] = None,
    local_tz: Optional[tzinfo] = None,
) -> Optional[RecurrenceSource]:
    """Map one tokenized VEVENT block to a ``RecurrenceSource``.

    Returns None when DTSTART is missing or undecodable. SUMMARY is not
    checked here; a cancelled override without a title still cancels.
    """
    dtstart_prop = first(props, "DTSTART")
    start = _decode_optional(dtstart_prop, local_tz)
    if dtstart_prop is None or start is None:
        return None

    is_all_day = not isinstance(start, datetime)

    end = _decode_optional(first(props, "DTEND"), local_tz)
    if end is not None:
        end = align_to_start(end, start, local_tz)

    uid_prop = first(props, "UID")
    uid = uid_prop.value.strip() if uid_prop is not None else ""
    has_uid = bool(uid)
    if not has_uid:
        uid = (id_factory or default_id_factory)()

    rrule_prop = first(props, "RRULE")
    rrule = rrule_prop.value.strip() if rrule_prop is not None and rrule_prop.value.strip() else None

    exdates: list[Union[date, datetime]] = []
    for exdate_prop in all_of(props, "EXDATE"):
        exdates.extend(decode_ics_value_list(exdate_prop.value, exdate_prop.params, local_tz))

    recurrence_id = _decode_optional(first(props, "RECURRENCE-ID"), local_tz)

    status_prop = first(props, "STATUS")
    status = status_prop.value.strip().upper() if status_prop is not None else None

    stamp = _decode_optional(first(props, "DTSTAMP"), local_tz)

    return RecurrenceSource(
        uid=uid,
        title=text_value(props, "SUMMARY"),
        start=start,
        end=end,
        is_all_day=is_all_day,
        notes=text_value(props, "DESCRIPTION"),
        location=text_value(props, "LOCATION"),
        timezone=dtstart_prop.param("TZID"),
        rrule=rrule,
        exdates=exdates,
        recurrence_id=recurrence_id,
        status=status or None,
        created_at=stamp if isinstance(stamp, datetime) else None,
        has_uid=has_uid,
    )


def source_span(source: RecurrenceSource) -> tuple[Union[date, datetime], Union[date, datetime]]:
    """Start and a valid end for a source, applying the DTEND defaults.

    A missing end (or one not after the start) becomes one day for all-day
    events and one hour for timed events.
    """
    start = source.start
    default = DEFAULT_ALL_DAY_DURATION if source.is_all_day else DEFAULT_TIMED_DURATION
    end = source.end
    if end is None or end <= start:
        end = start + default
    return start, end


def source_to_occurrence(
    source: RecurrenceSource,
    occurrence_id: Optional[str] = None,
    start: Optional[Union[date, datetime]] = None,
) -> Optional[Occurrence]:
    """Build the occurrence record for a source.

    Args:
        source: Decoded VEVENT
        occurrence_id: ID to use instead of the source UID
        start: Start to move the occurrence to, keeping the source duration

    Returns:
        The occurrence, or None when the source has no title. Only the
        un-moved base record carries the source DTSTAMP as ``created_at``.
    """
    if not source.title:
        return None

    base_start, base_end = source_span(source)
    duration = base_end - base_start
    new_start = start if start is not None else base_start
    new_end = new_start + duration

    common = {
        "id": occurrence_id or source.uid,
        "title": source.title,
        "notes": source.notes,
        "location": source.location,
        "timezone": source.timezone,
    }
    if occurrence_id is None and start is None:
        common["created_at"] = source.created_at
    if source.is_all_day:
        return AllDayOccurrence(start_date=new_start, end_date=new_end, **common)
    return TimedOccurrence(start_at=new_start, end_at=new_end, **common)


def occurrence_to_vevent(occurrence: Occurrence, now: datetime) -> list[str]:
    """Serialize one occurrence to the content lines of a VEVENT block.

    Fixed order: UID, DTSTAMP, DTSTART, DTEND, SUMMARY, then LOCATION and
    DESCRIPTION when present.
    """
    stamp = occurrence.created_at or now
    lines = [
        "BEGIN:VEVENT",
        f"UID:{occurrence.id}",
        f"DTSTAMP:{format_ics_datetime(stamp)}",
    ]

    if isinstance(occurrence, AllDayOccurrence):
        lines.append(f"DTSTART;VALUE=DATE:{format_ics_date(occurrence.start_date)}")
        lines.append(f"DTEND;VALUE=DATE:{format_ics_date(occurrence.end_date)}")
    else:
        lines.append(f"DTSTART:{format_ics_datetime(occurrence.start_at)}")
        lines.append(f"DTEND:{format_ics_datetime(occurrence.end_at)}")

    lines.append(f"SUMMARY:{escape_text(occurrence.title)}")
    if occurrence.location:
        lines.append(f"LOCATION:{escape_text(occurrence.location)}")
    if occurrence.notes:
        lines.append(f"DESCRIPTION:{escape_text(occurrence.notes)}")
    lines.append("END:VEVENT")
    return lines
