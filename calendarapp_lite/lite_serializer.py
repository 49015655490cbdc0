"""ICS export - CalendarApp Lite.

Wraps one VEVENT per occurrence in a VCALENDAR envelope. Serialization has
no failure modes of its own: the occurrence models already guarantee valid
spans.
"""

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Optional

from .lite_event_mapper import Occurrence, occurrence_to_vevent
from .timezone_utils import now_utc

logger = logging.getLogger(__name__)

PRODID = "-//CalendarApp//CalendarApp//EN"
CRLF = "\r\n"
MAX_LINE_OCTETS = 75

CALENDAR_HEADER = (
    "BEGIN:VCALENDAR",
    "VERSION:2.0",
    f"PRODID:{PRODID}",
    "CALSCALE:GREGORIAN",
    "METHOD:PUBLISH",
)
CALENDAR_FOOTER = ("END:VCALENDAR",)


def fold_line(line: str, limit: int = MAX_LINE_OCTETS) -> str:
    """Fold a content line to ``limit`` octets per physical line.

    Breaks only on UTF-8 character boundaries; continuation lines start
    with a single space that counts toward the limit.
    """
    if len(line.encode("utf-8")) <= limit:
        return line

    chunks: list[str] = []
    current = ""
    current_octets = 0
    budget = limit
    for char in line:
        char_octets = len(char.encode("utf-8"))
        if current_octets + char_octets > budget:
            chunks.append(current)
            current = ""
            current_octets = 0
            budget = limit - 1
        current += char
        current_octets += char_octets
    chunks.append(current)
    return (CRLF + " ").join(chunks)


def serialize(
    events: Iterable[Occurrence],
    now: Optional[datetime] = None,
    fold: bool = False,
) -> str:
    """Serialize occurrences to a complete ICS document.

    Args:
        events: Occurrences to export (a singleton list for "export one")
        now: DTSTAMP for events without ``created_at``; defaults to now
        fold: Fold content lines longer than 75 octets

    Returns:
        CRLF-terminated VCALENDAR text
    """
    stamp = now or now_utc()
    lines = list(CALENDAR_HEADER)
    count = 0
    for event in events:
        lines.extend(occurrence_to_vevent(event, stamp))
        count += 1
    lines.extend(CALENDAR_FOOTER)

    if fold:
        lines = [fold_line(line) for line in lines]

    logger.debug("Serialized %d events to ICS", count)
    return CRLF.join(lines) + CRLF
