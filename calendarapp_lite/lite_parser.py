"""iCalendar parser - CalendarApp Lite version.

Lenient by design: a VEVENT block that cannot be mapped is dropped on its
own instead of failing the whole document, because third-party feeds are
never fully trustworthy.
"""

import logging
from datetime import datetime, tzinfo
from typing import Any, Optional

from .exceptions import LiteICSNoEventsError
from .lite_event_mapper import IdFactory, Occurrence, build_source, default_id_factory
from .lite_event_merger import LiteEventMerger
from .lite_models import ICSParseResult, RecurrenceSource
from .lite_rrule_expander import ExpansionWindow, LiteRRuleExpander
from .lite_tokenizer import first, split_document, unescape_text
from .timezone_utils import resolve_local_timezone

logger = logging.getLogger(__name__)


class LiteICSParser:
    """ICS text -> occurrence records ready for storage upsert."""

    def __init__(
        self,
        settings: Any = None,
        id_factory: Optional[IdFactory] = None,
        local_tz: Optional[tzinfo] = None,
        window: Optional[ExpansionWindow] = None,
    ) -> None:
        """Initialize ICS parser.

        Args:
            settings: Application settings (``default_timezone`` and the
                expansion window sizes are read from it when present)
            id_factory: Generator for IDs of events without a UID
            local_tz: Ambient zone for floating times; overrides settings
            window: Expansion window; overrides settings
        """
        self.settings = settings
        self.id_factory = id_factory or default_id_factory
        self.local_tz = local_tz or resolve_local_timezone(
            getattr(settings, "default_timezone", None)
        )
        self.rrule_expander = LiteRRuleExpander(settings, window=window, local_tz=self.local_tz)
        self._event_merger = LiteEventMerger(self.rrule_expander, self.local_tz)

        logger.debug("Lite ICS parser initialized")

    def parse_ics_content(
        self,
        ics_content: str,
        source_url: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ICSParseResult:
        """Parse ICS content into a result with events and statistics.

        Args:
            ics_content: Raw ICS file content
            source_url: Optional source URL for the audit trail
            now: Reference time for recurrence windows

        Returns:
            Parse result; ``success`` is False only when no events were found

        Raises:
            TypeError: If ``ics_content`` is not a string
        """
        if ics_content is None or not isinstance(ics_content, str):
            raise TypeError("ICS content must be a string")

        document = split_document(ics_content)
        warnings: list[str] = []

        sources: list[RecurrenceSource] = []
        skipped = 0
        for index, props in enumerate(document.vevent_blocks):
            source = build_source(props, self.id_factory, self.local_tz)
            if source is None:
                skipped += 1
                logger.debug("Skipping VEVENT #%d without a usable DTSTART", index)
                continue
            sources.append(source)

        if skipped:
            warnings.append(f"Skipped {skipped} VEVENT blocks without a usable DTSTART")

        untitled = sum(1 for s in sources if not s.title and not s.is_override)
        if untitled:
            warnings.append(f"Skipped {untitled} VEVENT blocks without SUMMARY")

        events = self._event_merger.merge(sources, now)

        prodid = first(document.calendar_properties, "PRODID")
        calendar_name = first(document.calendar_properties, "X-WR-CALNAME")

        result = ICSParseResult(
            success=bool(events),
            events=events,
            source_url=source_url,
            calendar_name=unescape_text(calendar_name.value) if calendar_name else None,
            prodid=prodid.value.strip() if prodid else None,
            total_components=len(document.vevent_blocks),
            event_count=len(events),
            recurring_event_count=sum(1 for s in sources if s.is_recurring),
            override_count=sum(1 for s in sources if s.is_override),
            skipped_components=skipped + untitled,
            warnings=warnings,
            error_message=None if events else "No usable events found",
        )

        logger.debug(
            "Parsed %d VEVENT blocks into %d events (%d recurring, %d overrides, %d skipped)",
            result.total_components,
            result.event_count,
            result.recurring_event_count,
            result.override_count,
            result.skipped_components,
        )
        return result

    def parse_events(
        self,
        ics_content: str,
        now: Optional[datetime] = None,
        require_events: bool = False,
    ) -> list[Occurrence]:
        """Parse ICS content into occurrences.

        Raises:
            LiteICSNoEventsError: If ``require_events`` is set and the
                document holds no usable events
        """
        result = self.parse_ics_content(ics_content, now=now)
        if require_events and not result.events:
            raise LiteICSNoEventsError("No valid events found in the calendar file")
        return list(result.events)


def parse_ics(
    content: str,
    id_factory: Optional[IdFactory] = None,
    now: Optional[datetime] = None,
    local_tz: Optional[tzinfo] = None,
    window: Optional[ExpansionWindow] = None,
) -> list[Occurrence]:
    """Parse ICS text into occurrence records.

    Convenience wrapper over ``LiteICSParser`` used by both the file import
    and the subscription sync flows.
    """
    parser = LiteICSParser(id_factory=id_factory, local_tz=local_tz, window=window)
    return parser.parse_events(content, now=now)
