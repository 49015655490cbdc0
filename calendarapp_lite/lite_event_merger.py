"""RECURRENCE-ID / EXDATE reconciliation for ICS calendar processing - CalendarApp Lite.

Sources are grouped by UID. Within a group the first block carrying an RRULE
is the base; blocks carrying a RECURRENCE-ID override (or, with
STATUS:CANCELLED, remove) one occurrence of that base.
"""

import dataclasses
import logging
from collections.abc import Iterable
from datetime import date, datetime, tzinfo
from typing import Optional, Union

from .lite_datetime_utils import occurrence_id
from .lite_event_mapper import Occurrence, align_to_start, source_to_occurrence
from .lite_models import RecurrenceSource
from .lite_rrule_expander import LiteRRuleExpander

logger = logging.getLogger(__name__)


class LiteEventMerger:
    """Combines recurring bases with their exceptions and overrides."""

    def __init__(self, expander: LiteRRuleExpander, local_tz: Optional[tzinfo] = None) -> None:
        self.expander = expander
        self.local_tz = local_tz

    @staticmethod
    def group_by_uid(sources: Iterable[RecurrenceSource]) -> dict[str, list[RecurrenceSource]]:
        """Group sources by UID, keeping first-seen order."""
        groups: dict[str, list[RecurrenceSource]] = {}
        for source in sources:
            groups.setdefault(source.uid, []).append(source)
        return groups

    def merge(
        self,
        sources: Iterable[RecurrenceSource],
        now: Optional[datetime] = None,
    ) -> list[Occurrence]:
        """Turn every source into final occurrence records.

        Args:
            sources: Decoded VEVENT blocks of one document
            now: Reference time for the expansion window

        Returns:
            Occurrences ready for storage upsert; order is not significant
        """
        merged: list[Occurrence] = []
        for uid, group in self.group_by_uid(sources).items():
            merged.extend(self._merge_group(uid, group, now))
        return merged

    def _merge_group(
        self,
        uid: str,
        group: list[RecurrenceSource],
        now: Optional[datetime],
    ) -> list[Occurrence]:
        base = next((s for s in group if s.is_recurring), None)
        if base is None:
            return self._emit_independent(group)

        overrides = [s for s in group if s.is_override]
        extra_bases = [s for s in group if s.is_recurring and s is not base]
        if extra_bases:
            logger.debug("UID %s has %d extra RRULE blocks; using the first", uid, len(extra_bases))
        siblings = [s for s in group if not s.is_override and not s.is_recurring]

        expanded = self.expander.expand(base, now)

        excluded = {self._target_id(base, exdate) for exdate in base.exdates}
        cancelled = {self._target_id(base, o.recurrence_id) for o in overrides if o.is_cancelled}
        excluded |= cancelled

        replacements: dict[str, Occurrence] = {}
        for override in overrides:
            if override.is_cancelled:
                continue
            target = self._target_id(base, override.recurrence_id)
            if target in excluded:
                continue
            record = self._override_record(base, override, target)
            if record is not None:
                replacements[target] = record

        result: list[Occurrence] = []
        produced: set[str] = set()
        for occurrence in expanded:
            produced.add(occurrence.id)
            if occurrence.id in excluded:
                continue
            result.append(replacements.get(occurrence.id, occurrence))

        # Overrides whose target the expansion never produced (e.g. outside the window)
        for target, record in replacements.items():
            if target not in produced:
                result.append(record)

        for sibling in siblings:
            occurrence = source_to_occurrence(sibling)
            if occurrence is not None:
                result.append(occurrence)

        if excluded or replacements:
            logger.debug(
                "UID %s: %d expanded, %d excluded, %d overridden",
                uid,
                len(expanded),
                len(excluded & produced),
                len(replacements),
            )
        return result

    def _emit_independent(self, group: list[RecurrenceSource]) -> list[Occurrence]:
        """Emit each block of a group without a recurring base on its own."""
        result: list[Occurrence] = []
        for source in group:
            if source.is_override:
                # Deliberately dropped: a cancellation with no series has nothing to cancel
                if source.is_cancelled:
                    logger.debug("Dropping cancelled override of unknown series %s", source.uid)
                    continue
                occurrence = source_to_occurrence(
                    source, occurrence_id=occurrence_id(source.uid, source.recurrence_id)
                )
            else:
                occurrence = source_to_occurrence(source)
            if occurrence is not None:
                result.append(occurrence)
        return result

    def _target_id(self, base: RecurrenceSource, value: Union[date, datetime]) -> str:
        """Occurrence ID an EXDATE / RECURRENCE-ID value points at."""
        return occurrence_id(base.uid, align_to_start(value, base.start, self.local_tz))

    def _override_record(
        self,
        base: RecurrenceSource,
        override: RecurrenceSource,
        target: str,
    ) -> Optional[Occurrence]:
        """Full replacement record for one occurrence.

        The override's own title, notes, location and times win; a missing
        title falls back to the base's so the occurrence is not lost.
        """
        if not override.title:
            override = dataclasses.replace(override, title=base.title)
        return source_to_occurrence(override, occurrence_id=target)
