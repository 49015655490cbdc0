"""Unit tests for lite_event_merger (EXDATE / RECURRENCE-ID reconciliation)."""

from datetime import UTC, date, datetime, timezone

import pytest

from calendarapp_lite.lite_event_merger import LiteEventMerger
from calendarapp_lite.lite_models import RecurrenceSource
from calendarapp_lite.lite_parser import parse_ics
from calendarapp_lite.lite_rrule_expander import LiteRRuleExpander

pytestmark = [pytest.mark.unit, pytest.mark.fast]

NOW = datetime(2024, 1, 10, 12, 0, tzinfo=UTC)

WEEKLY_BASE = [
    "UID:weekly-1",
    "SUMMARY:Planning",
    "DTSTART:20240101T090000Z",
    "DTEND:20240101T100000Z",
    "RRULE:FREQ=WEEKLY;BYDAY=MO;COUNT=3",
]


def _parse(content: str):
    return {e.id: e for e in parse_ics(content, now=NOW, local_tz=timezone.utc)}


class TestGrouping:
    def test_group_by_uid_keeps_first_seen_order(self):
        sources = [
            RecurrenceSource(uid=uid, title="t", start=date(2024, 1, 1))
            for uid in ("b", "a", "b", "c")
        ]
        groups = LiteEventMerger.group_by_uid(sources)
        assert list(groups) == ["b", "a", "c"]
        assert len(groups["b"]) == 2

    def test_non_recurring_events_keep_their_uid(self, ics_builder):
        content = ics_builder(
            ["UID:one", "SUMMARY:First", "DTSTART:20240101T090000Z"],
            ["UID:two", "SUMMARY:Second", "DTSTART;VALUE=DATE:20240102"],
        )
        assert sorted(_parse(content)) == ["one", "two"]


class TestExdate:
    def test_exdate_removes_only_that_occurrence(self, ics_builder):
        content = ics_builder(
            [
                "UID:daily-1",
                "SUMMARY:Standup",
                "DTSTART:20240101T090000Z",
                "RRULE:FREQ=DAILY;COUNT=5",
                "EXDATE:20240103T090000Z",
            ]
        )
        events = _parse(content)
        assert "daily-1#2024-01-03T09:00:00Z" not in events
        assert sorted(events) == [
            "daily-1#2024-01-01T09:00:00Z",
            "daily-1#2024-01-02T09:00:00Z",
            "daily-1#2024-01-04T09:00:00Z",
            "daily-1#2024-01-05T09:00:00Z",
        ]

    def test_exdate_as_date_for_timed_series(self, ics_builder):
        content = ics_builder(
            [
                "UID:daily-1",
                "SUMMARY:Standup",
                "DTSTART:20240101T090000Z",
                "RRULE:FREQ=DAILY;COUNT=3",
                "EXDATE;VALUE=DATE:20240102",
            ]
        )
        assert "daily-1#2024-01-02T09:00:00Z" not in _parse(content)

    def test_exdate_with_tzid_is_read_as_floating(self, ics_builder):
        content = ics_builder(
            [
                "UID:daily-1",
                "SUMMARY:Standup",
                "DTSTART:20240101T090000Z",
                "RRULE:FREQ=DAILY;COUNT=3",
                "EXDATE;TZID=Europe/London:20240102T090000",
            ]
        )
        assert len(_parse(content)) == 2

    def test_exdate_on_all_day_series(self, ics_builder):
        content = ics_builder(
            [
                "UID:gym",
                "SUMMARY:Gym",
                "DTSTART;VALUE=DATE:20240101",
                "RRULE:FREQ=DAILY;COUNT=3",
                "EXDATE;VALUE=DATE:20240102,20240103",
            ]
        )
        assert list(_parse(content)) == ["gym#2024-01-01"]

    def test_sample_exdate_fixture(self, sample_ics_exdate):
        events = _parse(sample_ics_exdate)
        assert len(events) == 3
        assert "test-event-003@calendarapp.test#2024-01-22T14:00:00Z" not in events


class TestOverrides:
    def test_override_relocates_one_occurrence(self, ics_builder):
        content = ics_builder(
            WEEKLY_BASE,
            [
                "UID:weekly-1",
                "RECURRENCE-ID:20240108T090000Z",
                "SUMMARY:Planning (moved)",
                "DTSTART:20240108T150000Z",
                "DTEND:20240108T160000Z",
            ],
        )
        events = _parse(content)
        assert len(events) == 3
        moved = events["weekly-1#2024-01-08T09:00:00Z"]
        assert moved.start_at == datetime(2024, 1, 8, 15, 0, tzinfo=UTC)
        assert moved.end_at == datetime(2024, 1, 8, 16, 0, tzinfo=UTC)
        assert moved.title == "Planning (moved)"
        for key in ("weekly-1#2024-01-01T09:00:00Z", "weekly-1#2024-01-15T09:00:00Z"):
            assert events[key].start_at.hour == 9
            assert events[key].title == "Planning"

    def test_override_without_summary_inherits_base_title(self, ics_builder):
        content = ics_builder(
            WEEKLY_BASE,
            ["UID:weekly-1", "RECURRENCE-ID:20240108T090000Z", "DTSTART:20240108T110000Z"],
        )
        moved = _parse(content)["weekly-1#2024-01-08T09:00:00Z"]
        assert moved.title == "Planning"
        assert moved.start_at.hour == 11

    def test_cancelled_override_removes_occurrence(self, ics_builder):
        content = ics_builder(
            WEEKLY_BASE,
            [
                "UID:weekly-1",
                "RECURRENCE-ID:20240108T090000Z",
                "DTSTART:20240108T090000Z",
                "STATUS:CANCELLED",
            ],
        )
        events = _parse(content)
        assert sorted(events) == ["weekly-1#2024-01-01T09:00:00Z", "weekly-1#2024-01-15T09:00:00Z"]

    def test_override_outside_expansion_is_appended(self, ics_builder):
        content = ics_builder(
            WEEKLY_BASE,
            [
                "UID:weekly-1",
                "RECURRENCE-ID:20240301T090000Z",
                "SUMMARY:Extra",
                "DTSTART:20240301T090000Z",
            ],
        )
        events = _parse(content)
        assert len(events) == 4
        assert events["weekly-1#2024-03-01T09:00:00Z"].title == "Extra"

    def test_override_of_excluded_occurrence_is_not_resurrected(self, ics_builder):
        content = ics_builder(
            WEEKLY_BASE + ["EXDATE:20240108T090000Z"],
            [
                "UID:weekly-1",
                "RECURRENCE-ID:20240108T090000Z",
                "SUMMARY:Ghost",
                "DTSTART:20240108T120000Z",
            ],
        )
        events = _parse(content)
        assert "weekly-1#2024-01-08T09:00:00Z" not in events
        assert len(events) == 2

    def test_all_day_override_uses_date_key(self, ics_builder):
        content = ics_builder(
            [
                "UID:allday",
                "SUMMARY:Office day",
                "DTSTART;VALUE=DATE:20240101",
                "RRULE:FREQ=WEEKLY;COUNT=3",
            ],
            [
                "UID:allday",
                "RECURRENCE-ID;VALUE=DATE:20240108",
                "SUMMARY:Remote day",
                "DTSTART;VALUE=DATE:20240109",
            ],
        )
        events = _parse(content)
        moved = events["allday#2024-01-08"]
        assert moved.title == "Remote day"
        assert moved.start_date == date(2024, 1, 9)
        assert moved.end_date == date(2024, 1, 10)

    def test_override_before_base_in_document_still_applies(self, ics_builder):
        content = ics_builder(
            ["UID:weekly-1", "RECURRENCE-ID:20240115T090000Z", "SUMMARY:Early", "DTSTART:20240115T080000Z"],
            WEEKLY_BASE,
        )
        assert _parse(content)["weekly-1#2024-01-15T09:00:00Z"].title == "Early"


class TestOrphans:
    def test_orphan_override_is_emitted_with_occurrence_id(self, ics_builder):
        content = ics_builder(
            [
                "UID:lonely",
                "RECURRENCE-ID:20240108T090000Z",
                "SUMMARY:Only the exception",
                "DTSTART:20240108T100000Z",
            ]
        )
        events = _parse(content)
        assert list(events) == ["lonely#2024-01-08T09:00:00Z"]
        assert events["lonely#2024-01-08T09:00:00Z"].start_at.hour == 10

    def test_orphan_cancelled_override_is_dropped(self, ics_builder):
        content = ics_builder(
            [
                "UID:lonely",
                "RECURRENCE-ID:20240108T090000Z",
                "SUMMARY:Cancelled",
                "DTSTART:20240108T090000Z",
                "STATUS:CANCELLED",
            ]
        )
        assert _parse(content) == {}


class TestMergerDirect:
    def test_merge_with_sibling_and_extra_base(self):
        merger = LiteEventMerger(LiteRRuleExpander(local_tz=timezone.utc), timezone.utc)
        sources = [
            RecurrenceSource(uid="u", title="Series", start=date(2024, 1, 1), is_all_day=True, rrule="FREQ=DAILY;COUNT=2"),
            RecurrenceSource(uid="u", title="Second rule", start=date(2024, 2, 1), is_all_day=True, rrule="FREQ=DAILY;COUNT=5"),
            RecurrenceSource(uid="u", title="Plain copy", start=date(2024, 3, 1), is_all_day=True),
        ]
        events = merger.merge(sources, NOW)
        ids = sorted(e.id for e in events)
        assert ids == ["u", "u#2024-01-01", "u#2024-01-02"]
