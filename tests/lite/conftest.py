from collections.abc import Generator
from datetime import UTC, datetime, timezone
from types import SimpleNamespace
from typing import Any, Callable

import pytest

from calendarapp_lite.lite_parser import LiteICSParser


@pytest.fixture
def simple_settings() -> SimpleNamespace:
    """Lightweight settings object used across lite tests.

    Fields:
      - request_timeout: HTTP read timeout in seconds
      - max_retries: retry attempts for HTTP fetches (0 keeps tests fast)
      - retry_backoff_factor: multiplier for retry backoff delays
      - user_agent: default User-Agent header used in tests
      - default_timezone: None, tests pass explicit zones instead
    """
    return SimpleNamespace(
        request_timeout=30,
        max_retries=0,
        retry_backoff_factor=1.5,
        user_agent="calendarapp-lite-test/1.0",
        default_timezone=None,
        expansion_past_days=30,
        expansion_future_days=365,
    )


@pytest.fixture
def fixed_now() -> datetime:
    """Reference "now" for recurrence windows: Wednesday 2024-01-10 12:00 UTC."""
    return datetime(2024, 1, 10, 12, 0, tzinfo=UTC)


@pytest.fixture
def utc_parser() -> LiteICSParser:
    """Parser whose ambient zone is UTC, so floating times are host independent."""
    counter = iter(range(1, 10_000))
    return LiteICSParser(local_tz=timezone.utc, id_factory=lambda: f"generated-{next(counter)}")


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Clear env overrides (frozen clock, debug logging) around every test."""
    for name in ("CALENDARAPP_TEST_TIME", "CALENDARAPP_DEBUG", "CALENDARAPP_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    yield


# ==================== ICS Test Data Fixtures ====================


@pytest.fixture
def ics_builder() -> Callable[..., str]:
    """
    Return a builder that wraps VEVENT bodies in a VCALENDAR envelope.

    Each positional argument is one VEVENT, given as the list of its content
    lines without BEGIN/END. Lines are joined with CRLF.
    """

    def builder(*events: list[str], calendar_lines: list[str] | None = None) -> str:
        lines = ["BEGIN:VCALENDAR", "VERSION:2.0", "PRODID:-//CalendarApp Test//EN"]
        lines.extend(calendar_lines or [])
        for event in events:
            lines.append("BEGIN:VEVENT")
            lines.extend(event)
            lines.append("END:VEVENT")
        lines.append("END:VCALENDAR")
        return "\r\n".join(lines) + "\r\n"

    return builder


@pytest.fixture
def sample_ics_simple() -> str:
    """
    Return a simple ICS calendar string with a single event.

    - Event: "Team Meeting" on 2024-01-15 10:00-11:00 UTC
    - Includes DTSTART, DTEND, SUMMARY, LOCATION, DESCRIPTION
    """
    return """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//CalendarApp Test//EN
CALSCALE:GREGORIAN
BEGIN:VEVENT
UID:test-event-001@calendarapp.test
DTSTART:20240115T100000Z
DTEND:20240115T110000Z
SUMMARY:Team Meeting
LOCATION:Conference Room A
DESCRIPTION:Weekly team sync meeting
DTSTAMP:20240115T090000Z
END:VEVENT
END:VCALENDAR"""


@pytest.fixture
def sample_ics_recurring() -> str:
    """
    Return an ICS string with a recurring event.

    - Event: "Daily Standup" recurring daily at 09:00-09:15 UTC
    - RRULE:FREQ=DAILY;COUNT=5 (5 occurrences)
    """
    return """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//CalendarApp Test//EN
CALSCALE:GREGORIAN
BEGIN:VEVENT
UID:test-event-002@calendarapp.test
DTSTART:20240115T090000Z
DTEND:20240115T091500Z
SUMMARY:Daily Standup
LOCATION:Virtual
DESCRIPTION:Daily team standup meeting
RRULE:FREQ=DAILY;COUNT=5
DTSTAMP:20240115T080000Z
END:VEVENT
END:VCALENDAR"""


@pytest.fixture
def sample_ics_exdate() -> str:
    """
    Return an ICS string with EXDATE (cancelled occurrence).

    - Event: "Weekly Review" on Mondays at 14:00-15:00 UTC
    - RRULE:FREQ=WEEKLY;BYDAY=MO;COUNT=4 (4 occurrences)
    - EXDATE for second occurrence (2024-01-22)
    """
    return """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//CalendarApp Test//EN
CALSCALE:GREGORIAN
BEGIN:VEVENT
UID:test-event-003@calendarapp.test
DTSTART:20240115T140000Z
DTEND:20240115T150000Z
SUMMARY:Weekly Review
LOCATION:Board Room
DESCRIPTION:Weekly review meeting with stakeholders
RRULE:FREQ=WEEKLY;BYDAY=MO;COUNT=4
EXDATE:20240122T140000Z
DTSTAMP:20240115T130000Z
END:VEVENT
END:VCALENDAR"""
