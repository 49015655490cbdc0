"""Exception hierarchy for calendarapp_lite.

The ICS engine itself is lenient: malformed VEVENT blocks are dropped rather
than raised. The exceptions below cover the few hard failures surfaced to
callers (nothing to import, nothing to export, unreachable feeds) plus the
low-level decode errors that the parser catches internally.
"""

from typing import Optional


class CalendarAppError(Exception):
    """Base exception for all calendarapp_lite errors."""


class LiteICSParseError(CalendarAppError):
    """ICS content could not be turned into events."""


class LiteICSNoEventsError(LiteICSParseError):
    """The document contained zero usable events.

    Callers turn this into a user-visible "nothing to import" message.
    """


class LiteDateTimeParseError(CalendarAppError, ValueError):
    """A DATE or DATE-TIME value could not be decoded."""


class LiteRRuleExpansionError(CalendarAppError):
    """Base exception for RRULE expansion errors."""


class LiteRRuleParseError(LiteRRuleExpansionError):
    """Error parsing RRULE string."""


class LiteICSFetchError(CalendarAppError):
    """Base exception for ICS fetch errors."""


class LiteICSHTTPError(LiteICSFetchError):
    """The feed server answered with a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class LiteICSNetworkError(LiteICSFetchError):
    """Network error during ICS fetch."""


class LiteICSTimeoutError(LiteICSFetchError):
    """Timeout error during ICS fetch."""


class LiteExportError(CalendarAppError):
    """Export could not be produced (e.g. the event store is empty)."""


class SubscriptionNotFoundError(CalendarAppError):
    """No subscription exists for the requested ID."""
