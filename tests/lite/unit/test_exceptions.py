"""Tests for the calendarapp_lite exception hierarchy."""

import pytest

from calendarapp_lite.exceptions import (
    CalendarAppError,
    LiteDateTimeParseError,
    LiteExportError,
    LiteICSFetchError,
    LiteICSHTTPError,
    LiteICSNetworkError,
    LiteICSNoEventsError,
    LiteICSParseError,
    LiteICSTimeoutError,
    LiteRRuleExpansionError,
    LiteRRuleParseError,
    SubscriptionNotFoundError,
)

pytestmark = [pytest.mark.unit, pytest.mark.fast]


@pytest.mark.parametrize(
    ("exc_class", "parent"),
    [
        (LiteICSParseError, CalendarAppError),
        (LiteICSNoEventsError, LiteICSParseError),
        (LiteDateTimeParseError, CalendarAppError),
        (LiteDateTimeParseError, ValueError),
        (LiteRRuleParseError, LiteRRuleExpansionError),
        (LiteICSHTTPError, LiteICSFetchError),
        (LiteICSNetworkError, LiteICSFetchError),
        (LiteICSTimeoutError, LiteICSFetchError),
        (LiteICSFetchError, CalendarAppError),
        (LiteExportError, CalendarAppError),
        (SubscriptionNotFoundError, CalendarAppError),
    ],
)
def test_exception_hierarchy(exc_class, parent) -> None:
    assert issubclass(exc_class, parent)


def test_http_error_carries_status_code() -> None:
    error = LiteICSHTTPError("Failed to fetch calendar: 500", 500)
    assert error.status_code == 500
    assert str(error) == "Failed to fetch calendar: 500"


def test_http_error_status_code_optional() -> None:
    assert LiteICSHTTPError("boom").status_code is None


def test_catching_base_class_catches_fetch_errors() -> None:
    with pytest.raises(CalendarAppError):
        raise LiteICSTimeoutError("Request timeout after 30.0s")
