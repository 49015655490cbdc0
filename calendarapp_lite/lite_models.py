"""Data models for ICS calendar processing - CalendarApp Lite version."""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .timezone_utils import now_utc as _now_utc


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class _OccurrenceBase(BaseModel):
    """Fields shared by both occurrence variants."""

    id: str = Field(..., min_length=1, description="Occurrence ID (UID or UID#occurrence-key)")
    title: str = Field(..., description="Event title (SUMMARY)")
    notes: Optional[str] = Field(default=None, description="Event notes (DESCRIPTION)")
    location: Optional[str] = Field(default=None, description="Event location")
    timezone: Optional[str] = Field(default=None, description="TZID the feed declared, if any")
    created_at: Optional[datetime] = Field(
        default=None, description="Creation instant, exported as DTSTAMP"
    )

    model_config = ConfigDict(validate_assignment=True)

    @field_validator("created_at")
    @classmethod
    def _normalize_created_at(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value) if value is not None else None

    def __eq__(self, other: object) -> bool:
        """Compare event content; ``created_at`` is export metadata and ignored."""
        if type(other) is not type(self):
            return NotImplemented
        return self.model_dump(exclude={"created_at"}) == other.model_dump(exclude={"created_at"})


class AllDayOccurrence(_OccurrenceBase):
    """All-day occurrence spanning calendar dates.

    ``end_date`` is exclusive (RFC 5545 DTEND semantics): a one-day event
    ends the day after it starts.
    """

    kind: Literal["all_day"] = "all_day"
    start_date: date = Field(..., description="First day of the event")
    end_date: date = Field(..., description="Day after the last day of the event")

    @model_validator(mode="after")
    def _check_span(self) -> "AllDayOccurrence":
        if self.end_date <= self.start_date:
            raise ValueError(
                f"end_date {self.end_date.isoformat()} must be after start_date "
                f"{self.start_date.isoformat()}"
            )
        return self

    @property
    def is_all_day(self) -> bool:
        return True


class TimedOccurrence(_OccurrenceBase):
    """Occurrence between two absolute instants, stored in UTC."""

    kind: Literal["timed"] = "timed"
    start_at: datetime = Field(..., description="Start instant (UTC)")
    end_at: datetime = Field(..., description="End instant (UTC)")

    @field_validator("start_at", "end_at")
    @classmethod
    def _normalize_instant(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @model_validator(mode="after")
    def _check_span(self) -> "TimedOccurrence":
        if self.end_at <= self.start_at:
            raise ValueError(
                f"end_at {self.end_at.isoformat()} must be after start_at "
                f"{self.start_at.isoformat()}"
            )
        return self

    @property
    def is_all_day(self) -> bool:
        return False


EventOccurrence = Annotated[
    Union[AllDayOccurrence, TimedOccurrence], Field(discriminator="kind")
]


@dataclass
class RecurrenceSource:
    """One VEVENT block as seen by the expansion and override logic.

    Parser-internal; never persisted. ``start``/``end`` are ``date`` values
    for all-day blocks and UTC datetimes for timed ones. ``recurrence_id``
    marks the block as an override of one occurrence of the base event
    sharing its UID.
    """

    uid: str
    title: Optional[str]
    start: Union[date, datetime]
    end: Optional[Union[date, datetime]] = None
    is_all_day: bool = False
    notes: Optional[str] = None
    location: Optional[str] = None
    timezone: Optional[str] = None
    rrule: Optional[str] = None
    exdates: list[Union[date, datetime]] = field(default_factory=list)
    recurrence_id: Optional[Union[date, datetime]] = None
    status: Optional[str] = None
    created_at: Optional[datetime] = None
    has_uid: bool = True

    @property
    def is_recurring(self) -> bool:
        return bool(self.rrule) and self.recurrence_id is None

    @property
    def is_override(self) -> bool:
        return self.recurrence_id is not None

    @property
    def is_cancelled(self) -> bool:
        return (self.status or "").upper() == "CANCELLED"


class ICSParseResult(BaseModel):
    """Result of ICS parsing operation."""

    success: bool
    events: list[EventOccurrence] = Field(default_factory=list, description="Parsed occurrences")
    source_url: Optional[str] = Field(default=None, description="Source URL for tracking")
    calendar_name: Optional[str] = None
    prodid: Optional[str] = None

    # Parse statistics
    total_components: int = 0
    event_count: int = 0
    recurring_event_count: int = 0
    override_count: int = 0
    skipped_components: int = 0

    # Error information
    error_message: Optional[str] = None
    warnings: list[str] = Field(default_factory=list)

    parse_time: datetime = Field(default_factory=_now_utc)


class Subscription(BaseModel):
    """A read-only calendar feed mirrored into local storage."""

    id: str
    name: str
    url: str
    color: str = "#34a853"
    last_synced_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=_now_utc)


class SyncSummary(BaseModel):
    """Outcome of syncing every subscription."""

    success: int = 0
    failed: int = 0
    errors: dict[str, str] = Field(
        default_factory=dict, description="Subscription ID -> error message"
    )

    def record_failure(self, subscription_id: str, error: Any) -> None:
        self.failed += 1
        self.errors[subscription_id] = str(error)
