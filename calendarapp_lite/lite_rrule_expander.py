"""RRULE expansion logic for CalendarApp Lite ICS parser.

Only DAILY and WEEKLY rules are expanded (INTERVAL, BYDAY, COUNT, UNTIL).
Any other frequency yields the single base occurrence unchanged.
"""

# ruff: noqa: I001
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
import logging
from typing import Any, Callable, Optional, Union

from dateutil.rrule import DAILY, FR, MO, SA, SU, TH, TU, WE, WEEKLY, rrule

from .exceptions import LiteDateTimeParseError, LiteRRuleParseError
from .lite_datetime_utils import (
    decode_ics_value,
    end_of_day,
    from_local_wallclock,
    local_today,
    occurrence_id,
    to_local_wallclock,
)
from .lite_event_mapper import Occurrence, source_to_occurrence
from .lite_models import RecurrenceSource
from .timezone_utils import now_utc

logger = logging.getLogger(__name__)

WEEKDAY_CODES = {"MO": MO, "TU": TU, "WE": WE, "TH": TH, "FR": FR, "SA": SA, "SU": SU}
SUPPORTED_FREQUENCIES = {"DAILY": DAILY, "WEEKLY": WEEKLY}

DEFAULT_PAST_DAYS = 30
DEFAULT_FUTURE_DAYS = 365


@dataclass(frozen=True)
class ExpansionWindow:
    """Generation window applied around "now".

    Rules without COUNT or UNTIL only produce occurrences from
    ``past_days`` before now; every rule stops ``future_days`` after now.
    """

    past_days: int = DEFAULT_PAST_DAYS
    future_days: int = DEFAULT_FUTURE_DAYS

    @classmethod
    def from_settings(cls, settings: Any) -> "ExpansionWindow":
        """Extract window sizes from a settings object, keeping defaults for missing values."""
        return cls(
            past_days=int(getattr(settings, "expansion_past_days", DEFAULT_PAST_DAYS)),
            future_days=int(getattr(settings, "expansion_future_days", DEFAULT_FUTURE_DAYS)),
        )


@dataclass(frozen=True)
class RRuleSpec:
    """The RRULE parts this engine understands."""

    freq: str
    interval: int = 1
    byday: tuple[str, ...] = ()
    count: Optional[int] = None
    until: Optional[Union[date, datetime]] = None

    @property
    def is_bounded(self) -> bool:
        return self.count is not None or self.until is not None

    @property
    def is_supported(self) -> bool:
        return self.freq in SUPPORTED_FREQUENCIES


def parse_rrule_string(rrule_string: str, local_tz: Optional[tzinfo] = None) -> RRuleSpec:
    """Parse RRULE string into components.

    Lenient about everything except FREQ: a bad INTERVAL falls back to 1, a
    bad COUNT or UNTIL is ignored and unknown BYDAY tokens are dropped.

    Args:
        rrule_string: RRULE value, e.g. "FREQ=WEEKLY;INTERVAL=2;BYDAY=MO,WE"
        local_tz: Ambient zone for a floating UNTIL

    Returns:
        Parsed rule

    Raises:
        LiteRRuleParseError: If the string is empty or has no FREQ
    """
    if not rrule_string or not rrule_string.strip():
        raise LiteRRuleParseError("Empty RRULE string")

    text = rrule_string.strip()
    if text.upper().startswith("RRULE:"):
        text = text[6:]

    parts: dict[str, str] = {}
    for part in text.split(";"):
        if "=" not in part:
            continue
        key, value = part.split("=", 1)
        parts[key.strip().upper()] = value.strip()

    freq = parts.get("FREQ", "").upper()
    if not freq:
        raise LiteRRuleParseError(f"RRULE missing required FREQ parameter: {rrule_string!r}")

    interval = 1
    if "INTERVAL" in parts:
        try:
            interval = int(parts["INTERVAL"])
        except ValueError:
            logger.debug("Invalid INTERVAL %r; using 1", parts["INTERVAL"])
        if interval < 1:
            interval = 1

    byday: tuple[str, ...] = ()
    if parts.get("BYDAY"):
        tokens = [token.strip().upper() for token in parts["BYDAY"].split(",")]
        byday = tuple(token for token in tokens if token in WEEKDAY_CODES)
        ignored = [token for token in tokens if token not in WEEKDAY_CODES]
        if ignored:
            logger.debug("Ignoring unsupported BYDAY tokens: %s", ignored)

    count: Optional[int] = None
    if "COUNT" in parts:
        try:
            count = int(parts["COUNT"])
        except ValueError:
            logger.debug("Ignoring invalid COUNT %r", parts["COUNT"])
        if count is not None and count < 1:
            logger.debug("Ignoring non-positive COUNT %d", count)
            count = None

    until: Optional[Union[date, datetime]] = None
    if parts.get("UNTIL"):
        try:
            until = decode_ics_value(parts["UNTIL"], None, local_tz)
        except LiteDateTimeParseError as e:
            logger.debug("Ignoring invalid UNTIL: %s", e)

    return RRuleSpec(freq=freq, interval=interval, byday=byday, count=count, until=until)


class LiteRRuleExpander:
    """Expand one recurring source into its concrete occurrences.

    Expansion happens on local wall-clock values: timed occurrences keep the
    base start's local time-of-day, all-day occurrences keep their length
    in days. Rule bookkeeping (week-of-Monday buckets for WEEKLY intervals,
    whole-rule COUNT, inclusive UNTIL) is delegated to ``dateutil.rrule``.
    """

    def __init__(
        self,
        settings: Any = None,
        window: Optional[ExpansionWindow] = None,
        local_tz: Optional[tzinfo] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """Initialize expander.

        Args:
            settings: Optional settings object carrying window sizes
            window: Explicit window, overriding ``settings``
            local_tz: Ambient zone; None means host local
            clock: Source of "now" (defaults to ``timezone_utils.now_utc``)
        """
        self.window = window or ExpansionWindow.from_settings(settings)
        self.local_tz = local_tz
        self._clock = clock or now_utc

        logger.debug(
            "LiteRRuleExpander initialized: past_days=%d, future_days=%d",
            self.window.past_days,
            self.window.future_days,
        )

    def expand(self, source: RecurrenceSource, now: Optional[datetime] = None) -> list[Occurrence]:
        """Expand a recurring source.

        Returns:
            Occurrences with ``<UID>#<occurrence-key>`` IDs, or the single
            un-expanded base occurrence when the rule is unsupported or
            yields nothing. Empty only when the source has no title.
        """
        base = source_to_occurrence(source)
        if base is None:
            return []
        if not source.rrule:
            return [base]

        try:
            rule_spec = parse_rrule_string(source.rrule, self.local_tz)
        except LiteRRuleParseError as e:
            logger.debug("Unparseable RRULE for %s, keeping base event: %s", source.uid, e)
            return [base]

        if not rule_spec.is_supported:
            logger.debug("FREQ=%s not expanded for %s; keeping base event", rule_spec.freq, source.uid)
            return [base]

        starts = self.occurrence_starts(source, rule_spec, now)
        occurrences = []
        for start in starts:
            occurrence = source_to_occurrence(
                source, occurrence_id=occurrence_id(source.uid, start), start=start
            )
            if occurrence is not None:
                occurrences.append(occurrence)

        if not occurrences:
            logger.debug("RRULE for %s produced no occurrences in window; keeping base", source.uid)
            return [base]

        logger.debug("Expanded %s into %d occurrences", source.uid, len(occurrences))
        return occurrences

    def occurrence_starts(
        self,
        source: RecurrenceSource,
        rule_spec: RRuleSpec,
        now: Optional[datetime] = None,
    ) -> list[Union[date, datetime]]:
        """Occurrence starts inside the generation window, chronologically.

        All-day sources yield ``date`` values, timed sources UTC datetimes.
        """
        now = now or self._clock()
        dtstart = self._wallclock_start(source)
        rule = self._build_rule(rule_spec, dtstart)

        range_start, range_end = self._window_bounds(dtstart, rule_spec, now, source.is_all_day)
        if range_end is None:
            # COUNT terminates the rule on its own
            candidates = iter(rule)
        elif range_start >= range_end:
            return []
        else:
            candidates = rule.between(range_start, range_end, inc=True)

        starts: list[Union[date, datetime]] = []
        for naive in candidates:
            if range_end is not None and naive >= range_end:
                break
            if source.is_all_day:
                starts.append(naive.date())
            else:
                starts.append(from_local_wallclock(naive, self.local_tz))
        return starts

    def _wallclock_start(self, source: RecurrenceSource) -> datetime:
        if source.is_all_day:
            return datetime.combine(source.start, time())
        return to_local_wallclock(source.start, self.local_tz)

    def _build_rule(self, rule_spec: RRuleSpec, dtstart: datetime) -> rrule:
        kwargs: dict[str, Any] = {
            "dtstart": dtstart,
            "interval": rule_spec.interval,
            "wkst": MO,
        }
        if rule_spec.freq == "WEEKLY":
            if rule_spec.byday:
                kwargs["byweekday"] = [WEEKDAY_CODES[code] for code in rule_spec.byday]
            else:
                kwargs["byweekday"] = [dtstart.weekday()]
        if rule_spec.count is not None:
            kwargs["count"] = rule_spec.count
        if rule_spec.until is not None:
            kwargs["until"] = self._wallclock_until(rule_spec.until)
        return rrule(SUPPORTED_FREQUENCIES[rule_spec.freq], **kwargs)

    def _wallclock_until(self, until: Union[date, datetime]) -> datetime:
        if isinstance(until, datetime):
            return to_local_wallclock(until, self.local_tz)
        # A DATE UNTIL includes that whole day
        return end_of_day(until)

    def _window_bounds(
        self,
        dtstart: datetime,
        rule_spec: RRuleSpec,
        now: datetime,
        is_all_day: bool,
    ) -> tuple[datetime, Optional[datetime]]:
        """Half-open [start, end) window in local wall-clock time.

        Rules with COUNT get no end bound. UNTIL-only rules are capped
        ``future_days`` past the later of now and DTSTART.
        """
        if is_all_day:
            today = local_today(self.local_tz, now)
            anchor = datetime.combine(today, time())
        else:
            anchor = to_local_wallclock(now, self.local_tz)

        future = timedelta(days=self.window.future_days)
        if rule_spec.count is not None:
            return dtstart, None
        if rule_spec.until is not None:
            return dtstart, max(anchor, dtstart) + future
        return max(dtstart, anchor - timedelta(days=self.window.past_days)), anchor + future
