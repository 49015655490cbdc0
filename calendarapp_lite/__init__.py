"""calendarapp_lite - iCalendar import/export engine for CalendarApp.

Serializes local events to ICS, parses third-party feeds (with RRULE
expansion and RECURRENCE-ID/EXDATE reconciliation) and wires both into the
import, export and subscription sync flows.
"""

__version__ = "0.1.0"

from typing import Optional

from .exceptions import (
    CalendarAppError,
    LiteExportError,
    LiteICSFetchError,
    LiteICSNoEventsError,
    LiteICSParseError,
    SubscriptionNotFoundError,
)
from .lite_models import AllDayOccurrence, EventOccurrence, TimedOccurrence
from .lite_parser import LiteICSParser, parse_ics
from .lite_serializer import serialize

__all__ = [
    "AllDayOccurrence",
    "CalendarAppError",
    "EventOccurrence",
    "LiteExportError",
    "LiteICSFetchError",
    "LiteICSNoEventsError",
    "LiteICSParseError",
    "LiteICSParser",
    "SubscriptionNotFoundError",
    "TimedOccurrence",
    "__version__",
    "parse_ics",
    "serialize",
]


def _init_logging(level_name: Optional[str]) -> None:
    """Initialize root logging to stream to console.

    Honors CALENDARAPP_DEBUG (truthy values: "1", "true", "yes", "on"),
    which forces DEBUG verbosity to surface parser/fetcher debug logs.
    """
    import logging
    import os
    import sys

    from colorlog import ColoredFormatter

    debug_env = os.environ.get("CALENDARAPP_DEBUG", "")
    if debug_env.strip().lower() in ("1", "true", "yes", "on"):
        level_name = "DEBUG"

    root = logging.getLogger()
    # Only configure a handler if none is present to avoid duplicate output.
    if not root.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        # HH:MM:SS  LEVEL   logger.name: message  (only the level is colorized)
        fmt = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s"
        log_colors = {
            "DEBUG": "cyan",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "bold_red",
        }
        handler.setFormatter(ColoredFormatter(fmt, datefmt="%H:%M:%S", log_colors=log_colors))
        root.addHandler(handler)

    level = logging.INFO
    if isinstance(level_name, str):
        level = getattr(logging, level_name.upper(), logging.INFO)
        if not isinstance(level, int):
            level = logging.INFO
    root.setLevel(level)
    logging.getLogger(__name__).debug(
        "Logging initialized at level %s", logging.getLevelName(level)
    )
