"""
Central logging configuration for calendarapp_lite.

Suppresses verbose debug logs from third-party libraries (the HTTP stack in
particular) while keeping the package's own diagnostics available.
"""

import logging
import os
from typing import Optional

DEBUG_ENV = "CALENDARAPP_DEBUG"
LOG_LEVEL_ENV = "CALENDARAPP_LOG_LEVEL"

# Third-party loggers that are noisy at DEBUG
NOISY_LOGGERS: dict[str, int] = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "asyncio": logging.WARNING,
    "charset_normalizer": logging.WARNING,
}

LITE_MODULES = (
    "calendarapp_lite",
    "calendarapp_lite.lite_parser",
    "calendarapp_lite.lite_fetcher",
    "calendarapp_lite.lite_rrule_expander",
    "calendarapp_lite.lite_event_merger",
    "calendarapp_lite.ics_service",
)


def env_debug_enabled() -> bool:
    return os.getenv(DEBUG_ENV, "").strip().lower() in ("1", "true", "yes", "on")


def configure_lite_logging(debug_mode: bool = False, force_debug: Optional[bool] = None) -> None:
    """
    Configure logging levels for calendarapp_lite.

    Args:
        debug_mode: Whether to enable debug logging for calendarapp_lite modules
        force_debug: Override debug mode setting (None to use env var detection)

    Environment Variables:
        CALENDARAPP_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        CALENDARAPP_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_log_level = os.getenv(LOG_LEVEL_ENV, "").upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug_enabled():
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    if env_log_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, env_log_level)

    # No force=True: keep the colorized handler installed by _init_logging
    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(root_level)
        handler.setFormatter(logging.Formatter("[%(asctime)s] %(levelname)s - %(name)s - %(message)s"))
        root_logger.addHandler(handler)

    logger_config = dict(NOISY_LOGGERS)
    lite_level = logging.DEBUG if final_debug else logging.INFO
    for module in LITE_MODULES:
        logger_config[module] = lite_level

    for logger_name, level in logger_config.items():
        logging.getLogger(logger_name).setLevel(level)

    if final_debug:
        root_logger.debug("Debug logging enabled for calendarapp_lite modules")


def get_logging_status() -> dict[str, str]:
    """
    Get current logging configuration status.

    Returns:
        Dictionary mapping logger names to their current levels
    """
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    for logger_name in ("calendarapp_lite", "httpx", "httpcore", "asyncio"):
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)
    return status
