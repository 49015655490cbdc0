"""calendarapp_lite.config_loader

Lightweight config loader for calendarapp_lite.

- Prefers YAML (PyYAML) if available, falls back to JSON.
- Exposes a typed dataclass `Config` and a `load_config()` helper that accepts
  an optional path override.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = "calendarapp.yaml"
DEFAULT_SUBSCRIPTION_COLOR = "#34a853"
DEFAULT_USER_AGENT = "CalendarApp/1.0 (+ics-subscription)"


@dataclass
class SubscriptionConfig:
    """A feed declared in the config file."""

    name: str
    url: str
    color: str = DEFAULT_SUBSCRIPTION_COLOR


@dataclass
class Config:
    """Typed configuration for calendarapp_lite.

    Fields:
        default_timezone: IANA zone for floating times (None = system zone)
        expansion_past_days: days before now that unbounded RRULEs expand from
        expansion_future_days: days after now that every RRULE stops at
        request_timeout: HTTP read timeout in seconds for feed downloads
        max_retries: retries on timeouts/network errors (0..5)
        retry_backoff_factor: exponential backoff base between retries
        user_agent: User-Agent header sent to feed servers
        log_level: logging level name
        subscriptions: feeds known by name to the CLI
    """

    default_timezone: str | None = None
    expansion_past_days: int = 30
    expansion_future_days: int = 365
    request_timeout: int = 30
    max_retries: int = 2
    retry_backoff_factor: float = 1.5
    user_agent: str = DEFAULT_USER_AGENT
    log_level: str = "INFO"
    subscriptions: list[SubscriptionConfig] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Config:
        """Create Config from a plain mapping, applying defaults and validation.

        Numeric-like values are coerced, out-of-range values are clamped and
        malformed subscription entries are dropped, each with a warning.
        """
        if data is None:
            data = {}

        def _coerce_int(key: str, default: int) -> int:
            raw = data.get(key, default)
            try:
                return int(raw)
            except (TypeError, ValueError):
                logger.warning("Config %s=%r is not an int; using default %d", key, raw, default)
                return default

        past_days = _coerce_int("expansion_past_days", 30)
        if past_days < 0:
            logger.warning("expansion_past_days %d below minimum; coercing to 0", past_days)
            past_days = 0

        future_days = _coerce_int("expansion_future_days", 365)
        if future_days < 1:
            logger.warning("expansion_future_days %d below minimum; coercing to 1", future_days)
            future_days = 1

        request_timeout = _coerce_int("request_timeout", 30)
        if request_timeout < 1:
            logger.warning("request_timeout %d below minimum; coercing to 1", request_timeout)
            request_timeout = 1

        max_retries = max(0, min(_coerce_int("max_retries", 2), 5))

        backoff_raw = data.get("retry_backoff_factor", 1.5)
        try:
            backoff = float(backoff_raw)
        except (TypeError, ValueError):
            logger.warning("Config retry_backoff_factor=%r is not a number; using 1.5", backoff_raw)
            backoff = 1.5

        default_timezone = data.get("default_timezone")
        default_timezone = str(default_timezone) if default_timezone else None

        user_agent = data.get("user_agent") or DEFAULT_USER_AGENT
        log_level = data.get("log_level", "INFO")
        log_level = str(log_level).upper() if log_level is not None else "INFO"

        return cls(
            default_timezone=default_timezone,
            expansion_past_days=past_days,
            expansion_future_days=future_days,
            request_timeout=request_timeout,
            max_retries=max_retries,
            retry_backoff_factor=backoff,
            user_agent=str(user_agent),
            log_level=log_level,
            subscriptions=_coerce_subscriptions(data.get("subscriptions")),
        )

    def find_subscription(self, name: str) -> SubscriptionConfig | None:
        """Configured subscription by name (case-insensitive)."""
        wanted = name.strip().lower()
        return next((s for s in self.subscriptions if s.name.lower() == wanted), None)


def _coerce_subscriptions(raw: Any) -> list[SubscriptionConfig]:
    if raw is None:
        return []
    if not isinstance(raw, (list, tuple)):
        logger.warning("Config `subscriptions` is not a list; ignoring")
        return []

    subscriptions: list[SubscriptionConfig] = []
    for index, entry in enumerate(raw):
        if isinstance(entry, str):
            subscriptions.append(SubscriptionConfig(name=entry, url=entry))
            continue
        if not isinstance(entry, dict) or not entry.get("url"):
            logger.warning("Config subscription #%d has no url; skipping", index)
            continue
        url = str(entry["url"])
        subscriptions.append(
            SubscriptionConfig(
                name=str(entry.get("name") or url),
                url=url,
                color=str(entry.get("color") or DEFAULT_SUBSCRIPTION_COLOR),
            )
        )
    return subscriptions


def _load_yaml_or_json(path: Path) -> Any:
    """
    Load a mapping from a YAML or JSON file.

    Prefers PyYAML if available; falls back to JSON and raises a helpful error if neither works.
    """
    text = path.read_text()
    try:
        import yaml  # noqa: PLC0415
    except ImportError:
        try:
            return json.loads(text)
        except ValueError as exc:
            raise RuntimeError(
                "Unable to parse config: PyYAML not installed and file is not valid JSON. "
                "Install pyyaml (`pip install pyyaml`) or provide a JSON formatted config."
            ) from exc

    loaded = yaml.safe_load(text)
    # safe_load returns None for empty files
    if loaded is None:
        return {}
    return loaded


def load_config(path: str | None = None) -> Config:
    """Load configuration from a YAML/JSON file and return a Config instance.

    Args:
        path: Optional path to the config file. Defaults to ./calendarapp.yaml.

    Returns:
        Config dataclass instance with values from file (or defaults).

    Behavior:
    - If file is missing: returns Config() with defaults.
    - If file exists but top-level is not a mapping: raises ValueError.
    """
    p = Path(path) if path else Path.cwd() / DEFAULT_CONFIG_FILENAME
    logger.debug("Attempting to load config from %s", p)
    if not p.exists():
        logger.info("Config file %s not found; using defaults", p)
        return Config()

    raw = _load_yaml_or_json(p)
    if not isinstance(raw, dict):
        logger.warning("Config file %s parsed but top-level is not a mapping: %r", p, raw)
        raise ValueError("Config file must contain a mapping at top level")  # noqa: TRY004
    cfg = Config.from_dict(raw)
    logger.info("Loaded configuration from %s", p)
    logger.debug("Configuration values: %s", cfg)
    return cfg
