"""JSON-file backed event and subscription store for calendarapp_lite.

Used by the command-line tool; the application proper plugs its own
relational store into the repository Protocols. Writes are atomic
(temporary file in the same directory, then ``Path.replace``).

On-disk layout::

    {
      "events": {"<id>": {...occurrence...}},
      "subscriptions": {
        "<id>": {"subscription": {...}, "events": [{...occurrence...}]}
      }
    }
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
import tempfile
from collections.abc import Iterable, Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter, ValidationError

from .lite_event_mapper import Occurrence
from .lite_models import EventOccurrence, Subscription

logger = logging.getLogger(__name__)

_OCCURRENCE_ADAPTER: TypeAdapter[Any] = TypeAdapter(EventOccurrence)


def dump_occurrence(event: Occurrence) -> dict[str, Any]:
    return _OCCURRENCE_ADAPTER.dump_python(event, mode="json")


def load_occurrence(data: Any) -> Occurrence:
    return _OCCURRENCE_ADAPTER.validate_python(data)


class JsonCalendarStore:
    """Event and subscription repository persisted as a single JSON file."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()
        self._events: dict[str, Occurrence] = {}
        self._subscriptions: dict[str, Subscription] = {}
        self._subscription_events: dict[str, list[Occurrence]] = {}
        self.load()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> None:
        """Load the file if it exists; malformed entries are skipped with a warning.

        Raises:
            ValueError: The file is not a JSON object
        """
        self._events = {}
        self._subscriptions = {}
        self._subscription_events = {}
        if not self._path.exists():
            logger.debug("Store file not found; starting empty: %s", self._path)
            return

        with self._path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
        if not isinstance(data, dict):
            raise ValueError(f"Store {self._path} must contain a JSON object")  # noqa: TRY004

        for event_id, raw in (data.get("events") or {}).items():
            try:
                self._events[event_id] = load_occurrence(raw)
            except ValidationError as e:
                logger.warning("Skipping malformed stored event %s: %s", event_id, e)

        for sub_id, raw in (data.get("subscriptions") or {}).items():
            try:
                self._subscriptions[sub_id] = Subscription.model_validate(raw["subscription"])
                self._subscription_events[sub_id] = [load_occurrence(e) for e in raw.get("events", [])]
            except (KeyError, TypeError, ValidationError) as e:
                logger.warning("Skipping malformed stored subscription %s: %s", sub_id, e)

        logger.debug(
            "Loaded store %s (%d events, %d subscriptions)",
            self._path,
            len(self._events),
            len(self._subscriptions),
        )

    def _snapshot(self) -> dict[str, Any]:
        return {
            "events": {k: dump_occurrence(v) for k, v in self._events.items()},
            "subscriptions": {
                sub_id: {
                    "subscription": sub.model_dump(mode="json"),
                    "events": [dump_occurrence(e) for e in self._subscription_events.get(sub_id, [])],
                }
                for sub_id, sub in self._subscriptions.items()
            },
        }

    def _persist(self) -> None:
        """Write the current state to disk atomically."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path: Path | None = None
        try:
            with tempfile.NamedTemporaryFile(
                "w", dir=self._path.parent, delete=False, encoding="utf-8", suffix=".tmp"
            ) as tf:
                tmp_path = Path(tf.name)
                json.dump(self._snapshot(), tf, ensure_ascii=False, indent=2)
                tf.flush()
                os.fsync(tf.fileno())
            tmp_path.replace(self._path)
        except OSError:
            if tmp_path is not None:
                with contextlib.suppress(OSError):
                    tmp_path.unlink()
            raise

    # EventRepository

    async def list_all_events(self) -> Sequence[Occurrence]:
        return list(self._events.values())

    async def upsert_event(self, event: Occurrence) -> None:
        async with self._lock:
            self._events[event.id] = event
            self._persist()

    async def get_event(self, event_id: str) -> Occurrence | None:
        return self._events.get(event_id)

    # SubscriptionRepository

    async def list_subscriptions(self) -> Sequence[Subscription]:
        return list(self._subscriptions.values())

    async def get_subscription(self, subscription_id: str) -> Subscription | None:
        return self._subscriptions.get(subscription_id)

    async def add_subscription(self, subscription: Subscription) -> None:
        async with self._lock:
            self._subscriptions[subscription.id] = subscription
            self._subscription_events.setdefault(subscription.id, [])
            self._persist()

    async def clear_subscription_events(self, subscription_id: str) -> None:
        async with self._lock:
            self._subscription_events[subscription_id] = []
            self._persist()

    async def insert_subscription_events(
        self, subscription_id: str, events: Iterable[Occurrence]
    ) -> None:
        async with self._lock:
            self._subscription_events.setdefault(subscription_id, []).extend(events)
            self._persist()

    async def update_subscription_sync_time(self, subscription_id: str, synced_at: datetime) -> None:
        async with self._lock:
            subscription = self._subscriptions.get(subscription_id)
            if subscription is None:
                return
            self._subscriptions[subscription_id] = subscription.model_copy(
                update={"last_synced_at": synced_at}
            )
            self._persist()

    async def list_subscription_events(self, subscription_id: str) -> Sequence[Occurrence]:
        return list(self._subscription_events.get(subscription_id, []))
