"""Import, export and subscription sync flows for calendarapp_lite.

These are thin async orchestrations over the pure parser/serializer: storage
is reached only through the repository Protocols, and exported documents are
handed to a sink callable that writes or shares them.
"""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Optional, Union

from .exceptions import LiteExportError, LiteICSNoEventsError, SubscriptionNotFoundError
from .lite_event_mapper import Occurrence
from .lite_fetcher import LiteICSFetcher
from .lite_models import SyncSummary
from .lite_parser import LiteICSParser
from .lite_serializer import serialize
from .storage_protocols import EventRepository, ExportSink, SubscriptionRepository
from .timezone_utils import now_utc

logger = logging.getLogger(__name__)

SAFE_TITLE_MAX_LENGTH = 20
_UNSAFE_TITLE_CHARS = re.compile(r"\W")


def epoch_ms(when: datetime) -> int:
    return int(when.timestamp() * 1000)


def safe_title(title: str) -> str:
    """File-name fragment for an event title.

    Letters and digits (any script) are kept, everything else becomes ``_``.
    """
    return _UNSAFE_TITLE_CHARS.sub("_", title)[:SAFE_TITLE_MAX_LENGTH]


def export_all_file_name(when: datetime) -> str:
    return f"calendar_export_{epoch_ms(when)}.ics"


def export_event_file_name(title: str, when: datetime) -> str:
    return f"{safe_title(title)}_{epoch_ms(when)}.ics"


class CalendarICSService:
    """Glue between ICS text and the application's stores."""

    def __init__(
        self,
        events: Optional[EventRepository] = None,
        subscriptions: Optional[SubscriptionRepository] = None,
        sink: Optional[ExportSink] = None,
        settings: Any = None,
        parser: Optional[LiteICSParser] = None,
        fetcher: Optional[LiteICSFetcher] = None,
        clock: Optional[Callable[[], datetime]] = None,
        fold: bool = False,
    ) -> None:
        """Initialize the service.

        Args:
            events: Local event store (import / export)
            subscriptions: Subscription store (sync)
            sink: Receives ``(file_name, ics_text)`` for every export
            settings: Application settings passed on to parser and fetcher
            parser: Optional pre-built parser
            fetcher: Optional pre-built fetcher (its client is reused)
            clock: Source of "now" for file names and sync stamps
            fold: Fold exported content lines longer than 75 octets
        """
        self.events = events
        self.subscriptions = subscriptions
        self.sink = sink
        self.settings = settings
        self.parser = parser or LiteICSParser(settings)
        self.fetcher = fetcher
        self._clock = clock or now_utc
        self.fold = fold

    def _require_events(self) -> EventRepository:
        if self.events is None:
            raise RuntimeError("CalendarICSService was created without an event repository")
        return self.events

    def _require_subscriptions(self) -> SubscriptionRepository:
        if self.subscriptions is None:
            raise RuntimeError("CalendarICSService was created without a subscription repository")
        return self.subscriptions

    async def _emit(self, file_name: str, content: str) -> None:
        if self.sink is None:
            raise LiteExportError("No export sink configured")
        await self.sink(file_name, content)

    async def export_all_events(self) -> str:
        """Serialize every stored event and hand the document to the sink.

        Returns:
            The exported file name

        Raises:
            LiteExportError: The store holds no events
        """
        stored = list(await self._require_events().list_all_events())
        if not stored:
            raise LiteExportError("No events to export")

        now = self._clock()
        file_name = export_all_file_name(now)
        await self._emit(file_name, serialize(stored, now=now, fold=self.fold))
        logger.info("Exported %d events to %s", len(stored), file_name)
        return file_name

    async def export_event(self, event: Occurrence) -> str:
        """Export a single event; returns the exported file name."""
        now = self._clock()
        file_name = export_event_file_name(event.title, now)
        await self._emit(file_name, serialize([event], now=now, fold=self.fold))
        logger.info("Exported event %s to %s", event.id, file_name)
        return file_name

    async def import_ics_content(self, content: str) -> int:
        """Parse ICS text and upsert every resulting occurrence.

        Raises:
            LiteICSNoEventsError: Nothing usable in the document
        """
        repository = self._require_events()
        events = self.parser.parse_events(content, now=self._clock(), require_events=True)
        for event in events:
            await repository.upsert_event(event)
        logger.info("Imported %d events", len(events))
        return len(events)

    async def import_ics_file(self, path: Union[str, Path]) -> int:
        """Read a user-selected ``.ics`` file and import it.

        ``OSError`` from reading the file propagates unchanged.
        """
        file_path = Path(path)
        content = await asyncio.to_thread(file_path.read_text, encoding="utf-8-sig")
        logger.debug("Read %d characters from %s", len(content), file_path)
        try:
            return await self.import_ics_content(content)
        except LiteICSNoEventsError:
            logger.warning("No valid events found in %s", file_path)
            raise

    async def sync_subscription(self, subscription_id: str) -> int:
        """Replace a subscription's cached occurrences with a fresh download.

        Returns:
            Number of occurrences stored

        Raises:
            SubscriptionNotFoundError: Unknown subscription ID
            LiteICSFetchError: The feed could not be downloaded
        """
        repository = self._require_subscriptions()
        subscription = await repository.get_subscription(subscription_id)
        if subscription is None:
            raise SubscriptionNotFoundError(f"Subscription not found: {subscription_id}")

        content = await self._fetch(subscription.url)
        now = self._clock()
        events = self.parser.parse_events(content, now=now)

        await repository.clear_subscription_events(subscription_id)
        await repository.insert_subscription_events(subscription_id, events)
        await repository.update_subscription_sync_time(subscription_id, now)

        logger.info("Synced subscription %s (%s): %d events", subscription.name, subscription_id, len(events))
        return len(events)

    async def _fetch(self, url: str) -> str:
        if self.fetcher is not None:
            return await self.fetcher.fetch_text(url)
        async with LiteICSFetcher(self.settings) as fetcher:
            return await fetcher.fetch_text(url)

    async def sync_all_subscriptions(self) -> SyncSummary:
        """Sync every subscription in turn; one failure never stops the rest."""
        summary = SyncSummary()
        for subscription in await self._require_subscriptions().list_subscriptions():
            try:
                await self.sync_subscription(subscription.id)
            except Exception as e:
                logger.warning("Failed to sync subscription %s: %s", subscription.name, e)
                summary.record_failure(subscription.id, e)
            else:
                summary.success += 1

        logger.info("Subscription sync finished: %d ok, %d failed", summary.success, summary.failed)
        return summary
