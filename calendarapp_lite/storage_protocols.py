"""Storage seams the ICS flows depend on.

The relational event/subscription stores live outside this package; these
Protocols describe the handful of methods the import, export and sync flows
call on them.
"""

from collections.abc import Awaitable, Sequence
from datetime import datetime
from typing import Callable, Optional, Protocol, runtime_checkable

from .lite_event_mapper import Occurrence
from .lite_models import Subscription


@runtime_checkable
class EventRepository(Protocol):
    """Local event store."""

    async def list_all_events(self) -> Sequence[Occurrence]:
        """Every stored event, for "export all"."""
        ...

    async def upsert_event(self, event: Occurrence) -> None:
        """Insert or replace an event by ID."""
        ...


@runtime_checkable
class SubscriptionRepository(Protocol):
    """Subscription store plus its cached occurrence rows."""

    async def list_subscriptions(self) -> Sequence[Subscription]:
        ...

    async def get_subscription(self, subscription_id: str) -> Optional[Subscription]:
        ...

    async def clear_subscription_events(self, subscription_id: str) -> None:
        ...

    async def insert_subscription_events(
        self, subscription_id: str, events: Sequence[Occurrence]
    ) -> None:
        ...

    async def update_subscription_sync_time(self, subscription_id: str, synced_at: datetime) -> None:
        ...


# (file_name, ics_text) -> written/shared
ExportSink = Callable[[str, str], Awaitable[None]]
