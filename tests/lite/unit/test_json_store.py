"""Tests for the JSON-file backed event and subscription store."""

import json
from datetime import UTC, date, datetime
from pathlib import Path

import pytest

from calendarapp_lite.json_store import JsonCalendarStore, dump_occurrence, load_occurrence
from calendarapp_lite.lite_models import AllDayOccurrence, Subscription, TimedOccurrence
from calendarapp_lite.storage_protocols import EventRepository, SubscriptionRepository

pytestmark = [pytest.mark.unit, pytest.mark.fast]


def _timed(event_id: str = "t1", title: str = "Review") -> TimedOccurrence:
    return TimedOccurrence(
        id=event_id,
        title=title,
        start_at=datetime(2024, 1, 15, 9, 0, tzinfo=UTC),
        end_at=datetime(2024, 1, 15, 10, 0, tzinfo=UTC),
    )


def _all_day(event_id: str = "d1") -> AllDayOccurrence:
    return AllDayOccurrence(id=event_id, title="Offsite", start_date=date(2024, 2, 1), end_date=date(2024, 2, 3))


def test_dump_and_load_occurrence_keep_kind() -> None:
    data = dump_occurrence(_all_day())
    assert data["kind"] == "all_day"
    assert data["start_date"] == "2024-02-01"
    assert load_occurrence(data) == _all_day()


def test_store_when_file_missing_then_empty(tmp_path: Path) -> None:
    store = JsonCalendarStore(tmp_path / "store.json")
    assert store._events == {}
    assert not store.path.exists()


def test_store_satisfies_repository_protocols(tmp_path: Path) -> None:
    store = JsonCalendarStore(tmp_path / "store.json")
    assert isinstance(store, EventRepository)
    assert isinstance(store, SubscriptionRepository)


@pytest.mark.asyncio
async def test_upsert_event_persists_and_reloads(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "store.json"
    store = JsonCalendarStore(path)
    await store.upsert_event(_timed())
    await store.upsert_event(_all_day())
    await store.upsert_event(_timed(title="Review v2"))

    reloaded = JsonCalendarStore(path)
    events = {e.id: e for e in await reloaded.list_all_events()}
    assert set(events) == {"t1", "d1"}
    assert events["t1"].title == "Review v2"
    assert await reloaded.get_event("missing") is None
    assert list(tmp_path.joinpath("nested").glob("*.tmp")) == []


@pytest.mark.asyncio
async def test_subscription_lifecycle(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    store = JsonCalendarStore(path)
    await store.add_subscription(Subscription(id="team", name="Team", url="https://example.com/team.ics"))
    await store.insert_subscription_events("team", [_timed("a"), _timed("b")])
    await store.clear_subscription_events("team")
    await store.insert_subscription_events("team", [_timed("c")])
    synced_at = datetime(2024, 1, 10, 12, 0, tzinfo=UTC)
    await store.update_subscription_sync_time("team", synced_at)

    reloaded = JsonCalendarStore(path)
    subscription = await reloaded.get_subscription("team")
    assert subscription is not None
    assert subscription.last_synced_at == synced_at
    assert [e.id for e in await reloaded.list_subscription_events("team")] == ["c"]
    assert await reloaded.list_all_events() == []


@pytest.mark.asyncio
async def test_update_sync_time_for_unknown_subscription_is_noop(tmp_path: Path) -> None:
    store = JsonCalendarStore(tmp_path / "store.json")
    await store.update_subscription_sync_time("ghost", datetime(2024, 1, 1, tzinfo=UTC))
    assert await store.list_subscriptions() == []


def test_load_skips_malformed_entries(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    good = dump_occurrence(_timed())
    path.write_text(
        json.dumps(
            {
                "events": {"t1": good, "bad": {"kind": "timed", "id": "bad"}},
                "subscriptions": {"broken": {"events": []}},
            }
        ),
        encoding="utf-8",
    )
    store = JsonCalendarStore(path)
    assert list(store._events) == ["t1"]
    assert store._subscriptions == {}


def test_load_when_not_object_then_value_error(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    path.write_text("[]", encoding="utf-8")
    with pytest.raises(ValueError):
        JsonCalendarStore(path)
