"""
Tests for debounced persistence, force save and event association.
"""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from conftest import SAVE_DELAY, VERTICAL1_ID, FakeScreenStore
from screenconf.core.exceptions import StoreFailureError
from screenconf.domain.defaults import DEFAULT_CAPTURE_PARAMS, merge_bags
from screenconf.domain.schemas.screen import ScreenConfig
from screenconf.domain.services.event_association import EventAssociator
from screenconf.domain.services.persister import DebouncedPersister, config_to_row

NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)


def make_config(**kw):
    return ScreenConfig(
        id=kw.pop("id", VERTICAL1_ID),
        screen_key=kw.pop("screen_key", "vertical1"),
        name="Écran Cartoon (Vertical)",
        created_at=NOW,
        updated_at=NOW,
        **{**merge_bags({}), **kw},
    )


def make_persister(store, resolver, event_id=None):
    return DebouncedPersister(
        store, resolver, EventAssociator(store, event_id), delay=SAVE_DELAY
    )


# ─── Row mapping ─────────────────────────────────────────────────────────────

class TestConfigToRow:
    def test_row_shape(self):
        row = config_to_row(make_config(magical_effect="fx-1"), VERTICAL1_ID)
        assert row["id"] == VERTICAL1_ID
        assert row["screen_key"] == "vertical1"
        assert set(row["config"]) == {
            "capture_params",
            "appearance_params",
            "advanced_params",
            "availableEffects",
            "magicalEffect",
            "normalEffect",
        }
        assert row["config"]["magicalEffect"] == "fx-1"
        assert row["config"]["normalEffect"] is None
        assert row["created_at"] == NOW.isoformat()
        assert row["updated_at"] == NOW.isoformat()

    def test_corrupted_bag_is_refilled(self):
        config = make_config(capture_params={"countdown_duration": 9})
        row = config_to_row(config, VERTICAL1_ID)
        assert row["config"]["capture_params"] == {
            **DEFAULT_CAPTURE_PARAMS,
            "countdown_duration": 9,
        }

    def test_legacy_fields_not_written(self):
        config = make_config(frame_url="https://cdn/frame.png")
        assert "frame_url" not in config_to_row(config, VERTICAL1_ID)


# ─── Persist ─────────────────────────────────────────────────────────────────

class TestPersist:
    @pytest.mark.asyncio
    async def test_idempotent_persist(self, store, resolver):
        persister = make_persister(store, resolver)
        config = make_config()

        first = await persister.persist(config)
        second = await persister.persist(config)

        assert first == second
        assert store.upserts[0] == store.upserts[1]

    @pytest.mark.asyncio
    async def test_identity_re_resolved_after_discovery(self, store, resolver):
        persister = make_persister(store, resolver)
        config = make_config(id="props", screen_key="props")

        await persister.persist(config)
        await resolver.discover(
            FakeScreenStore([{"id": "uuid-props", "screen_key": "props", "name": "Props"}])
        )
        await persister.persist(config)

        assert [row["id"] for row in store.upserts] == ["props", "uuid-props"]

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, store, resolver):
        store.fail_on.add("upsert_screen")
        persister = make_persister(store, resolver)
        with pytest.raises(StoreFailureError):
            await persister.persist(make_config())
        assert persister.is_saving is False


# ─── Debounce ────────────────────────────────────────────────────────────────

class TestDebounce:
    @pytest.mark.asyncio
    async def test_burst_coalesces_into_last_snapshot(self, store, resolver):
        persister = make_persister(store, resolver)

        for duration in (4, 5, 6, 7):
            persister.schedule(make_config(capture_params={"countdown_duration": duration}))
        assert persister.has_pending
        await persister.wait_idle()

        assert len(store.upserts) == 1
        assert store.upserts[0]["config"]["capture_params"]["countdown_duration"] == 7

    @pytest.mark.asyncio
    async def test_write_waits_for_quiet_period(self, store, resolver):
        persister = make_persister(store, resolver)
        persister.schedule(make_config())
        await asyncio.sleep(SAVE_DELAY / 5)
        assert store.upserts == []
        await persister.wait_idle()
        assert len(store.upserts) == 1

    @pytest.mark.asyncio
    async def test_cancel_drops_pending_write(self, store, resolver):
        persister = make_persister(store, resolver)
        persister.schedule(make_config())
        assert persister.cancel() is True
        await asyncio.sleep(SAVE_DELAY * 2)
        assert store.upserts == []
        assert persister.cancel() is False

    @pytest.mark.asyncio
    async def test_force_save_replaces_pending(self, store, resolver):
        persister = make_persister(store, resolver)
        persister.schedule(make_config(capture_params={"countdown_duration": 1}))

        await persister.force_save(make_config(capture_params={"countdown_duration": 2}))
        await asyncio.sleep(SAVE_DELAY * 2)

        assert len(store.upserts) == 1
        assert store.upserts[0]["config"]["capture_params"]["countdown_duration"] == 2

    @pytest.mark.asyncio
    async def test_force_save_lands_after_in_flight_autosave(self, store, resolver):
        started, release = asyncio.Event(), asyncio.Event()
        original_upsert = store.upsert_screen

        async def slow_first_upsert(row):
            if not started.is_set():
                started.set()
                await release.wait()
            return await original_upsert(row)

        store.upsert_screen = slow_first_upsert
        persister = make_persister(store, resolver)
        persister.schedule(make_config(capture_params={"countdown_duration": 1}))
        await started.wait()

        save = asyncio.create_task(
            persister.force_save(make_config(capture_params={"countdown_duration": 2}))
        )
        await asyncio.sleep(0)
        assert persister.is_saving
        release.set()
        await save
        await persister.wait_idle()

        stored = store.rows[VERTICAL1_ID]["config"]["capture_params"]
        assert stored["countdown_duration"] == 2

    @pytest.mark.asyncio
    async def test_autosave_failure_is_logged_not_raised(self, store, resolver):
        store.fail_on.add("upsert_screen")
        persister = make_persister(store, resolver)
        persister.schedule(make_config())
        await persister.wait_idle()
        assert len(store.upserts) == 1


# ─── Event association ───────────────────────────────────────────────────────

class TestEventAssociation:
    @pytest.mark.asyncio
    async def test_persist_links_event(self, store, resolver):
        persister = make_persister(store, resolver, event_id="event-1")
        await persister.persist(make_config())
        await persister.persist(make_config())

        assert list(store.event_rows) == [("event-1", VERTICAL1_ID)]
        assert store.event_rows[("event-1", VERTICAL1_ID)]["is_active"] is True

    @pytest.mark.asyncio
    async def test_no_event_no_join_write(self, store, resolver):
        await make_persister(store, resolver).persist(make_config())
        assert all(op != "upsert_event_screen" for op, _ in store.calls)

    @pytest.mark.asyncio
    async def test_association_failure_does_not_fail_persist(self, store, resolver):
        store.fail_on.add("upsert_event_screen")
        persister = make_persister(store, resolver, event_id="event-1")

        row = await persister.persist(make_config())

        assert row["id"] == VERTICAL1_ID
        assert VERTICAL1_ID in store.rows

    @pytest.mark.asyncio
    async def test_associator_uses_composite_conflict_target(self):
        store = AsyncMock()
        associator = EventAssociator(store, "event-1")

        assert await associator.associate("screen-1") is True

        row = store.upsert_event_screen.call_args[0][0]
        assert row["event_id"] == "event-1"
        assert row["screen_id"] == "screen-1"
        assert store.upsert_event_screen.call_args[1]["on_conflict"] == ("event_id", "screen_id")

    @pytest.mark.asyncio
    async def test_associator_failure_returns_false(self):
        store = AsyncMock()
        store.upsert_event_screen.side_effect = StoreFailureError("denied")
        assert await EventAssociator(store, "event-1").associate("screen-1") is False
