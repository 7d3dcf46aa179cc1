"""
Shared test fixtures for the screen configuration engine.
Uses an in-memory store that records every call.
"""

import copy
from typing import List, Optional, Sequence

import pytest

from screenconf.core.exceptions import RowNotFoundError, StoreFailureError
from screenconf.domain.repositories.base import EVENT_SCREEN_CONFLICT_TARGET
from screenconf.domain.services.engine import ScreenConfigEngine
from screenconf.domain.services.identity import ScreenIdentityResolver

SAVE_DELAY = 0.05

VERTICAL1_ID = "2a9e8f7b-6c4d-5e2f-9d3a-7b5c4d3e2f1a"
HORIZONTAL1_ID = "1f8f7e9a-5d3b-4c1a-8c4e-6f2d3b1a5c4e"


class FakeScreenStore:
    """In-memory ScreenStore."""

    def __init__(self, rows: Optional[List[dict]] = None):
        self.rows = {row["id"]: copy.deepcopy(row) for row in rows or []}
        self.event_rows = {}
        self.calls = []
        self.fail_on = set()
        self.closed = False

    def _record(self, operation: str, payload=None) -> None:
        self.calls.append((operation, copy.deepcopy(payload)))
        if operation in self.fail_on:
            raise StoreFailureError(f"{operation} failed", details={"operation": operation})

    @property
    def upserts(self) -> List[dict]:
        return [payload for op, payload in self.calls if op == "upsert_screen"]

    async def read_screen(self, screen_id: str) -> dict:
        self._record("read_screen", screen_id)
        if screen_id not in self.rows:
            raise RowNotFoundError("screens", screen_id)
        return copy.deepcopy(self.rows[screen_id])

    async def upsert_screen(self, row: dict) -> dict:
        self._record("upsert_screen", row)
        merged = {**self.rows.get(row["id"], {}), **copy.deepcopy(row)}
        self.rows[row["id"]] = merged
        return copy.deepcopy(merged)

    async def list_screens(self, screen_keys: Optional[Sequence[str]] = None) -> List[dict]:
        self._record("list_screens", list(screen_keys) if screen_keys is not None else None)
        rows = [
            row for row in self.rows.values()
            if screen_keys is None or row.get("screen_key") in screen_keys
        ]
        return copy.deepcopy(sorted(rows, key=lambda r: r.get("name") or ""))

    async def upsert_event_screen(self, row: dict, on_conflict=EVENT_SCREEN_CONFLICT_TARGET) -> dict:
        self._record("upsert_event_screen", row)
        key = tuple(row[column] for column in on_conflict)
        self.event_rows[key] = {**self.event_rows.get(key, {}), **row}
        return copy.deepcopy(self.event_rows[key])

    async def aclose(self) -> None:
        self.closed = True


def make_row(id=VERTICAL1_ID, screen_key="vertical1", **kw):
    """Build a stored ``screens`` row."""
    return {
        "id": id,
        "name": kw.get("name", "Écran Cartoon (Vertical)"),
        "type": kw.get("type", "vertical"),
        "orientation": kw.get("orientation", "portrait"),
        "ratio": kw.get("ratio", "9:16"),
        "screen_key": screen_key,
        "config": kw.get("config", {}),
        "created_at": kw.get("created_at", "2025-01-01T00:00:00+00:00"),
        "updated_at": kw.get("updated_at", "2025-01-01T00:00:00+00:00"),
        **kw.get("extra", {}),
    }


@pytest.fixture
def store():
    return FakeScreenStore()


@pytest.fixture
def resolver():
    return ScreenIdentityResolver()


@pytest.fixture
def engine(store, resolver):
    return ScreenConfigEngine(store, resolver=resolver, save_delay=SAVE_DELAY)


@pytest.fixture
def event_engine(store, resolver):
    return ScreenConfigEngine(
        store, resolver=resolver, event_id="event-1", save_delay=SAVE_DELAY
    )
