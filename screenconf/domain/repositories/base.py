"""
Store protocol consumed by the screen configuration services.

Rows are plain dicts in the shape of the ``screens`` / ``event_screens``
tables; timestamps travel as ISO-8601 strings.
"""

from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

Row = Dict[str, Any]

EVENT_SCREEN_CONFLICT_TARGET: Tuple[str, str] = ("event_id", "screen_id")


class ScreenStore(Protocol):
    """Remote data store holding screen configuration rows."""

    async def read_screen(self, screen_id: str) -> Row:
        """Read one row by identity. Raises RowNotFoundError when absent."""
        ...

    async def upsert_screen(self, row: Row) -> Row:
        """Insert or update a row keyed by its ``id``."""
        ...

    async def list_screens(
        self, screen_keys: Optional[Sequence[str]] = None
    ) -> List[Row]:
        """List rows ordered by name, optionally filtered by screen_key."""
        ...

    async def upsert_event_screen(
        self,
        row: Row,
        on_conflict: Sequence[str] = EVENT_SCREEN_CONFLICT_TARGET,
    ) -> Row:
        """Insert or update a join row keyed by the conflict target."""
        ...

    async def aclose(self) -> None:
        ...
