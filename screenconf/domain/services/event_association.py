"""
Best-effort link between a saved screen and the active event.
"""

from typing import Optional

from screenconf.core.exceptions import EventAssociationError, ScreenConfigException
from screenconf.core.logging import get_logger
from screenconf.domain.repositories.base import (
    EVENT_SCREEN_CONFLICT_TARGET,
    Row,
    ScreenStore,
)
from screenconf.domain.services.state import next_timestamp

logger = get_logger(__name__)


class EventAssociator:
    """Upserts (event_id, screen_id) join rows; never raises."""

    def __init__(self, store: ScreenStore, event_id: Optional[str] = None):
        self.store = store
        self.event_id = event_id

    async def _upsert(self, row: Row) -> Row:
        try:
            return await self.store.upsert_event_screen(
                row, on_conflict=EVENT_SCREEN_CONFLICT_TARGET
            )
        except ScreenConfigException as e:
            raise EventAssociationError(
                f"Could not associate screen with event: {e.message}",
                details={"event_id": row["event_id"], "screen_id": row["screen_id"]},
            ) from e

    async def associate(self, screen_id: str, event_id: Optional[str] = None) -> bool:
        """
        Link *screen_id* to the event. Repeating the call for the same pair
        only refreshes ``updated_at``.

        Returns True when the join row was written.
        """
        event_id = event_id or self.event_id
        if not event_id:
            return False

        row = {
            "event_id": event_id,
            "screen_id": screen_id,
            "is_active": True,
            "updated_at": next_timestamp().isoformat(),
        }
        try:
            await self._upsert(row)
        except EventAssociationError as e:
            logger.warning(
                "Screen/event association failed",
                event_id=event_id,
                screen_id=screen_id,
                error=e.message,
            )
            return False

        logger.debug("Screen associated with event", event_id=event_id, screen_id=screen_id)
        return True
