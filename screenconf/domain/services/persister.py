"""
Durable writes of the screen configuration.

Edits are coalesced by a debounce timer; force_save() writes immediately.
Every write re-merges the bags against the defaults, re-resolves the
storage id from screen_key and upserts the full row.
"""

import asyncio
from typing import Optional

from screenconf.core.exceptions import ScreenConfigException
from screenconf.core.logging import get_logger
from screenconf.domain.defaults import BAG_DEFAULTS, merge_bags
from screenconf.domain.repositories.base import Row, ScreenStore
from screenconf.domain.schemas.screen import ScreenConfig
from screenconf.domain.services.event_association import EventAssociator
from screenconf.domain.services.identity import ScreenIdentityResolver
from screenconf.domain.services.state import next_timestamp
from screenconf.infrastructure.tasks.debounce import DebouncedTask

logger = get_logger(__name__)

DEFAULT_SAVE_DELAY = 1.0


def config_to_row(config: ScreenConfig, storage_id: str) -> Row:
    """Map a configuration snapshot to the ``screens`` row shape."""
    bags = merge_bags({name: getattr(config, name) for name in BAG_DEFAULTS})
    created_at = config.created_at or next_timestamp()
    updated_at = config.updated_at or created_at

    return {
        "id": storage_id,
        "name": config.name or f"Écran {config.screen_key}",
        "type": config.type or "vertical",
        "orientation": config.orientation or "portrait",
        "ratio": config.ratio or "9:16",
        "screen_key": config.screen_key,
        "config": {
            "capture_params": bags["capture_params"],
            "appearance_params": bags["appearance_params"],
            "advanced_params": bags["advanced_params"],
            "availableEffects": bags["available_effects"],
            "magicalEffect": config.magical_effect or None,
            "normalEffect": config.normal_effect or None,
        },
        "created_at": created_at.isoformat(),
        "updated_at": updated_at.isoformat(),
    }


class DebouncedPersister:
    """Coalesces configuration writes for one engine."""

    def __init__(
        self,
        store: ScreenStore,
        resolver: ScreenIdentityResolver,
        associator: EventAssociator,
        delay: float = DEFAULT_SAVE_DELAY,
    ):
        self.store = store
        self.resolver = resolver
        self.associator = associator
        self._saving = 0
        # one write at a time, in call order
        self._write_lock = asyncio.Lock()
        self._debounce = DebouncedTask(delay, self._autosave, name="screen-config-autosave")

    @property
    def is_saving(self) -> bool:
        return self._saving > 0

    @property
    def has_pending(self) -> bool:
        return self._debounce.pending

    async def persist(self, config: ScreenConfig) -> Row:
        """Upsert the full configuration, then link it to the active event."""
        storage_id = self.resolver.resolve(config.screen_key)
        row = config_to_row(config, storage_id)

        self._saving += 1
        try:
            async with self._write_lock:
                stored = await self.store.upsert_screen(row)
        finally:
            self._saving -= 1

        logger.info(
            "Screen configuration saved",
            screen_id=storage_id,
            screen_key=config.screen_key,
        )
        await self.associator.associate(storage_id)
        return stored

    def schedule(self, config: ScreenConfig) -> None:
        """Write *config* once no newer snapshot arrives within the delay."""
        self._debounce.schedule(config)

    async def force_save(self, config: ScreenConfig) -> Row:
        """
        Cancel any pending autosave and write *config* now.

        An autosave already writing finishes first, so *config* lands last.
        """
        self._debounce.cancel()
        return await self.persist(config)

    def cancel(self) -> bool:
        """Drop the pending autosave without writing it."""
        return self._debounce.cancel()

    async def wait_idle(self) -> None:
        await self._debounce.wait_idle()

    async def _autosave(self, config: ScreenConfig) -> Optional[Row]:
        try:
            return await self.persist(config)
        except ScreenConfigException as e:
            logger.error(
                "Screen configuration autosave failed",
                screen_key=config.screen_key,
                error=e.message,
            )
            return None
