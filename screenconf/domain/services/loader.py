"""
Load a screen configuration, creating it from defaults on first access.
"""

import json
from typing import Any, Dict

from screenconf.core.exceptions import RowNotFoundError
from screenconf.core.logging import get_logger
from screenconf.domain.defaults import merge_bags
from screenconf.domain.repositories.base import Row, ScreenStore
from screenconf.domain.schemas.screen import LEGACY_ROW_FIELDS, ScreenConfig
from screenconf.domain.services.identity import SCREEN_LAYOUTS, ScreenIdentityResolver
from screenconf.domain.services.persister import DebouncedPersister
from screenconf.domain.services.state import next_timestamp

logger = get_logger(__name__)


def parse_config_document(raw: Any) -> Dict[str, Any]:
    """Decode the row's ``config`` column, which may be a JSON string."""
    if isinstance(raw, str):
        try:
            raw = json.loads(raw) if raw.strip() else {}
        except ValueError as e:
            logger.warning("Stored config is not valid JSON, using defaults", error=str(e))
            return {}
    return raw if isinstance(raw, dict) else {}


class ConfigLoader:
    """Fetches and hydrates configuration rows."""

    def __init__(
        self,
        store: ScreenStore,
        resolver: ScreenIdentityResolver,
        persister: DebouncedPersister,
    ):
        self.store = store
        self.resolver = resolver
        self.persister = persister

    def default_config(self, key: str) -> ScreenConfig:
        """Synthesize a configuration made entirely of defaults."""
        screen_type = self.resolver.screen_type(key)
        orientation, ratio = SCREEN_LAYOUTS[screen_type]
        now = next_timestamp()
        return ScreenConfig(
            id=self.resolver.resolve(key),
            name=self.resolver.display_name(key),
            type=screen_type,
            orientation=orientation,
            ratio=ratio,
            screen_key=key,
            created_at=now,
            updated_at=now,
            **merge_bags({}),
        )

    def hydrate(self, row: Row, key: str) -> ScreenConfig:
        """
        Build a configuration from a stored row.

        Bags are merged against the defaults; legacy flat columns that are
        set on the row are kept as extra attributes.
        """
        stored = parse_config_document(row.get("config"))
        screen_key = row.get("screen_key") or key

        screen_type = row.get("type")
        if screen_type not in SCREEN_LAYOUTS:
            screen_type = self.resolver.screen_type(screen_key)
        orientation, ratio = SCREEN_LAYOUTS[screen_type]
        if row.get("orientation") in ("portrait", "landscape"):
            orientation = row["orientation"]

        data: Dict[str, Any] = {
            "id": row.get("id") or self.resolver.resolve(screen_key),
            "name": row.get("name") or self.resolver.display_name(screen_key),
            "type": screen_type,
            "orientation": orientation,
            "ratio": row.get("ratio") or ratio,
            "screen_key": screen_key,
            "magical_effect": stored.get("magicalEffect") or None,
            "normal_effect": stored.get("normalEffect") or None,
            "created_at": row.get("created_at"),
            "updated_at": row.get("updated_at"),
            **merge_bags(
                {
                    "capture_params": stored.get("capture_params"),
                    "appearance_params": stored.get("appearance_params"),
                    "advanced_params": stored.get("advanced_params"),
                    "available_effects": stored.get("availableEffects"),
                }
            ),
        }
        for legacy_field in LEGACY_ROW_FIELDS:
            if row.get(legacy_field) is not None:
                data[legacy_field] = row[legacy_field]

        return ScreenConfig.model_validate(data)

    async def load(self, key: str) -> ScreenConfig:
        """
        Load the configuration of *key*.

        A missing row is created from defaults and written before returning.
        Store failures propagate as StoreFailureError.
        """
        storage_id = self.resolver.resolve(key)
        try:
            row = await self.store.read_screen(storage_id)
        except RowNotFoundError:
            logger.info(
                "Screen configuration missing, creating defaults",
                screen_key=key,
                screen_id=storage_id,
            )
            config = self.default_config(key)
            await self.persister.persist(config)
            return config

        logger.debug("Screen configuration loaded", screen_key=key, screen_id=storage_id)
        return self.hydrate(row, key)
