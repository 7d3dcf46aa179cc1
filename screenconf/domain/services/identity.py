"""
Screen identity resolution.

Maps logical screen keys (``vertical1``) to opaque storage ids and storage
ids back to display names. Core screens are known statically; optional
screens are discovered once from the store. Until discovery completes an
optional key resolves to itself.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Dict, Iterable, Mapping, Optional, Tuple

from screenconf.core.exceptions import ScreenConfigException
from screenconf.core.logging import get_logger
from screenconf.domain.repositories.base import ScreenStore

logger = get_logger(__name__)

# screen type -> (orientation, ratio) used when synthesizing a new screen
SCREEN_LAYOUTS: Dict[str, Tuple[str, str]] = {
    "horizontal": ("landscape", "16:9"),
    "vertical": ("portrait", "9:16"),
}


@dataclass(frozen=True)
class ScreenDescriptor:
    key: str
    name: str
    type: str = "vertical"
    storage_id: Optional[str] = None


@dataclass(frozen=True)
class IdentityMap:
    """Read-only table of core and optional screens."""

    core: Mapping[str, ScreenDescriptor] = field(default_factory=dict)
    optional: Mapping[str, ScreenDescriptor] = field(default_factory=dict)

    @classmethod
    def from_descriptors(
        cls,
        core: Iterable[ScreenDescriptor],
        optional: Iterable[ScreenDescriptor] = (),
    ) -> "IdentityMap":
        return cls(
            core={d.key: d for d in core},
            optional={d.key: d for d in optional},
        )

    def descriptor(self, key: str) -> Optional[ScreenDescriptor]:
        return self.core.get(key) or self.optional.get(key)


DEFAULT_IDENTITY_MAP = IdentityMap.from_descriptors(
    core=[
        ScreenDescriptor(
            "horizontal1", "Écran Univers (Horizontal)", "horizontal",
            "1f8f7e9a-5d3b-4c1a-8c4e-6f2d3b1a5c4e",
        ),
        ScreenDescriptor(
            "vertical1", "Écran Cartoon (Vertical)", "vertical",
            "2a9e8f7b-6c4d-5e2f-9d3a-7b5c4d3e2f1a",
        ),
        ScreenDescriptor(
            "vertical2", "Écran Dessin (Vertical)", "vertical",
            "3b0f9e8c-7d5e-6f3e-0e4b-8c6d5e4f3e2b",
        ),
        ScreenDescriptor(
            "vertical3", "Écran Caricature (Vertical)", "vertical",
            "4c1a0f9d-8e6f-7e4e-1f5c-9d7e6f5e4e3c",
        ),
    ],
    optional=[
        ScreenDescriptor("props", "Écran Props (Vertical)", "vertical"),
        ScreenDescriptor("video", "Écran Vidéo (Horizontal)", "horizontal"),
    ],
)


class ScreenIdentityResolver:
    """Resolve screen keys to storage ids and back."""

    def __init__(self, identity_map: IdentityMap = DEFAULT_IDENTITY_MAP):
        self.identity_map = identity_map
        self._names: Dict[str, str] = {
            d.storage_id: d.name for d in identity_map.core.values() if d.storage_id
        }
        # screen_key -> storage id, filled by discover()
        self._discovered: Dict[str, str] = {}
        self._discovery: Optional[asyncio.Future] = None
        self.discovered = False

    def resolve(self, key: str) -> str:
        descriptor = self.identity_map.core.get(key)
        if descriptor is not None and descriptor.storage_id:
            return descriptor.storage_id
        return self._discovered.get(key, key)

    def inverse(self, storage_id: str) -> str:
        name = self._names.get(storage_id)
        if name is not None:
            return name
        return f"Écran {storage_id}"

    def display_name(self, key: str) -> str:
        return self.inverse(self.resolve(key))

    def screen_type(self, key_or_id: str) -> str:
        descriptor = self.identity_map.descriptor(key_or_id)
        if descriptor is None:
            descriptor = self._descriptor_for_id(key_or_id)
        return descriptor.type if descriptor else "vertical"

    def layout(self, key: str) -> Tuple[str, str]:
        """(orientation, ratio) for a newly created screen."""
        return SCREEN_LAYOUTS[self.screen_type(key)]

    def is_known(self, key: str) -> bool:
        return key in self.identity_map.core or key in self._discovered

    def _descriptor_for_id(self, storage_id: str) -> Optional[ScreenDescriptor]:
        for descriptor in self.identity_map.core.values():
            if descriptor.storage_id == storage_id:
                return descriptor
        for key, discovered_id in self._discovered.items():
            if discovered_id == storage_id:
                return self.identity_map.optional.get(key)
        return None

    async def discover(self, store: ScreenStore) -> bool:
        """
        Discover storage ids of optional screens.

        Concurrent callers share one in-flight read. Returns False when the
        read failed; resolution keeps passing keys through in that case.
        """
        if self.discovered or not self.identity_map.optional:
            return True
        if self._discovery is None or self._discovery.done():
            self._discovery = asyncio.ensure_future(self._discover(store))
        return await asyncio.shield(self._discovery)

    async def _discover(self, store: ScreenStore) -> bool:
        keys = list(self.identity_map.optional)
        try:
            rows = await store.list_screens(keys)
        except ScreenConfigException as e:
            logger.warning("Optional screen discovery failed", keys=keys, error=e.message)
            return False

        for row in rows:
            key, storage_id = row.get("screen_key"), row.get("id")
            descriptor = self.identity_map.optional.get(key)
            if descriptor is None or not storage_id:
                continue
            self._discovered[key] = storage_id
            self._names[storage_id] = descriptor.name

        self.discovered = True
        logger.info("Optional screens discovered", screens=dict(self._discovered))
        return True
