"""
Build the configured screen store backend.
"""

from typing import Optional

from screenconf.config.settings import ScreenConfigSettings, get_settings
from screenconf.core.database import DatabaseManager
from screenconf.core.logging import get_logger
from screenconf.domain.repositories.base import ScreenStore
from screenconf.domain.repositories.screen import SqlScreenStore
from screenconf.infrastructure.postgrest_client import PostgrestScreenStore

logger = get_logger(__name__)


def create_screen_store(settings: Optional[ScreenConfigSettings] = None) -> ScreenStore:
    """Create the store selected by ``store_backend``."""
    settings = settings or get_settings()
    backend = settings.store_backend.lower()

    if backend == "postgrest":
        logger.info("Using PostgREST screen store", url=settings.rest_base_url)
        return PostgrestScreenStore(settings)
    if backend == "sql":
        logger.info("Using SQL screen store")
        return SqlScreenStore(DatabaseManager(settings.database_connection_string))

    raise ValueError(f"Unknown store backend: {settings.store_backend}")
