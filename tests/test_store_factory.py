"""
Tests for settings and store backend selection.
"""

import pytest

from screenconf.config.settings import ScreenConfigSettings
from screenconf.domain.repositories.screen import SqlScreenStore
from screenconf.domain.services.engine import ScreenConfigEngine
from screenconf.infrastructure.postgrest_client import PostgrestScreenStore
from screenconf.infrastructure.store_factory import create_screen_store


class TestSettings:
    def test_rest_base_url_strips_trailing_slash(self):
        settings = ScreenConfigSettings(supabase_url="https://project.supabase.co/")
        assert settings.rest_base_url == "https://project.supabase.co/rest/v1"

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("postgresql://u:p@db/x", "postgresql+psycopg2://u:p@db/x"),
            ("postgresql+asyncpg://u:p@db/x", "postgresql+psycopg2://u:p@db/x"),
            ("sqlite:///screens.db", "sqlite:///screens.db"),
        ],
    )
    def test_database_connection_string(self, url, expected):
        assert ScreenConfigSettings(database_url=url).database_connection_string == expected

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("SAVE_DEBOUNCE_SECONDS", "0.25")
        monkeypatch.setenv("STORE_BACKEND", "sql")
        settings = ScreenConfigSettings()
        assert settings.save_debounce_seconds == 0.25
        assert settings.store_backend == "sql"


class TestCreateScreenStore:
    @pytest.mark.asyncio
    async def test_postgrest_backend(self):
        store = create_screen_store(ScreenConfigSettings(supabase_key="k"))
        assert isinstance(store, PostgrestScreenStore)
        await store.aclose()

    def test_sql_backend(self):
        settings = ScreenConfigSettings(store_backend="SQL", database_url="sqlite://")
        store = create_screen_store(settings)
        assert isinstance(store, SqlScreenStore)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_screen_store(ScreenConfigSettings(store_backend="redis"))


class TestEngineFromSettings:
    @pytest.mark.asyncio
    async def test_builds_owned_store(self):
        settings = ScreenConfigSettings(
            store_backend="sql",
            database_url="sqlite://",
            save_debounce_seconds=0.5,
            log_format="text",
        )
        engine = ScreenConfigEngine.from_settings(settings)

        assert isinstance(engine.store, SqlScreenStore)
        assert engine.persister._debounce.delay == 0.5
        await engine.aclose()
        assert engine.is_disposed
