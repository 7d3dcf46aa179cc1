"""
Screen configuration engine: the facade used by the admin UI.

One engine edits one screen at a time. Edits are applied to an immutable
snapshot and autosaved after a quiet period; force_save() writes at once.
Concurrent sessions on the same screen are not coordinated: the last
completed write wins.
"""

from typing import Any, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from screenconf.config.settings import ScreenConfigSettings, get_settings
from screenconf.core.exceptions import ConfigValidationError
from screenconf.core.logging import bind_screen_context, get_logger, setup_logging
from screenconf.domain.repositories.base import Row, ScreenStore
from screenconf.domain.schemas.result import OperationResult
from screenconf.domain.schemas.screen import ScreenConfig, ScreenSummary
from screenconf.domain.schemas.update import (
    FieldUpdate,
    SectionUpdate,
    UpdateOperation,
    parse_operation,
)
from screenconf.domain.services.codec import ImportExportCodec
from screenconf.domain.services.event_association import EventAssociator
from screenconf.domain.services.identity import ScreenIdentityResolver
from screenconf.domain.services.loader import ConfigLoader
from screenconf.domain.services.persister import DebouncedPersister
from screenconf.domain.services.state import LocalConfigState, parse_path
from screenconf.infrastructure.store_factory import create_screen_store

logger = get_logger(__name__)

EFFECT_SLOTS = ("magical", "normal")


class ScreenConfigEngine:
    """Load, edit, autosave and import/export one screen configuration."""

    def __init__(
        self,
        store: ScreenStore,
        resolver: Optional[ScreenIdentityResolver] = None,
        event_id: Optional[str] = None,
        save_delay: Optional[float] = None,
        owns_store: bool = False,
    ):
        if save_delay is None:
            save_delay = get_settings().save_debounce_seconds

        self.store = store
        self.resolver = resolver or ScreenIdentityResolver()
        self.associator = EventAssociator(store, event_id)
        self.persister = DebouncedPersister(
            store, self.resolver, self.associator, delay=save_delay
        )
        self.loader = ConfigLoader(store, self.resolver, self.persister)
        self.state = LocalConfigState()
        self.codec = ImportExportCodec()

        self._owns_store = owns_store
        self._screen_key: Optional[str] = None
        self._loading = False
        self._disposed = False

    @classmethod
    def from_settings(
        cls,
        settings: Optional[ScreenConfigSettings] = None,
        **kwargs: Any,
    ) -> "ScreenConfigEngine":
        """Build an engine with the store configured in settings."""
        settings = settings or get_settings()
        setup_logging(settings)
        kwargs.setdefault("save_delay", settings.save_debounce_seconds)
        return cls(create_screen_store(settings), owns_store=True, **kwargs)

    # ─── Accessors ────────────────────────────────────────────────────────

    @property
    def config(self) -> Optional[ScreenConfig]:
        return self.state.config

    @property
    def screen_key(self) -> Optional[str]:
        return self._screen_key

    @property
    def screen_id(self) -> Optional[str]:
        if self._screen_key is None:
            return None
        return self.resolver.resolve(self._screen_key)

    @property
    def display_name(self) -> Optional[str]:
        if self._screen_key is None:
            return None
        return self.resolver.display_name(self._screen_key)

    @property
    def screen_type(self) -> Optional[str]:
        if self._screen_key is None:
            return None
        return self.resolver.screen_type(self._screen_key)

    @property
    def event_id(self) -> Optional[str]:
        return self.associator.event_id

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def is_saving(self) -> bool:
        return self.persister.is_saving

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    # ─── Loading ──────────────────────────────────────────────────────────

    async def load(self, key: str) -> Optional[ScreenConfig]:
        """
        Load (or create) the configuration of *key* and make it current.

        Returns None when the engine was disposed before the load finished.
        """
        if self._disposed:
            logger.warning("Load requested on disposed engine", screen_key=key)
            return None

        self._screen_key = key
        bind_screen_context(key, self.event_id)
        self._loading = True
        try:
            await self.resolver.discover(self.store)
            config = await self.loader.load(key)
        finally:
            self._loading = False

        if self._disposed:
            logger.debug("Engine disposed during load, result ignored", screen_key=key)
            return None

        self.state.replace(config)
        return config

    async def list_screens(self) -> List[ScreenSummary]:
        """All known screens stored in the backend, ordered by name."""
        await self.resolver.discover(self.store)
        rows = await self.store.list_screens()
        return [
            ScreenSummary.model_validate(row)
            for row in rows
            if row.get("screen_key") and self.resolver.is_known(row["screen_key"])
        ]

    # ─── Editing ──────────────────────────────────────────────────────────

    def update(self, path: Any, value: Any) -> OperationResult:
        """Set ``field`` or ``section.field`` and schedule an autosave."""
        try:
            operation = parse_path(path, value)
        except ConfigValidationError as e:
            logger.error("Invalid configuration update", path=repr(path), error=e.message)
            return OperationResult.failure(e)
        return self.apply(operation)

    def apply(
        self, operation: Union[UpdateOperation, Mapping[str, Any]]
    ) -> OperationResult:
        """Apply an update operation, or its serialized form, and autosave."""
        if self._disposed:
            return OperationResult.failure(ConfigValidationError("Engine is disposed"))
        if isinstance(operation, Mapping):
            try:
                operation = parse_operation(operation)
            except ValidationError as e:
                error = ConfigValidationError(
                    "Invalid update operation",
                    details={"errors": e.errors(include_url=False, include_context=False)},
                )
                logger.error("Invalid configuration update", error=error.message)
                return OperationResult.failure(error)
        try:
            config = self.state.apply(operation)
        except ConfigValidationError as e:
            logger.warning("Configuration update rejected", error=e.message, **e.details)
            return OperationResult.failure(e)

        self.persister.schedule(config)
        return OperationResult.success()

    def update_available_effects(
        self, category: str, effects: Sequence[Any]
    ) -> OperationResult:
        """Replace the ordered effect list of one category."""
        return self.apply(
            SectionUpdate(section="availableEffects", field=category, value=list(effects))
        )

    def update_effect(self, slot: str, effect_id: Any) -> OperationResult:
        """Select the magical or normal effect; an empty id clears it."""
        if slot not in EFFECT_SLOTS:
            error = ConfigValidationError(
                f"Unknown effect slot: {slot}", details={"slot": slot}
            )
            logger.warning("Effect update rejected", error=error.message)
            return OperationResult.failure(error)
        value = None if effect_id == "" else effect_id
        return self.apply(FieldUpdate(field=f"{slot}Effect", value=value))

    # ─── Saving ───────────────────────────────────────────────────────────

    async def force_save(self) -> Optional[Row]:
        """
        Write the current configuration now, cancelling any pending autosave.

        Store failures propagate to the caller.
        """
        config = self.state.config
        if config is None or self._disposed:
            logger.warning("Nothing to save", screen_key=self._screen_key)
            return None
        return await self.persister.force_save(config)

    # ─── Import / export ──────────────────────────────────────────────────

    def export_config(self) -> Optional[str]:
        config = self.state.config
        if config is None:
            return None
        return self.codec.export(config)

    def export_filename(self) -> Optional[str]:
        config = self.state.config
        if config is None:
            return None
        return self.codec.export_filename(config)

    def import_config(self, doc: Any) -> OperationResult:
        """
        Replace the current configuration with *doc*.

        Nothing is written: the imported state stays provisional until saved.
        """
        current = self.state.config
        if current is None or self._disposed:
            return OperationResult.failure(
                ConfigValidationError("No configuration loaded")
            )
        try:
            imported = self.codec.import_document(doc, current)
        except ConfigValidationError as e:
            logger.error("Configuration import rejected", error=e.message)
            return OperationResult.failure(e)

        self.state.replace(imported)
        logger.info("Configuration imported", screen_key=current.screen_key)
        return OperationResult.success()

    # ─── Lifecycle ────────────────────────────────────────────────────────

    def dispose(self) -> None:
        """Drop any pending autosave without writing it."""
        if self._disposed:
            return
        self._disposed = True
        if self.persister.cancel():
            logger.info("Pending autosave dropped on dispose", screen_key=self._screen_key)

    async def aclose(self) -> None:
        self.dispose()
        if self._owns_store:
            await self.store.aclose()

    async def __aenter__(self) -> "ScreenConfigEngine":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
