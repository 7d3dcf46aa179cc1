"""
In-memory configuration snapshot and depth-2 partial updates.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from screenconf.core.exceptions import ConfigValidationError
from screenconf.domain.schemas.screen import ScreenConfig
from screenconf.domain.schemas.update import FieldUpdate, SectionUpdate

IMMUTABLE_FIELDS = frozenset({"id", "screen_key"})


def next_timestamp(previous: Optional[datetime] = None) -> datetime:
    """Current UTC time, strictly later than *previous*."""
    now = datetime.now(timezone.utc)
    if previous is not None:
        if previous.tzinfo is None:
            previous = previous.replace(tzinfo=timezone.utc)
        if now <= previous:
            now = previous + timedelta(microseconds=1)
    return now


def parse_path(path: Any, value: Any) -> Union[FieldUpdate, SectionUpdate]:
    """Turn ``"field"`` or ``"section.field"`` into an update operation."""
    if not isinstance(path, str):
        raise ConfigValidationError(
            "Update path must be a string", details={"path": repr(path)}
        )
    parts = path.split(".")
    if len(parts) > 2 or not all(parts):
        raise ConfigValidationError(
            f"Invalid update path: {path!r}", details={"path": path}
        )
    if len(parts) == 2:
        return SectionUpdate(section=parts[0], field=parts[1], value=value)
    return FieldUpdate(field=path, value=value)


class LocalConfigState:
    """Holds the configuration currently being edited."""

    def __init__(self, config: Optional[ScreenConfig] = None):
        self._config = config

    @property
    def config(self) -> Optional[ScreenConfig]:
        return self._config

    def replace(self, config: Optional[ScreenConfig]) -> None:
        self._config = config

    def clear(self) -> None:
        self._config = None

    def apply(self, operation: Union[FieldUpdate, SectionUpdate]) -> ScreenConfig:
        """
        Produce, validate and store the next snapshot.

        The previous snapshot is left untouched; a value the entity rejects
        raises ConfigValidationError and the current snapshot stays.
        """
        current = self._config
        if current is None:
            raise ConfigValidationError("No configuration loaded")

        if isinstance(operation, SectionUpdate):
            attr = ScreenConfig.attribute_name(operation.section)
            section = getattr(current, attr, None)
            if section is None:
                section = {}
            if not isinstance(section, Mapping):
                raise ConfigValidationError(
                    f"{operation.section} is not a section",
                    details={"section": operation.section},
                )
            changes = {attr: {**section, operation.field: operation.value}}
        else:
            attr = ScreenConfig.attribute_name(operation.field)
            changes = {attr: operation.value}

        if attr in IMMUTABLE_FIELDS:
            raise ConfigValidationError(
                f"{attr} cannot be updated", details={"field": attr}
            )

        changes["updated_at"] = next_timestamp(current.updated_at)
        try:
            config = ScreenConfig.model_validate({**current.model_dump(), **changes})
        except ValidationError as e:
            raise ConfigValidationError(
                f"Invalid value for {attr}",
                details={
                    "field": attr,
                    "errors": e.errors(include_url=False, include_context=False),
                },
            ) from e

        self._config = config
        return self._config
