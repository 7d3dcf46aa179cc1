"""
Portable JSON export/import of a screen configuration.
"""

import json
from datetime import date
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from screenconf.core.exceptions import ConfigValidationError
from screenconf.domain.defaults import merge_bags
from screenconf.domain.schemas.screen import ScreenConfig
from screenconf.domain.services.state import next_timestamp

# Fields taken from the document when present, else kept from the current config.
_SCALAR_FIELDS = ("name", "type", "orientation", "ratio", "created_at")


class ImportExportCodec:
    """Serialize and deserialize the portable configuration document."""

    @staticmethod
    def export(config: ScreenConfig) -> str:
        return json.dumps(config.to_document(), indent=2, ensure_ascii=False)

    @staticmethod
    def export_filename(config: ScreenConfig, today: Optional[date] = None) -> str:
        today = today or date.today()
        return f"config_{config.screen_key}_{today.isoformat()}.json"

    @staticmethod
    def parse(doc: Union[str, bytes, Dict[str, Any]]) -> Dict[str, Any]:
        if isinstance(doc, (str, bytes)):
            try:
                doc = json.loads(doc)
            except ValueError as e:
                raise ConfigValidationError(f"Invalid JSON document: {e}") from e
        if not isinstance(doc, dict):
            raise ConfigValidationError(
                "Configuration document must be a JSON object",
                details={"type": type(doc).__name__},
            )
        return doc

    def import_document(
        self, doc: Union[str, bytes, Dict[str, Any]], current: ScreenConfig
    ) -> ScreenConfig:
        """
        Build a new configuration from *doc* for the screen of *current*.

        Identity (id, screen_key) always comes from *current*. Unknown fields
        are dropped and every bag is merged against the defaults.
        """
        document = self.parse(doc)

        data: Dict[str, Any] = {
            "id": current.id,
            "screen_key": current.screen_key,
            "magical_effect": document.get("magicalEffect") or None,
            "normal_effect": document.get("normalEffect") or None,
            "updated_at": next_timestamp(current.updated_at),
            **merge_bags(
                {
                    "capture_params": document.get("capture_params"),
                    "appearance_params": document.get("appearance_params"),
                    "advanced_params": document.get("advanced_params"),
                    "available_effects": document.get("availableEffects"),
                }
            ),
        }
        for name in _SCALAR_FIELDS:
            value = document.get(name)
            data[name] = value if value is not None else getattr(current, name)

        try:
            return ScreenConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigValidationError(
                "Configuration document has invalid values",
                details={"errors": e.errors(include_url=False)},
            ) from e
