"""
Screen configuration Pydantic schemas.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import ConfigDict, Field

from screenconf.domain.schemas.common import BaseSchema

ScreenType = Literal["vertical", "horizontal"]
Orientation = Literal["portrait", "landscape"]
EffectRef = Optional[Union[int, str]]

# Top-level fields of the portable export/import document, in output order.
DOCUMENT_FIELDS = (
    "id",
    "name",
    "type",
    "orientation",
    "ratio",
    "screen_key",
    "capture_params",
    "appearance_params",
    "advanced_params",
    "availableEffects",
    "magicalEffect",
    "normalEffect",
    "created_at",
    "updated_at",
)

# Flat columns older rows carry outside of the config document.
LEGACY_ROW_FIELDS = ("flash_enabled", "mirror_preview", "countdown_duration", "frame_url")


class ScreenConfig(BaseSchema):
    """
    Hydrated configuration of a single screen.

    Snapshots are immutable; edits produce a new instance via model_copy.
    Extra attributes hold legacy flat row fields.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True,
        extra="allow",
        frozen=True,
    )

    id: str
    screen_key: str
    name: str
    type: ScreenType = "vertical"
    orientation: Orientation = "portrait"
    ratio: str = "9:16"
    capture_params: Dict[str, Any] = Field(default_factory=dict)
    appearance_params: Dict[str, Any] = Field(default_factory=dict)
    advanced_params: Dict[str, Any] = Field(default_factory=dict)
    available_effects: Dict[str, List[Any]] = Field(
        default_factory=dict, alias="availableEffects"
    )
    magical_effect: EffectRef = Field(default=None, alias="magicalEffect")
    normal_effect: EffectRef = Field(default=None, alias="normalEffect")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def attribute_name(cls, name: str) -> str:
        """Map a wire name (e.g. availableEffects) to its attribute name."""
        for attr, info in cls.model_fields.items():
            if info.alias == name:
                return attr
        return name

    def to_document(self) -> Dict[str, Any]:
        """Project onto the portable document fields (JSON-safe values)."""
        dumped = self.model_dump(mode="json", by_alias=True)
        return {key: dumped.get(key) for key in DOCUMENT_FIELDS}


class ScreenSummary(BaseSchema):
    """Row summary used when listing screens."""

    id: str
    screen_key: Optional[str] = None
    name: Optional[str] = None
    type: Optional[str] = None
    orientation: Optional[str] = None
    ratio: Optional[str] = None
