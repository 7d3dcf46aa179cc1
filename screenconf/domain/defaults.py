"""
Canonical default parameter bags and per-bag merge functions.

Merge rule: one level deep. Default keys missing from a stored bag are
filled in; keys present in the stored bag but unknown to the defaults are
kept as-is. A stored value that is not a mapping counts as absent.
"""

import copy
from typing import Any, Mapping

DEFAULT_CAPTURE_PARAMS: Mapping[str, Any] = {
    "countdown_duration": 3,
    "flash_enabled": True,
    "mirror_preview": True,
    "show_countdown": True,
    "countdown_color": "#ffffff",
}

DEFAULT_APPEARANCE_PARAMS: Mapping[str, Any] = {
    "primary_color": "#6d28d9",
    "secondary_color": "#1d4ed8",
    "background_color": "#ffffff",
    "text_color": "#1f2937",
    "font_family": "Inter, sans-serif",
    "animation_speed": "normal",
    "frame_url": "",
    "logo_url": "",
}

DEFAULT_ADVANCED_PARAMS: Mapping[str, Any] = {
    "debug_mode": False,
    "second_capture": False,
    "qr_code_enabled": True,
    "timeout_duration": 60,
    "api_endpoint": "",
    "unlock_button_opacity": 10,
}

EFFECT_CATEGORIES = ("cartoon", "caricature", "dessin", "univers", "props", "video")

DEFAULT_AVAILABLE_EFFECTS: Mapping[str, list] = {
    category: [] for category in EFFECT_CATEGORIES
}

# Bag attribute name -> default bag
BAG_DEFAULTS: dict[str, Mapping[str, Any]] = {
    "capture_params": DEFAULT_CAPTURE_PARAMS,
    "appearance_params": DEFAULT_APPEARANCE_PARAMS,
    "advanced_params": DEFAULT_ADVANCED_PARAMS,
    "available_effects": DEFAULT_AVAILABLE_EFFECTS,
}


def _merge(defaults: Mapping[str, Any], stored: Any) -> dict[str, Any]:
    merged = copy.deepcopy(dict(defaults))
    if isinstance(stored, Mapping):
        merged.update(stored)
    return merged


def merge_capture_params(stored: Any) -> dict[str, Any]:
    return _merge(DEFAULT_CAPTURE_PARAMS, stored)


def merge_appearance_params(stored: Any) -> dict[str, Any]:
    return _merge(DEFAULT_APPEARANCE_PARAMS, stored)


def merge_advanced_params(stored: Any) -> dict[str, Any]:
    return _merge(DEFAULT_ADVANCED_PARAMS, stored)


def merge_available_effects(stored: Any) -> dict[str, list]:
    """Merge effect lists per category; non-list categories are dropped."""
    if isinstance(stored, Mapping):
        stored = {
            category: effects
            for category, effects in stored.items()
            if isinstance(effects, list)
        }
    return _merge(DEFAULT_AVAILABLE_EFFECTS, stored)


BAG_MERGERS = {
    "capture_params": merge_capture_params,
    "appearance_params": merge_appearance_params,
    "advanced_params": merge_advanced_params,
    "available_effects": merge_available_effects,
}


def merge_bags(source: Mapping[str, Any]) -> dict[str, dict]:
    """
    Merge every bag of *source* against its defaults.

    *source* is keyed by bag attribute name; missing bags come back as
    fresh copies of the defaults.
    """
    return {name: merger(source.get(name)) for name, merger in BAG_MERGERS.items()}
