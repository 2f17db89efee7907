"""Label categories.

Maps free-text hub labels to a closed set of device categories. Matching is
case-insensitive and exact per term. When a device carries several qualifying
labels the earliest entry of ``_SYNONYMS`` wins, regardless of label order.
"""
from __future__ import annotations

from enum import Enum
from typing import Iterable


class LabelCategory(str, Enum):
    LIGHT = "LIGHT"
    BLIND = "BLIND"
    MOTION_SENSOR = "MOTION_SENSOR"
    SPOTIFY = "SPOTIFY"
    BOILER = "BOILER"
    DOORBELL = "DOORBELL"
    SECURITY = "SECURITY"
    TV = "TV"
    SPEAKER = "SPEAKER"


# Order matters: first match wins.
_SYNONYMS: tuple[tuple[str, LabelCategory], ...] = (
    ("light", LabelCategory.LIGHT),
    ("lights", LabelCategory.LIGHT),
    ("blind", LabelCategory.BLIND),
    ("blinds", LabelCategory.BLIND),
    ("motion sensor", LabelCategory.MOTION_SENSOR),
    ("motion", LabelCategory.MOTION_SENSOR),
    ("spotify", LabelCategory.SPOTIFY),
    ("boiler", LabelCategory.BOILER),
    ("doorbell", LabelCategory.DOORBELL),
    ("home security", LabelCategory.SECURITY),
    ("security", LabelCategory.SECURITY),
    ("tv", LabelCategory.TV),
    ("television", LabelCategory.TV),
    ("speaker", LabelCategory.SPEAKER),
    ("speakers", LabelCategory.SPEAKER),
    # voice assistant vocabulary
    ("lamp", LabelCategory.LIGHT),
    ("lamps", LabelCategory.LIGHT),
    ("curtain", LabelCategory.BLIND),
    ("curtains", LabelCategory.BLIND),
)

_DISPLAY_NAMES: dict[LabelCategory, str] = {
    LabelCategory.LIGHT: "Light",
    LabelCategory.BLIND: "Blind",
    LabelCategory.MOTION_SENSOR: "Motion Sensor",
    LabelCategory.SPOTIFY: "Spotify",
    LabelCategory.BOILER: "Boiler",
    LabelCategory.DOORBELL: "Doorbell",
    LabelCategory.SECURITY: "Home Security",
    LabelCategory.TV: "TV",
    LabelCategory.SPEAKER: "Speaker",
}

_ALEXA_DISPLAY_CATEGORIES: dict[LabelCategory, str] = {
    LabelCategory.LIGHT: "LIGHT",
    LabelCategory.BLIND: "INTERIOR_BLIND",
    LabelCategory.MOTION_SENSOR: "MOTION_SENSOR",
    LabelCategory.SPOTIFY: "MUSIC_SYSTEM",
    LabelCategory.BOILER: "WATER_HEATER",
    LabelCategory.DOORBELL: "DOORBELL",
    LabelCategory.SECURITY: "SECURITY_PANEL",
    LabelCategory.TV: "TV",
    LabelCategory.SPEAKER: "SPEAKER",
}

_GOOGLE_DEVICE_TYPES: dict[LabelCategory, str] = {
    LabelCategory.LIGHT: "action.devices.types.LIGHT",
    LabelCategory.BLIND: "action.devices.types.BLINDS",
    LabelCategory.MOTION_SENSOR: "action.devices.types.SENSOR",
    LabelCategory.SPOTIFY: "action.devices.types.SPEAKER",
    LabelCategory.BOILER: "action.devices.types.BOILER",
    LabelCategory.DOORBELL: "action.devices.types.DOORBELL",
    LabelCategory.SECURITY: "action.devices.types.SECURITYSYSTEM",
    LabelCategory.TV: "action.devices.types.TV",
    LabelCategory.SPEAKER: "action.devices.types.SPEAKER",
}

ALEXA_FALLBACK_CATEGORY = "OTHER"
GOOGLE_FALLBACK_TYPE = "action.devices.types.SWITCH"

ALL_CATEGORIES: tuple[LabelCategory, ...] = tuple(LabelCategory)


def classify_labels(labels: Iterable[str]) -> LabelCategory | None:
    """Return the category of the first synonym present in ``labels``."""
    lowered = {str(label).lower() for label in labels}
    if not lowered:
        return None
    for term, category in _SYNONYMS:
        if term in lowered:
            return category
    return None


def display_name(category: LabelCategory) -> str:
    return _DISPLAY_NAMES.get(category, category.value)


def alexa_display_category(category: LabelCategory | None) -> str:
    if category is None:
        return ALEXA_FALLBACK_CATEGORY
    return _ALEXA_DISPLAY_CATEGORIES.get(category, ALEXA_FALLBACK_CATEGORY)


def google_device_type(category: LabelCategory | None) -> str:
    if category is None:
        return GOOGLE_FALLBACK_TYPE
    return _GOOGLE_DEVICE_TYPES.get(category, GOOGLE_FALLBACK_TYPE)


def synonyms_for(category: LabelCategory) -> list[str]:
    return [term for term, cat in _SYNONYMS if cat is category]
