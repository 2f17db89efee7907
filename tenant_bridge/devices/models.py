"""Enriched device record, rebuilt on every read."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from .categories import LabelCategory, classify_labels


def domain_of(entity_id: str) -> str:
    """``light.kitchen`` -> ``light``."""
    return entity_id.split(".", 1)[0]


def dedupe_labels(labels: Iterable[Any]) -> tuple[str, ...]:
    seen: set[str] = set()
    result: list[str] = []
    for label in labels or ():
        if not isinstance(label, str) or label in seen:
            continue
        seen.add(label)
        result.append(label)
    return tuple(result)


@dataclass(frozen=True)
class Device:
    entity_id: str
    domain: str
    state: str
    friendly_name: str
    area_name: str | None = None
    labels: tuple[str, ...] = ()
    label_category: LabelCategory | None = None
    icon: str | None = None
    attributes: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def build(
        cls,
        entity_id: str,
        state: str,
        attributes: dict[str, Any] | None = None,
        area_name: str | None = None,
        labels: Iterable[str] = (),
    ) -> "Device":
        attributes = attributes or {}
        clean_labels = dedupe_labels(labels)
        icon = attributes.get("icon")
        return cls(
            entity_id=entity_id,
            domain=domain_of(entity_id),
            state=state,
            friendly_name=str(attributes.get("friendly_name") or entity_id),
            area_name=area_name,
            labels=clean_labels,
            label_category=classify_labels(clean_labels),
            icon=icon if isinstance(icon, str) else None,
            attributes=attributes,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "entity_id": self.entity_id,
            "domain": self.domain,
            "state": self.state,
            "friendly_name": self.friendly_name,
            "icon": self.icon,
            "area_name": self.area_name,
            "labels": list(self.labels),
            "label_category": self.label_category.value if self.label_category else None,
        }
