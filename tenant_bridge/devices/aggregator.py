"""Join raw hub states with area/label metadata into Device records."""
from __future__ import annotations

import logging
from typing import Any

from ..errors import HubTemplateError
from ..hub.client import HubClient
from .models import Device

_LOGGER = logging.getLogger(__name__)


class DeviceAggregator:
    """Builds the full enriched device list of one household.

    A failing state read aborts the listing. A failing metadata render only
    degrades enrichment: every device then has no area and no labels.
    """

    def __init__(self, client: HubClient):
        self._client = client
        self.metadata_degraded = False

    def list_devices(self) -> list[Device]:
        states = self._client.read_all_states()
        meta_by_entity = self._load_metadata()

        devices: list[Device] = []
        for raw in states:
            meta = meta_by_entity.get(raw.entity_id, {})
            area = meta.get("area_name")
            labels = meta.get("labels")
            devices.append(
                Device.build(
                    entity_id=raw.entity_id,
                    state=raw.state,
                    attributes=raw.attributes,
                    area_name=area if isinstance(area, str) and area else None,
                    labels=labels if isinstance(labels, list) else (),
                )
            )
        return devices

    def _load_metadata(self) -> dict[str, dict[str, Any]]:
        self.metadata_degraded = False
        try:
            rows = self._client.render_metadata_query()
        except HubTemplateError as exc:
            self.metadata_degraded = True
            _LOGGER.warning("Could not load area/label metadata via /api/template: %s", exc)
            return {}

        lookup: dict[str, dict[str, Any]] = {}
        for row in rows:
            if isinstance(row, dict) and row.get("entity_id"):
                lookup[str(row["entity_id"])] = row
        return lookup
