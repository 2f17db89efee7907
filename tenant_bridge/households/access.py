"""Role resolution and device visibility filtering.

Pure functions; the directory is only read to look up a membership row.

Visibility rules:
  - OWNER without filters sees every device.
  - An area filter needs exact (case-sensitive) equality with the device
    area; devices without an area never match it.
  - A label filter needs at least one shared label.
  - TENANT additionally needs the device to carry at least one label.
  - NONE sees nothing.
"""
from __future__ import annotations

from typing import Iterable, Sequence

from ..devices.models import Device
from .models import NO_ACCESS, AccessGrant, Household, Role


def resolve_role(household: Household, user_id: int | None, directory) -> AccessGrant:
    """Return the caller's grant inside ``household``."""
    if user_id is None:
        return NO_ACCESS
    if household.owner_id == user_id:
        return AccessGrant(Role.OWNER)

    membership = directory.get_membership(household.id, user_id)
    if membership is None:
        return NO_ACCESS
    return AccessGrant(
        role=membership.role,
        area_filter=membership.area_filter,
        label_filter_csv=membership.label_filter_csv,
    )


def parse_label_filter(label_filter_csv: str | None) -> list[str]:
    if not label_filter_csv:
        return []
    return [part.strip() for part in label_filter_csv.split(",") if part.strip()]


def device_matches(
    device: Device,
    role: Role,
    area_filter: str | None,
    label_filters: Sequence[str],
) -> bool:
    if role is Role.NONE:
        return False
    if area_filter is not None and device.area_name != area_filter:
        return False
    if label_filters and not set(device.labels).intersection(label_filters):
        return False
    if role is Role.TENANT and not device.labels:
        return False
    return True


def filter_devices(
    devices: Iterable[Device],
    role: Role,
    area_filter: str | None = None,
    label_filter_csv: str | None = None,
) -> list[Device]:
    """Stable filter of ``devices`` by the visibility rules."""
    if role is Role.NONE:
        return []
    label_filters = parse_label_filter(label_filter_csv)
    return [d for d in devices if device_matches(d, role, area_filter, label_filters)]


def filter_for_grant(devices: Iterable[Device], grant: AccessGrant) -> list[Device]:
    return filter_devices(devices, grant.role, grant.area_filter, grant.label_filter_csv)
