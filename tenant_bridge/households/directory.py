"""Read-only household directory.

Households, memberships and hub connections are owned by an external
persistence layer. This module defines the lookup protocol the bridge
consumes and a JSON-backed implementation fed from the add-on options.

Expected payload::

    {"households": [
        {"id": 1, "name": "Flat 1", "owner_id": 10,
         "hub": {"base_url": "http://ha.local:8123", "access_token": "..."},
         "members": [
            {"user_id": 20, "role": "TENANT",
             "area_filter": "Kitchen", "label_filter": "Light,TV"}
         ]}
    ]}
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, Protocol

from .models import HubConnection, Household, Membership, Role

_LOGGER = logging.getLogger(__name__)


class DirectoryError(RuntimeError):
    """Raised when the directory payload is invalid."""


class HouseholdDirectory(Protocol):
    def get_household(self, household_id: int) -> Household | None: ...

    def get_membership(self, household_id: int, user_id: int) -> Membership | None: ...

    def get_hub_connection(self, household_id: int) -> HubConnection | None: ...


class JsonHouseholdDirectory:
    """In-memory directory loaded from a JSON document."""

    def __init__(
        self,
        *,
        households: Iterable[Household] = (),
        memberships: Iterable[Membership] = (),
        connections: Iterable[HubConnection] = (),
        source_path: Path | None = None,
    ) -> None:
        self.source_path = source_path
        self._households: dict[int, Household] = {}
        self._memberships: dict[tuple[int, int], Membership] = {}
        self._connections: dict[int, HubConnection] = {}

        for household in households:
            if household.id in self._households:
                raise DirectoryError(f"Duplicate household id: {household.id}")
            self._households[household.id] = household
        for membership in memberships:
            self._memberships[(membership.household_id, membership.user_id)] = membership
        for connection in connections:
            self._connections[connection.household_id] = connection

    @classmethod
    def from_file(cls, path: str | Path) -> "JsonHouseholdDirectory":
        path = Path(path)
        if not path.exists():
            _LOGGER.warning("Household directory %s not found, starting empty", path)
            return cls(source_path=path)
        try:
            payload = json.loads(path.read_text(encoding="utf-8") or "{}")
        except ValueError as exc:
            raise DirectoryError(f"Household directory {path} is not valid JSON: {exc}") from exc
        return cls.from_dict(payload, source_path=path)

    @classmethod
    def from_dict(cls, payload: dict, *, source_path: Path | None = None) -> "JsonHouseholdDirectory":
        if not isinstance(payload, dict):
            raise DirectoryError("Directory payload must be a mapping")

        entries = payload.get("households", []) or []
        if not isinstance(entries, list):
            raise DirectoryError("households must be a list")

        households: list[Household] = []
        memberships: list[Membership] = []
        connections: list[HubConnection] = []
        for entry in entries:
            household = _parse_household(entry)
            households.append(household)
            for member in entry.get("members", []) or []:
                memberships.append(_parse_membership(household.id, member))
            hub = entry.get("hub")
            if hub:
                connections.append(_parse_hub(household.id, hub))

        return cls(
            households=households,
            memberships=memberships,
            connections=connections,
            source_path=source_path,
        )

    def get_household(self, household_id: int) -> Household | None:
        return self._households.get(household_id)

    def get_membership(self, household_id: int, user_id: int) -> Membership | None:
        return self._memberships.get((household_id, user_id))

    def get_hub_connection(self, household_id: int) -> HubConnection | None:
        return self._connections.get(household_id)

    def household_ids(self) -> list[int]:
        return sorted(self._households)


def _parse_household(entry: dict) -> Household:
    if not isinstance(entry, dict):
        raise DirectoryError("household entry must be a mapping")
    try:
        household_id = int(entry["id"])
        owner_id = int(entry["owner_id"])
    except (KeyError, TypeError, ValueError) as exc:
        raise DirectoryError(f"household entry needs integer id and owner_id: {entry!r}") from exc
    name = str(entry.get("name") or f"Household {household_id}")
    return Household(id=household_id, name=name, owner_id=owner_id)


def _parse_membership(household_id: int, entry: dict) -> Membership:
    if not isinstance(entry, dict):
        raise DirectoryError("member entry must be a mapping")
    try:
        user_id = int(entry["user_id"])
    except (KeyError, TypeError, ValueError) as exc:
        raise DirectoryError(f"member entry needs an integer user_id: {entry!r}") from exc

    raw_role = str(entry.get("role", "TENANT")).strip().upper()
    if raw_role not in (Role.OWNER.value, Role.TENANT.value):
        raise DirectoryError(f"invalid role '{raw_role}' for user {user_id}")

    return Membership(
        household_id=household_id,
        user_id=user_id,
        role=Role(raw_role),
        area_filter=_optional_str(entry.get("area_filter")),
        label_filter_csv=_optional_str(entry.get("label_filter")),
    )


def _parse_hub(household_id: int, entry: dict) -> HubConnection:
    if not isinstance(entry, dict):
        raise DirectoryError("hub entry must be a mapping")
    base_url = str(entry.get("base_url", "")).strip()
    token = str(entry.get("access_token", "")).strip()
    if not base_url or not token:
        raise DirectoryError(f"hub for household {household_id} needs base_url and access_token")
    return HubConnection(household_id=household_id, base_url=base_url, access_token=token)


def _optional_str(value) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
