"""Data structures for households, memberships and hub connections."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    """Role of a user inside one household."""

    OWNER = "OWNER"
    TENANT = "TENANT"
    NONE = "NONE"


@dataclass(frozen=True)
class HubConnection:
    """Base URL and long-lived access token of a household's hub."""

    household_id: int
    base_url: str
    access_token: str

    @property
    def api_root(self) -> str:
        return self.base_url.rstrip("/")


@dataclass(frozen=True)
class Household:
    id: int
    name: str
    owner_id: int


@dataclass(frozen=True)
class Membership:
    """A (user, household) pairing as stored by the persistence layer.

    ``area_filter`` is an exact room name. ``label_filter_csv`` is a
    comma separated list of label names.
    """

    household_id: int
    user_id: int
    role: Role
    area_filter: str | None = None
    label_filter_csv: str | None = None


@dataclass(frozen=True)
class AccessGrant:
    """Effective role and filters of one caller in one household."""

    role: Role
    area_filter: str | None = None
    label_filter_csv: str | None = None

    def to_dict(self) -> dict:
        return {
            "role": self.role.value,
            "area_filter": self.area_filter,
            "label_filter": self.label_filter_csv,
        }


NO_ACCESS = AccessGrant(Role.NONE)
