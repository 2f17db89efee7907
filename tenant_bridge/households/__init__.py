"""Households, memberships and access filtering."""
from .models import AccessGrant, HubConnection, Household, Membership, NO_ACCESS, Role
from .directory import DirectoryError, HouseholdDirectory, JsonHouseholdDirectory

__all__ = [
    "AccessGrant",
    "HubConnection",
    "Household",
    "Membership",
    "NO_ACCESS",
    "Role",
    "DirectoryError",
    "HouseholdDirectory",
    "JsonHouseholdDirectory",
]
