"""Pydantic v2 models for API v1 request validation."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator


# ── Control ──────────────────────────────────────────────────────────

class ServiceControlRequest(BaseModel):
    """POST /api/v1/control/service body."""
    householdId: int
    entity_id: str = Field(..., min_length=1)
    service: str = Field(..., min_length=1)
    domain: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)

    @field_validator("entity_id", "service")
    @classmethod
    def strip_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("domain")
    @classmethod
    def blank_domain_is_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None


class ToggleRequest(BaseModel):
    """POST /api/v1/control/toggle body."""
    householdId: int
    entity_id: str = Field(..., min_length=1)
    domain: str | None = None

    @field_validator("entity_id")
    @classmethod
    def strip_entity(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("domain")
    @classmethod
    def blank_domain_is_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None
