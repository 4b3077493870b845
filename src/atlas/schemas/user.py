# src/atlas/schemas/user.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


class UserSync(BaseModel):
    """Payload pushed by the identity system to refresh its reference copy."""

    display_name: str = Field(default="", max_length=100)
    roles: list[str] = Field(default_factory=list)
    is_active: bool = True

    @field_validator("roles", mode="before")
    @classmethod
    def _trim_roles(cls, v: Any) -> Any:
        if not isinstance(v, list):
            return v
        return sorted({str(r).strip() for r in v if str(r).strip()})


class UserRead(BaseModel):
    login_id: str
    display_name: str
    is_active: bool
    roles: list[str]
    created_at: datetime
    updated_at: datetime
    model_config = {"from_attributes": True}


class DeactivateUser(BaseModel):
    successor_id: Optional[str] = Field(default=None, min_length=1, max_length=50)


class DeactivationReport(BaseModel):
    login_id: str
    new_owner_id: str
    transferred_zone_ids: list[str]
    revoked_grants: int
