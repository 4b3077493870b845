# src/atlas/schemas/zone.py
from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.atlas.models.zones import ZoneStatus

_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")

# [longitude, latitude]; range/shape checks live in utils.geometry so that
# violations surface as InvalidGeometry rather than request validation errors
Boundary = list[list[float]]


def _normalize_color(v: Any) -> Any:
    if v is None:
        return v
    vv = str(v).strip()
    if not _HEX_COLOR.match(vv):
        raise ValueError("color must be a hex triple like #1a2b3c")
    return vv.lower()


def _normalize_tags(v: Any) -> Any:
    if v is None:
        return v
    if isinstance(v, str):
        v = [v]
    if not isinstance(v, (list, tuple, set)):
        return v
    out: list[str] = []
    for raw in v:
        tag = str(raw).strip()
        if not tag:
            continue
        if len(tag) > 50:
            raise ValueError("tags are limited to 50 characters")
        if tag not in out:
            out.append(tag)
    return out


# -------------------------------------------------------------------
# Requests
# -------------------------------------------------------------------
class ZoneCreate(BaseModel):
    name: str = Field(min_length=1, max_length=150)
    description: str = ""
    boundary: Boundary
    color: str = "#3388ff"
    is_public: bool = False
    tags: list[str] = Field(default_factory=list)

    @field_validator("name", mode="before")
    @classmethod
    def _trim(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("description", mode="before")
    @classmethod
    def _desc(cls, v: Any) -> Any:
        if v is None:
            return ""
        return v.strip() if isinstance(v, str) else v

    @field_validator("color", mode="before")
    @classmethod
    def _color(cls, v: Any) -> Any:
        return _normalize_color(v)

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, v: Any) -> Any:
        return _normalize_tags(v) or []


class ZoneUpdate(BaseModel):
    """Partial edit. Only fields present in the body change; tags replaces the whole set."""

    model_config = ConfigDict(extra="forbid")

    expected_version: int = Field(ge=1)
    name: Optional[str] = Field(default=None, min_length=1, max_length=150)
    description: Optional[str] = None
    boundary: Optional[Boundary] = None
    color: Optional[str] = None
    is_public: Optional[bool] = None
    tags: Optional[list[str]] = None

    @field_validator("name", mode="before")
    @classmethod
    def _trim(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if isinstance(v, str) else v

    @field_validator("color", mode="before")
    @classmethod
    def _color(cls, v: Any) -> Any:
        return _normalize_color(v)

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, v: Any) -> Any:
        return _normalize_tags(v)


class StatusChange(BaseModel):
    status: ZoneStatus
    note: Optional[str] = Field(default=None, max_length=1000)
    expected_version: Optional[int] = Field(default=None, ge=1)


# -------------------------------------------------------------------
# Responses
# -------------------------------------------------------------------
class ZoneRead(BaseModel):
    zone_id: str
    owner_id: str
    name: str
    description: str
    boundary: Boundary
    color: str
    is_public: bool
    tags: list[str]
    status: ZoneStatus
    status_changed_at: datetime
    status_changed_by: str
    area_m2: float
    created_by: str
    created_at: datetime
    updated_by: str
    updated_at: datetime
    version: int
    model_config = {"from_attributes": True}


class ZoneHistoryRead(BaseModel):
    id: int
    zone_id: str
    from_status: Optional[ZoneStatus] = None
    to_status: ZoneStatus
    actor_id: str
    note: Optional[str] = None
    created_at: datetime
    model_config = {"from_attributes": True}


class TransitionResult(BaseModel):
    zone: ZoneRead
    history: ZoneHistoryRead


__all__ = [
    "ZoneCreate",
    "ZoneUpdate",
    "StatusChange",
    "ZoneRead",
    "ZoneHistoryRead",
    "TransitionResult",
]
