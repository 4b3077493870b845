# src/atlas/schemas/permission.py
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class GrantWrite(BaseModel):
    view: bool = False
    edit: bool = False
    delete: bool = False
    share: bool = False


class GrantRead(BaseModel):
    zone_id: str
    grantee_id: str
    can_view: bool
    can_edit: bool
    can_delete: bool
    can_share: bool
    granted_by: str
    created_at: datetime
    updated_at: datetime
    model_config = {"from_attributes": True}


class CapabilitiesRead(BaseModel):
    view: bool
    edit: bool
    delete: bool
    share: bool
