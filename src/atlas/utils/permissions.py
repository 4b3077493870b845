# src/atlas/utils/permissions.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal, Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.atlas.config import settings
from src.atlas.crud.zone import find_zone
from src.atlas.crud.zone_permission import get_grant
from src.atlas.models.user import User
from src.atlas.models.zones import ZoneInfo, ZonePermission, ZoneStatus
from src.atlas.utils.errors import Forbidden, ZoneNotFound

logger = logging.getLogger(__name__)

Capability = Literal["view", "edit", "delete", "share"]
CAPABILITIES: tuple[str, ...] = ("view", "edit", "delete", "share")


@dataclass(frozen=True)
class Capabilities:
    view: bool = False
    edit: bool = False
    delete: bool = False
    share: bool = False

    def allows(self, capability: str) -> bool:
        if capability not in CAPABILITIES:
            raise ValueError(f"Unknown capability '{capability}'")
        return bool(getattr(self, capability))

    def as_dict(self) -> dict[str, bool]:
        return {c: getattr(self, c) for c in CAPABILITIES}


FULL = Capabilities(view=True, edit=True, delete=True, share=True)
NONE = Capabilities()
VIEW_ONLY = Capabilities(view=True)


def is_admin(user: Any) -> bool:
    roles = getattr(user, "roles", None) or []
    return any(r in settings.ADMIN_ROLES for r in roles)


def resolve_capabilities(user: Any, zone: ZoneInfo, grant: Optional[ZonePermission]) -> Capabilities:
    """
    Effective capabilities of ``user`` on ``zone``; first match wins:

    1. owner -> everything
    2. administrative role -> everything
    3. explicit grant -> its booleans as stored (no escalation from public/role)
    4. public and published -> view only
    5. nothing

    Pure function of its arguments. Callers pass freshly read state.
    """
    user_id = getattr(user, "login_id", None)
    if user_id is not None and zone.owner_id == user_id:
        return FULL
    if is_admin(user):
        return FULL
    if grant is not None:
        return Capabilities(
            view=bool(grant.can_view),
            edit=bool(grant.can_edit),
            delete=bool(grant.can_delete),
            share=bool(grant.can_share),
        )
    if zone.is_public and zone.status == ZoneStatus.PUBLISHED.value:
        return VIEW_ONLY
    return NONE


async def load_capabilities(db: AsyncSession, user: User, zone: ZoneInfo) -> Capabilities:
    """Read the grant (when it can matter) and resolve. Never cached."""
    grant = None
    if zone.owner_id != user.login_id and not is_admin(user):
        grant = await get_grant(db, zone.zone_id, user.login_id)
    return resolve_capabilities(user, zone, grant)


async def authorize(db: AsyncSession, user: User, zone_id: str, capability: Capability) -> ZoneInfo:
    """
    Return the zone if ``user`` holds ``capability`` on it, else raise Forbidden.

    Unknown zones look the same as forbidden ones to non-admins, so callers
    cannot probe for existence.
    """
    zone = await find_zone(db, zone_id)
    if zone is None:
        if is_admin(user):
            raise ZoneNotFound(zone_id=zone_id)
        logger.warning("403(zone access denied): user=%s capability=%s zone=%s (unknown)", user.login_id, capability, zone_id)
        raise Forbidden()

    caps = await load_capabilities(db, user, zone)
    if not caps.allows(capability):
        logger.warning("403(zone access denied): user=%s capability=%s zone=%s", user.login_id, capability, zone_id)
        raise Forbidden()
    return zone


def visibility_clause(user: User):
    """
    SQL mirror of resolve_capabilities(...).view for catalog prefiltering.
    None means no restriction (administrators).
    """
    if is_admin(user):
        return None
    uid = user.login_id
    granted = select(ZonePermission.zone_id).where(ZonePermission.grantee_id == uid)
    granted_view = granted.where(ZonePermission.can_view.is_(True))
    return or_(
        ZoneInfo.owner_id == uid,
        ZoneInfo.zone_id.in_(granted_view),
        and_(
            ZoneInfo.zone_id.not_in(granted),
            ZoneInfo.is_public.is_(True),
            ZoneInfo.status == ZoneStatus.PUBLISHED.value,
        ),
    )
