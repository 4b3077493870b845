# src/atlas/crud/zone_permission.py
from __future__ import annotations

from typing import Iterable, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.atlas.models.zones import ZonePermission
from src.atlas.schemas.permission import GrantWrite
from src.atlas.utils.database import store_operation
from src.atlas.utils.timezone import now_local


@store_operation
async def get_grant(db: AsyncSession, zone_id: str, grantee_id: str) -> Optional[ZonePermission]:
    res = await db.execute(
        select(ZonePermission).where(
            ZonePermission.zone_id == zone_id,
            ZonePermission.grantee_id == grantee_id,
        )
    )
    return res.scalar_one_or_none()


@store_operation
async def grants_for_user(db: AsyncSession, grantee_id: str, zone_ids: Iterable[str]) -> dict[str, ZonePermission]:
    ids = list(zone_ids)
    if not ids:
        return {}
    res = await db.execute(
        select(ZonePermission).where(
            ZonePermission.grantee_id == grantee_id,
            ZonePermission.zone_id.in_(ids),
        )
    )
    return {g.zone_id: g for g in res.scalars().all()}


@store_operation
async def list_grants(db: AsyncSession, zone_id: str) -> List[ZonePermission]:
    res = await db.execute(
        select(ZonePermission)
        .where(ZonePermission.zone_id == zone_id)
        .order_by(ZonePermission.grantee_id)
    )
    return list(res.scalars().all())


async def _apply_caps(db: AsyncSession, row: ZonePermission, caps: GrantWrite, granted_by: str) -> ZonePermission:
    row.can_view = caps.view
    row.can_edit = caps.edit
    row.can_delete = caps.delete
    row.can_share = caps.share
    row.granted_by = granted_by
    row.updated_at = now_local()
    await db.commit()
    return row


@store_operation
async def set_grant(
    db: AsyncSession,
    zone_id: str,
    grantee_id: str,
    caps: GrantWrite,
    granted_by: str,
) -> ZonePermission:
    """
    Upsert behavior:
      - If (zone_id, grantee_id) exists -> UPDATE
      - Else -> INSERT (a concurrent insert of the same pair falls back to UPDATE)
    """
    existing = await get_grant(db, zone_id, grantee_id)
    if existing is not None:
        return await _apply_caps(db, existing, caps, granted_by)

    now = now_local()
    row = ZonePermission(
        zone_id=zone_id,
        grantee_id=grantee_id,
        can_view=caps.view,
        can_edit=caps.edit,
        can_delete=caps.delete,
        can_share=caps.share,
        granted_by=granted_by,
        created_at=now,
        updated_at=now,
    )
    db.add(row)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raced = await get_grant(db, zone_id, grantee_id)
        if raced is None:
            raise
        return await _apply_caps(db, raced, caps, granted_by)
    return row


@store_operation
async def revoke_grant(db: AsyncSession, zone_id: str, grantee_id: str) -> bool:
    res = await db.execute(
        delete(ZonePermission).where(
            ZonePermission.zone_id == zone_id,
            ZonePermission.grantee_id == grantee_id,
        )
    )
    await db.commit()
    return bool(res.rowcount)


@store_operation
async def revoke_all_for_user(db: AsyncSession, grantee_id: str) -> int:
    res = await db.execute(delete(ZonePermission).where(ZonePermission.grantee_id == grantee_id))
    await db.commit()
    return int(res.rowcount or 0)
