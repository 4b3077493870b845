# src/atlas/crud/zone_history.py
"""
Audit trail of zone status transitions.

Insert-only: there is no update or delete helper. Rows are
added to the caller's session and committed together with the zone change
they describe.
"""
from __future__ import annotations

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.atlas.models.zones import ZoneStatusHistory
from src.atlas.utils.database import store_operation
from src.atlas.utils.timezone import now_local


def append_history(
    db: AsyncSession,
    zone_id: str,
    from_status: Optional[str],
    to_status: str,
    actor_id: str,
    note: Optional[str] = None,
) -> ZoneStatusHistory:
    entry = ZoneStatusHistory(
        zone_id=zone_id,
        from_status=from_status,
        to_status=to_status,
        actor_id=actor_id,
        note=(note or "").strip() or None,
        created_at=now_local(),
    )
    db.add(entry)
    return entry


@store_operation
async def list_history(db: AsyncSession, zone_id: str) -> List[ZoneStatusHistory]:
    res = await db.execute(
        select(ZoneStatusHistory)
        .where(ZoneStatusHistory.zone_id == zone_id)
        .order_by(ZoneStatusHistory.created_at, ZoneStatusHistory.id)
    )
    return list(res.scalars().all())
