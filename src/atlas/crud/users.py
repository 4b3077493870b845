# src/atlas/crud/users.py
from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.atlas.config import settings
from src.atlas.crud.zone import transfer_owner
from src.atlas.crud.zone_permission import revoke_all_for_user
from src.atlas.models.user import User
from src.atlas.models.zones import ZoneInfo
from src.atlas.schemas.user import UserSync
from src.atlas.utils.database import store_operation
from src.atlas.utils.errors import UserNotFound, VersionConflict
from src.atlas.utils.timezone import now_local

logger = logging.getLogger(__name__)

# Ownership transfer of a single zone is retried this many times when it
# races with a concurrent edit of that zone
TRANSFER_ATTEMPTS = 3


@store_operation
async def get_user(db: AsyncSession, login_id: str) -> Optional[User]:
    return await db.scalar(select(User).where(User.login_id == login_id))


@store_operation
async def upsert_user(db: AsyncSession, login_id: str, data: UserSync) -> User:
    row = await get_user(db, login_id)
    if row is None:
        row = User(login_id=login_id)
        db.add(row)
    row.display_name = data.display_name
    row.roles = list(data.roles)
    row.is_active = data.is_active
    row.updated_at = now_local()
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise
    return row


@store_operation
async def owned_zone_ids(db: AsyncSession, owner_id: str) -> List[str]:
    res = await db.execute(
        select(ZoneInfo.zone_id).where(ZoneInfo.owner_id == owner_id).order_by(ZoneInfo.zone_id)
    )
    return list(res.scalars().all())


async def _transfer_with_retry(db: AsyncSession, zone_id: str, new_owner_id: str, actor_id: str) -> None:
    for attempt in range(1, TRANSFER_ATTEMPTS + 1):
        try:
            await transfer_owner(db, zone_id, new_owner_id, actor_id)
            return
        except VersionConflict:
            if attempt == TRANSFER_ATTEMPTS:
                raise
            # Drop the stale copy so the next attempt re-reads the zone
            db.expunge_all()
            logger.info("Retrying ownership transfer of zone %s (attempt %d)", zone_id, attempt + 1)


@store_operation
async def _mark_inactive(db: AsyncSession, login_id: str) -> None:
    user = await get_user(db, login_id)
    user.is_active = False
    user.updated_at = now_local()
    await db.commit()


async def deactivate_user(
    db: AsyncSession,
    login_id: str,
    actor_id: str,
    successor_id: Optional[str] = None,
) -> dict:
    """
    Handle an identity-system deactivation event for ``login_id``.

    - every zone they own moves to ``successor_id`` (or ORPHAN_OWNER_ID),
      one zone per transaction, each a normal versioned update
    - every explicit grant they hold is removed
    - the reference row is marked inactive

    Each store call is bounded by DB_OPERATION_TIMEOUT on its own; the sweep
    as a whole is not.
    """
    user = await get_user(db, login_id)
    if user is None:
        raise UserNotFound(login_id=login_id)

    new_owner = successor_id or settings.ORPHAN_OWNER_ID
    if successor_id:
        successor = await get_user(db, successor_id)
        if successor is None or not successor.is_active or successor_id == login_id:
            raise UserNotFound(f"Successor '{successor_id}' is not an active user", login_id=successor_id)

    zone_ids = await owned_zone_ids(db, login_id)
    for zone_id in zone_ids:
        await _transfer_with_retry(db, zone_id, new_owner, actor_id)

    revoked = await revoke_all_for_user(db, login_id)

    await _mark_inactive(db, login_id)

    logger.warning(
        "User %s deactivated by %s: %d zone(s) moved to %s, %d grant(s) revoked",
        login_id, actor_id, len(zone_ids), new_owner, revoked,
    )
    return {
        "login_id": login_id,
        "new_owner_id": new_owner,
        "transferred_zone_ids": zone_ids,
        "revoked_grants": revoked,
    }
