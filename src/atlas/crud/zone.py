# src/atlas/crud/zone.py
from __future__ import annotations

import logging
import uuid
from typing import Iterable, Optional

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from src.atlas.models.zones import ZoneInfo, ZonePermission, ZoneStatus, ZoneTag
from src.atlas.schemas.zone import ZoneCreate, ZoneUpdate
from src.atlas.utils.database import store_operation
from src.atlas.utils.errors import VersionConflict, ZoneDeleted, ZoneNotFound
from src.atlas.utils.geometry import Ring, approximate_area_m2, bounding_box, validate_boundary
from src.atlas.utils.timezone import now_local

logger = logging.getLogger(__name__)


def _apply_geometry(row: ZoneInfo, ring: Ring) -> None:
    row.boundary = ring
    row.area_m2 = approximate_area_m2(ring)
    row.min_lon, row.min_lat, row.max_lon, row.max_lat = bounding_box(ring)


def _replace_tags(row: ZoneInfo, tags: Iterable[str]) -> None:
    wanted = list(dict.fromkeys(tags))
    keep = [t for t in row.tag_rows if t.tag in wanted]
    have = {t.tag for t in keep}
    row.tag_rows = keep + [ZoneTag(tag=t) for t in wanted if t not in have]


async def commit_zone(db: AsyncSession, row: ZoneInfo, zone_id: str, expected: Optional[int]) -> None:
    """Commit, translating a lost optimistic-lock race into VersionConflict."""
    try:
        await db.commit()
    except StaleDataError:
        await db.rollback()
        logger.info("Version conflict on zone %s (expected v%s)", zone_id, expected)
        raise VersionConflict(zone_id, expected)
    except IntegrityError:
        await db.rollback()
        raise


# -----------------------
# Reads
# -----------------------
@store_operation
async def find_zone(db: AsyncSession, zone_id: str) -> Optional[ZoneInfo]:
    return await db.get(ZoneInfo, zone_id)


@store_operation
async def get_zone(db: AsyncSession, zone_id: str) -> ZoneInfo:
    row = await db.get(ZoneInfo, zone_id)
    if row is None:
        raise ZoneNotFound(zone_id=zone_id)
    return row


# -----------------------
# Writes
# -----------------------
@store_operation
async def create_zone(
    db: AsyncSession,
    data: ZoneCreate,
    owner_id: str,
    zone_id: Optional[str] = None,
) -> ZoneInfo:
    ring = validate_boundary(data.boundary)
    now = now_local()
    row = ZoneInfo(
        zone_id=zone_id or str(uuid.uuid4()),
        owner_id=owner_id,
        name=data.name,
        description=data.description or "",
        color=data.color,
        is_public=data.is_public,
        status=ZoneStatus.IN_PROGRESS.value,
        status_changed_at=now,
        status_changed_by=owner_id,
        created_by=owner_id,
        created_at=now,
        updated_by=owner_id,
        updated_at=now,
    )
    _apply_geometry(row, ring)
    row.tag_rows = [ZoneTag(tag=t) for t in dict.fromkeys(data.tags)]
    db.add(row)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise
    logger.info("Zone %s created by %s", row.zone_id, owner_id)
    return row


@store_operation
async def update_zone(
    db: AsyncSession,
    zone_id: str,
    data: ZoneUpdate,
    updated_by: str,
) -> ZoneInfo:
    row = await get_zone(db, zone_id)
    expected = data.expected_version
    if row.version != expected:
        logger.info("Version conflict on zone %s: expected v%s, at v%s", zone_id, expected, row.version)
        raise VersionConflict(zone_id, expected, row.version)
    if row.status == ZoneStatus.DELETED.value:
        raise ZoneDeleted(zone_id=zone_id)

    changes = data.model_dump(exclude_unset=True, exclude={"expected_version"})

    # Validate before touching the row so a bad boundary leaves no trace
    ring = validate_boundary(changes["boundary"]) if "boundary" in changes else None

    if ring is not None:
        _apply_geometry(row, ring)
    if changes.get("name") is not None:
        row.name = changes["name"]
    if "description" in changes:
        row.description = (changes["description"] or "").strip()
    if changes.get("color") is not None:
        row.color = changes["color"]
    if changes.get("is_public") is not None:
        row.is_public = changes["is_public"]
    if changes.get("tags") is not None:
        _replace_tags(row, changes["tags"])

    # Always touch the row itself so the version advances even for tag-only edits
    row.updated_at = now_local()
    row.updated_by = updated_by

    await commit_zone(db, row, zone_id, expected)
    logger.info("Zone %s updated by %s -> v%s", zone_id, updated_by, row.version)
    return row


@store_operation
async def transfer_owner(db: AsyncSession, zone_id: str, new_owner_id: str, actor_id: str) -> ZoneInfo:
    """Administrative ownership change; a normal versioned update of one zone."""
    row = await get_zone(db, zone_id)
    expected = row.version
    row.owner_id = new_owner_id
    row.updated_at = now_local()
    row.updated_by = actor_id
    await commit_zone(db, row, zone_id, expected)
    return row


@store_operation
async def delete_zone_hard(db: AsyncSession, zone_id: str) -> bool:
    """
    Administrative purge, unrelated to the workflow's "deleted" status.
    Grants and tags go with the zone; the status history is kept.
    """
    row = await get_zone(db, zone_id)
    await db.execute(delete(ZonePermission).where(ZonePermission.zone_id == zone_id))
    await db.delete(row)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise
    logger.warning("Zone %s purged", zone_id)
    return True
