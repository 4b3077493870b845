# src/atlas/crud/catalog.py
"""
Catalog query engine.

SQL does the coarse work: status/owner/tag/text filters, a bounding-box
prefilter, a visibility predicate mirroring the permission rules, and keyset
ordering on (sort value, zone_id). Each scanned row is then re-checked in
Python with the exact shapely intersection test and resolve_capabilities(),
so a page always holds exactly ``limit`` zones the user can view (or fewer
on the last page).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy import and_, case, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.atlas.config import settings
from src.atlas.crud.zone_permission import grants_for_user
from src.atlas.models.user import User
from src.atlas.models.zones import STATUS_ORDINAL, ZoneInfo, ZoneTag
from src.atlas.schemas.catalog import CatalogQuery
from src.atlas.utils.cursor import decode_cursor, encode_cursor, fingerprint
from src.atlas.utils.database import store_operation
from src.atlas.utils.geometry import bbox_polygon, intersects, to_polygon, validate_boundary
from src.atlas.utils.permissions import is_admin, resolve_capabilities, visibility_clause

logger = logging.getLogger(__name__)

_status_rank = case(STATUS_ORDINAL, value=ZoneInfo.status, else_=len(STATUS_ORDINAL))

SORT_COLUMNS = {
    "name": ZoneInfo.name,
    "created_at": ZoneInfo.created_at,
    "updated_at": ZoneInfo.updated_at,
    "area": ZoneInfo.area_m2,
    "status": _status_rank,
}


@dataclass
class CatalogResult:
    items: list[ZoneInfo]
    next_cursor: Optional[str]


def sort_value(row: ZoneInfo, sort: str) -> Any:
    if sort == "name":
        return row.name
    if sort == "created_at":
        return row.created_at
    if sort == "updated_at":
        return row.updated_at
    if sort == "area":
        return row.area_m2
    if sort == "status":
        return STATUS_ORDINAL.get(row.status, len(STATUS_ORDINAL))
    raise ValueError(f"Unknown sort key '{sort}'")


def _after(sort: str, order: str, value: Any, zone_id: str):
    """Keyset predicate: rows strictly after (value, zone_id) in page order."""
    col = SORT_COLUMNS[sort]
    beyond = col > value if order == "asc" else col < value
    return or_(beyond, and_(col == value, ZoneInfo.zone_id > zone_id))


def _filtered(user: User, q: CatalogQuery, regions: list) -> Any:
    stmt = select(ZoneInfo)

    if q.statuses:
        stmt = stmt.where(ZoneInfo.status.in_([s.value for s in q.statuses]))
    if q.owner_id:
        stmt = stmt.where(ZoneInfo.owner_id == q.owner_id)
    if q.tags:
        stmt = stmt.where(ZoneInfo.zone_id.in_(select(ZoneTag.zone_id).where(ZoneTag.tag.in_(q.tags))))
    if q.text:
        stmt = stmt.where(
            or_(
                ZoneInfo.name.icontains(q.text, autoescape=True),
                ZoneInfo.description.icontains(q.text, autoescape=True),
            )
        )
    for region in regions:
        min_lon, min_lat, max_lon, max_lat = region.bounds
        stmt = stmt.where(
            ZoneInfo.max_lon >= min_lon,
            ZoneInfo.min_lon <= max_lon,
            ZoneInfo.max_lat >= min_lat,
            ZoneInfo.min_lat <= max_lat,
        )

    visible = visibility_clause(user)
    if visible is not None:
        stmt = stmt.where(visible)
    return stmt


def _regions(q: CatalogQuery) -> list:
    """Shapes the boundary must intersect (every one of them)."""
    regions = []
    if q.bbox is not None:
        regions.append(bbox_polygon(q.bbox))
    if q.intersects is not None:
        regions.append(to_polygon(validate_boundary(q.intersects)))
    return regions


@store_operation
async def query_catalog(db: AsyncSession, user: User, q: CatalogQuery) -> CatalogResult:
    limit = min(q.limit or settings.CATALOG_DEFAULT_LIMIT, settings.CATALOG_MAX_LIMIT)
    batch = max(settings.CATALOG_SCAN_BATCH, limit + 1)
    fp = fingerprint(q.filter_key())

    position: Optional[tuple[Any, str]] = None
    if q.cursor:
        position = decode_cursor(q.cursor, q.sort, q.order, fp)

    regions = _regions(q)

    col = SORT_COLUMNS[q.sort]
    ordering = (col.asc() if q.order == "asc" else col.desc(), ZoneInfo.zone_id.asc())
    base = _filtered(user, q, regions).order_by(*ordering)
    admin = is_admin(user)

    found: list[ZoneInfo] = []
    scanned = 0
    while len(found) <= limit:
        stmt = base
        if position is not None:
            stmt = stmt.where(_after(q.sort, q.order, position[0], position[1]))
        rows = list((await db.execute(stmt.limit(batch))).scalars().all())
        if not rows:
            break
        scanned += len(rows)

        grants = {} if admin else await grants_for_user(
            db, user.login_id, [r.zone_id for r in rows if r.owner_id != user.login_id]
        )
        for row in rows:
            position = (sort_value(row, q.sort), row.zone_id)
            if regions and not all(intersects(row.boundary, r) for r in regions):
                continue
            if not resolve_capabilities(user, row, grants.get(row.zone_id)).view:
                continue
            found.append(row)
            if len(found) > limit:
                break
        if len(rows) < batch:
            break

    items = found[:limit]
    next_cursor = None
    if len(found) > limit:
        last = items[-1]
        next_cursor = encode_cursor(sort_value(last, q.sort), last.zone_id, q.sort, q.order, fp)

    logger.debug(
        "Catalog for %s: %d items (scanned %d, sort=%s %s)", user.login_id, len(items), scanned, q.sort, q.order
    )
    return CatalogResult(items=items, next_cursor=next_cursor)
