# src/atlas/routes/zones_api.py
from __future__ import annotations

from typing import Any, List, Optional

from fastapi import APIRouter, Body, Depends, Query, Response
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from src.atlas.crud.catalog import query_catalog
from src.atlas.crud.zone import create_zone, delete_zone_hard, update_zone
from src.atlas.crud.zone_history import list_history
from src.atlas.crud.zone_permission import list_grants, revoke_grant, set_grant
from src.atlas.models.user import User
from src.atlas.models.zones import ZoneInfo, ZoneStatus
from src.atlas.schemas.catalog import CatalogPage, CatalogQuery, SortKey, SortOrder
from src.atlas.schemas.permission import CapabilitiesRead, GrantRead, GrantWrite
from src.atlas.schemas.zone import (
    StatusChange,
    TransitionResult,
    ZoneCreate,
    ZoneHistoryRead,
    ZoneRead,
    ZoneUpdate,
)
from src.atlas.utils.auth import get_current_user, require_admin
from src.atlas.utils.database import get_db
from src.atlas.utils.errors import InvalidGeometry
from src.atlas.utils.geometry import from_feature, to_feature
from src.atlas.utils.permissions import authorize, load_capabilities
from src.atlas.utils.workflow import required_capability, transition_zone

router = APIRouter(prefix="/zones", tags=["Zones"])

# Feature properties understood on import; everything else is ignored
IMPORT_PROPERTIES = ("name", "description", "color", "is_public", "tags")


def _parse_bbox(raw: Optional[str]) -> Optional[tuple[float, float, float, float]]:
    if raw is None or not raw.strip():
        return None
    parts = [p.strip() for p in raw.split(",")]
    if len(parts) != 4:
        raise InvalidGeometry("bbox must be min_lon,min_lat,max_lon,max_lat")
    try:
        a, b, c, d = (float(p) for p in parts)
    except ValueError:
        raise InvalidGeometry("bbox values must be numbers")
    return a, b, c, d


def _parse_polygon(raw: Optional[str]) -> Optional[list[list[float]]]:
    """Parse "lon,lat;lon,lat;..."; the catalog validates the ring itself."""
    if raw is None or not raw.strip():
        return None
    points = []
    for pair in raw.split(";"):
        parts = [p.strip() for p in pair.split(",")]
        if len(parts) != 2:
            raise InvalidGeometry("intersects must be lon,lat;lon,lat;...")
        try:
            points.append([float(parts[0]), float(parts[1])])
        except ValueError:
            raise InvalidGeometry("intersects values must be numbers")
    return points


def _page(result) -> CatalogPage:
    return CatalogPage(
        items=[ZoneRead.model_validate(z) for z in result.items],
        next_cursor=result.next_cursor,
    )


def _feature_properties(zone: ZoneInfo) -> dict[str, Any]:
    return {
        "zone_id": zone.zone_id,
        "name": zone.name,
        "description": zone.description,
        "color": zone.color,
        "is_public": zone.is_public,
        "tags": zone.tags,
        "status": zone.status,
        "owner_id": zone.owner_id,
        "version": zone.version,
    }


# -------------------------------------------------------------------
# Catalog
# -------------------------------------------------------------------
@router.get("", response_model=CatalogPage)
async def api_list_zones(
    status: Optional[List[ZoneStatus]] = Query(default=None),
    owner: Optional[str] = Query(default=None),
    tag: Optional[List[str]] = Query(default=None),
    q: Optional[str] = Query(default=None, max_length=200),
    bbox: Optional[str] = Query(default=None, description="min_lon,min_lat,max_lon,max_lat"),
    intersects: Optional[str] = Query(default=None, description="lon,lat;lon,lat;..."),
    sort: SortKey = Query(default="name"),
    order: SortOrder = Query(default="asc"),
    limit: Optional[int] = Query(default=None, ge=1),
    cursor: Optional[str] = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    query = CatalogQuery(
        statuses=status,
        owner_id=owner,
        tags=tag,
        text=q,
        bbox=_parse_bbox(bbox),
        intersects=_parse_polygon(intersects),
        sort=sort,
        order=order,
        limit=limit,
        cursor=cursor,
    )
    return _page(await query_catalog(db, current_user, query))


@router.post("/search", response_model=CatalogPage)
async def api_search_zones(
    payload: CatalogQuery,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return _page(await query_catalog(db, current_user, payload))


# -------------------------------------------------------------------
# Create / import
# -------------------------------------------------------------------
@router.post("", response_model=ZoneRead, status_code=201)
async def api_create_zone(
    payload: ZoneCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    row = await create_zone(db, payload, owner_id=current_user.login_id)
    return ZoneRead.model_validate(row)


@router.post("/import", response_model=ZoneRead, status_code=201)
async def api_import_zone(
    feature: dict[str, Any] = Body(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    ring, properties = from_feature(feature)
    fields = {k: properties[k] for k in IMPORT_PROPERTIES if properties.get(k) is not None}
    fields.setdefault("name", "Imported zone")
    try:
        data = ZoneCreate(boundary=ring, **fields)
    except ValidationError as e:
        raise RequestValidationError(e.errors())
    row = await create_zone(db, data, owner_id=current_user.login_id)
    return ZoneRead.model_validate(row)


# -------------------------------------------------------------------
# Single zone
# -------------------------------------------------------------------
@router.get("/{zone_id}", response_model=ZoneRead)
async def api_get_zone(
    zone_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    zone = await authorize(db, current_user, zone_id, "view")
    return ZoneRead.model_validate(zone)


@router.patch("/{zone_id}", response_model=ZoneRead)
async def api_update_zone(
    zone_id: str,
    payload: ZoneUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await authorize(db, current_user, zone_id, "edit")
    row = await update_zone(db, zone_id, payload, updated_by=current_user.login_id)
    return ZoneRead.model_validate(row)


@router.post("/{zone_id}/status", response_model=TransitionResult)
async def api_change_status(
    zone_id: str,
    payload: StatusChange,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await authorize(db, current_user, zone_id, required_capability(payload.status))
    row, entry = await transition_zone(
        db,
        zone_id,
        payload.status,
        actor_id=current_user.login_id,
        note=payload.note,
        expected_version=payload.expected_version,
    )
    return TransitionResult(
        zone=ZoneRead.model_validate(row),
        history=ZoneHistoryRead.model_validate(entry),
    )


@router.get("/{zone_id}/history", response_model=List[ZoneHistoryRead])
async def api_zone_history(
    zone_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await authorize(db, current_user, zone_id, "view")
    return [ZoneHistoryRead.model_validate(h) for h in await list_history(db, zone_id)]


@router.get("/{zone_id}/export")
async def api_export_zone(
    zone_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    zone = await authorize(db, current_user, zone_id, "view")
    return to_feature(zone.boundary, _feature_properties(zone))


@router.get("/{zone_id}/capabilities", response_model=CapabilitiesRead)
async def api_zone_capabilities(
    zone_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    zone = await authorize(db, current_user, zone_id, "view")
    caps = await load_capabilities(db, current_user, zone)
    return CapabilitiesRead(**caps.as_dict())


@router.delete("/{zone_id}", status_code=204)
async def api_purge_zone(
    zone_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    require_admin(current_user)
    await delete_zone_hard(db, zone_id)
    return Response(status_code=204)


# -------------------------------------------------------------------
# Grants
# -------------------------------------------------------------------
@router.get("/{zone_id}/permissions", response_model=List[GrantRead])
async def api_list_grants(
    zone_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await authorize(db, current_user, zone_id, "share")
    return [GrantRead.model_validate(g) for g in await list_grants(db, zone_id)]


@router.put("/{zone_id}/permissions/{user_id}", response_model=GrantRead)
async def api_set_grant(
    zone_id: str,
    user_id: str,
    payload: GrantWrite,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await authorize(db, current_user, zone_id, "share")
    row = await set_grant(db, zone_id, user_id, payload, granted_by=current_user.login_id)
    return GrantRead.model_validate(row)


@router.delete("/{zone_id}/permissions/{user_id}")
async def api_revoke_grant(
    zone_id: str,
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await authorize(db, current_user, zone_id, "share")
    removed = await revoke_grant(db, zone_id, user_id)
    return {"message": "revoked" if removed else "no grant", "zone_id": zone_id, "user_id": user_id}
