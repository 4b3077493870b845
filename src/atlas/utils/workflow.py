# src/atlas/utils/workflow.py
"""
Zone status workflow.

Allowed moves: in-progress -> published, published -> in-progress,
in-progress -> deleted, published -> deleted. deleted is terminal.

A transition is one commit: the zone's status fields and version change
together with exactly one ZoneStatusHistory row, or nothing changes at all.
"""
from __future__ import annotations

import logging
from typing import Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from src.atlas.crud.zone import commit_zone, get_zone
from src.atlas.crud.zone_history import append_history
from src.atlas.models.zones import ZoneInfo, ZoneStatus, ZoneStatusHistory
from src.atlas.utils.database import store_operation
from src.atlas.utils.errors import InvalidGeometry, InvalidTransition, NotPublishable, VersionConflict
from src.atlas.utils.geometry import validate_boundary
from src.atlas.utils.timezone import now_local

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[ZoneStatus, frozenset[ZoneStatus]] = {
    ZoneStatus.IN_PROGRESS: frozenset({ZoneStatus.PUBLISHED, ZoneStatus.DELETED}),
    ZoneStatus.PUBLISHED: frozenset({ZoneStatus.IN_PROGRESS, ZoneStatus.DELETED}),
    ZoneStatus.DELETED: frozenset(),
}


def _as_status(value: Union[str, ZoneStatus]) -> ZoneStatus:
    try:
        return ZoneStatus(value)
    except ValueError:
        raise InvalidTransition(f"Unknown status '{value}'")


def can_transition(current: Union[str, ZoneStatus], target: Union[str, ZoneStatus]) -> bool:
    return _as_status(target) in ALLOWED_TRANSITIONS[_as_status(current)]


def check_transition(current: Union[str, ZoneStatus], target: Union[str, ZoneStatus]) -> None:
    cur, tgt = _as_status(current), _as_status(target)
    if tgt not in ALLOWED_TRANSITIONS[cur]:
        raise InvalidTransition(
            f"Cannot move a zone from {cur.value} to {tgt.value}",
            from_status=cur.value,
            to_status=tgt.value,
        )


def required_capability(target: Union[str, ZoneStatus]) -> str:
    """Capability a caller needs to request a move to ``target``."""
    return "delete" if _as_status(target) == ZoneStatus.DELETED else "edit"


@store_operation
async def transition_zone(
    db: AsyncSession,
    zone_id: str,
    target: Union[str, ZoneStatus],
    actor_id: str,
    note: Optional[str] = None,
    expected_version: Optional[int] = None,
) -> tuple[ZoneInfo, ZoneStatusHistory]:
    row = await get_zone(db, zone_id)
    if expected_version is not None and row.version != expected_version:
        raise VersionConflict(zone_id, expected_version, row.version)

    current = _as_status(row.status)
    tgt = _as_status(target)
    check_transition(current, tgt)

    if tgt == ZoneStatus.PUBLISHED:
        # Geometry may have been edited since it was last checked
        try:
            validate_boundary(row.boundary)
        except InvalidGeometry as exc:
            raise NotPublishable(f"Zone cannot be published: {exc.message}", zone_id=zone_id) from exc

    loaded_version = row.version
    now = now_local()
    row.status = tgt.value
    row.status_changed_at = now
    row.status_changed_by = actor_id
    row.updated_at = now
    row.updated_by = actor_id
    entry = append_history(db, zone_id, current.value, tgt.value, actor_id, note)

    await commit_zone(db, row, zone_id, loaded_version)
    logger.info(
        "Zone %s %s -> %s by %s (v%s)", zone_id, current.value, tgt.value, actor_id, row.version
    )
    return row, entry
