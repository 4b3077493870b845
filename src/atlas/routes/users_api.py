# src/atlas/routes/users_api.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.atlas.crud.users import deactivate_user, upsert_user
from src.atlas.models.user import User
from src.atlas.schemas.user import DeactivateUser, DeactivationReport, UserRead, UserSync
from src.atlas.utils.auth import get_current_user, require_admin
from src.atlas.utils.database import get_db

router = APIRouter(prefix="/users", tags=["Users"])


@router.put("/{login_id}", response_model=UserRead)
async def api_sync_user(
    login_id: str,
    payload: UserSync,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Identity-system push: create or refresh the reference copy of an account."""
    require_admin(current_user)
    row = await upsert_user(db, login_id, payload)
    return UserRead.model_validate(row)


@router.post("/{login_id}/deactivate", response_model=DeactivationReport)
async def api_deactivate_user(
    login_id: str,
    payload: DeactivateUser = DeactivateUser(),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    require_admin(current_user)
    report = await deactivate_user(
        db,
        login_id,
        actor_id=current_user.login_id,
        successor_id=payload.successor_id,
    )
    return DeactivationReport(**report)
