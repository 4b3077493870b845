# src/atlas/utils/auth.py
"""
Identity boundary.

Authentication itself belongs to the external identity provider; this
module only verifies the bearer token it issued and loads the matching
reference row (roles, active flag) from user_info.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from src.atlas.crud.users import get_user
from src.atlas.models.user import User
from src.atlas.utils.database import get_db
from src.atlas.utils.permissions import is_admin
from src.atlas.utils.security import decode_access_token

logger = logging.getLogger(__name__)

ACCESS_COOKIE_NAME = "access_token"


def _get_header(request: Request, name: str) -> Optional[str]:
    val = request.headers.get(name)
    return val if isinstance(val, str) else None


def _extract_bearer(request: Request) -> Optional[str]:
    auth_header = _get_header(request, "Authorization")
    if auth_header:
        parts = auth_header.split(" ", 1)
        if len(parts) == 2 and parts[0].lower() == "bearer":
            return parts[1].strip()

    cookie_tok = request.cookies.get(ACCESS_COOKIE_NAME)
    if isinstance(cookie_tok, str) and cookie_tok:
        return cookie_tok.strip()

    return None


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    token = _extract_bearer(request)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        payload = decode_access_token(token)
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")

    sub = payload.get("sub")
    if not isinstance(sub, str) or not sub:
        raise HTTPException(status_code=401, detail="Invalid token payload")

    user = await get_user(db, sub)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    if not user.is_active:
        logger.warning("403(inactive user): %s", sub)
        raise HTTPException(status_code=403, detail="User is deactivated")
    return user


def require_admin(user: User) -> None:
    if not is_admin(user):
        logger.warning("403(admin required): user=%s", user.login_id)
        raise HTTPException(status_code=403, detail="Forbidden")
