# src/atlas/utils/security.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import jwt

from src.atlas.config import settings

# ---- JWT config (single source of truth) ----
JWT_SECRET = settings.JWT_SECRET
JWT_ALG = settings.JWT_ALG


# ---- Access token creation (always signs with JWT_SECRET/JWT_ALG) ----
def create_access_token(payload: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """Mint a token the way the identity provider does; used by tooling and tests."""
    to_encode = dict(payload)
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, JWT_SECRET, algorithm=JWT_ALG)


def decode_access_token(token: str) -> dict[str, Any]:
    """Verify signature and expiry. Raises jose.JWTError on any failure."""
    return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALG])
