# src/atlas/routes/health.py
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.atlas.utils.database import get_db, store_operation
from src.atlas.utils.timezone import now_str

router = APIRouter(tags=["Health"])


@store_operation
async def _ping(db: AsyncSession) -> None:
    await db.execute(text("SELECT 1"))


@router.get("/health")
async def health(db: AsyncSession = Depends(get_db)):
    # Unavailable propagates to the handler as a 503
    await _ping(db)
    return {"status": "ok", "time": now_str()}
