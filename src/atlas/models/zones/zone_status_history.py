# src/atlas/models/zones/zone_status_history.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.atlas.utils.database import Base
from src.atlas.utils.timezone import now_local


class ZoneStatusHistory(Base):
    """
    Append-only audit row for one status transition.

    zone_id is not a foreign key; rows stay after an administrative purge
    of the zone.
    """

    __tablename__ = "zone_status_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True, autoincrement=True)
    zone_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    from_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    to_status: Mapped[str] = mapped_column(String(20), nullable=False)
    actor_id: Mapped[str] = mapped_column(String(50), nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_local, nullable=False)

    def __repr__(self) -> str:
        return f"<ZoneStatusHistory {self.zone_id} {self.from_status}->{self.to_status}>"
