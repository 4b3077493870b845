# src/atlas/models/zones/zone_permission.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String, false
from sqlalchemy.orm import Mapped, mapped_column

from src.atlas.utils.database import Base
from src.atlas.utils.timezone import now_local


class ZonePermission(Base):
    """Explicit grant for one (zone, grantee) pair."""

    __tablename__ = "zone_permission"

    zone_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("zone_info.zone_id", ondelete="CASCADE"), primary_key=True
    )
    grantee_id: Mapped[str] = mapped_column(String(50), primary_key=True, index=True)

    can_view:   Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    can_edit:   Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    can_delete: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    can_share:  Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())

    granted_by: Mapped[str] = mapped_column(String(50), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_local, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now_local, onupdate=now_local, nullable=False
    )

    def __repr__(self) -> str:
        return f"<ZonePermission {self.zone_id} {self.grantee_id}>"
