# src/atlas/models/zones/zone_info.py
from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.atlas.utils.database import Base
from src.atlas.utils.timezone import now_local


class ZoneStatus(str, enum.Enum):
    IN_PROGRESS = "in-progress"
    PUBLISHED = "published"
    DELETED = "deleted"


# Fixed sort ordinal for the catalog
STATUS_ORDINAL = {
    ZoneStatus.IN_PROGRESS.value: 0,
    ZoneStatus.PUBLISHED.value: 1,
    ZoneStatus.DELETED.value: 2,
}


class ZoneInfo(Base):
    __tablename__ = "zone_info"

    zone_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Open ring of [lon, lat] pairs, WGS84 degrees
    boundary: Mapped[list] = mapped_column(JSON, nullable=False)
    # Derived from boundary on every write
    area_m2: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, index=True)
    min_lon: Mapped[float] = mapped_column(Float, nullable=False)
    min_lat: Mapped[float] = mapped_column(Float, nullable=False)
    max_lon: Mapped[float] = mapped_column(Float, nullable=False)
    max_lat: Mapped[float] = mapped_column(Float, nullable=False)

    color: Mapped[str] = mapped_column(String(7), nullable=False, default="#3388ff")
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ZoneStatus.IN_PROGRESS.value, index=True
    )
    status_changed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_local, nullable=False)
    status_changed_by: Mapped[str] = mapped_column(String(50), nullable=False)

    created_by: Mapped[str] = mapped_column(String(50), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_local, nullable=False, index=True)
    updated_by: Mapped[str] = mapped_column(String(50), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_local, nullable=False, index=True)

    # Optimistic concurrency: every UPDATE is issued as "... WHERE version = :loaded"
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    tag_rows = relationship(
        "ZoneTag",
        back_populates="zone",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ZoneTag.tag",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def tags(self) -> list[str]:
        return sorted(t.tag for t in self.tag_rows)

    def __repr__(self) -> str:
        return f"<ZoneInfo {self.zone_id} {self.name!r} {self.status} v{self.version}>"


class ZoneTag(Base):
    __tablename__ = "zone_tag"

    zone_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("zone_info.zone_id", ondelete="CASCADE"), primary_key=True
    )
    tag: Mapped[str] = mapped_column(String(50), primary_key=True, index=True)

    zone = relationship("ZoneInfo", back_populates="tag_rows")

    def __repr__(self) -> str:
        return f"<ZoneTag {self.zone_id} {self.tag}>"
