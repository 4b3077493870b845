# src/atlas/models/user.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from src.atlas.utils.database import Base
from src.atlas.utils.timezone import now_local


class User(Base):
    """Reference copy of an identity-provider account. Read-only for the zone core."""

    __tablename__ = "user_info"

    login_id: Mapped[str] = mapped_column(String(50), primary_key=True, index=True)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    roles: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_local, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now_local, onupdate=now_local, nullable=False
    )

    def __repr__(self) -> str:
        return f"<User {self.login_id} roles={self.roles}>"
