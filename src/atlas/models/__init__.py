# src/atlas/models/__init__.py
from .user import User
from .zones import ZoneInfo, ZonePermission, ZoneStatus, ZoneStatusHistory, ZoneTag

__all__ = ["User", "ZoneInfo", "ZonePermission", "ZoneStatus", "ZoneStatusHistory", "ZoneTag"]
