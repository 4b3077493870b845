# src/atlas/models/zones/__init__.py
from .zone_info import STATUS_ORDINAL, ZoneInfo, ZoneStatus, ZoneTag
from .zone_permission import ZonePermission
from .zone_status_history import ZoneStatusHistory

__all__ = ["ZoneInfo", "ZoneStatus", "ZoneTag", "STATUS_ORDINAL", "ZonePermission", "ZoneStatusHistory"]
