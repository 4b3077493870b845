# src/atlas/utils/errors.py
"""
Domain error taxonomy.

Every error carries the HTTP status and a stable machine code so the
exception handler can render it without a lookup table. None of these
are retried inside the core; the caller decides.
"""
from __future__ import annotations

from typing import Any, Optional


class ZoneError(Exception):
    status_code: int = 400
    code: str = "zone_error"
    default_message: str = "Zone operation failed"

    def __init__(self, message: Optional[str] = None, **context: Any) -> None:
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)


class InvalidGeometry(ZoneError):
    status_code = 422
    code = "invalid_geometry"
    default_message = "Boundary is not a valid polygon"


class InvalidTransition(ZoneError):
    status_code = 409
    code = "invalid_transition"
    default_message = "Status transition is not allowed"


class ZoneDeleted(InvalidTransition):
    code = "zone_deleted"
    default_message = "Zone is deleted and can no longer be modified"


class NotPublishable(ZoneError):
    status_code = 422
    code = "not_publishable"
    default_message = "Zone geometry does not pass validation and cannot be published"


class VersionConflict(ZoneError):
    status_code = 409
    code = "version_conflict"
    default_message = "Zone was modified by someone else. Re-read the zone and retry."

    def __init__(self, zone_id: str, expected: Optional[int], actual: Optional[int] = None) -> None:
        super().__init__(
            f"Zone {zone_id} is at version {actual if actual is not None else 'newer'}, "
            f"not {expected}. Re-read the zone and retry.",
            zone_id=zone_id,
            expected_version=expected,
            current_version=actual,
        )


class Forbidden(ZoneError):
    status_code = 403
    code = "forbidden"
    default_message = "Access denied."


class ZoneNotFound(ZoneError):
    status_code = 404
    code = "not_found"
    default_message = "The requested zone was not found."


class UserNotFound(ZoneError):
    status_code = 404
    code = "user_not_found"
    default_message = "The requested user was not found."


class Unavailable(ZoneError):
    status_code = 503
    code = "unavailable"
    default_message = "Zone store is unavailable. Please retry with backoff."


class InvalidCursor(ZoneError):
    status_code = 400
    code = "invalid_cursor"
    default_message = "Cursor is malformed or does not match this query."


__all__ = [
    "ZoneError",
    "InvalidGeometry",
    "InvalidTransition",
    "ZoneDeleted",
    "NotPublishable",
    "VersionConflict",
    "Forbidden",
    "ZoneNotFound",
    "UserNotFound",
    "Unavailable",
    "InvalidCursor",
]
