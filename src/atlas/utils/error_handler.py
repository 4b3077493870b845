# src/atlas/utils/error_handler.py
from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.atlas.utils.database import STORE_UNAVAILABLE_ERRORS
from src.atlas.utils.errors import Unavailable, ZoneError

logger = logging.getLogger("fastapi")

# Seconds a client should wait before retrying a 503
RETRY_AFTER_SECONDS = 2


def _trace(msg: str) -> None:
    """Low-spam trace at decision/return points."""
    logger.debug("[TRACE] %s", msg)


def _safe_args(exc: Exception) -> str:
    a = getattr(exc, "args", None)
    return str(a) if a else "No additional details"


def _json_error(
    status_code: int,
    message: str,
    exc: Exception,
    code: str | None = None,
    extra: Dict[str, Any] | None = None,
) -> JSONResponse:
    """
    Unified JSON error response.
    Note: We keep professional user-facing messages here.
    """
    user_message = message
    if status_code == 401:
        user_message = "Authentication required. Please provide a valid access token."
    elif status_code == 500:
        user_message = "Internal Server Error. Please try again later."

    payload: Dict[str, Any] = {
        "message": user_message,
        "error_type": exc.__class__.__name__,
        "code": code or "http_error",
        "status_code": status_code,
    }
    if extra:
        payload.update(extra)

    headers = {"Retry-After": str(RETRY_AFTER_SECONDS)} if status_code == 503 else None
    _trace(f"RETURN JSONResponse | status={status_code} message={user_message!r}")
    return JSONResponse(status_code=status_code, content=payload, headers=headers)


def _log_http(request: Request, status_code: int, detail: str, exc: Exception) -> None:
    """
    Log levels:
    - 404 -> INFO (normal noise)
    - 401/403 -> WARNING (auth/permission)
    - 409 -> INFO (expected concurrency/workflow outcome)
    - other 4xx -> ERROR (client error worth checking)
    - 5xx -> EXCEPTION (stack trace)
    """
    url = str(request.url)
    method = request.method

    if status_code == 404:
        logger.info("404 Not Found: %s %s", method, url)
        return

    if status_code in (401, 403):
        logger.warning("%s: %s %s | detail=%s", status_code, method, url, detail)
        return

    if status_code == 409:
        logger.info("409 Conflict: %s %s | detail=%s", method, url, detail)
        return

    if 400 <= status_code < 500:
        logger.error(
            "%s: %s %s | detail=%s | args=%s",
            status_code,
            method,
            url,
            detail,
            _safe_args(exc),
        )
        return

    logger.error("%s: %s %s | detail=%s", status_code, method, url, detail, exc_info=exc)


def _public_context(exc: ZoneError) -> Dict[str, Any]:
    # Forbidden/NotFound carry nothing beyond the message
    if exc.status_code in (403, 404):
        return {}
    return {k: v for k, v in exc.context.items() if v is not None}


async def zone_error_handler(request: Request, exc: ZoneError) -> JSONResponse:
    _trace(f"BRANCH ZoneError | code={exc.code}")
    _log_http(request, exc.status_code, exc.message, exc)
    return _json_error(
        status_code=exc.status_code,
        message=exc.message,
        exc=exc,
        code=exc.code,
        extra=_public_context(exc),
    )


async def custom_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    _trace(f"ENTER handler | path={request.url.path} method={request.method} exc={exc.__class__.__name__}")

    # -----------------------------
    # 1) Domain errors
    # -----------------------------
    if isinstance(exc, ZoneError):
        return await zone_error_handler(request, exc)

    # -----------------------------
    # 2) Store unreachable outside a guarded store call
    # -----------------------------
    if isinstance(exc, STORE_UNAVAILABLE_ERRORS):
        _log_http(request, 503, str(exc), exc)
        wrapped = Unavailable()
        return _json_error(503, wrapped.message, exc, code=wrapped.code)

    # -----------------------------
    # 3) HTTPException (routing 404, auth 401/403, ...)
    # -----------------------------
    if isinstance(exc, StarletteHTTPException):
        status = int(exc.status_code)
        detail = str(exc.detail)
        _trace(f"BRANCH HTTPException | status={status} detail={detail!r}")
        _log_http(request, status, detail, exc)
        return _json_error(status_code=status, message=detail, exc=exc)

    # -----------------------------
    # 4) Validation error
    # -----------------------------
    if isinstance(exc, RequestValidationError):
        _trace("BRANCH RequestValidationError (422)")
        logger.warning(
            "422 Validation error: %s %s | %s",
            request.method,
            str(request.url),
            exc.errors(),
        )
        return _json_error(
            status_code=422,
            message="Validation error occurred",
            exc=exc,
            code="validation_error",
            extra={"validation_errors": jsonable_errors(exc)},
        )

    # -----------------------------
    # 5) Any other unexpected exception
    # -----------------------------
    _trace("BRANCH Unhandled exception (500)")
    logger.exception("500 Unhandled exception: %s %s | %s", request.method, str(request.url), str(exc))
    return _json_error(
        status_code=500,
        message="Internal Server Error. Please try again later.",
        exc=exc,
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    out = []
    for err in exc.errors():
        out.append({"loc": list(err.get("loc", ())), "msg": str(err.get("msg", "")), "type": err.get("type")})
    return out
