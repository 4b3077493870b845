# src/atlas/middleware/security_headers.py

from fastapi import Request


async def security_headers_middleware(request: Request, call_next):
    resp = await call_next(request)
    # JSON-only API: nothing should ever be rendered or framed
    resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
    resp.headers["X-Content-Type-Options"] = "nosniff"
    resp.headers["X-Frame-Options"] = "DENY"
    resp.headers["Referrer-Policy"] = "no-referrer"
    resp.headers["Cache-Control"] = "no-store"
    return resp
