# src/atlas/utils/cursor.py
"""
Opaque keyset cursors for the catalog.

A cursor is url-safe base64 of a small JSON document holding the last
returned (sort value, zone_id) pair, the sort it was produced under and a
fingerprint of the filters. Clients must treat it as opaque.
"""
from __future__ import annotations

import base64
import binascii
import hashlib
import json
from datetime import datetime
from typing import Any

from src.atlas.utils.errors import InvalidCursor


def fingerprint(filter_key: dict[str, Any]) -> str:
    canonical = json.dumps(filter_key, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def encode_cursor(value: Any, zone_id: str, sort: str, order: str, fp: str) -> str:
    if isinstance(value, datetime):
        packed = {"t": "dt", "v": value.isoformat()}
    else:
        packed = {"t": "raw", "v": value}
    doc = {"k": packed, "id": zone_id, "s": sort, "o": order, "f": fp}
    raw = json.dumps(doc, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_cursor(token: str, sort: str, order: str, fp: str) -> tuple[Any, str]:
    """Return (sort value, zone_id) or raise InvalidCursor."""
    try:
        padded = token + "=" * (-len(token) % 4)
        doc = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
        packed = doc["k"]
        zone_id = doc["id"]
        value = datetime.fromisoformat(packed["v"]) if packed["t"] == "dt" else packed["v"]
        cursor_sort, cursor_order, cursor_fp = doc["s"], doc["o"], doc["f"]
    except (ValueError, KeyError, TypeError, binascii.Error, UnicodeError):
        raise InvalidCursor()

    if not isinstance(zone_id, str):
        raise InvalidCursor()
    if (cursor_sort, cursor_order) != (sort, order):
        raise InvalidCursor("Cursor was issued for a different sort order.")
    if cursor_fp != fp:
        raise InvalidCursor("Cursor was issued for different filters.")
    return value, zone_id
