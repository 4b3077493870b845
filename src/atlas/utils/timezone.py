# src/atlas/utils/timezone.py
from __future__ import annotations

import os
import logging
from datetime import datetime

from dotenv import load_dotenv
import pytz

# -----------------------------------------------------------------------------
# Load environment variables
# -----------------------------------------------------------------------------
load_dotenv()

# Zone timestamps are stored in this timezone; UTC unless configured
_TZ_ENV = os.getenv("TIMEZONE", "UTC")

try:
    LOCAL_TZ = pytz.timezone(_TZ_ENV)
except pytz.UnknownTimeZoneError as exc:
    logging.getLogger(__name__).warning(
        "Invalid TIMEZONE '%s' in environment; falling back to UTC. Error: %s",
        _TZ_ENV,
        exc,
    )
    LOCAL_TZ = pytz.utc


def now_local() -> datetime:
    """
    Return the current time as a timezone-aware datetime in the configured timezone.
    """
    return datetime.now(LOCAL_TZ)


def now_str(fmt: str = "%Y-%m-%d %H:%M:%S %Z") -> str:
    return now_local().strftime(fmt)
