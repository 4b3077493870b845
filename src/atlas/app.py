# src/atlas/app.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi import HTTPException as FastAPIHTTPException
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.atlas.config import settings
from src.atlas.middleware.security_headers import security_headers_middleware
from src.atlas.routes.health import router as health_router
from src.atlas.routes.users_api import router as users_router
from src.atlas.routes.zones_api import router as zones_router
from src.atlas.utils.database import STORE_UNAVAILABLE_ERRORS, init_models
from src.atlas.utils.error_handler import custom_exception_handler, zone_error_handler
from src.atlas.utils.errors import ZoneError

logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_models()
    logger.info("%s started", settings.APP_NAME)
    yield


app = FastAPI(title=settings.APP_NAME, version="1.0", lifespan=lifespan)

# ----------------------------------------------------------
# SECURITY HEADERS
# ----------------------------------------------------------
app.middleware("http")(security_headers_middleware)

# ----------------------------------------------------------
# CUSTOM ERROR HANDLERS
# ----------------------------------------------------------
# 1) Domain errors (geometry, workflow, concurrency, access, availability)
app.add_exception_handler(ZoneError, zone_error_handler)

# 2) Starlette HTTPException (routing 404 etc.)
app.add_exception_handler(StarletteHTTPException, custom_exception_handler)

# 3) FastAPI HTTPException (auth 401/403)
app.add_exception_handler(FastAPIHTTPException, custom_exception_handler)

# 4) Validation errors
app.add_exception_handler(RequestValidationError, custom_exception_handler)

# 5) Driver failures that escaped a guarded store call
for _exc in STORE_UNAVAILABLE_ERRORS:
    app.add_exception_handler(_exc, custom_exception_handler)

# 6) Catch-all
app.add_exception_handler(Exception, custom_exception_handler)

# ----------------------------------------------------------
# ROUTERS
# ----------------------------------------------------------
app.include_router(health_router)
app.include_router(zones_router)
app.include_router(users_router)
