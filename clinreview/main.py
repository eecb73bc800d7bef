"""
Clinical Review Platform - FastAPI application

1. /docs and /openapi.json at root level (no API prefix)
2. Middleware order: CORS → CorrelationId → Logging
3. init_db() only at startup; process-wide entity store and file storage on app.state
4. Complete exception handling with a single error envelope
"""
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Union

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

import clinreview.models  # noqa: F401  (model registration)
from clinreview.core.config import settings
from clinreview.core.exceptions import AppException
from clinreview.core.limiter import limiter
from clinreview.core.logging import setup_logging
from clinreview.core.middleware import CorrelationIdMiddleware, LoggingMiddleware
from clinreview.database import init_db, session_scope
from clinreview.routers.api_router import api_router
from clinreview.services.entity_store import EntityStore
from clinreview.services.file_storage import FileStorage
from clinreview.services.scoring import ScoreCalculator

# ============================================================================
# LOGGING SETUP
# ============================================================================
setup_logging()
logger = logging.getLogger(__name__)


# ============================================================================
# LIFESPAN MANAGEMENT
# ============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifecycle manager.
    - Startup: create the schema, build the entity store and file storage
    - Shutdown: detach the score cache from the store
    """
    logger.info(f"Starting {settings.app_name} v{settings.version} ({settings.environment})")

    try:
        init_db()
        logger.info("✓ Database initialized successfully")
    except Exception as e:
        logger.error(f"✗ Database initialization failed: {e}")
        raise

    store = EntityStore()
    storage = FileStorage()
    os.makedirs(os.path.join(storage.root, storage.bucket), exist_ok=True)
    app.state.entity_store = store
    app.state.file_storage = storage
    app.state.score_calculator = ScoreCalculator(store)
    # Snapshots load lazily on the first request that needs them

    yield

    logger.info("Gracefully shutting down...")
    app.state.score_calculator.close()


# ============================================================================
# FASTAPI INSTANCE
# ============================================================================
app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    description="Clinical staff KPI reviews, scoring and supervision hierarchy",
    docs_url="/docs",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Uploaded attachments are served from the public base URL
if settings.storage.public_base_url.startswith("/"):
    app.mount(
        settings.storage.public_base_url,
        StaticFiles(directory=settings.storage.upload_dir, check_dir=False),
        name="files",
    )

# ============================================================================
# RATE LIMITER
# ============================================================================
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ============================================================================
# MIDDLEWARE STACK
# Add in REVERSE order (last added runs first)
# ============================================================================
app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[settings.request_id_header, "X-Process-Time"],
)


# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle FastAPI validation errors (422) with structured format."""
    errors = []
    for error in exc.errors():
        field = error["loc"][-1] if len(error["loc"]) > 0 else "unknown"
        errors.append({
            "field": str(field),
            "msg": error["msg"]
        })

    logger.warning(f"Validation Error: {errors}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"success": False, "errors": errors}
    )


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    """Handle domain-specific application exceptions."""
    logger.warning(f"AppException: {exc.message}", extra={"code": exc.error_code})
    error = {"msg": exc.message, "code": exc.error_code}
    if exc.details and exc.details.get("field"):
        error["field"] = exc.details["field"]
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "errors": [error]
        }
    )


@app.exception_handler(StarletteHTTPException)
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: Union[HTTPException, StarletteHTTPException]):
    """Handle standard HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "errors": [{"msg": exc.detail if isinstance(exc.detail, str) else "Request failed"}]
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Fallback handler for unhandled server errors."""
    logger.exception("Unhandled server error", extra={"path": request.url.path})
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "errors": [{"msg": "An unexpected server error occurred."}]
        }
    )


# ============================================================================
# ROUTER INCLUSION
# ============================================================================
app.include_router(api_router, prefix=settings.api_prefix)


# ============================================================================
# OPERATIONAL ENDPOINTS (at root level)
# ============================================================================
@app.get("/", tags=["Health"])
def root():
    """API root endpoint."""
    return {
        "message": "Clinical Review Platform API",
        "version": settings.version,
        "docs": "/docs",
    }


@app.get("/health", tags=["Health"])
def health_check():
    """Liveness probe for load balancers and orchestrators."""
    return {
        "status": "up",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.version,
        "build": settings.build_id,
        "environment": settings.environment,
    }


@app.get("/readiness", tags=["Health"])
def readiness_check(request: Request):
    """Readiness probe - verifies database connectivity and reports snapshot versions."""
    try:
        from sqlalchemy import text
        with session_scope() as session:
            session.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        raise HTTPException(status_code=503, detail="Service not ready")
    store: EntityStore = request.app.state.entity_store
    return {
        "status": "ready",
        "components": {"database": "connected"},
        "snapshots": {collection.value: version for collection, version in store.versions.items()},
    }


@app.get("/liveness", tags=["Health"])
def liveness_check():
    """Alias for health check."""
    return health_check()
