"""
SIWES Portal - Main Application

FastAPI backend with:
- Logbook entries: create -> edit -> submit -> review
- Student-resource access control per role
- Attendance marking and notifications
- PostgreSQL (or in-memory) persistence behind the Store port
- JWT authentication

Run: uvicorn siwes_portal.main:app --reload
"""

import logging
import os

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from siwes_portal import __version__
from siwes_portal.api.routes import api_router
from siwes_portal.core.config import get_settings
from siwes_portal.core.exceptions import PortalError
from siwes_portal.core.logging_config import setup_logging
from siwes_portal.core.middleware import RequestLoggingMiddleware
from siwes_portal.db import Store, get_store
from siwes_portal.utils.file_upload import UPLOAD_URL_PREFIX

settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="SIWES Portal",
    description="""
    Student Industrial Work Experience Scheme management backend.

    ## Features
    - **Authentication**: JWT-based auth for students, supervisors and admins
    - **Logbook**: daily entries, submission and industry-supervisor review
    - **Attendance**: supervisor-marked attendance that freezes logbook edits
    - **Notifications**: system messages for submissions, reviews and attendance
    - **Administration**: user accounts, supervisor assignment and broadcast notifications
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)


# ============================================================
# ERROR HANDLERS - every error leaves as {"error": ..., "code": ...}
# ============================================================

@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError):
    if exc.status_code >= 500:
        logger.error(f"{exc.code}: {exc.message}", exc_info=exc.__cause__ or exc)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path", "form")]
        errors.append({"field": ".".join(loc), "message": err.get("msg", "Invalid value")})
    return JSONResponse(
        status_code=400,
        content={"error": "Validation failed", "code": "VALIDATION_ERROR", "errors": errors},
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail), "code": "HTTP_ERROR"},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"error": "Internal server error", "code": "SERVER_ERROR"})


# Include API routes
app.include_router(api_router)

# Uploaded logbook images
app.mount(UPLOAD_URL_PREFIX, StaticFiles(directory=settings.upload_dir, check_dir=False), name="uploads")


# Startup event
@app.on_event("startup")
async def startup_event():
    """Create the upload directory and, for PostgreSQL, the schema."""
    os.makedirs(settings.upload_dir, exist_ok=True)
    if settings.storage_backend.lower() == "postgres":
        from siwes_portal.db.postgres import init_schema
        try:
            init_schema()
        except Exception:
            logger.exception("Schema initialization failed")
            raise
    logger.info(f"SIWES Portal started (storage={settings.storage_backend})")


@app.get("/health", tags=["Health"])
async def health_check(store: Store = Depends(get_store)):
    """Detailed health check."""
    connected = store.ping()
    return {
        "status": "healthy" if connected else "degraded",
        "store": "connected" if connected else "disconnected",
    }
