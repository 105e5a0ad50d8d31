"""
MedTrack Backend
Main FastAPI application for medication-adherence tracking
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import OperationalError

# Configuration and database
from config import settings
from database import init_db, DatabaseHealthCheck
from exceptions import MedTrackError
from api import include_routers
from services.activity_service import ActivityFeedRegistry
from services.dose_service import MarkTakenGuard
from tools.calendar_dates import utcnow

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format=settings.LOG_FORMAT
)
logger = logging.getLogger(__name__)


# ==================== LIFESPAN ====================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown"""
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Environment: {settings.ENV}, timezone: {settings.TIMEZONE}")

    try:
        init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise

    app.state.feed_registry = ActivityFeedRegistry(
        limit=settings.NOTIFICATION_FEED_LIMIT,
        tz_name=settings.TIMEZONE
    )
    app.state.dose_guard = MarkTakenGuard()

    yield

    # Shutdown
    app.state.feed_registry.dispose()
    logger.info(f"Shutting down {settings.APP_NAME}")


# ==================== APP INITIALIZATION ====================

app = FastAPI(
    title=settings.APP_NAME,
    description="""
    ## MedTrack API

    Medication-adherence tracking for patients and their caretakers.

    ### Features
    - **Medications**: Add, edit and remove medications
    - **Dose logging**: Mark doses taken, optionally with a photo
    - **Patient dashboard**: Monthly adherence and a per-day calendar
    - **Caretaker dashboard**: Adherence rate, streak and a live activity feed

    Authenticate with the `X-API-Key` header returned at registration.
    """,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Attach modular API routers (prefix /api/v1)
include_routers(app, prefix=settings.API_PREFIX)

# Uploaded images
app.mount(
    settings.IMAGE_BASE_URL,
    StaticFiles(directory=settings.IMAGE_STORAGE_DIR, check_dir=False),
    name="media"
)


# ==================== EXCEPTION HANDLERS ====================

def _error_response(status_code: int, message: str, headers: dict = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        headers=headers,
        content={
            "error": True,
            "message": message,
            "status_code": status_code,
            "timestamp": utcnow().isoformat()
        }
    )


@app.exception_handler(MedTrackError)
async def medtrack_exception_handler(request, exc: MedTrackError):
    if exc.status_code >= 500:
        logger.warning(f"{request.method} {request.url.path}: {exc.message}")
    headers = {"WWW-Authenticate": "API-Key"} if exc.status_code == 401 else None
    return _error_response(exc.status_code, exc.message, headers=headers)


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    return _error_response(exc.status_code, exc.detail)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc: RequestValidationError):
    errors = [
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in exc.errors()
    ]
    return _error_response(422, "; ".join(errors) or "Invalid request")


@app.exception_handler(OperationalError)
async def database_exception_handler(request, exc: OperationalError):
    logger.error(f"Database unavailable: {exc}")
    return _error_response(503, "Database unavailable")


@app.exception_handler(Exception)
async def general_exception_handler(request, exc: Exception):
    logger.error(f"Unexpected error: {exc}", exc_info=True)
    return _error_response(
        500,
        "An unexpected error occurred" if not settings.DEBUG else str(exc)
    )


# ==================== HEALTH ENDPOINTS ====================

@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - basic health check"""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "healthy",
        "timestamp": utcnow().isoformat()
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check endpoint"""
    db_connected = DatabaseHealthCheck.is_connected()

    return {
        "status": "healthy" if db_connected else "degraded",
        "timestamp": utcnow().isoformat(),
        "checks": {
            "database": {
                "status": "up" if db_connected else "down",
                "type": "sqlite" if "sqlite" in settings.DATABASE_URL else "postgresql",
                "tables": DatabaseHealthCheck.get_table_counts() if db_connected else {}
            },
        },
        "config": {
            "timezone": settings.TIMEZONE,
            "poll_interval_seconds": settings.POLL_INTERVAL_SECONDS,
            "notification_feed_limit": settings.NOTIFICATION_FEED_LIMIT
        },
        "version": settings.APP_VERSION,
        "environment": settings.ENV
    }


# ==================== MAIN ====================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
