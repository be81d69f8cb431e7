"""Main FastAPI application."""
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, Depends
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy import text

from geoattend.api.v1.router import api_router
from geoattend.api.deps import get_db
from geoattend.api.errors import checkin_rejected_handler, store_error_handler
from geoattend.core.config import settings
from geoattend.core.errors import CheckinRejected, StoreError
from geoattend.core.rate_limit import limiter
from geoattend.core.logging_config import setup_logging, get_logger
from geoattend.middleware import LoggingMiddleware
from geoattend.services.rotation import rotation_registry


def configure_logging() -> None:
    """Structured logging: JSON lines in production, console output elsewhere."""
    setup_logging(level=settings.LOG_LEVEL, json_logs=settings.ENVIRONMENT == "production")


configure_logging()
logger = get_logger(__name__)

# Validate production configuration after logging is configured
if settings.ENVIRONMENT == "production":
    settings.validate_production_config()

logger.info(
    "application_starting",
    app_title=settings.APP_TITLE,
    app_version=settings.APP_VERSION,
    environment=settings.ENVIRONMENT,
    token_rotation_policy=settings.TOKEN_ROTATION_POLICY,
    geofence_enforcement=settings.GEOFENCE_ENFORCEMENT,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Rotation loops belong to display sessions; none may outlive the app
    await rotation_registry.stop_all()
    logger.info("application_stopped")


app = FastAPI(
    title=settings.APP_TITLE,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

# Add rate limiter to app state
app.state.limiter = limiter

# Add rate limit exceeded exception handler
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Protocol errors keep their stable code in the response body
app.add_exception_handler(CheckinRejected, checkin_rejected_handler)
app.add_exception_handler(StoreError, store_error_handler)

# Add logging middleware (must be added before other middleware for proper request tracking)
app.add_middleware(LoggingMiddleware)


@app.middleware("http")
async def add_api_version_header(request: Request, call_next):
    """Add X-API-Version header to all responses for version tracking."""
    response = await call_next(request)
    response.headers["X-API-Version"] = settings.APP_VERSION
    return response

# CORS middleware - configured for cookie-based auth
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,  # Required for cookies
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)

app.include_router(api_router)


@app.get("/health")
async def health_check(db: Session = Depends(get_db)):
    """
    Health check endpoint.

    Returns:
        - status: "healthy" or "unhealthy"
        - database: connection status
        - rotations: number of active QR rotation loops
        - environment: current environment setting

    Returns 503 if database is unreachable.
    """
    health_status = {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "database": {"status": "connected"},
        "rotations": len(rotation_registry),
    }

    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        health_status["status"] = "unhealthy"
        health_status["database"]["status"] = f"error: {str(e)}"
        logger.error("health_check_failed", error=str(e))
        raise HTTPException(status_code=503, detail=health_status)

    return health_status
