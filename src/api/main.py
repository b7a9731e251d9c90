"""
FastAPI application for the training events service.

This is the main entry point for the HTTP API, providing:
- Event management and lifecycle endpoints
- Participant, RSVP, check-in and vote endpoints
- Lesson plan assignment
- Health endpoint
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from src.api.dependencies import get_directories, init_directories
from src.api.event_routes import router as event_router
from src.api.middleware import RequestLoggingMiddleware
from src.api.models import HealthResponse
from src.api.participant_routes import router as participant_router
from src.config import get_settings
from src.database import check_connection, init_db
from src.integrations.directory.exceptions import DirectoryError
from src.services.exceptions import ConflictError, TrainingEventsError

logger = logging.getLogger(__name__)

API_VERSION = "0.1.0"


# =============================================================================
# Application Lifecycle
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Startup
    logger.info("Starting Training Events API")
    if settings.is_development:
        init_db()
    init_directories()
    logger.info("Training Events API started")

    yield

    # Shutdown
    logger.info("Shutting down Training Events API")


# =============================================================================
# FastAPI Application
# =============================================================================


app = FastAPI(
    title="Training Events API",
    description="""
# Training Events API

Scheduling and attendance for instructor-led training events.

## Core Workflows

### Scheduling
- **POST /api/events** - Create an event; no two future events may start
  within 30 minutes of each other
- **POST /api/events/{id}/start**, **/complete** - Run the event; starting
  issues a check-in code

### Attendance
- **POST /api/events/{id}/register/{user}** - Register (auto-confirms within
  24 hours of the start)
- **POST /api/events/{id}/rsvp/{user}** - Confirm or decline
- **POST /api/events/{id}/checkin/{user}** - Check in with the event's code

### Lesson Plans
- **POST /api/events/{id}/vote/{user}** - Vote for a lesson plan
- **POST /api/events/assignments** - Assign the winning plan to every event

## Authentication

The caller is identified by the `X-Username` header.

## Error Handling

Errors are returned as `{"error_type", "message", "retryable"}`.
- **400** - Invalid payload
- **403** - Access denied
- **404** - Resource not found
- **409** - Scheduling conflict
- **502** - Directory service failure
    """,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Add middleware
app.add_middleware(RequestLoggingMiddleware)

# Include routers
app.include_router(event_router)
app.include_router(participant_router)


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(TrainingEventsError)
async def training_events_exception_handler(request: Request, exc: TrainingEventsError):
    """Map domain exceptions to their HTTP status."""
    content = {
        "error_type": exc.error_type,
        "message": exc.message,
        "retryable": False,
    }
    if isinstance(exc, ConflictError):
        content["conflicting_event_ids"] = [str(i) for i in exc.conflicting_event_ids]

    logger.info(f"{exc.error_type}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(DirectoryError)
async def directory_exception_handler(request: Request, exc: DirectoryError):
    """Directory failures are upstream errors."""
    logger.error(f"Directory error: {exc}")
    return JSONResponse(
        status_code=502,
        content={
            "error_type": "directory_error",
            "message": str(exc),
            "retryable": exc.retryable,
        },
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions with consistent format."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_type": "http_error",
            "message": exc.detail,
            "retryable": exc.status_code >= 500,
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error_type": "internal_error",
            "message": "An unexpected error occurred",
            "retryable": True,
        },
    )


# =============================================================================
# Health & Status Endpoints
# =============================================================================


@app.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    tags=["System"],
)
def health_check() -> HealthResponse:
    """
    Check API health status.

    Returns:
        Health status including database and directory readiness
    """
    try:
        directories_ready = get_directories() is not None
    except HTTPException:
        directories_ready = False

    database_connected = check_connection()

    return HealthResponse(
        status="healthy" if directories_ready and database_connected else "unhealthy",
        version=API_VERSION,
        database_connected=database_connected,
        directories_ready=directories_ready,
    )


# =============================================================================
# Run with Uvicorn
# =============================================================================


def run_server(host: str = "0.0.0.0", port: int = 8000, reload: bool = False):
    """Run the API server with Uvicorn."""
    import uvicorn

    uvicorn.run(
        "src.api.main:app",
        host=host,
        port=port,
        reload=reload,
    )


if __name__ == "__main__":
    settings = get_settings()
    run_server(host=settings.api_host, port=settings.api_port, reload=settings.api_reload)
