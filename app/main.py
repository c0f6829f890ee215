"""
FastAPI application for the SIH Internals registration service.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.db.pool import db_pool
from app.infrastructure.observability.logging import get_logger, log_request, setup_logging
from app.middleware import RequestContextMiddleware
from app.routes import dashboard, debug, health, problem_statements, team
from app.services.email.transport import close_transport
from app.services.problem_statement_catalog import get_catalog

# Setup logging before creating the app
setup_logging(log_level=settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database pool and load the catalog; close both resources on shutdown."""

    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    get_catalog()

    try:
        await db_pool.initialize()
    except Exception as e:
        logger.error("Failed to initialize database pool", error=str(e))
        raise

    if not settings.smtp_configured():
        logger.warning(
            "SMTP not configured, broadcast and test email will be unavailable",
            missing=settings.missing_smtp_settings(),
        )

    yield

    logger.info("Application shutting down")

    shutdown_errors = []

    try:
        await close_transport()
    except Exception as e:
        logger.error("Error closing mail transport", error=str(e))
        shutdown_errors.append(f"SMTP: {e}")

    try:
        await db_pool.close()
    except Exception as e:
        logger.error("Error closing database pool", error=str(e))
        shutdown_errors.append(f"Database: {e}")

    if shutdown_errors:
        logger.warning("Some services had shutdown errors", errors=shutdown_errors)
    else:
        logger.info("All services closed successfully")


app = FastAPI(
    title="SIH Internals",
    description="Registration, team and organizer dashboard API for the SIH internal hackathon",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(RequestContextMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Request-ID"],
)

app.include_router(health.router)
app.include_router(problem_statements.router)
app.include_router(team.router)
app.include_router(dashboard.router)
if settings.debug or settings.environment == "development":
    app.include_router(debug.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    log_request(
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round((time.time() - start_time) * 1000, 2),
    )
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
