"""
FastAPI application for the JobSecure account service.

Builds the app, mounts the v1 auth router and owns the database pool
through the lifespan context.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import run_migrations
from src.api.v1 import router as v1_router
from src.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)

tags_metadata = [
    {
        "name": "v1",
        "description": "JobSecure account API v1 - Registration, verification and login",
    },
]


def warn_on_reset_window_mismatch(settings: Settings) -> None:
    """Surface the disagreement between the two reset token windows."""
    if settings.reset_token_request_ttl_seconds != settings.reset_token_account_ttl_seconds:
        logger.warning(
            "Reset token windows differ: request flow %ss, account helper %ss",
            settings.reset_token_request_ttl_seconds,
            settings.reset_token_account_ttl_seconds,
        )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Open the account store on startup and release it on shutdown.

    - Logs the operating mode, loudly when development shortcuts are on
    - Creates the psycopg connection pool and applies migrations
    - Publishes the pool on app.state for the repository dependency
    """
    settings = get_settings()

    logger.info("Starting jobsecure (environment=%s)", settings.environment)
    if settings.is_development:
        logger.warning(
            "Development mode: accounts are auto-verified and deliverability is "
            "skipped for %s",
            ", ".join(settings.dev_bypass_domains),
        )
    warn_on_reset_window_mismatch(settings)

    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
    )
    run_migrations(pool)
    app.state.pool = pool
    logger.info("Account store ready")

    yield

    pool.close()
    logger.info("Database connection pool closed")


app = FastAPI(
    title="jobsecure",
    description="JobSecure account API - Vetted registration and session management "
    "for the JobSecure freelance marketplace",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

app.include_router(v1_router, prefix="/v1")


@app.get("/health")
def health_check(request: Request) -> dict[str, str]:
    """Report healthy once the account database answers a trivial query."""
    with request.app.state.pool.connection() as conn:
        conn.execute("SELECT 1")
    return {"status": "healthy"}
