"""FastAPI application entry point with lifespan management."""

from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from priznanie.api.dividends import router as dividends_router
from priznanie.api.health import router as health_router
from priznanie.api.middleware import RequestContextMiddleware
from priznanie.api.tax import router as tax_router
from priznanie.core.config import settings
from priznanie.core.logging import configure_logging, get_logger
from priznanie.core.sentry import init_sentry

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle.

    Startup:
        - Configure structured logging
        - Initialize Sentry error tracking
    """
    configure_logging()
    logger.info(
        "Starting application",
        environment=settings.environment,
        tax_year=settings.tax_year,
    )

    if init_sentry():
        logger.info("Sentry initialized")

    yield

    logger.info("Shutting down application")


app = FastAPI(
    title="Priznanie",
    description="Slovak DPFO typ B tax computation and compliance review",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add request context middleware
app.add_middleware(RequestContextMiddleware)

# Include routers
app.include_router(health_router)
app.include_router(tax_router)
app.include_router(dividends_router)
