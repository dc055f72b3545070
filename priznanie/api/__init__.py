"""API module exports."""

from priznanie.api.dividends import router as dividends_router
from priznanie.api.health import router as health_router
from priznanie.api.tax import router as tax_router

__all__ = ["dividends_router", "health_router", "tax_router"]
