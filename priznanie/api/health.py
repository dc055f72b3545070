"""Health check endpoint."""

from fastapi import APIRouter
from pydantic import BaseModel

from priznanie.core.config import settings

router = APIRouter(prefix="/api", tags=["health"])


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    tax_year: int


@router.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Report liveness and the tax year the API computes."""
    return HealthResponse(status="ok", tax_year=settings.tax_year)
