"""Pytest configuration and shared fixtures for tests."""

import pytest
from fastapi.testclient import TestClient

from priznanie.declaration.models import Declaration
from priznanie.main import app


@pytest.fixture
def client() -> TestClient:
    """Create a test client for API testing.

    Returns:
        FastAPI TestClient instance.
    """
    return TestClient(app)


@pytest.fixture
def employee_payload() -> dict:
    """Wizard JSON of a salaried taxpayer with no other income.

    Returns:
        Declaration mapping with camelCase keys.
    """
    return {
        "personalInfo": {
            "dic": "1234567890",
            "priezvisko": "Novák",
            "meno": "Ján",
            "ulica": "Hlavná",
            "cislo": "12",
            "psc": "81101",
            "obec": "Bratislava",
        },
        "employment": {
            "enabled": True,
            "r36": "15000",
            "r37": "1500",
            "r131": "2000",
        },
    }


@pytest.fixture
def employee(employee_payload: dict) -> Declaration:
    """Salaried taxpayer: gross 15000, insurance 1500, advances 2000.

    Returns:
        Validated Declaration.
    """
    return Declaration.model_validate(employee_payload)
