"""Configuration parsing tests."""

import pytest

from priznanie.core.config import DEFAULT_CORS_ORIGINS, Settings


def test_defaults() -> None:
    """Settings fall back to the documented defaults."""
    cfg = Settings(_env_file=None)
    assert cfg.tax_year == 2025
    assert cfg.max_xml_bytes == 1024 * 1024
    assert cfg.cors_origins == DEFAULT_CORS_ORIGINS


def test_tax_year_from_env(monkeypatch) -> None:
    """TAX_YEAR is read from the environment."""
    monkeypatch.setenv("TAX_YEAR", "2025")
    monkeypatch.setenv("MAX_XML_BYTES", "2048")
    cfg = Settings(_env_file=None)
    assert cfg.tax_year == 2025
    assert cfg.max_xml_bytes == 2048


def test_cors_origins_accepts_csv(monkeypatch) -> None:
    """CSV string in env parses into a list of origins."""
    monkeypatch.setenv("CORS_ORIGINS", "https://priznanie.sk, http://localhost:5173/")
    cfg = Settings(_env_file=None)
    assert cfg.cors_origins == ["https://priznanie.sk", "http://localhost:5173"]


def test_cors_origins_accepts_json_array(monkeypatch) -> None:
    """JSON array string in env parses into a list of origins."""
    monkeypatch.setenv("CORS_ORIGINS", '["https://priznanie.sk","https://priznanie.sk"]')
    cfg = Settings(_env_file=None)
    assert cfg.cors_origins == ["https://priznanie.sk"]


def test_cors_origins_blank_uses_defaults(monkeypatch) -> None:
    """An empty value keeps the default origins."""
    monkeypatch.setenv("CORS_ORIGINS", " ")
    cfg = Settings(_env_file=None)
    assert cfg.cors_origins == DEFAULT_CORS_ORIGINS


def test_cors_origins_rejects_invalid_object(monkeypatch) -> None:
    """Invalid values fail with a clear validation error."""
    monkeypatch.setenv("CORS_ORIGINS", '{"invalid":"json"}')
    with pytest.raises(ValueError, match="CORS_ORIGINS"):
        Settings(_env_file=None)
