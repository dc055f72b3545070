"""Sentry initialization tests."""

import sentry_sdk

from priznanie.core import sentry
from priznanie.core.config import settings


def test_skipped_without_dsn(monkeypatch) -> None:
    """No DSN means Sentry is never initialized."""
    calls = []
    monkeypatch.setattr(settings, "sentry_dsn", None)
    monkeypatch.setattr(sentry_sdk, "init", lambda **kwargs: calls.append(kwargs))
    assert sentry.init_sentry() is False
    assert calls == []


def test_initialized_without_pii(monkeypatch) -> None:
    """A configured DSN initializes Sentry with PII disabled."""
    calls = []
    monkeypatch.setattr(settings, "sentry_dsn", "https://key@sentry.example/1")
    monkeypatch.setattr(settings, "environment", "production")
    monkeypatch.setattr(sentry_sdk, "init", lambda **kwargs: calls.append(kwargs))
    assert sentry.init_sentry() is True
    assert calls[0]["dsn"] == "https://key@sentry.example/1"
    assert calls[0]["environment"] == "production"
    assert calls[0]["send_default_pii"] is False
