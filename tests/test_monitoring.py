"""Tests for Sentry setup."""

from unittest.mock import patch

import pytest

from tdingest.core.monitoring import setup_sentry


@pytest.mark.unit
def test_no_dsn_skips_init():
    with patch("sentry_sdk.init") as init:
        assert setup_sentry() is False
    init.assert_not_called()


@pytest.mark.unit
def test_dsn_initializes(monkeypatch):
    monkeypatch.setenv("TDINGEST_SENTRY_DSN", "https://key@sentry.example.com/1")
    with patch("sentry_sdk.init") as init:
        assert setup_sentry(environment="test") is True
    kwargs = init.call_args.kwargs
    assert kwargs["dsn"] == "https://key@sentry.example.com/1"
    assert kwargs["environment"] == "test"
