import logging

import pytest

from ar_forecast.logging_setup import get_logger, resolve_level


@pytest.mark.parametrize(
    ("level", "expected"),
    [
        (logging.WARNING, logging.WARNING),
        ("debug", logging.DEBUG),
        (" Error ", logging.ERROR),
        ("15", 15),
        ("chatty", logging.INFO),
    ],
)
def test_resolve_level(level, expected):
    assert resolve_level(level) == expected


def test_resolve_level_reads_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("AR_FORECAST_LOG_LEVEL", "warning")
    assert resolve_level() == logging.WARNING
    monkeypatch.delenv("AR_FORECAST_LOG_LEVEL")
    assert resolve_level() == logging.INFO


def test_get_logger_is_namespaced_under_package():
    logger = get_logger("ar_forecast.api")
    assert logger.name == "ar_forecast.api"
    assert logging.getLogger("ar_forecast").handlers
