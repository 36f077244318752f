"""Pytest configuration shared by all tests.

Makes the workspace ``packages/`` dir importable without an install and keeps
tests hermetic with respect to the forecasting environment variables: a
developer's real ``OPENAI_API_KEY`` or model override must never leak into a
test, and retry backoff must not actually sleep.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

_ROOT = Path(__file__).resolve().parents[1]
_PKG_DIR = _ROOT / "packages"
sys.path[:0] = [p for p in [str(_PKG_DIR), str(_ROOT)] if p not in sys.path]


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("OPENAI_API_KEY", "AR_FORECAST_MODEL", "AR_FORECAST_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)

    import ar_forecast.forecast as forecast_mod

    monkeypatch.setattr(forecast_mod, "_sleep_backoff", lambda attempt_no: None)


@pytest.fixture
def sample_csv_path() -> Path:
    return Path(__file__).resolve().parent / "data" / "ar_billing_sample.csv"
