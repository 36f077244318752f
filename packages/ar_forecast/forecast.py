"""Forecasting collaborator backed by the OpenAI Responses API.

Public API:
    - :func:`forecast_series`
    - :func:`forecast_segment`
    - :func:`classify_trend`

No side effects occur at import time (no client creation, no environment
reads). Validation that does not need the network (history length, API key)
runs before any request is attempted.
"""

from __future__ import annotations

import json
import math
import os
import random
import time
from collections.abc import Mapping, Sequence
from typing import Any

from openai import OpenAI
from openai.types.responses import ResponseTextConfigParam
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from . import prompting
from .errors import (
    ForecastConfigError,
    ForecastRateLimitError,
    ForecastServiceError,
    InsufficientHistoryError,
    MalformedForecastError,
)
from .logging_setup import get_logger
from .models import (
    MONTH_KEY_RE,
    TOTAL_SEGMENT,
    TOTAL_SEGMENT_LABEL,
    Dataset,
    ForecastResult,
    MonthlyPoint,
    segment_label,
)

# ---- Tunables ----------------------------------------------------------------

MIN_HISTORY_MONTHS: int = 6
MAX_HISTORY_MONTHS: int = 36

_MAX_ATTEMPTS: int = 3
_BACKOFF_SCHEDULE_SEC: tuple[float, ...] = (0.5, 2.0)
_JITTER_PCT: float = 0.20

_DEFAULT_MODEL: str = "gpt-5"


_logger = get_logger("ar_forecast.forecast")


# ---- Response validation -----------------------------------------------------


class _ForecastPoint(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    date: str
    amount: float

    @field_validator("date")
    @classmethod
    def _month_key(cls, v: str) -> str:
        if not MONTH_KEY_RE.fullmatch(v) or not 1 <= int(v[5:7]) <= 12:
            raise ValueError(f"date must be YYYY-MM, got {v!r}")
        return v

    @field_validator("amount")
    @classmethod
    def _finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("amount must be finite")
        return v


class _ForecastPayload(BaseModel):
    """Typed view of the model's JSON answer."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    forecast: list[_ForecastPoint]
    reasoning: str
    trend: str

    @field_validator("reasoning", "trend")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("must be non-empty")
        return v

    @model_validator(mode="after")
    def _horizon_and_order(self) -> _ForecastPayload:
        if len(self.forecast) != prompting.FORECAST_HORIZON:
            raise ValueError(
                f"expected {prompting.FORECAST_HORIZON} forecast months, got {len(self.forecast)}"
            )
        dates = [p.date for p in self.forecast]
        if any(a >= b for a, b in zip(dates, dates[1:], strict=False)):
            raise ValueError(f"forecast months must be strictly ascending: {dates}")
        return self


# ---- Internal helpers --------------------------------------------------------


def _resolve_model() -> str:
    model = os.getenv("AR_FORECAST_MODEL")
    return model.strip() if model and model.strip() else _DEFAULT_MODEL


def _create_client() -> OpenAI:
    if not (os.getenv("OPENAI_API_KEY") or "").strip():
        raise ForecastConfigError(
            "OPENAI_API_KEY is not set; configure it in the environment or a local .env file"
        )
    try:
        return OpenAI()
    except Exception as e:  # noqa: BLE001 - SDK raises its own error type on bad config
        raise ForecastConfigError(f"Could not initialize the OpenAI client: {e}") from e


def _extract_response_text(resp: Any) -> str:
    """Locate the text output of a Responses SDK result.

    Prefers ``resp.output_text``; falls back to ``resp.output[0].content[0].text``.
    """

    text = getattr(resp, "output_text", None)
    if not text:
        try:
            node = resp.output[0].content[0].text
        except (AttributeError, IndexError, TypeError):
            node = None
        # Older SDK builds wrap the string in an object with ``.value``.
        text = node if isinstance(node, str) else getattr(node, "value", None)
    if not isinstance(text, str) or not text:
        raise MalformedForecastError("Empty response from the forecasting model")
    return text


def _following_months(last_month: str, count: int) -> list[str]:
    """Return the ``count`` month keys after ``last_month``.

    >>> _following_months("2023-11", 3)
    ['2023-12', '2024-01', '2024-02']
    """

    year, month = int(last_month[:4]), int(last_month[5:7])
    keys: list[str] = []
    for _ in range(count):
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)
        keys.append(f"{year:04d}-{month:02d}")
    return keys


def _parse_forecast(text: str, *, last_month: str) -> ForecastResult:
    try:
        decoded: Mapping[str, Any] = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedForecastError("Forecasting model output was not valid JSON") from e

    try:
        payload = _ForecastPayload.model_validate(decoded)
    except ValidationError as e:
        raise MalformedForecastError(f"Forecasting model output did not match the schema: {e}") from e

    expected = _following_months(last_month, prompting.FORECAST_HORIZON)
    dates = [p.date for p in payload.forecast]
    if dates != expected:
        raise MalformedForecastError(
            f"Forecast months {dates} are not the {len(expected)} months following "
            f"{last_month} ({expected[0]}..{expected[-1]})"
        )

    return ForecastResult(
        forecast=tuple(MonthlyPoint(date=p.date, amount=p.amount) for p in payload.forecast),
        reasoning=payload.reasoning,
        trend=payload.trend,
    )


def _status_code(exc: BaseException) -> int | None:
    sc = getattr(exc, "status_code", None)
    return sc if isinstance(sc, int) else None


def _is_retryable(exc: BaseException) -> bool:
    """Return True only for HTTP 429 and 5xx errors."""

    sc = _status_code(exc)
    return sc is not None and (sc == 429 or 500 <= sc < 600)


def _sleep_backoff(attempt_no: int) -> None:
    if attempt_no - 1 < len(_BACKOFF_SCHEDULE_SEC):
        base = _BACKOFF_SCHEDULE_SEC[attempt_no - 1]
    else:
        base = _BACKOFF_SCHEDULE_SEC[-1]
    jitter = base * _JITTER_PCT
    time.sleep(max(0.0, base + random.uniform(-jitter, jitter)))


def _terminal_error(exc: BaseException) -> Exception:
    if _status_code(exc) == 429:
        return ForecastRateLimitError(
            "The forecasting service is rate limiting requests (HTTP 429); "
            "wait a moment and try again"
        )
    return ForecastServiceError(
        f"The forecasting service could not analyze the data right now: {exc}"
    )


# ---- Public API --------------------------------------------------------------


def forecast_series(
    history: Sequence[MonthlyPoint],
    segment: str = TOTAL_SEGMENT_LABEL,
    *,
    client: OpenAI | None = None,
) -> ForecastResult:
    """Forecast the next 6 months of ``history`` via the OpenAI Responses API.

    Parameters
    ----------
    history:
        Ascending monthly points. At least 6 are required; the most recent 36
        are sent to the model.
    segment:
        Human-readable segment label embedded in the prompt (e.g.
        ``"Total Portfolio"`` or ``"Account Class: Residential"``).
    client:
        Optional preconfigured client. When omitted, one is created from the
        environment (``OPENAI_API_KEY``).

    Raises
    ------
    InsufficientHistoryError
        Fewer than 6 points; raised before any request.
    ForecastConfigError
        No API key or the client cannot be created.
    ForecastRateLimitError
        HTTP 429 persisted through all retry attempts.
    ForecastServiceError
        Any other service failure.
    MalformedForecastError
        The model answered with empty, non-JSON or off-schema output.
    """

    points = list(history)
    if len(points) < MIN_HISTORY_MONTHS:
        raise InsufficientHistoryError(len(points), MIN_HISTORY_MONTHS)

    recent = points[-MAX_HISTORY_MONTHS:]
    last_month = recent[-1].date

    if client is None:
        client = _create_client()

    model = _resolve_model()
    system_instructions = prompting.build_system_instructions()
    user_content = prompting.build_user_content(
        prompting.serialize_history_to_json(recent),
        segment_label=segment,
        last_month=last_month,
    )
    text_cfg = ResponseTextConfigParam(format=prompting.build_response_format())

    _logger.info(
        'forecast:request segment="%s" months=%d last_month=%s model=%s',
        segment,
        len(recent),
        last_month,
        model,
    )

    attempt = 1
    while True:
        t0 = time.perf_counter()
        try:
            resp = client.responses.create(
                model=model,
                instructions=system_instructions,
                input=user_content,
                text=text_cfg,
            )
            break
        except Exception as e:  # noqa: BLE001 - classified by status code below
            dt_ms = (time.perf_counter() - t0) * 1000.0
            if attempt >= _MAX_ATTEMPTS or not _is_retryable(e):
                _logger.error(
                    "forecast:failed_terminal attempt=%d latency_ms=%.2f status=%s error=%s",
                    attempt,
                    dt_ms,
                    _status_code(e),
                    e.__class__.__name__,
                )
                raise _terminal_error(e) from e
            _logger.warning(
                "forecast:retry attempt=%d latency_ms=%.2f status=%s error=%s",
                attempt,
                dt_ms,
                _status_code(e),
                e.__class__.__name__,
            )
            _sleep_backoff(attempt)
            attempt += 1

    # Malformed output is terminal; it is never retried.
    result = _parse_forecast(_extract_response_text(resp), last_month=last_month)
    _logger.info(
        'forecast:done segment="%s" first=%s last=%s trend="%s"',
        segment,
        result.forecast[0].date,
        result.forecast[-1].date,
        result.trend,
    )
    return result


def forecast_segment(
    dataset: Dataset,
    segment: str = TOTAL_SEGMENT,
    *,
    client: OpenAI | None = None,
) -> ForecastResult:
    """Forecast one segment of ``dataset`` (``"ALL"`` or an account class)."""

    return forecast_series(dataset.series_for(segment), segment_label(segment), client=client)


_UP_MARKERS: tuple[str, ...] = ("increas", "up", "grow")
_DOWN_MARKERS: tuple[str, ...] = ("decreas", "down", "drop", "declin")


def classify_trend(trend: str | None) -> str:
    """Map a free-text trend label to ``"up"``, ``"down"`` or ``"flat"``.

    >>> classify_trend("Seasonal Uptrend"), classify_trend("Declining Volatility")
    ('up', 'down')
    """

    t = (trend or "").lower()
    if any(m in t for m in _UP_MARKERS):
        return "up"
    if any(m in t for m in _DOWN_MARKERS):
        return "down"
    return "flat"


__all__ = [
    "MAX_HISTORY_MONTHS",
    "MIN_HISTORY_MONTHS",
    "classify_trend",
    "forecast_segment",
    "forecast_series",
]
