import json
import logging
from typing import Any

import pytest

import ar_forecast.forecast as forecast_mod
from ar_forecast import (
    ForecastConfigError,
    ForecastRateLimitError,
    ForecastResult,
    ForecastServiceError,
    InsufficientHistoryError,
    MalformedForecastError,
    MonthlyPoint,
    UnknownSegmentError,
    classify_trend,
    forecast_segment,
    forecast_series,
    parse_csv,
)

from tests.helpers.openai_stub import ApiStatusError, OpenAIStub, extract_history_from_user_content


def _history(n: int, start_year: int = 2021) -> list[MonthlyPoint]:
    out: list[MonthlyPoint] = []
    year, month = start_year, 1
    for i in range(n):
        out.append(MonthlyPoint(date=f"{year:04d}-{month:02d}", amount=1000.0 + 10 * i))
        month += 1
        if month > 12:
            year, month = year + 1, 1
    return out


def _install_stub(monkeypatch: pytest.MonkeyPatch, stub: OpenAIStub) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setattr(forecast_mod, "OpenAI", lambda *a, **kw: stub)


# ---- Happy path ----------------------------------------------------------------


def test_forecast_follows_last_history_month(monkeypatch: pytest.MonkeyPatch):
    stub = OpenAIStub(lambda history, step: 2000.0 + step)
    _install_stub(monkeypatch, stub)

    result = forecast_series(_history(12), "Total Portfolio")

    assert isinstance(result, ForecastResult)
    assert [p.date for p in result.forecast] == [
        "2022-01",
        "2022-02",
        "2022-03",
        "2022-04",
        "2022-05",
        "2022-06",
    ]
    assert [p.amount for p in result.forecast] == [2000.0, 2001.0, 2002.0, 2003.0, 2004.0, 2005.0]
    assert result.trend == "Seasonal Uptrend"
    assert result.reasoning


def test_request_shape(monkeypatch: pytest.MonkeyPatch):
    stub = OpenAIStub()
    _install_stub(monkeypatch, stub)

    forecast_series(_history(8), "Account Class: Residential")

    assert len(stub.calls) == 1
    call = stub.calls[0]
    assert call["model"] == "gpt-5"
    assert isinstance(call["instructions"], str) and call["instructions"]
    assert 'Segment: "Account Class: Residential"' in call["input"]
    assert "following 2021-08" in call["input"]
    fmt = call["text"]["format"]
    assert fmt["type"] == "json_schema" and fmt["strict"] is True
    assert fmt["schema"]["required"] == ["forecast", "reasoning", "trend"]


def test_only_most_recent_36_months_are_sent(monkeypatch: pytest.MonkeyPatch):
    stub = OpenAIStub()
    _install_stub(monkeypatch, stub)
    history = _history(48)

    forecast_series(history)

    sent = extract_history_from_user_content(stub.calls[0]["input"])
    assert len(sent) == 36
    assert sent[0] == {"date": history[12].date, "amount": history[12].amount}
    assert sent[-1]["date"] == history[-1].date


def test_model_override_from_env(monkeypatch: pytest.MonkeyPatch):
    stub = OpenAIStub()
    _install_stub(monkeypatch, stub)
    monkeypatch.setenv("AR_FORECAST_MODEL", "gpt-5-mini")

    forecast_series(_history(6))

    assert stub.calls[0]["model"] == "gpt-5-mini"


def test_explicit_client_skips_env_key_check():
    stub = OpenAIStub()
    result = forecast_series(_history(6), client=stub)  # type: ignore[arg-type]
    assert len(result.forecast) == 6


def test_forecast_segment_uses_class_series_and_label(monkeypatch: pytest.MonkeyPatch):
    rows = "\n".join(f"2023{m:02d},{m * 10},Residential" for m in range(1, 8))
    ds = parse_csv("billPeriod,amount,accountClass\n" + rows + "\n202301,5,Commercial\n")
    stub = OpenAIStub()
    _install_stub(monkeypatch, stub)

    result = forecast_segment(ds, "Residential")

    assert result.forecast[0].date == "2023-08"
    assert 'Segment: "Account Class: Residential"' in stub.calls[0]["input"]
    with pytest.raises(UnknownSegmentError):
        forecast_segment(ds, "Nope")
    with pytest.raises(InsufficientHistoryError):
        forecast_segment(ds, "Commercial")


# ---- Pre-request validation --------------------------------------------------


@pytest.mark.parametrize("n", [0, 1, 5])
def test_insufficient_history_raises_before_any_call(monkeypatch: pytest.MonkeyPatch, n: int):
    stub = OpenAIStub()
    _install_stub(monkeypatch, stub)

    with pytest.raises(InsufficientHistoryError) as excinfo:
        forecast_series(_history(n))

    assert excinfo.value.available == n
    assert excinfo.value.required == 6
    assert stub.calls == []


def test_missing_api_key_is_a_config_error(monkeypatch: pytest.MonkeyPatch):
    created: list[Any] = []
    monkeypatch.setattr(forecast_mod, "OpenAI", lambda *a, **kw: created.append(1))

    with pytest.raises(ForecastConfigError, match="OPENAI_API_KEY"):
        forecast_series(_history(6))
    assert created == []


# ---- Service failures --------------------------------------------------------


def test_rate_limit_is_retried_then_succeeds(monkeypatch: pytest.MonkeyPatch):
    stub = OpenAIStub(errors=[ApiStatusError(429)])
    _install_stub(monkeypatch, stub)

    result = forecast_series(_history(6))

    assert len(stub.calls) == 2
    assert len(result.forecast) == 6


def test_persistent_rate_limit_surfaces_distinct_error(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
):
    stub = OpenAIStub(errors=[ApiStatusError(429)] * 3)
    _install_stub(monkeypatch, stub)

    with caplog.at_level(logging.WARNING, logger="ar_forecast"):
        with pytest.raises(ForecastRateLimitError, match="try again"):
            forecast_series(_history(6))

    assert len(stub.calls) == 3
    messages = [r.getMessage() for r in caplog.records]
    assert sum("forecast:retry" in m for m in messages) == 2
    assert any("forecast:failed_terminal" in m and "status=429" in m for m in messages)


def test_server_errors_are_retried_then_reported(monkeypatch: pytest.MonkeyPatch):
    stub = OpenAIStub(errors=[ApiStatusError(503)] * 3)
    _install_stub(monkeypatch, stub)

    with pytest.raises(ForecastServiceError) as excinfo:
        forecast_series(_history(6))

    assert not isinstance(excinfo.value, ForecastRateLimitError)
    assert len(stub.calls) == 3


def test_client_errors_are_not_retried(monkeypatch: pytest.MonkeyPatch):
    stub = OpenAIStub(errors=[ApiStatusError(401, "invalid api key")])
    _install_stub(monkeypatch, stub)

    with pytest.raises(ForecastServiceError, match="invalid api key"):
        forecast_series(_history(6))
    assert len(stub.calls) == 1


def test_connection_errors_without_status_are_service_errors(monkeypatch: pytest.MonkeyPatch):
    stub = OpenAIStub(errors=[ConnectionError("network unreachable")])
    _install_stub(monkeypatch, stub)

    with pytest.raises(ForecastServiceError):
        forecast_series(_history(6))
    assert len(stub.calls) == 1


# ---- Malformed output --------------------------------------------------------


def _body(dates: list[str], **extra: Any) -> str:
    body: dict[str, Any] = {
        "forecast": [{"date": d, "amount": 1.0} for d in dates],
        "reasoning": "r",
        "trend": "Stable",
    }
    body.update(extra)
    return json.dumps(body)


NEXT_SIX = ["2021-07", "2021-08", "2021-09", "2021-10", "2021-11", "2021-12"]


@pytest.mark.parametrize(
    "raw_text",
    [
        "",
        "not json",
        json.dumps({"forecast": []}),
        _body(NEXT_SIX[:5]),
        _body(NEXT_SIX + ["2022-01"]),
        _body(["2021-07", "2021-07", "2021-09", "2021-10", "2021-11", "2021-12"]),
        _body(["2021-7", *NEXT_SIX[1:]]),
        _body(["2021-06", *NEXT_SIX[:5]]),
        _body(["2021-07", "2021-09", "2021-10", "2021-11", "2021-12", "2022-01"]),
        _body(["2021-08", "2021-09", "2021-10", "2021-11", "2021-12", "2022-01"]),
        _body(NEXT_SIX, reasoning="  "),
        _body(NEXT_SIX, trend=""),
    ],
)
def test_malformed_output_is_terminal(monkeypatch: pytest.MonkeyPatch, raw_text: str):
    stub = OpenAIStub(raw_text=raw_text)
    _install_stub(monkeypatch, stub)

    with pytest.raises(MalformedForecastError):
        forecast_series(_history(6))
    assert len(stub.calls) == 1


def test_output_content_text_fallback(monkeypatch: pytest.MonkeyPatch):
    class _Node:
        def __init__(self, text: str) -> None:
            self.text = text

    class _Msg:
        def __init__(self, text: str) -> None:
            self.content = [_Node(text)]

    class _Resp:
        def __init__(self, text: str) -> None:
            self.output = [_Msg(text)]

    class _Client:
        def __init__(self) -> None:
            self.responses = self

        def create(self, **kwargs: Any) -> _Resp:
            return _Resp(_body(NEXT_SIX))

    result = forecast_series(_history(6), client=_Client())  # type: ignore[arg-type]
    assert [p.date for p in result.forecast] == NEXT_SIX


# ---- Trend classification ----------------------------------------------------


@pytest.mark.parametrize(
    ("label", "expected"),
    [
        ("Seasonal Uptrend", "up"),
        ("Increasing", "up"),
        ("Steady growth", "up"),
        ("Declining Volatility", "down"),
        ("Downward drift", "down"),
        ("Sharp drop", "down"),
        ("Stable", "flat"),
        ("", "flat"),
        (None, "flat"),
    ],
)
def test_classify_trend(label, expected):
    assert classify_trend(label) == expected


def test_forecast_months_roll_over_the_year():
    history = _history(12)  # 2021-01..2021-12
    stub = OpenAIStub(
        raw_text=_body(["2022-01", "2022-02", "2022-03", "2022-04", "2022-05", "2022-06"])
    )
    result = forecast_series(history, client=stub)  # type: ignore[arg-type]
    assert result.forecast[0].date == "2022-01"

    gapped = OpenAIStub(
        raw_text=_body(["2022-01", "2022-03", "2022-04", "2022-05", "2022-06", "2022-07"])
    )
    with pytest.raises(MalformedForecastError, match="following 2021-12"):
        forecast_series(history, client=gapped)  # type: ignore[arg-type]
