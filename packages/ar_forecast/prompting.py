"""Prompt construction and response schema for AR forecasting.

This module builds:
- A deterministic JSON serialization of the monthly history
  (``[{"date": ..., "amount": ...}, ...]`` in ascending order).
- The system instructions and the user content for the forecasting task.
- The strict ``text.format`` (JSON Schema) object for the OpenAI Responses API.
"""

from __future__ import annotations

import json
from collections.abc import Sequence

from openai.types.responses.response_format_text_json_schema_config_param import (
    ResponseFormatTextJSONSchemaConfigParam,
)

from .models import MonthlyPoint

BEGIN_HISTORY = "BEGIN_HISTORY_JSON"
END_HISTORY = "END_HISTORY_JSON"

FORECAST_HORIZON: int = 6


def serialize_history_to_json(history: Sequence[MonthlyPoint]) -> str:
    """Serialize points as a JSON array with a fixed ``date, amount`` key order."""

    return json.dumps([{"date": p.date, "amount": p.amount} for p in history], ensure_ascii=False)


def build_system_instructions() -> str:
    return (
        "You are a precise financial forecasting engine for accounts receivable. "
        "Focus on the patterns in the data and do not invent numbers. Use weighted "
        "moving averages or regression logic implicitly for predictions. Output JSON "
        "only that conforms to the specified schema."
    )


def build_user_content(history_json: str, *, segment_label: str, last_month: str) -> str:
    """Build the user prompt for one segment.

    The history is embedded between ``BEGIN_HISTORY_JSON``/``END_HISTORY_JSON``
    markers so it can be located verbatim.
    """

    return (
        "You are an expert Senior Financial Data Analyst specializing in Accounts "
        "Receivable (AR) forecasting.\n"
        "\n"
        f'Segment: "{segment_label}"\n'
        "Historical monthly data:\n"
        f"{BEGIN_HISTORY}\n{history_json}\n{END_HISTORY}\n"
        "\n"
        "Tasks:\n"
        "1. Analyze patterns in the history:\n"
        "   - Seasonality: recurring peaks or drops in specific months.\n"
        "   - Trend: is the direction increasing, decreasing, or stable over the last 12 months?\n"
        "   - Volatility: random spikes that should be treated as outliers.\n"
        f"2. Forecast the 'amount' for the {FORECAST_HORIZON} months following {last_month}, "
        "one entry per month in ascending YYYY-MM order. The forecast must respect the "
        "identified seasonality and apply the identified trend.\n"
        "3. Explain the reasoning concisely, citing specific months or trends observed.\n"
        "4. Summarize the trend in a short label (e.g., 'Seasonal Uptrend', "
        "'Declining Volatility').\n"
    )


def build_response_format() -> ResponseFormatTextJSONSchemaConfigParam:
    """Return the strict JSON Schema ``text.format`` object.

    The item count is not expressed in the schema; callers validate that
    exactly ``FORECAST_HORIZON`` items come back.

    Schema shape::

        {"forecast": [{"date": "YYYY-MM", "amount": number}, ...],
         "reasoning": string, "trend": string}
    """

    result: ResponseFormatTextJSONSchemaConfigParam = {
        "type": "json_schema",
        "name": "ar_forecast",
        "schema": {
            "type": "object",
            "properties": {
                "forecast": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "date": {"type": "string", "description": "Format YYYY-MM"},
                            "amount": {"type": "number", "description": "Forecasted amount"},
                        },
                        "required": ["date", "amount"],
                        "additionalProperties": False,
                    },
                },
                "reasoning": {"type": "string"},
                "trend": {"type": "string"},
            },
            "required": ["forecast", "reasoning", "trend"],
            "additionalProperties": False,
        },
        "strict": True,
    }
    return result


__all__ = [
    "BEGIN_HISTORY",
    "END_HISTORY",
    "FORECAST_HORIZON",
    "build_response_format",
    "build_system_instructions",
    "build_user_content",
    "serialize_history_to_json",
]
