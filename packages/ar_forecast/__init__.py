"""Public interface for the ``ar_forecast`` package.

Accounts-receivable billing CSV → monthly time series (portfolio total and
per account class) → 6-month forecast from an LLM. This module only
re-exports the stable import surface.
"""

from .api import aload_dataset, aparse_csv, load_dataset, parse_csv
from .chart import build_chart_points
from .errors import (
    ArForecastError,
    CsvInputError,
    EmptyFileError,
    ForecastConfigError,
    ForecastError,
    ForecastRateLimitError,
    ForecastServiceError,
    InsufficientHistoryError,
    MalformedForecastError,
    MissingColumnsError,
    NoProcessableDataError,
    TooFewLinesError,
    UnknownSegmentError,
)
from .forecast import classify_trend, forecast_segment, forecast_series
from .models import (
    TOTAL_SEGMENT,
    ChartPoint,
    Dataset,
    ForecastResult,
    MonthlyPoint,
    segment_label,
)

__all__ = [
    # API
    "aload_dataset",
    "aparse_csv",
    "build_chart_points",
    "classify_trend",
    "forecast_segment",
    "forecast_series",
    "load_dataset",
    "parse_csv",
    "segment_label",
    # Models / types
    "TOTAL_SEGMENT",
    "ChartPoint",
    "Dataset",
    "ForecastResult",
    "MonthlyPoint",
    # Errors
    "ArForecastError",
    "CsvInputError",
    "EmptyFileError",
    "ForecastConfigError",
    "ForecastError",
    "ForecastRateLimitError",
    "ForecastServiceError",
    "InsufficientHistoryError",
    "MalformedForecastError",
    "MissingColumnsError",
    "NoProcessableDataError",
    "TooFewLinesError",
    "UnknownSegmentError",
]
