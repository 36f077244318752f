"""Data models for ``ar_forecast``.

The canonical time axis is the *month key*: a fixed-width ``YYYY-MM`` string.
Because the width is fixed, lexicographic order of month keys equals
chronological order, and every sort in this package relies on that.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, TypeAlias

from .errors import UnknownSegmentError

MONTH_KEY_RE = re.compile(r"^\d{4}-\d{2}$")

# Segment key selecting the portfolio total rather than a single account class.
TOTAL_SEGMENT = "ALL"
TOTAL_SEGMENT_LABEL = "Total Portfolio"

# Placeholder classes. ``UNCLASSIFIED`` is used when the file has no class
# column at all; ``UNKNOWN_CLASS`` when the column exists but the cell is blank.
UNCLASSIFIED = "Unclassified"
UNKNOWN_CLASS = "Unknown"


@dataclass(frozen=True, slots=True)
class MonthlyPoint:
    """One month of a series: a canonical month key and an amount.

    ``amount`` may be negative (credits/adjustments) but must be finite.
    """

    date: str
    amount: float

    def __post_init__(self) -> None:
        if not isinstance(self.date, str) or not MONTH_KEY_RE.fullmatch(self.date):
            raise ValueError(f"MonthlyPoint.date must be a YYYY-MM string, got {self.date!r}")
        if isinstance(self.amount, bool) or not isinstance(self.amount, (int, float)):
            raise ValueError(f"MonthlyPoint.amount must be a number, got {self.amount!r}")
        if not math.isfinite(self.amount):
            raise ValueError(f"MonthlyPoint.amount must be finite, got {self.amount!r}")

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date, "amount": self.amount}


Series: TypeAlias = tuple[MonthlyPoint, ...]
"""An ascending, duplicate-free sequence of monthly points."""


def segment_label(segment: str) -> str:
    """Human-readable label for a segment key, as sent to the forecaster."""

    if segment == TOTAL_SEGMENT:
        return TOTAL_SEGMENT_LABEL
    return f"Account Class: {segment}"


@dataclass(frozen=True, slots=True)
class Dataset:
    """Aggregated monthly series for one CSV submission.

    Attributes
    ----------
    total_by_date:
        Portfolio totals, ascending by month, one point per distinct month.
    by_class:
        Read-only mapping from account class to that class's series. Keys are
        stored in sorted order.
    available_classes:
        Distinct class names, sorted lexicographically.

    A dataset is built once per submission and never mutated; a new file
    produces a new dataset.
    """

    total_by_date: Series
    by_class: Mapping[str, Series] = field(default_factory=lambda: MappingProxyType({}))
    available_classes: tuple[str, ...] = ()

    def series_for(self, segment: str = TOTAL_SEGMENT) -> Series:
        """Return the series for ``segment`` (``"ALL"`` or a class name).

        Raises :class:`~ar_forecast.errors.UnknownSegmentError` when the class
        has no data.
        """

        if segment == TOTAL_SEGMENT:
            return self.total_by_date
        series = self.by_class.get(segment)
        if not series:
            raise UnknownSegmentError(f"No data for account class {segment!r}")
        return series

    def to_dict(self) -> dict[str, Any]:
        """Return the wire shape (camelCase keys, deterministic key order)."""

        return {
            "totalByDate": [p.to_dict() for p in self.total_by_date],
            "byClass": {
                cls: [p.to_dict() for p in self.by_class[cls]] for cls in sorted(self.by_class)
            },
            "availableClasses": list(self.available_classes),
        }


@dataclass(frozen=True, slots=True)
class ForecastResult:
    """Forecast returned by the forecasting service for one segment.

    ``forecast`` holds the predicted months following the last history month;
    ``trend`` is a short free-text label such as ``"Seasonal Uptrend"``.
    """

    forecast: Series
    reasoning: str
    trend: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "forecast": [p.to_dict() for p in self.forecast],
            "reasoning": self.reasoning,
            "trend": self.trend,
        }


@dataclass(frozen=True, slots=True)
class ChartPoint:
    """A merged history/forecast point for display.

    Exactly one of ``actual``/``forecast`` is set, except on the last history
    point of a forecasted series, which carries both so the two lines join.
    """

    date: str
    actual: float | None
    forecast: float | None


__all__ = [
    "MONTH_KEY_RE",
    "TOTAL_SEGMENT",
    "TOTAL_SEGMENT_LABEL",
    "UNCLASSIFIED",
    "UNKNOWN_CLASS",
    "ChartPoint",
    "Dataset",
    "ForecastResult",
    "MonthlyPoint",
    "Series",
    "segment_label",
]
