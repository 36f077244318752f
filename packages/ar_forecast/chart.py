"""Merge history and forecast into one chronological display series."""

from __future__ import annotations

from collections.abc import Sequence

from .models import ChartPoint, ForecastResult, MonthlyPoint


def build_chart_points(
    history: Sequence[MonthlyPoint],
    forecast: ForecastResult | None = None,
) -> list[ChartPoint]:
    """Return history points followed by forecast points.

    When a forecast is present, the last history point also carries its own
    amount as ``forecast`` so the actual and forecast lines connect.
    """

    if not history:
        return []

    points = [ChartPoint(date=p.date, actual=p.amount, forecast=None) for p in history]
    if forecast is None:
        return points

    last = history[-1]
    points[-1] = ChartPoint(date=last.date, actual=last.amount, forecast=last.amount)
    points.extend(ChartPoint(date=p.date, actual=None, forecast=p.amount) for p in forecast.forecast)
    return points


__all__ = ["build_chart_points"]
