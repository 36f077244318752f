"""Monthly aggregation and dataset assembly.

:class:`MonthlyAggregator` folds validated rows into two running maps
(total-by-month and class-by-month) for the duration of one parse pass, then
materializes an immutable :class:`~ar_forecast.models.Dataset`. Ordering in
the result comes from sorting month keys and class names, never from dict
insertion order, so identical input yields an identical dataset.
"""

from __future__ import annotations

import math
from collections import Counter, defaultdict
from collections.abc import Mapping
from decimal import Decimal
from types import MappingProxyType

from .errors import NoProcessableDataError
from .ingest.rows import AMOUNT_OVERFLOW, RowDiscard, ValidRow
from .models import Dataset, MonthlyPoint, Series

_ZERO = Decimal(0)


def _fits_float(value: Decimal) -> bool:
    return math.isfinite(float(value))


def _to_series(by_month: Mapping[str, Decimal]) -> Series:
    # Month keys are fixed-width YYYY-MM, so string order is chronological.
    return tuple(MonthlyPoint(date=month, amount=float(by_month[month])) for month in sorted(by_month))


class MonthlyAggregator:
    """Accumulate validated rows into per-month sums.

    Sums are kept as :class:`~decimal.Decimal` so that the class breakdown and
    the portfolio total for a month are computed exactly from the same rows;
    conversion to ``float`` happens once, in :meth:`build`.
    """

    def __init__(self) -> None:
        self._total: defaultdict[str, Decimal] = defaultdict(Decimal)
        self._by_class: defaultdict[str, defaultdict[str, Decimal]] = defaultdict(
            lambda: defaultdict(Decimal)
        )
        self._classes: set[str] = set()
        self.valid_rows = 0
        self.discards: Counter[str] = Counter()

    def add(self, row: ValidRow) -> None:
        """Add ``row`` to its month and class sums.

        A row that would push either sum out of float range is discarded as
        ``amount_overflow`` instead, leaving both sums untouched.
        """

        total = self._total.get(row.month, _ZERO) + row.amount
        class_total = self._by_class.get(row.account_class, {}).get(row.month, _ZERO) + row.amount
        if not (_fits_float(total) and _fits_float(class_total)):
            self.discard(RowDiscard(AMOUNT_OVERFLOW))
            return

        self._total[row.month] = total
        self._by_class[row.account_class][row.month] = class_total
        self._classes.add(row.account_class)
        self.valid_rows += 1

    def discard(self, row: RowDiscard) -> None:
        self.discards[row.reason] += 1

    def fold(self, row: ValidRow | RowDiscard) -> None:
        """Route a classified row to :meth:`add` or :meth:`discard`."""

        if isinstance(row, ValidRow):
            self.add(row)
        else:
            self.discard(row)

    def build(self) -> Dataset:
        """Materialize the sorted dataset.

        Raises :class:`~ar_forecast.errors.NoProcessableDataError` when no row
        survived normalization.
        """

        if self.valid_rows == 0:
            raise NoProcessableDataError(
                "No processable data found: check that billPeriod uses the YYYYMM "
                "format and that amount is numeric"
            )

        classes = tuple(sorted(self._classes))
        by_class = {cls: _to_series(self._by_class[cls]) for cls in classes}
        return Dataset(
            total_by_date=_to_series(self._total),
            by_class=MappingProxyType(by_class),
            available_classes=classes,
        )


__all__ = ["MonthlyAggregator"]
