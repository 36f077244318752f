"""Per-row normalization: canonical month, numeric amount, account class.

Row-level defects are never raised. :func:`classify_row` returns either a
:class:`ValidRow` ready for aggregation or a :class:`RowDiscard` carrying the
reason, so the caller can count skips without aborting the batch.
"""

from __future__ import annotations

import math
import re
from collections.abc import Sequence
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from typing import NamedTuple

from ..models import UNCLASSIFIED, UNKNOWN_CLASS
from .headers import ColumnMap

_NON_DIGIT_RE = re.compile(r"\D")

# Discard reasons
SHORT_ROW = "short_row"
EMPTY_DATE = "empty_date"
EMPTY_AMOUNT = "empty_amount"
BAD_DATE = "bad_date"
BAD_AMOUNT = "bad_amount"
# Set by the aggregator: the row would push a monthly sum out of float range.
AMOUNT_OVERFLOW = "amount_overflow"

# Calendar formats tried, in order, when the digit-only forms do not apply.
# Parsed values carry no timezone and are taken as UTC calendar dates.
_CALENDAR_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%m-%d-%Y",
    "%m/%d/%y",
    "%Y-%m",
    "%Y/%m",
    "%m/%Y",
    "%m-%Y",
    "%d-%b-%Y",
    "%d-%b-%y",
    "%b-%Y",
)


class ValidRow(NamedTuple):
    month: str
    amount: Decimal
    account_class: str


class RowDiscard(NamedTuple):
    reason: str


def _month_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def _from_digits(digits: str) -> str | None:
    """Split a ``YYYYMM`` prefix into a month key; ``None`` if the month is invalid."""

    month = int(digits[4:6])
    if not 1 <= month <= 12:
        return None
    return f"{digits[:4]}-{digits[4:6]}"


def _parse_calendar(raw: str) -> datetime | None:
    s = raw.strip()
    try:
        parsed = datetime.fromisoformat(s)
    except ValueError:
        parsed = None
    if parsed is not None:
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(UTC)
        return parsed

    # Some exports append a time to the date; only the date part matters.
    candidates = [s]
    first = s.split()[0] if s.split() else s
    if first != s:
        candidates.append(first)
    for candidate in candidates:
        for fmt in _CALENDAR_FORMATS:
            try:
                return datetime.strptime(candidate, fmt).replace(tzinfo=UTC)
            except ValueError:
                continue
    return None


def normalize_month(raw: str) -> str | None:
    """Normalize a raw billing-period value to a ``YYYY-MM`` key.

    Tried in order, first match wins:

    1. 6 digits after removing non-digits: ``YYYYMM``.
    2. 8 digits: ``YYYYMMDD`` (the day is ignored).
    3. Values containing ``-`` or ``/``: calendar-date parsing in UTC.

    A digit form whose month is outside ``01..12`` is not accepted and falls
    through to step 3. Returns ``None`` when nothing applies.

    >>> normalize_month("202309"), normalize_month("20230915"), normalize_month("09/2023")
    ('2023-09', '2023-09', '2023-09')
    """

    digits = _NON_DIGIT_RE.sub("", raw)
    if len(digits) in (6, 8):
        key = _from_digits(digits)
        if key is not None:
            return key

    if "-" in raw or "/" in raw:
        parsed = _parse_calendar(raw)
        if parsed is not None:
            return _month_key(parsed.year, parsed.month)
    return None


def parse_amount(raw: str) -> Decimal | None:
    """Parse an amount after removing thousands separators.

    Returns ``None`` for anything that is not a finite decimal number.

    >>> parse_amount("1,234.50")
    Decimal('1234.50')
    """

    try:
        value = Decimal(raw.replace(",", "").strip())
    except InvalidOperation:
        return None
    if not value.is_finite() or not math.isfinite(float(value)):
        return None
    return value


def normalize_class(raw: str | None) -> str:
    """Trim a class value; blanks become ``"Unknown"``."""

    if raw is None:
        return UNKNOWN_CLASS
    cleaned = raw.strip()
    return cleaned if cleaned else UNKNOWN_CLASS


def classify_row(fields: Sequence[str], columns: ColumnMap) -> ValidRow | RowDiscard:
    """Validate one tokenized data row against the resolved columns."""

    if len(fields) < columns.required_width:
        return RowDiscard(SHORT_ROW)

    raw_date = fields[columns.date].strip()
    raw_amount = fields[columns.amount].strip()
    if columns.account_class is None:
        raw_class: str | None = UNCLASSIFIED
    elif columns.account_class < len(fields):
        raw_class = fields[columns.account_class]
    else:
        raw_class = None

    if not raw_date:
        return RowDiscard(EMPTY_DATE)
    if not raw_amount:
        return RowDiscard(EMPTY_AMOUNT)

    month = normalize_month(raw_date)
    if month is None:
        return RowDiscard(BAD_DATE)

    amount = parse_amount(raw_amount)
    if amount is None:
        return RowDiscard(BAD_AMOUNT)

    return ValidRow(month=month, amount=amount, account_class=normalize_class(raw_class))


__all__ = [
    "AMOUNT_OVERFLOW",
    "BAD_AMOUNT",
    "BAD_DATE",
    "EMPTY_AMOUNT",
    "EMPTY_DATE",
    "SHORT_ROW",
    "RowDiscard",
    "ValidRow",
    "classify_row",
    "normalize_class",
    "normalize_month",
    "parse_amount",
]
