"""Header resolution: map raw header names to the date/amount/class roles."""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

from ..errors import MissingColumnsError

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")

# Lookup chains per role, tried in order against normalized headers.
DATE_HEADERS: tuple[str, ...] = ("billperiod", "monthly")
AMOUNT_HEADERS: tuple[str, ...] = ("amount",)
# "account_class" can never equal a normalized header (underscores are
# stripped); it stays last in the chain for compatibility with older exports.
CLASS_HEADERS: tuple[str, ...] = ("accountclass", "actcode", "account_class")


def normalize_header(name: str) -> str:
    """Lower-case ``name`` and drop everything except ``[a-z0-9]``.

    >>> normalize_header("Bill Period")
    'billperiod'
    """

    return _NON_ALNUM_RE.sub("", name.lower())


@dataclass(frozen=True, slots=True)
class ColumnMap:
    """Zero-based indices of the semantic columns.

    ``account_class`` is ``None`` when the file has no class column.
    """

    date: int
    amount: int
    account_class: int | None = None

    @property
    def required_width(self) -> int:
        """Minimum number of fields a row needs to carry date and amount."""

        return max(self.date, self.amount) + 1


def _first_index(normalized: Sequence[str], candidates: Sequence[str]) -> int | None:
    for candidate in candidates:
        try:
            return normalized.index(candidate)
        except ValueError:
            continue
    return None


def resolve_columns(header_fields: Sequence[str], *, raw_header: str | None = None) -> ColumnMap:
    """Resolve role indices from a tokenized header row.

    Raises :class:`~ar_forecast.errors.MissingColumnsError` when the date or
    amount column cannot be found. ``raw_header`` (the untokenized line) is
    echoed in the message when given.
    """

    normalized = [normalize_header(h) for h in header_fields]

    date_idx = _first_index(normalized, DATE_HEADERS)
    amount_idx = _first_index(normalized, AMOUNT_HEADERS)
    class_idx = _first_index(normalized, CLASS_HEADERS)

    if date_idx is None or amount_idx is None:
        missing: list[str] = []
        if date_idx is None:
            missing.append("'billPeriod'")
        if amount_idx is None:
            missing.append("'amount'")
        found = raw_header if raw_header is not None else ",".join(header_fields)
        raise MissingColumnsError(
            "Invalid CSV format: missing required column(s) "
            + " and ".join(missing)
            + f" (headers found: {found})"
        )

    return ColumnMap(date=date_idx, amount=amount_idx, account_class=class_idx)


__all__ = [
    "AMOUNT_HEADERS",
    "CLASS_HEADERS",
    "DATE_HEADERS",
    "ColumnMap",
    "normalize_header",
    "resolve_columns",
]
