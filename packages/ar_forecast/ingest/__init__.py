"""CSV ingestion stages: line tokenizing, header resolution, row normalization."""

from .headers import ColumnMap, normalize_header, resolve_columns
from .rows import RowDiscard, ValidRow, classify_row, normalize_class, normalize_month, parse_amount
from .tokenizer import split_csv_line

__all__ = [
    "ColumnMap",
    "RowDiscard",
    "ValidRow",
    "classify_row",
    "normalize_class",
    "normalize_header",
    "normalize_month",
    "parse_amount",
    "resolve_columns",
    "split_csv_line",
]
