"""Public API for ``ar_forecast``: CSV text → :class:`Dataset`.

Control flow for one submission::

    tokenize header → resolve columns → (tokenize → classify → fold) per row
    → build dataset

Input errors (empty file, no data rows, missing columns, nothing processable)
are raised as :class:`~ar_forecast.errors.CsvInputError` subclasses. Row
defects are skipped and only counted in the ``parse_csv:summary`` log line.
"""

from __future__ import annotations

import asyncio
import re
from os import PathLike
from pathlib import Path

from .aggregate import MonthlyAggregator
from .errors import EmptyFileError, TooFewLinesError
from .ingest.headers import resolve_columns
from .ingest.rows import classify_row
from .ingest.tokenizer import split_csv_line
from .logging_setup import get_logger
from .models import Dataset

_LINE_SPLIT_RE = re.compile(r"\r?\n")

_logger = get_logger("ar_forecast.api")


def parse_csv(text: str, *, delimiter: str = ",") -> Dataset:
    """Parse a billing CSV export into monthly series.

    The first line is always the header. Blank lines are ignored; rows that
    are short, lack a date or amount, or fail normalization are skipped.

    Raises
    ------
    EmptyFileError
        ``text`` is empty or whitespace only.
    TooFewLinesError
        There is no line after the header.
    MissingColumnsError
        The header has no ``billPeriod``/``monthly`` or no ``amount`` column.
    NoProcessableDataError
        No data row survived normalization.
    """

    if not text or not text.strip():
        raise EmptyFileError("CSV file is empty")

    lines = _LINE_SPLIT_RE.split(text)
    if len(lines) < 2:
        raise TooFewLinesError("CSV file needs a header row and at least one data row")

    columns = resolve_columns(split_csv_line(lines[0], delimiter), raw_header=lines[0])
    _logger.debug(
        "parse_csv:columns date=%d amount=%d account_class=%s",
        columns.date,
        columns.amount,
        columns.account_class,
    )

    aggregator = MonthlyAggregator()
    for line in lines[1:]:
        stripped = line.strip()
        if not stripped:
            continue
        aggregator.fold(classify_row(split_csv_line(stripped, delimiter), columns))

    _logger.info(
        "parse_csv:summary valid_rows=%d skipped=%d reasons=%s",
        aggregator.valid_rows,
        sum(aggregator.discards.values()),
        ",".join(f"{k}:{v}" for k, v in sorted(aggregator.discards.items())) or "-",
    )

    dataset = aggregator.build()
    _logger.info(
        "parse_csv:dataset months=%d classes=%d",
        len(dataset.total_by_date),
        len(dataset.available_classes),
    )
    return dataset


async def aparse_csv(text: str, *, delimiter: str = ",") -> Dataset:
    """Awaitable :func:`parse_csv`. The parse runs to completion without yielding."""

    return parse_csv(text, delimiter=delimiter)


def load_dataset(csv_path: str | PathLike[str], *, delimiter: str = ",") -> Dataset:
    """Read ``csv_path`` as UTF-8 (BOM tolerated) and parse it."""

    text = Path(csv_path).read_text(encoding="utf-8-sig")
    return parse_csv(text, delimiter=delimiter)


async def aload_dataset(csv_path: str | PathLike[str], *, delimiter: str = ",") -> Dataset:
    """Read the file off the event loop, then parse it in one step."""

    text = await asyncio.to_thread(Path(csv_path).read_text, encoding="utf-8-sig")
    return parse_csv(text, delimiter=delimiter)


__all__ = ["aload_dataset", "aparse_csv", "load_dataset", "parse_csv"]
