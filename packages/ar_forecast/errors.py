"""Exception taxonomy for ``ar_forecast``.

Input errors derive from ``ValueError`` and collaborator errors from
``RuntimeError`` so callers that only know the builtin hierarchy still catch
them. Row-level defects are never raised; see :mod:`ar_forecast.ingest.rows`.
"""

from __future__ import annotations


class ArForecastError(Exception):
    """Base class for all errors raised by this package."""


# ---------------------------------------------------------------------------
# Input errors (fatal to the current parse)
# ---------------------------------------------------------------------------


class CsvInputError(ArForecastError, ValueError):
    """The submitted CSV cannot be turned into a dataset."""


class EmptyFileError(CsvInputError):
    pass


class MissingColumnsError(CsvInputError):
    pass


class NoProcessableDataError(CsvInputError):
    pass


class TooFewLinesError(NoProcessableDataError):
    """Only a header line (or a single line) was submitted."""


class UnknownSegmentError(CsvInputError):
    """The requested segment has no monthly data in the dataset."""


class InsufficientHistoryError(ArForecastError, ValueError):
    """Fewer monthly points than a forecast requires."""

    def __init__(self, available: int, required: int) -> None:
        self.available = available
        self.required = required
        super().__init__(
            f"Insufficient history: only {available} month(s) available "
            f"(at least {required} required for a forecast)"
        )


# ---------------------------------------------------------------------------
# Forecasting collaborator errors
# ---------------------------------------------------------------------------


class ForecastError(ArForecastError, RuntimeError):
    """The forecasting service could not produce a result."""


class ForecastConfigError(ForecastError):
    """Client configuration is missing or invalid (e.g. no API key)."""


class ForecastRateLimitError(ForecastError):
    """The service is rate limiting requests; retry after a delay."""


class ForecastServiceError(ForecastError):
    """The service call failed for a reason other than rate limiting."""


class MalformedForecastError(ForecastError):
    """The service answered, but not with a usable forecast."""


__all__ = [
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
