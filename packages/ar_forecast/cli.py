"""CLI for the ``ar_forecast`` package.

This module exposes callable command handlers (``cmd_summary``,
``cmd_forecast``) and a Typer-based console interface. Environment variables
(notably ``OPENAI_API_KEY``) are loaded from a local ``.env`` using
``python-dotenv`` before delegating to command logic. Business logic lives in
``ar_forecast.api`` and ``ar_forecast.forecast``.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from typer.models import OptionInfo

from .api import load_dataset
from .chart import build_chart_points
from .errors import (
    CsvInputError,
    ForecastConfigError,
    ForecastError,
    ForecastRateLimitError,
    InsufficientHistoryError,
)
from .forecast import classify_trend, forecast_series
from .logging_setup import configure_logging
from .models import TOTAL_SEGMENT, Dataset, segment_label

console = Console()

_TREND_STYLE = {"up": "[green]▲[/green]", "down": "[red]▼[/red]", "flat": "[dim]–[/dim]"}


def _err(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)


def _load(csv_path: str | Path) -> Dataset | None:
    """Load ``csv_path`` and report failures on stderr (``None`` on failure)."""

    try:
        return load_dataset(csv_path)
    except FileNotFoundError:
        _err(f"File not found: {csv_path}")
    except PermissionError:
        _err(f"Permission denied: {csv_path}")
    except UnicodeDecodeError:
        _err(f"File is not UTF-8 text: {csv_path}")
    except IsADirectoryError:
        _err(f"Not a file: {csv_path}")
    except OSError as e:
        _err(f"Could not read {csv_path}: {e.strerror or e}")
    except CsvInputError as e:
        _err(str(e))
    return None


def _fmt_amount(value: float | None) -> str:
    return "" if value is None else f"{value:,.2f}"


def cmd_summary(csv_path: str | Path, *, segment: str = TOTAL_SEGMENT) -> int:
    """Parse ``csv_path`` and print one segment's monthly series.

    Returns ``0`` on success and ``1`` after writing an error to stderr.
    """

    dataset = _load(csv_path)
    if dataset is None:
        return 1
    try:
        series = dataset.series_for(segment)
    except CsvInputError as e:
        _err(str(e))
        return 1

    console.print(segment_label(segment), style="bold", markup=False)
    table = Table()
    table.add_column("Month")
    table.add_column("Amount", justify="right")
    for point in series:
        table.add_row(point.date, _fmt_amount(point.amount))
    console.print(table)

    classes = ", ".join(dataset.available_classes)
    console.print(f"Months: {len(series)}  Account classes: {classes}", markup=False)
    return 0


def cmd_forecast(
    csv_path: str | Path,
    *,
    segment: str = TOTAL_SEGMENT,
    as_json: bool = False,
) -> int:
    """Parse ``csv_path``, forecast one segment and print the result.

    Errors are written to stderr and the function returns ``1``. A rate limit
    is reported with a hint to retry later; other service failures with a hint
    to check the configuration.
    """

    dataset = _load(csv_path)
    if dataset is None:
        return 1

    label = segment_label(segment)
    try:
        history = dataset.series_for(segment)
        result = forecast_series(history, label)
    except CsvInputError as e:
        _err(str(e))
        return 1
    except InsufficientHistoryError as e:
        _err(str(e))
        return 1
    except ForecastRateLimitError as e:
        _err(f"{e}. Wait a minute before retrying.")
        return 1
    except ForecastConfigError as e:
        _err(str(e))
        return 1
    except ForecastError as e:
        _err(f"{e}. Check the API key and model configuration, then retry.")
        return 1

    if as_json:
        print(json.dumps({"segment": label, **result.to_dict()}, ensure_ascii=False))
        return 0

    console.print(f"{label}: history and forecast", style="bold", markup=False)
    table = Table()
    table.add_column("Month")
    table.add_column("Actual", justify="right")
    table.add_column("Forecast", justify="right")
    for point in build_chart_points(history, result):
        table.add_row(point.date, _fmt_amount(point.actual), _fmt_amount(point.forecast))
    console.print(table)

    direction = classify_trend(result.trend)
    console.print(f"Trend: {_TREND_STYLE[direction]} {escape(result.trend)}")
    console.print(Panel(Text(result.reasoning), title="Reasoning", border_style="cyan"))
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Aggregate an accounts-receivable billing CSV into monthly series and forecast "
        "the next 6 months using OpenAI (Responses API). Loads OPENAI_API_KEY from a "
        "local .env before running."
    ),
)


# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults).
CSV_PATH_OPTION: OptionInfo = typer.Option(
    ...,
    "--csv-path",
    help="Path to the billing CSV (columns: billPeriod, amount, optional accountClass)",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports missing files itself
)

SEGMENT_OPTION: OptionInfo = typer.Option(
    "--segment",
    help="Segment to show: ALL for the portfolio total, or an account class name.",
)


@app.command("summary")
def summary_cmd(
    csv_path: Annotated[Path, CSV_PATH_OPTION],
    segment: Annotated[str, SEGMENT_OPTION] = TOTAL_SEGMENT,
) -> None:
    """Print the monthly series for one segment."""

    code = cmd_summary(csv_path, segment=segment)
    if code:
        raise typer.Exit(code)


@app.command("forecast")
def forecast_cmd(
    csv_path: Annotated[Path, CSV_PATH_OPTION],
    segment: Annotated[str, SEGMENT_OPTION] = TOTAL_SEGMENT,
    as_json: bool = typer.Option(False, "--json", help="Print the forecast as JSON."),
) -> None:
    """Forecast the next 6 months for one segment."""

    code = cmd_forecast(csv_path, segment=segment, as_json=as_json)
    if code:
        raise typer.Exit(code)


@app.callback()
def _root(
    log_level: str | None = typer.Option(
        None, help="Log level (defaults to AR_FORECAST_LOG_LEVEL, then INFO)."
    ),
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures package logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
