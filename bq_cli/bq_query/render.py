"""Output rendering helpers for bq-query."""

from __future__ import annotations

import base64
import csv
import io
import json
from collections.abc import Mapping, Sequence
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Callable

from rich import box
from rich.cells import cell_len
from rich.console import Console
from rich.table import Table
from rich.text import Text

from bq_cli.shared.logging import Logger, get_logger

from .flatten import explode, flatten
from .types import OutputFormat, Row


def format_rows(
    rows: Sequence[Row],
    output_format: OutputFormat | str,
    *,
    pretty_print: bool,
    logger: Logger | None = None,
) -> list[str]:
    """Render ``rows`` and return the lines to append to the output surface."""
    log = logger or get_logger()
    fmt = OutputFormat.parse(output_format)
    handler = _HANDLERS.get(fmt, _render_json)
    return handler(rows, pretty_print, log)


def format_result(
    rows: Sequence[Row],
    output_format: OutputFormat | str,
    *,
    pretty_print: bool,
    logger: Logger | None = None,
) -> str:
    """Render ``rows`` as a single block of text."""
    return "\n".join(format_rows(rows, output_format, pretty_print=pretty_print, logger=logger))


def _render_json(rows: Sequence[Row], pretty_print: bool, logger: Logger) -> list[str]:
    if pretty_print:
        options: dict[str, Any] = {"indent": 2}
    else:
        options = {"separators": (",", ":")}
    return [
        json.dumps(flatten(row), default=_json_default, ensure_ascii=False, **options)
        for row in rows
    ]


def _render_csv(rows: Sequence[Row], pretty_print: bool, logger: Logger) -> list[str]:
    if not rows:
        return []
    buffer = io.StringIO()
    try:
        writer = csv.DictWriter(buffer, fieldnames=_collect_columns(rows), lineterminator="\n")
        writer.writeheader()
        for row in rows:
            writer.writerow({key: _csv_cell(value) for key, value in row.items()})
    except (csv.Error, TypeError, ValueError) as exc:
        # CSV failures are non-fatal: nothing is printed for this result set.
        logger.warning(f"Failed to encode results as CSV: {exc}")
        return []
    return [buffer.getvalue().rstrip("\n")]


def _render_table(rows: Sequence[Row], pretty_print: bool, logger: Logger) -> list[str]:
    sub_rows = [sub_row for row in rows for sub_row in explode(row)]
    columns = _collect_columns(sub_rows)
    if not columns:
        logger.debug("Table output has no columns to render.")
        return []

    table = Table(
        box=box.SIMPLE_HEAVY,
        show_header=True,
        header_style="bold",
        show_edge=False,
        pad_edge=False,
    )
    widths = {column: cell_len(column) for column in columns}
    for column in columns:
        table.add_column(Text(column), no_wrap=True)
    for sub_row in sub_rows:
        cells = [_stringify(sub_row.get(column)) for column in columns]
        for column, cell in zip(columns, cells):
            widths[column] = max(widths[column], cell_len(cell))
        table.add_row(*[Text(cell) for cell in cells])

    buffer = io.StringIO()
    # Wide enough that Rich never wraps or truncates a cell.
    width = sum(widths.values()) + 3 * len(columns) + 1
    console = Console(
        file=buffer,
        width=width,
        color_system=None,
        force_terminal=False,
        highlight=False,
    )
    console.print(table)
    lines = [line.rstrip() for line in buffer.getvalue().splitlines()]
    while lines and not lines[0]:
        lines.pop(0)
    # Header, rule, then exactly one line per sub-row; an all-blank sub-row is an empty line.
    return lines[: 2 + len(sub_rows)]


_HANDLERS: dict[OutputFormat, Callable[[Sequence[Row], bool, Logger], list[str]]] = {
    OutputFormat.JSON: _render_json,
    OutputFormat.CSV: _render_csv,
    OutputFormat.TABLE: _render_table,
}


def _collect_columns(rows: Sequence[Mapping[str, Any]]) -> list[str]:
    columns: dict[str, None] = {}
    for row in rows:
        for key in row:
            columns.setdefault(str(key), None)
    return list(columns)


def _csv_cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, default=_json_default, separators=(",", ":"), ensure_ascii=False)
    if isinstance(value, (datetime, date, time, Decimal, bytes)):
        return _json_default(value)
    return value


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (datetime, date, time, Decimal, bytes)):
        value = _json_default(value)
    return str(value).replace("\n", "\\n")


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, bytes):
        return base64.b64encode(value).decode("ascii")
    # INTERVAL (relativedelta), GEOGRAPHY and future scalar types print as text.
    return str(value)
