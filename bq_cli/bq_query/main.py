"""bq-query CLI entrypoint."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

import click

from bq_cli.shared.cli import CLIContext, common_cli_options, handle_cli_errors, pass_cli_context
from bq_cli.shared.exceptions import InputError

from . import commands
from .editor import (
    ConsoleOutputChannel,
    LoggerNotifier,
    Selection,
    TextDocumentEditor,
    TextEditor,
    selection_for_lines,
)
from .types import OutputFormat

OUTPUT_FORMAT_CHOICES = tuple(member.value for member in OutputFormat)

Handler = Callable[[commands.AppContext, TextEditor | None], Awaitable[bool]]

_PATH_ARGUMENT = click.argument(
    "path",
    required=False,
    type=click.Path(exists=True, dir_okay=False, allow_dash=True, path_type=str),
)
_FORMAT_OPTION = click.option(
    "--format",
    "output_format",
    type=click.Choice(OUTPUT_FORMAT_CHOICES, case_sensitive=False),
    help="Override the configured output format for this command.",
)


@click.group(help="Run SQL files against BigQuery and print the results.")
@common_cli_options
@handle_cli_errors
def cli(cli_ctx: CLIContext) -> None:
    """Primary Click group for bq-query commands."""
    cli_ctx.logger.debug("bq-query group initialised.")


@cli.command("run")
@_PATH_ARGUMENT
@_FORMAT_OPTION
@pass_cli_context
@handle_cli_errors
def run_as_query(cli_ctx: CLIContext, path: str | None, output_format: str | None) -> None:
    """Run the whole file (or stdin with '-') as a query."""
    _dispatch(cli_ctx, commands.run_query, lambda: _open_editor(path), output_format)


@cli.command("run-selected")
@_PATH_ARGUMENT
@click.option("--lines", "line_range", metavar="START-END", help="Select whole lines (1-based, inclusive).")
@click.option("--range", "char_range", metavar="START:END", help="Select a character range [START, END).")
@_FORMAT_OPTION
@pass_cli_context
@handle_cli_errors
def run_selected_as_query(
    cli_ctx: CLIContext,
    path: str | None,
    line_range: str | None,
    char_range: str | None,
    output_format: str | None,
) -> None:
    """Run only the selected part of the file as a query."""
    if line_range and char_range:
        raise click.UsageError("Use either --lines or --range, not both.")

    def build_editor() -> TextEditor | None:
        editor = _open_editor(path)
        if editor is None:
            return None
        if line_range:
            start, end = _parse_range(line_range, "-", "--lines")
            editor.selection = selection_for_lines(editor.text, start, end)
        elif char_range:
            start, end = _parse_range(char_range, ":", "--range")
            editor.selection = Selection(start, end)
        return editor

    _dispatch(cli_ctx, commands.run_selected_query, build_editor, output_format)


@cli.command("dry-run")
@_PATH_ARGUMENT
@pass_cli_context
@handle_cli_errors
def dry_run(cli_ctx: CLIContext, path: str | None) -> None:
    """Report the bytes the file's query would process without running it."""
    _dispatch(cli_ctx, commands.dry_run, lambda: _open_editor(path), None)


def _open_editor(path: str | None) -> TextDocumentEditor | None:
    if path is None:
        return None
    if path == "-":
        return TextDocumentEditor(text=click.get_text_stream("stdin").read())
    return TextDocumentEditor.from_path(path)


def _parse_range(raw: str, separator: str, option: str) -> tuple[int, int]:
    start, sep, end = raw.partition(separator)
    try:
        if not sep:
            raise ValueError
        return int(start), int(end)
    except ValueError:
        raise InputError(f"{option} expects START{separator}END, got '{raw}'.") from None


def _dispatch(
    cli_ctx: CLIContext,
    handler: Handler,
    build_editor: Callable[[], TextEditor | None],
    output_format: str | None,
) -> None:
    app = commands.AppContext(
        config=cli_ctx.config,
        output=ConsoleOutputChannel(logger=cli_ctx.logger),
        notifier=LoggerNotifier(cli_ctx.logger),
        logger=cli_ctx.logger,
        output_format_override=OutputFormat.parse(output_format) if output_format else None,
    )
    try:
        editor = build_editor()
    except InputError as exc:
        app.notifier.error(str(exc))
        raise click.exceptions.Exit(1) from exc

    if not asyncio.run(handler(app, editor)):
        raise click.exceptions.Exit(1)


def main() -> None:
    """Entry point for console_scripts."""
    cli()


if __name__ == "__main__":  # pragma: no cover
    main()
