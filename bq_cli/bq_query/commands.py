"""Command handlers: editor text in, BigQuery job out, results to the output surface."""

from __future__ import annotations

from dataclasses import dataclass

from bq_cli.shared.config import ConfigurationManager, QuerySettings
from bq_cli.shared.exceptions import BqCliError, InputError
from bq_cli.shared.logging import Logger

from .editor import Notifier, OutputSurface, TextEditor
from .executor import ClientFactory, execute_query
from .render import format_rows
from .types import JobOutcome, OutputFormat, QueryRequest


@dataclass(slots=True)
class AppContext:
    """Process-wide state handed to every command handler."""

    config: ConfigurationManager
    output: OutputSurface
    notifier: Notifier
    logger: Logger
    client_factory: ClientFactory | None = None
    output_format_override: OutputFormat | None = None

    def settings(self) -> QuerySettings:
        settings = self.config.current
        if self.output_format_override is not None:
            settings = settings.with_output_format(self.output_format_override)
        return settings


def get_query_text(editor: TextEditor | None, only_selected: bool = False) -> str:
    """Return the trimmed query text from ``editor`` or raise ``InputError``."""
    if editor is None:
        raise InputError("No active editor window was found")

    if only_selected:
        selection = editor.selection
        if selection.is_empty:
            raise InputError("No text is currently selected")
        text = editor.get_text(selection).strip()
        if not text:
            raise InputError("The selected text is empty")
        return text

    text = editor.get_text().strip()
    if not text:
        raise InputError("The editor window is empty")
    return text


async def run_query(ctx: AppContext, editor: TextEditor | None) -> bool:
    """Run the whole document as a query."""
    return await _run(ctx, editor, only_selected=False, dry_run=False)


async def run_selected_query(ctx: AppContext, editor: TextEditor | None) -> bool:
    """Run the current selection as a query."""
    return await _run(ctx, editor, only_selected=True, dry_run=False)


async def dry_run(ctx: AppContext, editor: TextEditor | None) -> bool:
    """Estimate the bytes the whole document would scan without running it."""
    return await _run(ctx, editor, only_selected=False, dry_run=True)


async def _run(ctx: AppContext, editor: TextEditor | None, *, only_selected: bool, dry_run: bool) -> bool:
    try:
        ctx.config.refresh_if_changed()
        request = QueryRequest(
            query_text=get_query_text(editor, only_selected),
            dry_run=dry_run,
            settings=ctx.settings(),
        )
        ctx.logger.debug(f"Submitting {'dry run' if dry_run else 'query'} ({len(request.query_text)} chars).")
        outcome = await execute_query(
            request.query_text,
            request.settings,
            dry_run=request.dry_run,
            client_factory=ctx.client_factory,
            on_submitted=lambda job_id: ctx.notifier.info(f"BigQuery job ID: {job_id}"),
            logger=ctx.logger,
        )
    except BqCliError as exc:
        ctx.notifier.error(str(exc))
        return False

    write_results(ctx, request, outcome)
    return True


def write_results(ctx: AppContext, request: QueryRequest, outcome: JobOutcome) -> None:
    """Format ``outcome`` and append it to the output surface."""
    settings = request.settings
    if outcome.is_dry_run:
        lines = [
            f"Results for job {outcome.job_id} (dry run):",
            f"Total bytes processed: {outcome.bytes_processed}",
        ]
    else:
        lines = [f"Results for job {outcome.job_id}:"]
        lines.extend(
            format_rows(
                outcome.rows or [],
                settings.output_format,
                pretty_print=settings.pretty_print_json,
                logger=ctx.logger,
            )
        )

    ctx.output.show(settings.preserve_focus)
    for line in lines:
        ctx.output.append_line(line)
