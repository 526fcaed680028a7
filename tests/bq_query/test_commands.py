from __future__ import annotations

import asyncio
import json
from dataclasses import replace

import pytest
from dateutil.relativedelta import relativedelta
from google.api_core import exceptions as api_exceptions

from bq_cli.bq_query import commands
from bq_cli.bq_query.editor import Selection, TextDocumentEditor
from bq_cli.bq_query.types import OutputFormat
from bq_cli.shared.config import ConfigurationManager
from bq_cli.shared.exceptions import InputError


def test_get_query_text_requires_an_editor() -> None:
    with pytest.raises(InputError, match="No active editor"):
        commands.get_query_text(None)


def test_get_query_text_trims_document() -> None:
    editor = TextDocumentEditor(text="\n  SELECT 1  \n")

    assert commands.get_query_text(editor) == "SELECT 1"


def test_get_query_text_rejects_empty_document() -> None:
    with pytest.raises(InputError, match="empty"):
        commands.get_query_text(TextDocumentEditor(text="   \n"))


def test_get_query_text_uses_selection() -> None:
    text = "SELECT 1;\nSELECT 2;\n"
    editor = TextDocumentEditor(text=text, selection=Selection(10, 19))

    assert commands.get_query_text(editor, only_selected=True) == "SELECT 2;"


def test_get_query_text_rejects_empty_selection() -> None:
    editor = TextDocumentEditor(text="SELECT 1", selection=Selection(3, 3))

    with pytest.raises(InputError, match="No text is currently selected"):
        commands.get_query_text(editor, only_selected=True)


def test_run_query_writes_header_and_rows(app_context, fake_client) -> None:
    editor = TextDocumentEditor(text="SELECT name, total FROM t")

    assert asyncio.run(commands.run_query(app_context, editor)) is True

    assert app_context.output.shown == [True]
    assert app_context.output.lines[0] == "Results for job job_123:"
    assert json.loads(app_context.output.lines[1]) == {"name": "alpha", "total": 3}
    assert fake_client.calls[0]["query"] == "SELECT name, total FROM t"
    assert fake_client.job.result_calls == 1
    assert app_context.notifier.errors == []
    assert app_context.notifier.infos == ["BigQuery job ID: job_123"]


def test_run_selected_query_with_empty_selection_never_executes(app_context, fake_client) -> None:
    editor = TextDocumentEditor(text="SELECT 1")

    assert asyncio.run(commands.run_selected_query(app_context, editor)) is False

    assert app_context.notifier.errors == ["No text is currently selected"]
    assert fake_client.calls == []
    assert app_context.output.lines == []
    assert app_context.output.shown == []


def test_run_selected_query_submits_only_selection(app_context, fake_client) -> None:
    editor = TextDocumentEditor(text="SELECT 1;\nSELECT 2;\n", selection=Selection(0, 9))

    assert asyncio.run(commands.run_selected_query(app_context, editor)) is True

    assert fake_client.calls[0]["query"] == "SELECT 1;"


def test_dry_run_writes_summary_without_retrieval(app_context, make_client, make_job) -> None:
    client = make_client(make_job(job_id="job_dry", total_bytes_processed=4096))
    app_context.client_factory = lambda _settings: client

    assert asyncio.run(commands.dry_run(app_context, TextDocumentEditor(text="SELECT 1"))) is True

    assert app_context.output.lines == [
        "Results for job job_dry (dry run):",
        "Total bytes processed: 4096",
    ]
    assert client.job.result_calls == 0
    assert client.calls[0]["job_config"].dry_run is True


def test_execution_errors_are_notified_not_printed(app_context, make_client) -> None:
    client = make_client(error=api_exceptions.Unauthorized("bad credentials"))
    app_context.client_factory = lambda _settings: client

    assert asyncio.run(commands.run_query(app_context, TextDocumentEditor(text="SELECT 1"))) is False

    assert len(app_context.notifier.errors) == 1
    assert "bad credentials" in app_context.notifier.errors[0]
    assert app_context.output.lines == []


def test_failed_command_leaves_context_usable(app_context, fake_client) -> None:
    asyncio.run(commands.run_query(app_context, None))

    assert asyncio.run(commands.run_query(app_context, TextDocumentEditor(text="SELECT 1"))) is True
    assert app_context.notifier.errors == ["No active editor window was found"]
    assert app_context.output.lines[0] == "Results for job job_123:"


def test_output_respects_format_and_focus_settings(app_context, settings) -> None:
    app_context.config = ConfigurationManager(
        settings=replace(settings, output_format=OutputFormat.CSV, preserve_focus=False)
    )

    asyncio.run(commands.run_query(app_context, TextDocumentEditor(text="SELECT 1")))

    assert app_context.output.shown == [False]
    assert app_context.output.lines[1].splitlines() == ["name,total", "alpha,3"]


def test_output_format_override_wins_over_settings(app_context) -> None:
    app_context.output_format_override = OutputFormat.TABLE

    asyncio.run(commands.run_query(app_context, TextDocumentEditor(text="SELECT 1")))

    assert app_context.output.lines[1].split() == ["name", "total"]


def test_concurrent_commands_do_not_share_job_state(app_context, make_client, make_job) -> None:
    jobs = {
        "SELECT 'a'": make_job(job_id="job_a", rows=[{"v": "a"}]),
        "SELECT 'b'": make_job(job_id="job_b", rows=[{"v": "b"}]),
    }

    class RoutingClient:
        def query(self, query, job_config=None, location=None, **kwargs):
            return jobs[query]

    app_context.client_factory = lambda _settings: RoutingClient()

    async def run_both():
        return await asyncio.gather(
            commands.run_query(app_context, TextDocumentEditor(text="SELECT 'a'")),
            commands.run_query(app_context, TextDocumentEditor(text="SELECT 'b'")),
        )

    assert asyncio.run(run_both()) == [True, True]

    lines = app_context.output.lines
    assert lines[lines.index("Results for job job_a:") + 1] == '{"v":"a"}'
    assert lines[lines.index("Results for job job_b:") + 1] == '{"v":"b"}'


def test_interval_values_reach_the_output(app_context, make_client, make_job) -> None:
    interval = relativedelta(days=1)
    client = make_client(make_job(job_id="job_iv", rows=[{"iv": interval}]))
    app_context.client_factory = lambda _settings: client

    assert asyncio.run(commands.run_query(app_context, TextDocumentEditor(text="SELECT INTERVAL 1 DAY"))) is True

    assert app_context.output.lines == ["Results for job job_iv:", json.dumps({"iv": str(interval)}, separators=(",", ":"))]
    assert app_context.notifier.errors == []


def test_rejected_query_reports_no_job_id(app_context, make_client) -> None:
    client = make_client(error=api_exceptions.BadRequest("Syntax error"))
    app_context.client_factory = lambda _settings: client

    asyncio.run(commands.run_query(app_context, TextDocumentEditor(text="SELEC 1")))

    assert app_context.notifier.infos == []
