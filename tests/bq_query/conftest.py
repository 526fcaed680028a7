"""Shared stubs for bq-query tests.

BigQuery is replaced by a fake client whose ``query`` returns a fake job, so
the executor, the command handlers and the CLI can be exercised offline.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import pytest

from bq_cli.bq_query.commands import AppContext
from bq_cli.shared.config import ConfigurationManager, QuerySettings


class StubLogger:
    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def info(self, message: str) -> None:
        self.messages.append(("info", message))

    def warning(self, message: str) -> None:
        self.messages.append(("warning", message))

    def debug(self, message: str) -> None:
        self.messages.append(("debug", message))

    def error(self, message: str) -> None:
        self.messages.append(("error", message))


class FakeJob:
    def __init__(
        self,
        job_id: str | None = "job_123",
        rows: Sequence[Mapping[str, Any]] = (),
        total_bytes_processed: int | None = None,
        result_error: Exception | None = None,
    ) -> None:
        self.job_id = job_id
        self.total_bytes_processed = total_bytes_processed
        self._rows = list(rows)
        self._result_error = result_error
        self.result_calls = 0
        self.result_kwargs: list[dict[str, Any]] = []

    def result(self, **kwargs: Any):
        self.result_calls += 1
        self.result_kwargs.append(kwargs)
        if self._result_error is not None:
            raise self._result_error
        return iter(self._rows)


class FakeClient:
    def __init__(self, job: FakeJob | None = None, error: Exception | None = None) -> None:
        self.job = job or FakeJob()
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def query(self, query: str, job_config=None, location=None, **kwargs: Any):
        self.calls.append({"query": query, "job_config": job_config, "location": location, **kwargs})
        if self.error is not None:
            raise self.error
        return self.job


class RecordingOutput:
    def __init__(self) -> None:
        self.lines: list[str] = []
        self.shown: list[bool] = []

    def show(self, preserve_focus: bool) -> None:
        self.shown.append(preserve_focus)

    def append_line(self, text: str) -> None:
        self.lines.append(text)


class RecordingNotifier:
    def __init__(self) -> None:
        self.errors: list[str] = []
        self.infos: list[str] = []

    def info(self, message: str) -> None:
        self.infos.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)


@pytest.fixture()
def stub_logger() -> StubLogger:
    return StubLogger()


@pytest.fixture()
def settings(tmp_path: Path) -> QuerySettings:
    return QuerySettings(source_path=tmp_path / "config.yaml", pretty_print_json=False)


@pytest.fixture()
def fake_client() -> FakeClient:
    return FakeClient(FakeJob(rows=[{"name": "alpha", "total": 3}]))


@pytest.fixture()
def app_context(settings: QuerySettings, fake_client: FakeClient, stub_logger: StubLogger) -> AppContext:
    return AppContext(
        config=ConfigurationManager(settings=settings),
        output=RecordingOutput(),
        notifier=RecordingNotifier(),
        logger=stub_logger,  # type: ignore[arg-type]
        client_factory=lambda _settings: fake_client,
    )


@pytest.fixture()
def make_job() -> type[FakeJob]:
    return FakeJob


@pytest.fixture()
def make_client() -> type[FakeClient]:
    return FakeClient
