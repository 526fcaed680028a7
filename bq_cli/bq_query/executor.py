"""Query execution helpers for bq-query."""

from __future__ import annotations

import asyncio
from typing import Any, Callable

from google.api_core import exceptions as api_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import bigquery

from bq_cli.shared.config import QuerySettings
from bq_cli.shared.exceptions import MissingJobIdError, RetrievalError, SubmissionError
from bq_cli.shared.logging import Logger, get_logger

from .types import JobOutcome, Row

ClientFactory = Callable[[QuerySettings], Any]

# Failures that mean the request never became a job.
_SUBMISSION_ERRORS = (
    api_exceptions.GoogleAPIError,
    auth_exceptions.GoogleAuthError,
    OSError,
    ValueError,
)


def create_client(settings: QuerySettings) -> bigquery.Client:
    """Build a BigQuery client from the configured key file and project."""
    project = settings.project_id or None
    if settings.key_filename:
        return bigquery.Client.from_service_account_json(settings.key_filename, project=project)
    return bigquery.Client(project=project)


def build_job_config(settings: QuerySettings, *, dry_run: bool) -> bigquery.QueryJobConfig:
    job_config = bigquery.QueryJobConfig(
        use_legacy_sql=settings.use_legacy_sql,
        dry_run=dry_run,
    )
    if settings.maximum_bytes_billed is not None:
        job_config.maximum_bytes_billed = settings.maximum_bytes_billed
    return job_config


async def execute_query(
    query_text: str,
    settings: QuerySettings,
    *,
    dry_run: bool,
    client_factory: ClientFactory | None = None,
    on_submitted: Callable[[str], None] | None = None,
    logger: Logger | None = None,
) -> JobOutcome:
    """Submit ``query_text`` and return the finished job's rows or byte estimate.

    Submission and retrieval run in worker threads so the event loop stays free
    while BigQuery works. Rows are fully paginated before this returns. Nothing
    is retried: every failure surfaces once as an ``ExecutionError`` subclass.
    ``on_submitted`` receives the job id as soon as BigQuery accepts the job.
    """
    log = logger or get_logger()
    factory = client_factory or create_client

    job = await asyncio.to_thread(_submit, factory, query_text, settings, dry_run)
    job_id = getattr(job, "job_id", None)
    if not job_id:
        raise MissingJobIdError("Failed to query BigQuery: no job ID")
    log.debug(f"Submitted job {job_id}.")
    if on_submitted is not None:
        on_submitted(job_id)

    if dry_run:
        try:
            bytes_processed = job.total_bytes_processed
        except Exception as exc:
            raise RetrievalError(f"Failed to get results for job {job_id}: {exc}", job_id=job_id) from exc
        log.debug(f"Dry run for job {job_id} estimated {bytes_processed} bytes.")
        return JobOutcome(job_id=job_id, bytes_processed=int(bytes_processed or 0))

    rows = await asyncio.to_thread(_fetch_rows, job, job_id)
    log.debug(f"Fetched {len(rows)} row(s) for job {job_id}.")
    return JobOutcome(job_id=job_id, rows=rows)


def _submit(factory: ClientFactory, query_text: str, settings: QuerySettings, dry_run: bool) -> Any:
    try:
        client = factory(settings)
        # retry=None and job_retry=None turn off the client library's own retries.
        return client.query(
            query_text,
            job_config=build_job_config(settings, dry_run=dry_run),
            location=settings.location or None,
            retry=None,
            job_retry=None,
        )
    except _SUBMISSION_ERRORS as exc:
        raise SubmissionError(f"Failed to query BigQuery: {_error_message(exc)}") from exc


def _fetch_rows(job: Any, job_id: str) -> list[Row]:
    try:
        # RowIterator follows page tokens on its own; draining it fetches every page.
        return [dict(row.items()) for row in job.result(retry=None, job_retry=None)]
    except Exception as exc:
        raise RetrievalError(
            f"Failed to get results for job {job_id}: {_error_message(exc)}", job_id=job_id
        ) from exc


def _error_message(exc: BaseException) -> str:
    message = getattr(exc, "message", None)
    return str(message) if message else str(exc)
