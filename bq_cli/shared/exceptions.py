"""Project-wide custom exceptions."""

from __future__ import annotations


class BqCliError(Exception):
    """Base exception for the BigQuery CLI."""


class ConfigurationError(BqCliError):
    """Raised when the settings store cannot be read or validated."""


class InputError(BqCliError):
    """Raised when no usable query text can be taken from the editor."""


class ExecutionError(BqCliError):
    """Raised when a query job cannot be submitted or its results fetched."""

    def __init__(self, message: str, *, job_id: str | None = None) -> None:
        super().__init__(message)
        self.job_id = job_id


class SubmissionError(ExecutionError):
    """Raised when BigQuery rejects the job (auth, syntax, quota)."""


class MissingJobIdError(ExecutionError):
    """Raised when a submitted job comes back without an identifier."""


class RetrievalError(ExecutionError):
    """Raised when results or statistics for a known job cannot be fetched."""
