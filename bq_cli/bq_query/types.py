"""Data structures shared across bq-query modules."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping, Sequence

if TYPE_CHECKING:
    from bq_cli.shared.config import QuerySettings

Row = Mapping[str, Any]
FlatRow = dict[str, Any]


class OutputFormat(str, Enum):
    """Closed set of result renderings; ``JSON`` doubles as the fallback."""

    JSON = "json"
    CSV = "csv"
    TABLE = "table"

    @classmethod
    def parse(cls, value: object) -> OutputFormat:
        """Return the matching format, or ``JSON`` for anything unrecognised."""
        if isinstance(value, cls):
            return value
        normalised = str(value or "").strip().lower()
        for member in cls:
            if member.value == normalised:
                return member
        return cls.JSON


@dataclass(frozen=True, slots=True)
class QueryRequest:
    """One user submission: trimmed query text plus the settings in force."""

    query_text: str
    dry_run: bool
    settings: QuerySettings


@dataclass(frozen=True, slots=True)
class JobOutcome:
    """Result of a finished job: rows for real runs, a byte estimate for dry runs."""

    job_id: str
    rows: Sequence[Row] | None = None
    bytes_processed: int | None = None

    @property
    def is_dry_run(self) -> bool:
        return self.rows is None
