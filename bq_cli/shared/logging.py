"""Rich-backed logger for bq-query diagnostics.

Result lines are echoed to stdout by the output channel; everything the logger
prints (job ids, errors, verbose tracing) goes to stderr so piped output stays
clean.
"""

from __future__ import annotations

from dataclasses import dataclass

from rich.console import Console
from rich.theme import Theme
from rich.traceback import install

install(show_locals=False)

# Highlighting is off so job ids and byte counts print without injected styling.
_stderr_console = Console(
    stderr=True,
    theme=Theme({"info": "cyan", "warning": "yellow", "error": "bold red", "debug": "dim"}),
    highlight=False,
)


@dataclass(slots=True)
class Logger:
    """Leveled messages on stderr; ``debug`` only prints in verbose mode."""

    verbose: bool = False
    name: str = "bq-query"

    def _emit(self, message: str, level: str) -> None:
        _stderr_console.print(message, style=level, markup=False)

    def info(self, message: str) -> None:
        self._emit(message, "info")

    def warning(self, message: str) -> None:
        self._emit(message, "warning")

    def error(self, message: str) -> None:
        self._emit(message, "error")

    def debug(self, message: str) -> None:
        if self.verbose:
            self._emit(f"[{self.name}] {message}", "debug")


def get_logger(verbose: bool = False, name: str = "bq-query") -> Logger:
    """Return a configured Logger instance."""
    return Logger(verbose=verbose, name=name)
