"""Editor, output surface and notification seams used by the command handlers.

The handlers only see the protocols below. The command-line host backs them
with a text document read from a file (or stdin), an output channel that
echoes to stdout, and a notifier that reports through the Rich logger.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Protocol

import click

from bq_cli.shared.exceptions import InputError
from bq_cli.shared.logging import Logger


@dataclass(frozen=True, slots=True)
class Selection:
    """Half-open character range ``[start, end)`` within a document."""

    start: int = 0
    end: int = 0

    @property
    def is_empty(self) -> bool:
        return self.end <= self.start


class TextEditor(Protocol):
    @property
    def selection(self) -> Selection: ...

    def get_text(self, selection: Selection | None = None) -> str: ...


class OutputSurface(Protocol):
    def show(self, preserve_focus: bool) -> None: ...

    def append_line(self, text: str) -> None: ...


class Notifier(Protocol):
    def info(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


@dataclass(slots=True)
class TextDocumentEditor:
    """In-memory document with an optional selection."""

    text: str
    selection: Selection = field(default_factory=Selection)
    path: Path | None = None

    @classmethod
    def from_path(cls, path: str | Path, *, selection: Selection | None = None) -> TextDocumentEditor:
        source = Path(path)
        try:
            text = source.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise InputError(f"Failed to read {source}: {exc}") from exc
        return cls(text=text, selection=selection or Selection(), path=source)

    def get_text(self, selection: Selection | None = None) -> str:
        if selection is None:
            return self.text
        return self.text[selection.start : selection.end]


def selection_for_lines(text: str, start_line: int, end_line: int) -> Selection:
    """Select whole lines ``start_line``..``end_line`` (1-based, inclusive)."""
    if start_line < 1 or end_line < start_line:
        raise InputError(f"Invalid line range {start_line}-{end_line}.")
    lines = text.splitlines(keepends=True)
    if start_line > len(lines):
        return Selection()
    start = sum(len(line) for line in lines[: start_line - 1])
    end = start + sum(len(line) for line in lines[start_line - 1 : end_line])
    return Selection(start, end)


@dataclass(slots=True)
class ConsoleOutputChannel:
    """Output surface that writes result lines to stdout."""

    name: str = "BigQuery"
    stream: IO[str] | None = None
    logger: Logger | None = None
    visible: bool = False

    def show(self, preserve_focus: bool) -> None:
        self.visible = True
        if self.logger is not None:
            self.logger.debug(f"Showing output channel '{self.name}' (preserve_focus={preserve_focus}).")

    def append_line(self, text: str) -> None:
        click.echo(text, file=self.stream)


@dataclass(slots=True)
class LoggerNotifier:
    """Notification surface that routes messages through the Rich logger."""

    logger: Logger

    def info(self, message: str) -> None:
        self.logger.info(message)

    def error(self, message: str) -> None:
        self.logger.error(message)
