"""Console output abstraction.

Services write through ``ConsoleProtocol`` so they never depend on Rich
directly. ``RichConsole`` is the production backend; ``MockConsole``
records everything for tests.

Messages are plain text: repository names, paths and git output may
contain square brackets, so nothing passed in is interpreted as Rich markup.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Protocol

__all__ = [
    "Style",
    "ConsoleProtocol",
    "RichConsole",
    "MockConsole",
    "OutputRecord",
]


class Style(Enum):
    """Text styles for console output."""

    DEFAULT = auto()
    SUCCESS = auto()  # Green, positive message
    ERROR = auto()  # Red, error message
    WARNING = auto()  # Yellow, warning message
    INFO = auto()  # Cyan, informational
    DIM = auto()  # Dimmed/muted text
    BOLD = auto()
    HEADER = auto()  # Section header
    VERBATIM = auto()  # Copy-paste text (conflict regions), never styled

    def __str__(self) -> str:
        return self.name.lower()


class ConsoleProtocol(Protocol):
    """Protocol for console output."""

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        """Print a message with optional styling."""
        ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def header(self, message: str) -> None:
        """Print a section header."""
        ...

    def verbatim(self, text: str) -> None:
        """Print text exactly as given (no markup, highlighting or styling)."""
        ...

    def newline(self) -> None: ...


class RichConsole:
    """Console implementation using Rich."""

    def __init__(self) -> None:
        # Import Rich lazily to avoid import-time dependency
        from rich.console import Console

        self._console = Console(highlight=False)
        self._style_map = {
            Style.DEFAULT: "",
            Style.SUCCESS: "green",
            Style.ERROR: "red bold",
            Style.WARNING: "yellow",
            Style.INFO: "cyan",
            Style.DIM: "dim",
            Style.BOLD: "bold",
            Style.HEADER: "blue bold",
            Style.VERBATIM: "",
        }

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        if style is Style.VERBATIM:
            self.verbatim(message)
            return
        rich_style = self._style_map.get(style, "")
        if rich_style:
            self._console.print(message, style=rich_style, markup=False)
        else:
            self._console.print(message, markup=False)

    def _prefixed(self, prefix: str, message: str) -> None:
        from rich.markup import escape

        self._console.print(f"{prefix} {escape(message)}")

    def success(self, message: str) -> None:
        self._prefixed("[green]OK[/green]", message)

    def error(self, message: str) -> None:
        self._prefixed("[red bold]error:[/red bold]", message)

    def warning(self, message: str) -> None:
        self._prefixed("[yellow]warning:[/yellow]", message)

    def header(self, message: str) -> None:
        self._console.print()
        self._console.print(message, style="blue bold", markup=False)

    def verbatim(self, text: str) -> None:
        self._console.print(text, markup=False, highlight=False, emoji=False, soft_wrap=True)

    def newline(self) -> None:
        self._console.print()


@dataclass
class OutputRecord:
    """A single output record for MockConsole."""

    message: str
    style: Style


def _empty_outputs() -> list[OutputRecord]:
    return []


@dataclass
class MockConsole:
    """Console implementation that captures output for testing."""

    outputs: list[OutputRecord] = field(default_factory=_empty_outputs)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def success(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"OK {message}", Style.SUCCESS))

    def error(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"error: {message}", Style.ERROR))

    def warning(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"warning: {message}", Style.WARNING))

    def header(self, message: str) -> None:
        self.outputs.append(OutputRecord(message, Style.HEADER))

    def verbatim(self, text: str) -> None:
        self.outputs.append(OutputRecord(text, Style.VERBATIM))

    def newline(self) -> None:
        self.outputs.append(OutputRecord("", Style.DEFAULT))

    # Test helper methods

    def clear(self) -> None:
        self.outputs.clear()

    @property
    def messages(self) -> list[str]:
        return [o.message for o in self.outputs]

    @property
    def text(self) -> str:
        """All output as a single newline-separated string."""
        return "\n".join(self.messages)

    def has_error(self) -> bool:
        return any(o.style == Style.ERROR for o in self.outputs)

    def has_warning(self) -> bool:
        return any(o.style == Style.WARNING for o in self.outputs)

    def has_success(self) -> bool:
        return any(o.style == Style.SUCCESS for o in self.outputs)

    def find(self, substring: str) -> list[OutputRecord]:
        """Find all outputs containing a substring."""
        return [o for o in self.outputs if substring in o.message]

    def count(self, style: Style) -> int:
        return sum(1 for o in self.outputs if o.style == style)
