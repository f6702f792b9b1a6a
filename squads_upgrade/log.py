"""ConsoleLog: colour-coded progress output for proposal runs."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape


class ConsoleLog:
    """Writes info/success/warning/tx lines to stdout and errors to stderr."""

    def __init__(self, console: Console | None = None, err_console: Console | None = None) -> None:
        self.console = console or Console(highlight=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)

    def info(self, message: str) -> None:
        self.console.print(f"[#8892a4]{escape(message)}[/]")

    def success(self, message: str) -> None:
        self.console.print(f"[#39ff14]{escape(message)}[/]")

    def warning(self, message: str) -> None:
        self.console.print(f"[#ffaa00]{escape(message)}[/]")

    def error(self, message: str) -> None:
        self.err_console.print(f"[#ff3366]{escape(message)}[/]")

    def tx(self, message: str) -> None:
        self.console.print(f"[#00ffcc]{escape(message)}[/]")
