"""Console output formatting for the pfsync CLI."""

import json
from typing import Any, Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text


class OutputFormatter:
    """Writes human or JSON output to the terminal."""

    def __init__(
        self,
        json_output: bool = False,
        quiet: bool = False,
        console: Optional[Console] = None,
    ):
        """Initialize the formatter.

        Args:
            json_output: Emit JSON documents instead of rich text
            quiet: Suppress informational messages
            console: Console for regular output
        """
        self.json_output = json_output
        self.quiet = quiet
        self.console = console or Console(highlight=False)
        self.err_console = Console(stderr=True, highlight=False)

    def info(self, message: str) -> None:
        if self.quiet or self.json_output:
            return
        self.console.print(message, style="cyan", markup=False, soft_wrap=True)

    def success(self, message: str) -> None:
        if self.quiet or self.json_output:
            return
        self.console.print(message, style="green", markup=False, soft_wrap=True)

    def warning(self, message: str) -> None:
        if self.json_output:
            return
        self.err_console.print(
            message, style="yellow", markup=False, soft_wrap=True
        )

    def error(self, message: str) -> None:
        self.err_console.print(
            message, style="bold red", markup=False, soft_wrap=True
        )

    def print(self, message: str = "") -> None:
        """Print plain text (never interpreted as rich markup)."""
        if self.json_output:
            return
        self.console.print(message, markup=False, soft_wrap=True)

    def output_json(self, data: Any) -> None:
        self.console.print_json(json.dumps(data))

    def print_summary(self, title: str, items: list[tuple[str, str]]) -> None:
        """Print a two-column summary table."""
        if self.json_output:
            self.output_json({key: value for key, value in items})
            return
        table = Table(title=title, show_header=False, title_justify="left")
        table.add_column("Field", style="bold")
        table.add_column("Value")
        for key, value in items:
            table.add_row(key, Text(value))
        self.console.print(table)

    def print_table(
        self, columns: list[str], rows: list[list[str]], title: Optional[str] = None
    ) -> None:
        if self.json_output:
            self.output_json([dict(zip(columns, row)) for row in rows])
            return
        table = Table(title=title)
        for column in columns:
            table.add_column(column)
        for row in rows:
            table.add_row(*[Text(cell) for cell in row])
        self.console.print(table)
