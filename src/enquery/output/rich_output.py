from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from rich.markup import escape
from rich.table import Table

from enquery._internal.durations import format_duration, format_rfc3339
from enquery.telemetry.codec import format_tags

if TYPE_CHECKING:
    from rich.console import Console

    from enquery.datasource import DataResponse
    from enquery.telemetry.frames import Frame, FrameField
    from enquery.telemetry.preparer import PreparedQuery

_MISSING = "[dim]-[/dim]"


def column_title(frame_field: FrameField) -> str:
    """Header text for a value column: its name, else its labels."""
    if frame_field.name:
        return frame_field.name
    if frame_field.labels:
        return format_tags(frame_field.labels)
    return "value"


def _cell(value: Any) -> str:
    if value is None:
        return _MISSING
    if isinstance(value, datetime):
        return format_rfc3339(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return escape(str(value))


class RichOutput:
    """Rich-based terminal output helpers for *enquery*."""

    def __init__(self, console: Console) -> None:
        self._con = console

    # ------------------------------------------------------------------
    # Query results
    # ------------------------------------------------------------------

    def responses(self, responses: dict[str, DataResponse]) -> None:
        """Print every sub-query response in ref id order."""
        for ref_id, resp in responses.items():
            if resp.error is not None:
                self._con.print(f"[bold]{escape(ref_id)}[/bold]  [red]{escape(resp.error)}[/red]")
                continue
            if not resp.frames:
                self._con.print(f"[bold]{escape(ref_id)}[/bold]  [dim]no data[/dim]")
                continue
            for frame in resp.frames:
                self.frame(frame, title=ref_id)

    def frame(self, frame: Frame, *, title: str = "") -> None:
        """Print a frame as a table: one row per timestamp."""
        table = Table(title=escape(title or frame.name) or None)
        for i, frame_field in enumerate(frame.fields):
            if i == 0:
                table.add_column("Time", style="cyan", no_wrap=True)
            else:
                table.add_column(escape(column_title(frame_field)), justify="right")

        for row in range(len(frame)):
            table.add_row(*(_cell(f.values[row]) for f in frame.fields))

        self._con.print(table)

    # ------------------------------------------------------------------
    # Prepared query
    # ------------------------------------------------------------------

    def prepared_query(self, prepared: PreparedQuery) -> None:
        """Print the wire query text and the applied offset."""
        self._con.print("[bold]Wire query[/bold]")
        self._con.print(prepared.text, markup=False, highlight=False, soft_wrap=True)
        if prepared.offset:
            self._con.print(f"Offset: [cyan]{format_duration(prepared.offset)}[/cyan]")

    # ------------------------------------------------------------------
    # Status helpers
    # ------------------------------------------------------------------

    def command_result(self, success: bool, message: str = "") -> None:
        """Print a coloured OK / FAILED indicator."""
        text = "[green]OK[/green]" if success else "[red]FAILED[/red]"
        if message:
            text += f"  {message}"
        self._con.print(text)

    def error(self, message: str) -> None:
        """Print a bold red error line."""
        self._con.print(f"[bold red]Error:[/bold red] {escape(message)}")

    def info(self, message: str) -> None:
        """Print an informational message (plain)."""
        self._con.print(message)
