from __future__ import annotations

import sys
from typing import TYPE_CHECKING, Any

from rich.console import Console

from enquery.output.json_output import format_json_error, format_json_response
from enquery.output.rich_output import RichOutput

if TYPE_CHECKING:
    from io import TextIOBase


class OutputFormatter:
    """Routes query results to Rich tables or a JSON envelope.

    ``--format`` wins when given.  Without it, frames render as tables on an
    interactive terminal and as one JSON document when stdout is piped, so
    ``enquery query ... | jq`` works unchanged.  ``quiet`` sends the tables
    to stderr and leaves stdout for errors only.
    """

    def __init__(
        self,
        *,
        stream: TextIOBase | Any | None = None,
        force_format: str | None = None,
    ) -> None:
        self._stream = stream or sys.stdout
        if force_format is not None:
            self._format = force_format
        elif hasattr(self._stream, "isatty") and self._stream.isatty():
            self._format = "rich"
        else:
            self._format = "json"

        if self._format == "quiet":
            self._console = Console(stderr=True)
        else:
            self._console = Console()

        self._rich = RichOutput(self._console)

    # ------------------------------------------------------------------
    # Public helpers
    # ------------------------------------------------------------------

    @property
    def format(self) -> str:  # noqa: A003
        """Return the active output format (``"rich"``, ``"json"``, or ``"quiet"``)."""
        return self._format

    @property
    def rich(self) -> RichOutput:
        return self._rich

    def output(self, data: Any, *, command: str) -> None:
        """Emit *data* as a JSON envelope, or as plain text for rich/quiet.

        Callers with typed data (frames, prepared queries) use :attr:`rich`
        directly for the non-JSON formats; this is the catch-all.
        """
        if self._format == "json":
            print(format_json_response(data=data, command=command))  # noqa: T201
        elif self._format == "rich":
            self._rich.info(str(data))

    def output_error(self, *, code: str, message: str, command: str) -> None:
        """Emit an error using the current format."""
        if self._format == "json":
            print(format_json_error(code=code, message=message, command=command))  # noqa: T201
        else:
            self._rich.error(message)
