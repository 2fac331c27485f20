from __future__ import annotations

from datetime import UTC, datetime, timedelta
from io import StringIO

from rich.console import Console

from enquery.datasource import DataResponse
from enquery.output.rich_output import RichOutput, column_title
from enquery.telemetry.frames import FieldType, Frame, FrameField
from enquery.telemetry.preparer import PreparedQuery


def _make_console() -> tuple[Console, StringIO]:
    """Return a ``(Console, buffer)`` pair for capturing Rich output."""
    buf = StringIO()
    console = Console(file=buf, force_terminal=False, width=120)
    return console, buf


def _frame() -> Frame:
    return Frame(
        fields=[
            FrameField(
                name="time",
                type=FieldType.TIME,
                values=[
                    datetime(2024, 5, 1, 10, 0, tzinfo=UTC),
                    datetime(2024, 5, 1, 10, 1, tzinfo=UTC),
                ],
            ),
            FrameField(name="h2_flow", type=FieldType.FLOAT64, values=[0.42, None]),
            FrameField(
                name="",
                type=FieldType.BOOL,
                values=[True, False],
                labels={"telemetry": "running", "device": "d1"},
            ),
        ]
    )


class TestColumnTitle:
    def test_name_wins(self) -> None:
        assert column_title(FrameField(name="x", type=FieldType.INT64, labels={"a": "b"})) == "x"

    def test_labels_sorted(self) -> None:
        field = FrameField(name="", type=FieldType.INT64, labels={"z": "1", "a": "2"})
        assert column_title(field) == "a=2 z=1"

    def test_fallback(self) -> None:
        assert column_title(FrameField(name="", type=FieldType.INT64)) == "value"


class TestFrameTable:
    def test_renders_rows_and_headers(self) -> None:
        console, buf = _make_console()
        RichOutput(console).frame(_frame(), title="A")
        output = buf.getvalue()

        assert "h2_flow" in output
        assert "device=d1 telemetry=running" in output
        assert "2024-05-01T10:00:00Z" in output
        assert "0.42" in output
        assert "true" in output
        assert "false" in output

    def test_null_rendered_as_dash(self) -> None:
        console, buf = _make_console()
        RichOutput(console).frame(_frame())
        row = next(line for line in buf.getvalue().splitlines() if "10:01:00Z" in line)
        assert "-" in row.split("10:01:00Z", 1)[1]


class TestResponses:
    def test_error_and_empty(self) -> None:
        console, buf = _make_console()
        RichOutput(console).responses(
            {
                "A": DataResponse(error="The query is not a valid YAML."),
                "B": DataResponse(),
                "C": DataResponse(frames=[_frame()]),
            }
        )
        output = buf.getvalue()

        assert "The query is not a valid YAML." in output
        assert "no data" in output
        assert "h2_flow" in output


class TestPreparedQuery:
    def test_offset_shown(self) -> None:
        console, buf = _make_console()
        RichOutput(console).prepared_query(
            PreparedQuery(text='{"aggregation":"auto"}', offset=timedelta(hours=24))
        )
        output = buf.getvalue()

        assert '"aggregation":"auto"' in output
        assert "24h0m0s" in output

    def test_no_offset_line_without_offset(self) -> None:
        console, buf = _make_console()
        RichOutput(console).prepared_query(PreparedQuery(text="{}"))
        assert "Offset" not in buf.getvalue()
