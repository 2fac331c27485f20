"""Tests for decoding CSV timeseries bodies."""

from __future__ import annotations

import io
from datetime import UTC, datetime

import pytest

from enquery.api.errors import (
    FieldParseError,
    MalformedTagsError,
    NoValuesError,
    UnexpectedShapeError,
)
from enquery.models.timeseries import DataType
from enquery.telemetry.decoder import TimeseriesDecoder


def _decode(body: str, *data_types: DataType):
    return TimeseriesDecoder(list(data_types)).decode_csv(io.StringIO(body, newline=""))


class TestDecodeCSV:
    def test_two_columns(self) -> None:
        body = (
            "ts,device=d1 telemetry=h2_flow,device=d1 telemetry=status\n"
            "1714557600,0.42,ok\n"
            "1714557660,,ok\n"
        )
        ts = _decode(body, DataType.FLOAT, DataType.STRING)

        assert len(ts) == 2
        assert ts.time_field == [
            datetime(2024, 5, 1, 10, 0, tzinfo=UTC),
            datetime(2024, 5, 1, 10, 1, tzinfo=UTC),
        ]
        flow, status = ts.data_fields
        assert flow.type is DataType.FLOAT
        assert flow.tags == {"device": "d1", "telemetry": "h2_flow"}
        assert flow.values == [0.42, None]
        assert status.values == ["ok", "ok"]

    def test_empty_header_cell_means_no_tags(self) -> None:
        ts = _decode("ts,\n1,5\n", DataType.INTEGER)
        assert ts.data_fields[0].tags == {}
        assert ts.data_fields[0].values == [5]

    def test_quoted_string_array(self) -> None:
        ts = _decode('ts,telemetry=modes\n1,"[""a"",""b""]"\n', DataType.STRING_ARRAY)
        assert ts.data_fields[0].values == [["a", "b"]]

    def test_blank_lines_ignored(self) -> None:
        ts = _decode("ts,a=b\n\n1,true\n\n", DataType.BOOLEAN)
        assert ts.data_fields[0].values == [True]

    def test_header_only_is_no_values(self) -> None:
        with pytest.raises(NoValuesError):
            _decode("ts,a=b\n", DataType.FLOAT)

    def test_empty_body_is_no_values(self) -> None:
        with pytest.raises(NoValuesError):
            _decode("", DataType.FLOAT)

    def test_no_data_columns(self) -> None:
        ts = _decode("ts\n10\n20\n")
        assert len(ts) == 2
        assert ts.data_fields == []


class TestShapeErrors:
    def test_short_row(self) -> None:
        body = "ts,a=1,a=2\n1,0.5\n"
        with pytest.raises(UnexpectedShapeError, match="want 3, have 2") as exc_info:
            _decode(body, DataType.FLOAT, DataType.FLOAT)
        assert exc_info.value.row == 1

    def test_long_row_after_good_rows(self) -> None:
        body = "ts,a=1\n1,0.5\n2,0.6\n3,0.7,0.8\n"
        with pytest.raises(UnexpectedShapeError, match=r"record 3: .*want 2, have 3"):
            _decode(body, DataType.FLOAT)

    def test_header_width(self) -> None:
        with pytest.raises(UnexpectedShapeError, match="want 3, have 2") as exc_info:
            _decode("ts,a=1\n1,2,3\n", DataType.FLOAT, DataType.FLOAT)
        assert exc_info.value.row == 0

    def test_header_timestamp_name(self) -> None:
        with pytest.raises(UnexpectedShapeError, match="want ts, have time"):
            _decode("time,a=1\n1,2\n", DataType.FLOAT)

    def test_malformed_tags(self) -> None:
        with pytest.raises(MalformedTagsError):
            _decode("ts,device\n1,2\n", DataType.FLOAT)


class TestCellErrors:
    def test_bad_cell_reports_row_and_column(self) -> None:
        body = "ts,a=1,a=2\n1,0.5,1\n2,0.6,x\n"
        with pytest.raises(FieldParseError) as exc_info:
            _decode(body, DataType.FLOAT, DataType.INTEGER)
        assert exc_info.value.row == 2
        assert exc_info.value.column == 1
        assert str(exc_info.value).startswith("record 2: field 1: ")

    def test_bad_timestamp(self) -> None:
        with pytest.raises(FieldParseError, match="timestamp"):
            _decode("ts,a=1\n1.5,2\n", DataType.FLOAT)

    def test_empty_timestamp(self) -> None:
        with pytest.raises(FieldParseError, match="timestamp: empty"):
            _decode("ts,a=1\n,2\n", DataType.FLOAT)
