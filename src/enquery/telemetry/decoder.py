"""Decode the CSV body of a timeseries response into a :class:`Timeseries`.

Wire format (one column per declared data type, plus the timestamp)::

    ts,device=dev1 telemetry=h2_flow,device=dev1 telemetry=status
    1714557600,0.42,ok
    1714557660,,ok

The header row carries one tag string per data column.  Every following
record is one timestamp (Unix seconds) with one cell per column; an empty
cell is a missing sample.  Decoding is strict: a record of the wrong width
aborts the whole series instead of being skipped, so columns can never drift
out of alignment with the time axis.
"""

from __future__ import annotations

import csv
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from enquery.api.errors import (
    FieldParseError,
    NoValuesError,
    UnexpectedShapeError,
)
from enquery.models.timeseries import DataType, Timeseries
from enquery.telemetry.codec import parse_tags, parse_value

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Sequence

logger = logging.getLogger(__name__)

TIMESTAMP_COLUMN = "ts"


class TimeseriesDecoder:
    """Decodes timeseries records for a fixed list of column types."""

    def __init__(self, data_types: Sequence[DataType]) -> None:
        self._data_types = list(data_types)

    @property
    def width(self) -> int:
        """Expected number of cells per record (timestamp included)."""
        return len(self._data_types) + 1

    def decode_csv(self, lines: Iterable[str]) -> Timeseries:
        """Decode CSV text given as an iterable of lines.

        Blank lines are ignored.  A body without any record at all is
        reported as :class:`NoValuesError`, like a header without rows.

        Raises:
            NoValuesError: The body holds no data rows.
            TimeseriesError: The body is malformed (see :meth:`decode`).
        """
        records = self._read_records(lines)
        header = next(records, None)
        if header is None:
            raise NoValuesError
        return self.decode(header, records)

    def decode(self, header: Sequence[str], rows: Iterable[Sequence[str]]) -> Timeseries:
        """Decode a header record followed by data records.

        Record numbers in error messages count the header as record ``0``.

        Raises:
            UnexpectedShapeError: Wrong record width or timestamp column name.
            MalformedTagsError: A header cell is not a tag string.
            FieldParseError: A cell cannot be parsed as its column type.
            NoValuesError: The header is valid but no rows follow.
        """
        timeseries = Timeseries.empty(self._data_types)

        for data_field, tags in zip(
            timeseries.data_fields, self._parse_header(header), strict=True
        ):
            data_field.tags = tags

        for row, record in enumerate(rows, start=1):
            timestamp, values = self._parse_record(row, record)
            timeseries.time_field.append(timestamp)
            for data_field, value in zip(timeseries.data_fields, values, strict=True):
                data_field.values.append(value)

        if len(timeseries) == 0:
            raise NoValuesError

        logger.debug(
            "Decoded timeseries: %d rows x %d columns",
            len(timeseries),
            len(timeseries.data_fields),
        )
        return timeseries

    # -- Internals ------------------------------------------------------------

    def _parse_header(self, record: Sequence[str]) -> list[dict[str, str]]:
        if len(record) != self.width:
            raise UnexpectedShapeError(
                f"unexpected number of fields: want {self.width}, have {len(record)}",
                row=0,
            )
        if record[0] != TIMESTAMP_COLUMN:
            raise UnexpectedShapeError(
                f"unexpected field name: want {TIMESTAMP_COLUMN}, have {record[0]}",
                row=0,
            )
        return [parse_tags(cell) for cell in record[1:]]

    def _parse_record(self, row: int, record: Sequence[str]) -> tuple[datetime, list[Any]]:
        if len(record) != self.width:
            raise UnexpectedShapeError(
                f"unexpected number of fields: want {self.width}, have {len(record)}",
                row=row,
            )

        timestamp = self._parse_timestamp(row, record[0])

        values: list[Any] = []
        for column, (data_type, cell) in enumerate(
            zip(self._data_types, record[1:], strict=True)
        ):
            try:
                values.append(parse_value(data_type, cell))
            except FieldParseError as exc:
                raise FieldParseError(str(exc), row=row, column=column) from exc

        return timestamp, values

    @staticmethod
    def _parse_timestamp(row: int, cell: str) -> datetime:
        try:
            seconds = parse_value(DataType.INTEGER, cell)
        except FieldParseError as exc:
            raise FieldParseError(f"timestamp: {exc}", row=row) from exc
        if seconds is None:
            raise FieldParseError("timestamp: empty", row=row)
        try:
            return datetime.fromtimestamp(seconds, tz=UTC)
        except (OverflowError, OSError, ValueError) as exc:
            raise FieldParseError(f"timestamp: {exc}", row=row) from exc

    @staticmethod
    def _read_records(lines: Iterable[str]) -> Iterator[list[str]]:
        reader = csv.reader(lines)
        while True:
            try:
                record = next(reader)
            except StopIteration:
                return
            except csv.Error as exc:
                raise UnexpectedShapeError(f"read record: {exc}", row=reader.line_num) from exc
            if record:
                yield record
