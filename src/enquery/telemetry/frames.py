"""Convert a :class:`Timeseries` into a renderable frame.

A frame is a ``time`` column followed by one value column per data field.
Value columns start without a name and carry the field's tags as labels;
:func:`enquery.telemetry.labels.make_labels_unique` later trims the labels
and names the columns whose labels end up empty.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from enquery.api.errors import UnsupportedDataTypeError
from enquery.models.timeseries import DataType

if TYPE_CHECKING:
    from enquery.models.timeseries import Timeseries

TIME_FIELD_NAME = "time"


class FieldType(StrEnum):
    """Storage type of a frame column; every value column is nullable."""

    TIME = "time"
    FLOAT64 = "float64"
    INT64 = "int64"
    STRING = "string"
    BOOL = "bool"


_FIELD_TYPES: dict[DataType, FieldType] = {
    DataType.FLOAT: FieldType.FLOAT64,
    DataType.INTEGER: FieldType.INT64,
    DataType.STRING: FieldType.STRING,
    DataType.BOOLEAN: FieldType.BOOL,
}


@dataclass
class FrameField:
    """One frame column.  ``None`` in :attr:`values` means no sample."""

    name: str
    type: FieldType
    values: list[Any] = field(default_factory=list)
    labels: dict[str, str] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.values)

    def to_dict(self) -> dict[str, Any]:
        values = self.values
        if self.type is FieldType.TIME:
            values = [v.isoformat() for v in values]
        return {
            "name": self.name,
            "type": str(self.type),
            "labels": dict(self.labels),
            "values": list(values),
        }


@dataclass
class Frame:
    """A time column plus value columns, ready for charting."""

    fields: list[FrameField] = field(default_factory=list)
    name: str = ""

    @property
    def data_fields(self) -> list[FrameField]:
        """Every column except the leading time column."""
        return self.fields[1:]

    def __len__(self) -> int:
        return len(self.fields[0]) if self.fields else 0

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "fields": [f.to_dict() for f in self.fields]}


def assemble_frame(timeseries: Timeseries, offset: timedelta = timedelta(0)) -> Frame:
    """Build a :class:`Frame` from *timeseries*.

    Args:
        timeseries: Decoded timeseries.
        offset: The ``@offset`` applied when the query was prepared.  The
            time column is shifted forward by it so the axis matches the
            window the user asked for.

    Raises:
        UnsupportedDataTypeError: A column type (``string_array``) has no
            frame representation.
    """
    if offset:
        timeseries = timeseries.shift_time(offset)

    fields = [
        FrameField(
            name=TIME_FIELD_NAME,
            type=FieldType.TIME,
            values=list(timeseries.time_field),
        )
    ]

    for data_field in timeseries.data_fields:
        field_type = _FIELD_TYPES.get(data_field.type)
        if field_type is None:
            raise UnsupportedDataTypeError(data_field.type)

        assert len(data_field.values) == len(timeseries), "column length differs from time axis"
        fields.append(
            FrameField(
                name="",
                type=field_type,
                values=list(data_field.values),
                labels=dict(data_field.tags),
            )
        )

    return Frame(fields=fields)
