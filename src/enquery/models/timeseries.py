"""In-memory columnar timeseries decoded from the telemetry API.

A :class:`Timeseries` is one shared time axis plus N parallel
:class:`DataField` columns.  Every column holds exactly one value per
timestamp; ``None`` marks a timestamp at which that metric has no sample.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from datetime import datetime, timedelta


class DataType(StrEnum):
    """Column value type; the enum value is the name used on the wire."""

    FLOAT = "float"
    INTEGER = "integer"
    STRING = "string"
    STRING_ARRAY = "string_array"
    BOOLEAN = "boolean"


@dataclass
class DataField:
    """One typed column of a timeseries, identified by its tags."""

    type: DataType
    tags: dict[str, str] = field(default_factory=dict)
    values: list[Any] = field(default_factory=list)


@dataclass
class Timeseries:
    """A time column plus parallel data columns of equal length."""

    time_field: list[datetime] = field(default_factory=list)
    data_fields: list[DataField] = field(default_factory=list)

    @classmethod
    def empty(cls, data_types: list[DataType]) -> Timeseries:
        """Return a timeseries with one empty column per entry of *data_types*."""
        return cls(data_fields=[DataField(type=t) for t in data_types])

    def __len__(self) -> int:
        return len(self.time_field)

    def shift_time(self, offset: timedelta) -> Timeseries:
        """Return a copy whose timestamps are moved by *offset*.

        The data columns are shared with the original, not copied.
        """
        return Timeseries(
            time_field=[ts + offset for ts in self.time_field],
            data_fields=self.data_fields,
        )
