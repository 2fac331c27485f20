"""Text codec for single timeseries cells, column types and tag strings.

Cells come from the CSV body of a timeseries response; an empty cell is a
gap in sampling and decodes to ``None`` for every type.
"""

from __future__ import annotations

import json
import math
import re
from typing import TYPE_CHECKING, Any

from enquery.api.errors import FieldParseError, MalformedTagsError, UnknownDataTypeError
from enquery.models.timeseries import DataType

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_INTEGER_RE = re.compile(r"[+-]?[0-9]+")
_FLOAT_RE = re.compile(
    r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|[+-]?inf(?:inity)?|nan",
    re.IGNORECASE,
)

_TRUE_STRINGS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_STRINGS = frozenset({"0", "f", "F", "FALSE", "false", "False"})


# ---------------------------------------------------------------------------
# Column types
# ---------------------------------------------------------------------------


def parse_data_type(name: str) -> DataType:
    """Return the :class:`DataType` whose wire name is *name*."""
    try:
        return DataType(name)
    except ValueError:
        raise UnknownDataTypeError(f"unexpected timeseries data type: {name!r}") from None


def parse_data_types(names: Iterable[str]) -> list[DataType]:
    """Parse a list of wire type names, reporting the index of a bad one."""
    types: list[DataType] = []
    for i, name in enumerate(names):
        try:
            types.append(parse_data_type(name.strip()))
        except UnknownDataTypeError as exc:
            raise UnknownDataTypeError(f"{i}: {exc}") from exc
    return types


# ---------------------------------------------------------------------------
# Cell values
# ---------------------------------------------------------------------------


def parse_value(data_type: DataType, text: str) -> Any:
    """Parse one CSV cell according to *data_type*.

    Returns ``None`` for an empty cell.

    Raises:
        FieldParseError: If the cell is not valid text for *data_type*.
    """
    if not text:
        return None

    if data_type is DataType.FLOAT:
        if not _FLOAT_RE.fullmatch(text):
            raise FieldParseError(f"invalid float {text!r}")
        value = float(text)
        if math.isinf(value) and "inf" not in text.lower():
            raise FieldParseError(f"float {text!r} out of range")
        return value

    if data_type is DataType.INTEGER:
        if not _INTEGER_RE.fullmatch(text):
            raise FieldParseError(f"invalid integer {text!r}")
        value = int(text)
        if not _INT64_MIN <= value <= _INT64_MAX:
            raise FieldParseError(f"integer {text!r} out of range")
        return value

    if data_type is DataType.STRING:
        return text

    if data_type is DataType.BOOLEAN:
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
        raise FieldParseError(f"invalid boolean {text!r}")

    if data_type is DataType.STRING_ARRAY:
        try:
            values = json.loads(text)
        except json.JSONDecodeError as exc:
            raise FieldParseError(f"invalid string array {text!r}: {exc}") from exc
        if values is None:
            return None
        if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
            raise FieldParseError(f"invalid string array {text!r}: not a list of strings")
        return values

    raise UnknownDataTypeError(f"unexpected timeseries data type: {data_type!r}")


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------


def parse_tags(text: str) -> dict[str, str]:
    """Parse ``"device=123 attribute=temp"`` into a tag mapping.

    An empty string is an empty mapping.  Every space separated pair must
    contain exactly one ``=``.
    """
    tags: dict[str, str] = {}
    if not text:
        return tags

    for pair in text.split(" "):
        kv = pair.split("=")
        if len(kv) != 2:
            raise MalformedTagsError(
                f"bad key-value pair {pair!r}: len: want 2, have {len(kv)}"
            )
        tags[kv[0]] = kv[1]

    return tags


def format_tags(tags: Mapping[str, str]) -> str:
    """Inverse of :func:`parse_tags`, with keys in sorted order."""
    return " ".join(f"{k}={tags[k]}" for k in sorted(tags))
