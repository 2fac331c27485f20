"""Turn a user-authored YAML query into the JSON body sent to the API.

The document is decoded into a plain mapping, a handful of keys are injected
or overridden, and the mapping is re-encoded.  No text substitution is ever
performed on the document's values.

Keys handled here:

* ``@offset``: optional duration; the fetch window is moved back by it and
  the key is dropped from the wire query.
* ``from`` / ``to``: always overwritten with the requested window.
* ``granularity``: defaulted from the panel interval when absent.
* ``aggregation``: defaulted to ``"auto"`` when absent.
"""

from __future__ import annotations

import bisect
import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

import yaml
from pydantic import JsonValue, TypeAdapter, ValidationError

from enquery._internal.durations import format_duration, format_rfc3339, parse_duration
from enquery.api.errors import InvalidDocumentError, InvalidOffsetError

logger = logging.getLogger(__name__)

OFFSET_KEY = "@offset"
DEFAULT_AGGREGATION = "auto"

MIN_GRANULARITY = timedelta(seconds=1)

GRANULARITIES: tuple[timedelta, ...] = (
    timedelta(seconds=1),
    timedelta(seconds=2),
    timedelta(seconds=5),
    timedelta(minutes=1),
    timedelta(minutes=2),
    timedelta(minutes=5),
    timedelta(minutes=10),
    timedelta(minutes=20),
    timedelta(minutes=30),
    timedelta(hours=1),
    timedelta(hours=2),
    timedelta(hours=6),
    timedelta(hours=12),
    timedelta(hours=24),
)

_DOCUMENT = TypeAdapter(dict[str, JsonValue])


_YAML11_ONLY_TAGS = frozenset(
    {
        "tag:yaml.org,2002:bool",
        "tag:yaml.org,2002:int",
        "tag:yaml.org,2002:float",
        "tag:yaml.org,2002:timestamp",
        "tag:yaml.org,2002:value",
    }
)


class _QueryLoader(yaml.SafeLoader):
    """SafeLoader resolving plain scalars by the YAML 1.2 core schema.

    ``yes``/``on``, sexagesimal ``1:30`` and timestamps stay strings.
    """


_QueryLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag not in _YAML11_ONLY_TAGS]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}

_QueryLoader.add_implicit_resolver(
    "tag:yaml.org,2002:bool",
    re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"),
    list("tTfF"),
)
_QueryLoader.add_implicit_resolver(
    "tag:yaml.org,2002:int",
    re.compile(r"^(?:[-+]?[0-9]+|0o[0-7]+|0x[0-9a-fA-F]+)$"),
    list("-+0123456789"),
)
_QueryLoader.add_implicit_resolver(
    "tag:yaml.org,2002:float",
    re.compile(
        r"^(?:[-+]?(?:\.[0-9]+|[0-9]+(?:\.[0-9]*)?)(?:[eE][-+]?[0-9]+)?"
        r"|[-+]?\.(?:inf|Inf|INF)|\.(?:nan|NaN|NAN))$"
    ),
    list("-+.0123456789"),
)


def _construct_int(loader: _QueryLoader, node: yaml.ScalarNode) -> int:
    # Leading zeros are decimal in YAML 1.2; SafeConstructor reads them as octal.
    value = loader.construct_scalar(node)
    if value.startswith("0o"):
        return int(value[2:], 8)
    if value.startswith("0x"):
        return int(value[2:], 16)
    return int(value)


_QueryLoader.add_constructor("tag:yaml.org,2002:int", _construct_int)


@dataclass(frozen=True)
class TimeRange:
    """Requested query window."""

    start: datetime
    end: datetime


@dataclass(frozen=True)
class PreparedQuery:
    """Wire query text plus the ``@offset`` that was applied to its window."""

    text: str
    offset: timedelta = timedelta(0)


def default_granularity(interval: timedelta) -> timedelta:
    """Pick the sampling bucket for a panel *interval*.

    Returns the smallest entry of :data:`GRANULARITIES` that is at least
    *interval*, saturating at the largest one.
    """
    if interval <= MIN_GRANULARITY:
        return MIN_GRANULARITY

    i = bisect.bisect_left(GRANULARITIES, interval)
    if i < len(GRANULARITIES):
        return GRANULARITIES[i]
    return GRANULARITIES[-1]


def decode_document(text: str) -> dict[str, Any]:
    """Decode *text* as a YAML mapping of string keys to plain values.

    Raises:
        InvalidDocumentError: Not YAML, or the top level is not a mapping.
    """
    try:
        obj = yaml.load(text, Loader=_QueryLoader)  # noqa: S506
    except yaml.YAMLError as exc:
        raise InvalidDocumentError(f"decode YAML: {exc}") from exc

    if not isinstance(obj, dict):
        raise InvalidDocumentError(f"decode YAML: want a mapping, have {type(obj).__name__}")

    for key in obj:
        if not isinstance(key, str):
            raise InvalidDocumentError(
                f"decode YAML: key {key!r} is {type(key).__name__}, want str"
            )

    try:
        return _DOCUMENT.validate_python(obj, strict=True)
    except ValidationError as exc:
        loc = ".".join(str(part) for part in exc.errors()[0]["loc"])
        raise InvalidDocumentError(f"decode YAML: unsupported value at {loc}") from exc


def _pop_offset(obj: dict[str, Any]) -> timedelta:
    if OFFSET_KEY not in obj:
        return timedelta(0)

    raw = obj[OFFSET_KEY]
    if not isinstance(raw, str):
        raise InvalidOffsetError(
            f"unexpected type: want str, have {type(raw).__name__}"
        )
    try:
        offset = parse_duration(raw)
    except ValueError as exc:
        raise InvalidOffsetError(str(exc)) from exc

    del obj[OFFSET_KEY]
    return offset


def prepare_query(text: str, interval: timedelta, time_range: TimeRange) -> PreparedQuery:
    """Build the wire query for one sub-query.

    Args:
        text: The YAML (or JSON) query document.
        interval: Panel sampling interval, used for the default granularity.
        time_range: The window the user asked to see.

    Returns:
        A :class:`PreparedQuery` whose ``offset`` must be added back to the
        decoded timestamps before they are displayed.

    Raises:
        InvalidDocumentError: *text* is not a YAML mapping, or holds a value
            JSON cannot carry (NaN, infinity).
        InvalidOffsetError: ``@offset`` is present but not a duration string.
    """
    obj = decode_document(text)

    offset = _pop_offset(obj)
    start = time_range.start - offset
    end = time_range.end - offset

    obj["from"] = format_rfc3339(start)
    obj["to"] = format_rfc3339(end)

    if "granularity" not in obj:
        obj["granularity"] = format_duration(default_granularity(interval))

    if "aggregation" not in obj:
        obj["aggregation"] = DEFAULT_AGGREGATION

    try:
        wire = json.dumps(
            obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False, allow_nan=False
        )
    except ValueError as exc:
        raise InvalidDocumentError(f"encode JSON: {exc}") from exc

    if offset:
        logger.debug("Prepared query with offset %s: %s", format_duration(offset), wire)
    else:
        logger.debug("Prepared query: %s", wire)

    return PreparedQuery(text=wire, offset=offset)
