"""Duration and timestamp text helpers.

The telemetry API speaks Go-flavoured duration strings (``"1m0s"``,
``"1h30m"``) and RFC 3339 timestamps with trimmed fractional seconds.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime, timedelta

# Microseconds per unit; timedelta cannot hold anything finer.
_UNIT_MICROS: dict[str, float] = {
    "ns": 0.001,
    "us": 1.0,
    "µs": 1.0,  # noqa: RUF001
    "μs": 1.0,  # noqa: RUF001
    "ms": 1_000.0,
    "s": 1_000_000.0,
    "m": 60_000_000.0,
    "h": 3_600_000_000.0,
}

_COMPONENT_RE = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")  # noqa: RUF001


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``"300ms"``, ``"-1.5h"`` or ``"2h45m"``.

    Raises:
        ValueError: If *text* is not a valid duration.  A bare number is
            only accepted for ``"0"``.
    """
    s = text
    sign = 1
    if s[:1] in ("-", "+"):
        sign = -1 if s[0] == "-" else 1
        s = s[1:]

    if s == "0":
        return timedelta(0)
    if not s:
        raise ValueError(f"invalid duration {text!r}")

    total = 0.0
    pos = 0
    while pos < len(s):
        match = _COMPONENT_RE.match(s, pos)
        if match is None:
            raise ValueError(f"invalid duration {text!r}")
        number, unit = match.groups()
        total += float(number) * _UNIT_MICROS[unit]
        pos = match.end()

    return timedelta(microseconds=sign * total)


def format_duration(value: timedelta) -> str:
    """Format *value* the way the upstream API prints durations.

    Whole-second durations render as ``"1s"``, ``"1m0s"``, ``"24h0m0s"``;
    sub-second durations use the largest fitting unit (``"500ms"``).
    """
    micros = (value.days * 86_400 + value.seconds) * 1_000_000 + value.microseconds
    if micros == 0:
        return "0s"

    sign = "-" if micros < 0 else ""
    micros = abs(micros)

    if micros < 1_000_000:
        if micros < 1_000:
            return f"{sign}{micros}µs"  # noqa: RUF001
        return f"{sign}{_trim(micros / 1_000)}ms"

    hours, rem = divmod(micros, 3_600_000_000)
    minutes, rem = divmod(rem, 60_000_000)
    seconds = _trim(rem / 1_000_000)

    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{sign}{minutes}m{seconds}s"
    return f"{sign}{seconds}s"


def _trim(number: float) -> str:
    text = f"{number:.6f}".rstrip("0").rstrip(".")
    return text or "0"


def format_rfc3339(moment: datetime) -> str:
    """Return *moment* as UTC RFC 3339 text with trailing zeros trimmed.

    Naive datetimes are taken to be UTC already.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    moment = moment.astimezone(UTC)

    text = moment.strftime("%Y-%m-%dT%H:%M:%S")
    if moment.microsecond:
        text += f".{moment.microsecond:06d}".rstrip("0")
    return text + "Z"
