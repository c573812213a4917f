"""Parse Go-style duration strings such as "45s", "1m30s" or "1.5h"."""

import math
import re

from .errors import ParseIntervalError

# Seconds per unit
_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,  # U+00B5 micro sign
    "μs": 1e-6,  # U+03BC greek mu
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_COMPONENT = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")

# Largest duration representable as int64 nanoseconds (~292 years)
MAX_SECONDS = (2 ** 63 - 1) / 1e9


def parse_duration(value: str) -> float:
    """
    Convert a duration string into seconds.

    Accepts a sequence of decimal numbers, each with a unit suffix
    (ns, us, ms, s, m, h), e.g. "300ms", "2h45m", "1.5h". A bare "0"
    is also accepted. Negative durations, surrounding whitespace and
    values beyond MAX_SECONDS are rejected.

    Args:
        value: Duration string

    Returns:
        float: Duration in seconds

    Raises:
        ParseIntervalError: If the string is not a valid duration
    """
    if not isinstance(value, str):
        raise ParseIntervalError(f"invalid duration {value!r}")

    if value == "0":
        return 0.0
    if not value:
        raise ParseIntervalError("invalid duration ''")

    total = 0.0
    pos = 0
    while pos < len(value):
        match = _COMPONENT.match(value, pos)
        if match is None:
            raise ParseIntervalError(f"invalid duration {value!r}")
        number, unit = match.groups()
        total += float(number) * _UNITS[unit]
        pos = match.end()

    if not math.isfinite(total) or total > MAX_SECONDS:
        raise ParseIntervalError(f"invalid duration {value!r}: out of range")

    return total
