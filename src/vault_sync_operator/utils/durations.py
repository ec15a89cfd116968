"""Parsing of Go-style duration strings used in annotations."""

from __future__ import annotations

import re

from .errors import ConfigurationError

_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_COMPONENT = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_DURATION = re.compile(r"^[+-]?((\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h))+$")


def parse_duration(value: str, annotation: str = "duration") -> float:
    """Parse a duration such as ``30s``, ``5m`` or ``1h30m`` into seconds.

    Follows the Go ``time.ParseDuration`` grammar: a signed sequence of
    decimal numbers with unit suffixes, or a bare ``0``.

    Raises:
        ConfigurationError: If the string is not a valid duration
    """
    text = value.strip()
    if text in ("0", "+0", "-0"):
        return 0.0
    if not _DURATION.match(text):
        raise ConfigurationError(f"invalid duration {value!r}", annotation, value)

    sign = -1.0 if text.startswith("-") else 1.0
    total = sum(float(number) * _UNITS[unit] for number, unit in _COMPONENT.findall(text.lstrip("+-")))
    return sign * total
