"""Parsing of human-readable sizes, durations and CPU quantities."""

import re
from typing import Union

from convoy.errors import BuildError


_SIZE_SUFFIXES = {
    "Mi": 1 << 20,
    "Gi": 1 << 30,
}

_DURATION_UNITS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_CPU = re.compile(r"^(\d+(?:\.\d+)?|\.\d+)(m?)$")
_DIGITS = re.compile(r"[0-9]+")


def parse_byte_size(value: Union[str, int]) -> int:
    """Parse a size such as "64Mi", "2Gi" or "1048576" into bytes."""
    if isinstance(value, int) and not isinstance(value, bool):
        if value < 0:
            raise BuildError(f"invalid size {value!r}: must not be negative")
        return value

    text = str(value).strip()
    for suffix, multiplier in _SIZE_SUFFIXES.items():
        if text.endswith(suffix):
            number = text[: -len(suffix)]
            if not _DIGITS.fullmatch(number):
                raise BuildError(f"invalid size {value!r}")
            return int(number) * multiplier

    if _DIGITS.fullmatch(text):
        return int(text)
    raise BuildError(f"invalid size {value!r}: expected <N>Mi, <N>Gi or a byte count")


def parse_duration(value: str) -> int:
    """Parse a Go-style duration such as "1m30s" or "500ms" into nanoseconds."""
    text = str(value).strip()
    if text in ("0", "+0", "-0"):
        return 0

    sign = 1
    if text[:1] in ("+", "-"):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]

    if not text:
        raise BuildError(f"invalid duration {value!r}")

    total = 0.0
    pos = 0
    while pos < len(text):
        match = _DURATION_PART.match(text, pos)
        if not match:
            raise BuildError(f"invalid duration {value!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()

    return sign * int(round(total))


def parse_cpu(value: Union[str, int, float]) -> int:
    """Parse a CPU quantity such as "1.5" or "500m" into nano CPUs."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if value < 0:
            raise BuildError(f"invalid cpu quantity {value!r}")
        return int(round(value * 1e9))

    match = _CPU.match(str(value).strip())
    if not match:
        raise BuildError(f"invalid cpu quantity {value!r}")
    cores = float(match.group(1))
    if match.group(2):
        cores /= 1000
    return int(round(cores * 1e9))
