"""
Typed parameter parsers used by ``Check.bind``.

Each parser takes the raw checklist string and either returns the typed value
or raises ParameterTypeError(parameter, expected_type_name). None of them touch
the filesystem or the network.
"""

from __future__ import annotations

import ipaddress
import re
from collections.abc import Iterable

from distributive.errors import ParameterTypeError

# -----------------------------------------------------------------------------
# Numbers
# -----------------------------------------------------------------------------


def parse_int(value: str, minimum: int | None = None, maximum: int | None = None, expected: str = "int") -> int:
    try:
        number = int(value.strip(), 10)
    except (ValueError, AttributeError):
        raise ParameterTypeError(value, expected) from None
    if minimum is not None and number < minimum:
        raise ParameterTypeError(value, expected)
    if maximum is not None and number > maximum:
        raise ParameterTypeError(value, expected)
    return number


def parse_uint16(value: str) -> int:
    return parse_int(value, 0, 65535, "uint16")


def parse_port(value: str) -> int:
    return parse_int(value, 0, 65535, "port (0-65535)")


def parse_percent(value: str) -> int:
    """'85', '85%' -> 85."""
    return parse_int(value.replace("%", ""), 0, 100, "percentage (0-100)")


def parse_temperature(value: str) -> int:
    """'80', '80C', '80°C', '80℃' -> 80 (degrees Celsius)."""
    stripped = value
    for unit in ("℃", "°", "C", "c"):
        stripped = stripped.replace(unit, "")
    return parse_int(stripped, 0, 65535, "temperature (uint16, Celsius)")


# -----------------------------------------------------------------------------
# Text
# -----------------------------------------------------------------------------


def parse_regexp(value: str) -> re.Pattern[str]:
    try:
        return re.compile(value)
    except re.error:
        raise ParameterTypeError(value, "regexp") from None


def parse_choice(value: str, choices: Iterable[str], expected: str | None = None) -> str:
    """Case-insensitive enum. Returns the canonical spelling from ``choices``."""
    choices = list(choices)
    for choice in choices:
        if value.strip().lower() == choice.lower():
            return choice
    raise ParameterTypeError(value, expected or " | ".join(choices))


def parse_name(value: str, expected: str, max_length: int | None = None) -> str:
    """User and group names: non-empty, no ':' (the passwd/group separator)."""
    if not value or ":" in value or (max_length is not None and len(value) > max_length):
        raise ParameterTypeError(value, expected)
    return value


def parse_nonempty(value: str, expected: str) -> str:
    if not value.strip():
        raise ParameterTypeError(value, expected)
    return value


# -----------------------------------------------------------------------------
# Durations (Go syntax: "300ms", "1.5h", "2h45m")
# -----------------------------------------------------------------------------

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(value: str) -> float:
    """Return the duration in seconds. Negative durations are rejected."""
    text = value.strip()
    if text.startswith("+"):
        text = text[1:]
    if text == "0":
        return 0.0
    if not text:
        raise ParameterTypeError(value, "duration")
    total = 0.0
    position = 0
    for match in _DURATION_PART_RE.finditer(text):
        if match.start() != position:
            raise ParameterTypeError(value, "duration")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    if position != len(text):
        raise ParameterTypeError(value, "duration")
    return total


# -----------------------------------------------------------------------------
# Network
# -----------------------------------------------------------------------------


def parse_ip(value: str, version: int | None = None) -> ipaddress.IPv4Address | ipaddress.IPv6Address:
    try:
        address = ipaddress.ip_address(value.strip())
    except ValueError:
        raise ParameterTypeError(value, f"IPv{version} address" if version else "IP address") from None
    if version is not None and address.version != version:
        raise ParameterTypeError(value, f"IPv{version} address")
    return address


def parse_address(value: str) -> tuple[str, int]:
    """'host:port' or '[v6]:port' -> (host, port)."""
    host, sep, port = value.strip().rpartition(":")
    if not sep or not host:
        raise ParameterTypeError(value, "host:port address")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        return host, parse_port(port)
    except ParameterTypeError:
        raise ParameterTypeError(value, "host:port address") from None


def parse_url(value: str) -> str:
    if not re.match(r"^https?://[^/\s]+", value.strip(), re.IGNORECASE):
        raise ParameterTypeError(value, "http(s) URL")
    return value.strip()


# -----------------------------------------------------------------------------
# Byte units ("2GB", "512 mb", "1 terabyte"); powers of 1024
# -----------------------------------------------------------------------------

_BYTE_UNITS = (
    (re.compile(r"^(tera(bytes?)?|[tT][iI]?[bB]?)$", re.IGNORECASE), 1024**4),
    (re.compile(r"^(giga(bytes?)?|[gG][iI]?[bB]?)$", re.IGNORECASE), 1024**3),
    (re.compile(r"^(mega(bytes?)?|[mM][iI]?[bB]?)$", re.IGNORECASE), 1024**2),
    (re.compile(r"^(kilo(bytes?)?|[kK][iI]?[bB]?)$", re.IGNORECASE), 1024),
    (re.compile(r"^(bytes?|[bB])$", re.IGNORECASE), 1),
)
_BYTE_QUANTITY_RE = re.compile(r"^\s*(\d+)\s*([A-Za-z]*)\s*$")


def parse_bytes(value: str) -> int:
    """Return the quantity in bytes. A bare number is bytes."""
    match = _BYTE_QUANTITY_RE.match(value)
    if not match:
        raise ParameterTypeError(value, "byte quantity (e.g. 2GB)")
    amount, unit = int(match.group(1)), match.group(2)
    if not unit:
        return amount
    for pattern, multiplier in _BYTE_UNITS:
        if pattern.match(unit):
            return amount * multiplier
    raise ParameterTypeError(value, "byte quantity (e.g. 2GB)")


# -----------------------------------------------------------------------------
# File modes ("-rwxr-xr-x", permission bits only)
# -----------------------------------------------------------------------------

_FILEMODE_RE = re.compile(r"^-([r-][w-][x-]){3}$")


def parse_filemode(value: str) -> str:
    if not _FILEMODE_RE.match(value.strip()):
        raise ParameterTypeError(value, "filemode (e.g. -rwxr-xr-x)")
    return value.strip()
