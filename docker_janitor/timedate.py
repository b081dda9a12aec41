import datetime
import re
from typing import Union

DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h|d|w)")
UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
    "w": 604800,
}
# Docker reports nanosecond precision, datetime only keeps microseconds.
_FRACTION = re.compile(r"\.(\d+)")


def parse_duration(value: str) -> datetime.timedelta:
    """
    Parse a Go-style duration string into a timedelta.

    A duration is a sequence of decimal numbers, each with a unit suffix, such as
    "300ms", "1.5h" or "2h45m". Valid units are "ns", "us" ("µs"), "ms", "s", "m",
    "h", plus "d" and "w" for days and weeks. A bare "0" is accepted.

    Args:
        value (str): The duration string.

    Returns:
        datetime.timedelta: The parsed duration.

    Raises:
        ValueError: If the string is empty or not a valid duration.

    Example:
        >>> parse_duration("1h30m")
        datetime.timedelta(seconds=5400)
        >>> parse_duration("12h")
        datetime.timedelta(seconds=43200)
    """
    if value is None:
        raise ValueError("Invalid duration: None")
    text = value.strip()
    if text == "0":
        return datetime.timedelta(0)
    if not text:
        raise ValueError(f"Invalid duration: '{value}'")

    seconds = 0.0
    position = 0
    for match in DURATION_PART.finditer(text):
        if match.start() != position:
            raise ValueError(f"Invalid duration: '{value}'")
        number, unit = match.groups()
        seconds += float(number) * UNIT_SECONDS[unit]
        position = match.end()
    if position != len(text):
        raise ValueError(f"Invalid duration: '{value}'")
    return datetime.timedelta(seconds=seconds)


def _decimal(value: int, digits: int) -> str:
    whole, fraction = divmod(value, 10**digits)
    fraction = str(fraction).rjust(digits, "0").rstrip("0")
    return f"{whole}.{fraction}" if fraction else str(whole)


def format_duration(duration: datetime.timedelta) -> str:
    """
    Render a timedelta in the compact form accepted by parse_duration.

    Durations under one second are shown in "ms" or "µs"; longer ones keep
    their fractional seconds.

    Example:
        >>> format_duration(datetime.timedelta(hours=12))
        '12h0m0s'
        >>> format_duration(datetime.timedelta(seconds=90))
        '1m30s'
        >>> format_duration(datetime.timedelta(milliseconds=500))
        '500ms'
    """
    if duration is None:
        return "0s"
    micros = duration // datetime.timedelta(microseconds=1)
    sign = "-" if micros < 0 else ""
    micros = abs(micros)
    if micros == 0:
        return "0s"
    if micros < 1000:
        return f"{sign}{micros}µs"
    if micros < 1_000_000:
        return f"{sign}{_decimal(micros, 3)}ms"

    total, fraction = divmod(micros, 1_000_000)
    hours, remainder = divmod(total, 3600)
    minutes, seconds = divmod(remainder, 60)
    seconds = _decimal(seconds * 1_000_000 + fraction, 6)
    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{sign}{minutes}m{seconds}s"
    return f"{sign}{seconds}s"


def parse_docker_timestamp(value: Union[int, float, str]) -> datetime.datetime:
    """
    Convert a Docker "Created" field to a timezone aware UTC datetime.

    Image summaries report Unix seconds, inspect results report RFC 3339 strings
    with nanosecond precision (e.g. "2024-05-01T10:00:00.123456789Z").

    Args:
        value (Union[int, float, str]): The raw timestamp.

    Returns:
        datetime.datetime: The creation time in UTC.

    Raises:
        ValueError: If the value cannot be interpreted as a timestamp.

    Example:
        >>> parse_docker_timestamp(0)
        datetime.datetime(1970, 1, 1, 0, 0, tzinfo=datetime.timezone.utc)
    """
    if isinstance(value, (int, float)):
        return datetime.datetime.fromtimestamp(value, tz=datetime.timezone.utc)
    if not isinstance(value, str) or not value:
        raise ValueError(f"Invalid timestamp: {value!r}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    parsed = datetime.datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed.astimezone(datetime.timezone.utc)


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)
