"""Parsing and formatting of kubectl-style durations (``8760h``, ``1h30m``, ``90s``)."""

import re
from datetime import timedelta

_UNITS = {
    "h": timedelta(hours=1),
    "m": timedelta(minutes=1),
    "s": timedelta(seconds=1),
    "ms": timedelta(milliseconds=1),
}

_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")


def parse_duration(value: str) -> timedelta:
    """Parse a duration string into a timedelta.

    Accepts one or more ``<number><unit>`` groups with units ``h``, ``m``,
    ``s`` and ``ms``. A bare integer is read as seconds.

    Args:
        value: Duration text

    Returns:
        Parsed duration

    Raises:
        ValueError: If the text is empty or malformed
    """
    text = value.strip()
    if not text:
        raise ValueError("duration must not be empty")

    if text.isdigit():
        return timedelta(seconds=int(text))

    total = timedelta()
    position = 0
    for match in _PART.finditer(text):
        if match.start() != position:
            break
        total += float(match.group(1)) * _UNITS[match.group(2)]
        position = match.end()

    if position == 0 or position != len(text):
        raise ValueError(f"invalid duration {value!r}")

    return total


def format_duration(duration: timedelta) -> str:
    """Render a timedelta in the same compact form, e.g. ``8760h`` or ``1h30m``."""
    seconds = int(duration.total_seconds())
    hours, remainder = divmod(seconds, 3600)
    minutes, seconds = divmod(remainder, 60)

    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if seconds or not parts:
        parts.append(f"{seconds}s")
    return "".join(parts)
