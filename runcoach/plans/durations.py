# runcoach/plans/durations.py

"""
Best-effort parsing of the human pace/duration notation models emit.

The original string is always kept on the record; these helpers only give
callers a number to display or sort by when one can be recovered.
"""
import re
from typing import Optional

_CLOCK_RE = re.compile(r"^(\d{1,3}):(\d{2})(?::(\d{2}))?$")
_UNITS_RE = re.compile(
    r"(\d+(?:\.\d+)?)\s*(hours?|hrs?|h|minutes?|mins?|m|seconds?|secs?|s)\b",
    re.IGNORECASE,
)
_UNIT_SECONDS = {"h": 3600, "m": 60, "s": 1}


def parse_duration(text: Optional[str]) -> Optional[int]:
    """
    Parse a moving time into seconds.

    "51:45" is minutes:seconds, "1:25:00" is hours:minutes:seconds,
    "45 min" and "1h 20m" use units. Anything else returns None.
    """
    if not text:
        return None
    value = text.strip()
    if value.upper() == "N/A":
        return None

    match = _CLOCK_RE.match(value)
    if match:
        first, second, third = match.groups()
        if third is not None:
            seconds = int(first) * 3600 + int(second) * 60 + int(third)
        else:
            seconds = int(first) * 60 + int(second)
        return seconds or None

    total = 0.0
    found = False
    for amount, unit in _UNITS_RE.findall(value):
        total += float(amount) * _UNIT_SECONDS[unit[0].lower()]
        found = True
    if found:
        return int(round(total)) or None

    try:
        # bare number: minutes
        minutes = float(value)
    except ValueError:
        return None
    return int(round(minutes * 60)) or None


def parse_pace(text: Optional[str]) -> Optional[int]:
    """Parse a per-km pace like "5:45" or "5:45/km" into seconds per km."""
    if not text:
        return None
    value = text.strip().lower()
    for suffix in ("min/km", "/km", "per km"):
        if value.endswith(suffix):
            value = value[: -len(suffix)].strip()
    match = _CLOCK_RE.match(value)
    if not match or match.group(3) is not None:
        return None
    seconds = int(match.group(1)) * 60 + int(match.group(2))
    return seconds or None
