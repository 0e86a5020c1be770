# ─────────────────────────────────────────────────────────────────
# durations.py — Human-Readable Duration Parsing
#
# Turns query-string values such as "30s", "5m" or "1h 30m" into
# timedelta objects. Invalid input raises ValueError, which the
# routes turn into a 400 response before the request reaches the
# check-in logic.
# ─────────────────────────────────────────────────────────────────

import re
from datetime import timedelta

# unit → length in seconds
UNITS = {
    "nsec": 1e-9, "ns": 1e-9,
    "usec": 1e-6, "us": 1e-6,
    "msec": 1e-3, "ms": 1e-3,
    "seconds": 1, "second": 1, "secs": 1, "sec": 1, "s": 1,
    "minutes": 60, "minute": 60, "mins": 60, "min": 60, "m": 60,
    "hours": 3600, "hour": 3600, "hrs": 3600, "hr": 3600, "h": 3600,
    "days": 86400, "day": 86400, "d": 86400,
    "weeks": 604800, "week": 604800, "w": 604800,
    "months": 2630016, "month": 2630016, "M": 2630016,
    "years": 31557600, "year": 31557600, "y": 31557600,
}

_PART = re.compile(r"\s*(\d+)\s*([A-Za-z]+)")


def parse_duration(text: str) -> timedelta:
    """
    Parses a duration made of one or more <number><unit> groups.

    >>> parse_duration("1h 30m")
    datetime.timedelta(seconds=5400)
    """
    if text is None or not text.strip():
        raise ValueError("empty duration")

    total = 0.0
    pos = 0
    stripped = text.rstrip()
    while pos < len(stripped):
        match = _PART.match(stripped, pos)
        if match is None:
            raise ValueError(f"invalid duration {text!r}")

        number, unit = match.groups()
        if unit not in UNITS:
            raise ValueError(f"unknown time unit {unit!r} in {text!r}")

        try:
            total += int(number) * UNITS[unit]
        except OverflowError:
            raise ValueError(f"duration {text!r} is out of range") from None
        pos = match.end()

    try:
        return timedelta(seconds=total)
    except OverflowError:
        raise ValueError(f"duration {text!r} is out of range") from None
