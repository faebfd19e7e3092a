"""
chunkscribe.formats.timecode - Timestamp math utilities.

Handles conversion between float seconds and the HH:MM:SS.mmm timestamps
used by WebVTT cue lines.
"""

from __future__ import annotations

import re

_TIMESTAMP_RE = re.compile(r"^(?:(\d+):)?(\d{1,2}):(\d{1,2}(?:[.,]\d+)?)$")


def parse_timestamp(timestamp: str) -> float:
    """Convert a cue timestamp to seconds.

    Accepts ``HH:MM:SS.mmm``, ``MM:SS.mmm`` (hours omitted, as WebVTT allows)
    and a comma as the fraction separator.

    Args:
        timestamp: Timestamp string

    Returns:
        Time in seconds

    Raises:
        ValueError: If the timestamp cannot be parsed
    """
    match = _TIMESTAMP_RE.match(timestamp.strip())
    if not match:
        raise ValueError(f"Invalid timestamp: {timestamp!r}")

    hours, minutes, seconds = match.groups()
    return int(hours or 0) * 3600 + int(minutes) * 60 + float(seconds.replace(",", "."))


def format_timestamp(seconds: float) -> str:
    """Convert seconds to an ``HH:MM:SS.mmm`` timestamp.

    Rounds to the nearest millisecond first so 59.9996 becomes 00:01:00.000
    instead of 00:00:60.000.
    """
    total_ms = max(0, round(seconds * 1000))
    ms = total_ms % 1000
    total_seconds = total_ms // 1000
    ss = total_seconds % 60
    mm = (total_seconds // 60) % 60
    hh = total_seconds // 3600

    return f"{hh:02d}:{mm:02d}:{ss:02d}.{ms:03d}"


def shift_seconds(seconds: float, offset: float) -> float:
    """Shift a local timestamp onto the global timeline, rounded to microseconds."""
    return round(seconds + offset, 6)
