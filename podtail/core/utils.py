"""Utility functions for podtail."""

from datetime import datetime, timezone
from typing import Optional, Tuple


def parse_timestamp(value: str) -> Optional[datetime]:
    """Best-effort RFC3339 timestamp parsing.

    Kubernetes emits nanosecond precision which ``fromisoformat`` rejects,
    so the fraction is cut down to microseconds first.
    """
    if not value:
        return None

    normalised = value.replace("Z", "+00:00")
    date_part, dot, rest = normalised.partition(".")
    if dot:
        digits = ""
        for char in rest:
            if not char.isdigit():
                break
            digits += char
        normalised = f"{date_part}.{digits[:6].ljust(6, '0')}{rest[len(digits):]}"

    try:
        parsed = datetime.fromisoformat(normalised)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def split_timestamp(line: str) -> Tuple[Optional[datetime], str]:
    """Split a ``<timestamp> <message>`` line into its two parts.

    Returns ``(None, line)`` when the first token is not a timestamp.
    """
    token, _, remainder = line.partition(" ")
    parsed = parse_timestamp(token)
    if parsed is None:
        return None, line
    return parsed, remainder
