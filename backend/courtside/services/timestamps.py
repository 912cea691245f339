"""
UTC timestamp normalization.

Database timestamps are stored as UTC without a zone marker
("2025-11-21 11:55:11.835"). Parsing those naively would treat them as local
time, so every timestamp that drives scheduling or idle status goes through
parse_as_utc() and comes out as an aware UTC datetime.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Optional, Union

logger = logging.getLogger(__name__)

_OFFSET_RE = re.compile(r"([+-]\d{2}):?(\d{2})?$")
_FRACTION_RE = re.compile(r"\.(\d+)")

TimestampInput = Union[str, datetime, None]


def utc_now() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def _normalize_string(value: str) -> str:
    normalized = value.strip()

    # PostgreSQL form uses a space separator
    if " " in normalized and "T" not in normalized:
        normalized = normalized.replace(" ", "T", 1)

    if normalized.endswith("Z") or normalized.endswith("z"):
        normalized = normalized[:-1] + "+00:00"

    # Offset part only exists after the time component
    date_part, sep, time_part = normalized.partition("T")
    if sep:
        offset_match = _OFFSET_RE.search(time_part)
        if offset_match:
            hours, minutes = offset_match.group(1), offset_match.group(2) or "00"
            time_part = time_part[: offset_match.start()] + f"{hours}:{minutes}"
        else:
            time_part = time_part + "+00:00"

        # fromisoformat on older interpreters wants exactly 3 or 6 fraction digits
        fraction = _FRACTION_RE.search(time_part)
        if fraction:
            digits = fraction.group(1)[:6].ljust(6, "0")
            time_part = time_part[: fraction.start()] + "." + digits + time_part[fraction.end():]

        normalized = f"{date_part}T{time_part}"
    else:
        normalized = f"{date_part}T00:00:00+00:00"

    return normalized


def parse_as_utc(value: TimestampInput) -> Optional[datetime]:
    """
    Parse a timestamp and interpret it as UTC when no zone is present.

    Accepts:
        - None / empty string -> None
        - datetime: naive values are taken as UTC, aware values are converted
        - "2025-11-21 11:55:11.835", "2025-11-21T11:55:11Z",
          "2025-11-21T17:25:11+05:30", "2025-11-21 11:55:11+00", "2025-11-21"

    Returns an aware UTC datetime, or None when the value cannot be parsed.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    if not isinstance(value, str) or not value.strip():
        return None

    normalized = _normalize_string(value)
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        logger.error("Failed to parse timestamp as UTC: original=%r normalized=%r", value, normalized)
        return None

    return parsed.astimezone(timezone.utc)


def to_naive_utc(value: TimestampInput) -> Optional[datetime]:
    """Parse and strip tzinfo for storage in naive-UTC columns."""
    parsed = parse_as_utc(value)
    if parsed is None:
        return None
    return parsed.replace(tzinfo=None)


def format_db_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Render a UTC instant as 'YYYY-MM-DD HH:MM:SS' (no zone), the stored form."""
    parsed = parse_as_utc(value)
    if parsed is None:
        return None
    return parsed.strftime("%Y-%m-%d %H:%M:%S")
