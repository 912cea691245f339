"""
Idle status for courts and umpires.

Formula: time_until_idle = (start_time + duration_minutes) - now

Pure functions over plain values. The caller re-evaluates on a fixed
interval (the dashboards poll every 30s); nothing here is time-driven.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, Optional, Protocol

from courtside.services.timestamps import TimestampInput, parse_as_utc, utc_now

logger = logging.getLogger(__name__)

# Within this many seconds of the end, the resource counts as free
IDLE_THRESHOLD_SECONDS = 60


class MatchTiming(Protocol):
    id: Optional[int]
    actual_start_time: TimestampInput
    duration_minutes: Optional[int]


@dataclass(frozen=True)
class IdleStatus:
    is_idle: bool
    minutes_until_idle: Optional[int] = None
    human_readable: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_idle": self.is_idle,
            "minutes_until_idle": self.minutes_until_idle,
            "human_readable": self.human_readable,
        }


IDLE = IdleStatus(is_idle=True)


def format_time_until_idle(minutes: int) -> str:
    """5 -> "5m", 90 -> "1h 30m", 120 -> "2h", 0 -> "Now"."""
    if minutes <= 0:
        return "Now"

    hours, mins = divmod(minutes, 60)
    if hours > 0:
        if mins > 0:
            return f"{hours}h {mins}m"
        return f"{hours}h"
    return f"{mins}m"


def calculate_idle_status(
    start_time: TimestampInput,
    duration_minutes: Optional[int],
    now: Optional[datetime] = None,
) -> IdleStatus:
    """Countdown for a resource whose match started at *start_time*."""
    if not start_time or not duration_minutes or duration_minutes <= 0:
        return IDLE

    start = parse_as_utc(start_time)
    if start is None:
        logger.error("Invalid start time for idle calculation: %r", start_time)
        return IDLE

    current = parse_as_utc(now) if now is not None else utc_now()
    end = start + timedelta(minutes=duration_minutes)
    remaining_seconds = (end - current).total_seconds()

    if remaining_seconds <= IDLE_THRESHOLD_SECONDS:
        return IdleStatus(
            is_idle=True,
            minutes_until_idle=0,
            human_readable="Less than 1m" if remaining_seconds > 0 else "Overtime",
        )

    minutes_remaining = math.ceil(remaining_seconds / 60)
    return IdleStatus(
        is_idle=False,
        minutes_until_idle=minutes_remaining,
        human_readable=format_time_until_idle(minutes_remaining),
    )


def calculate_idle_status_with_match(
    is_idle: bool,
    last_assigned_start_time: TimestampInput,
    last_assigned_match_id: Optional[int],
    matches: Iterable[MatchTiming],
    now: Optional[datetime] = None,
) -> IdleStatus:
    """
    Idle status for a court/umpire given its cached assignment fields.

    Decision order:
        1. No assigned match -> idle.
        2. Assigned match not in *matches* -> trust the is_idle flag.
        3. Start time (resource's own first, else match.actual_start_time)
           plus duration -> countdown.
        4. Missing timing data -> busy labels from the flag, else idle.
    """
    if last_assigned_match_id is None:
        return IDLE

    match = next((m for m in matches if m.id == last_assigned_match_id), None)
    if match is None:
        if not is_idle:
            return IdleStatus(is_idle=False, human_readable="Match in progress")
        return IDLE

    start_time = last_assigned_start_time or match.actual_start_time
    if start_time and match.duration_minutes and match.duration_minutes > 0:
        return calculate_idle_status(start_time, match.duration_minutes, now=now)

    if not is_idle:
        if match.actual_start_time:
            return IdleStatus(is_idle=False, human_readable="In progress")
        return IdleStatus(is_idle=False, human_readable="Waiting to start")

    return IDLE
