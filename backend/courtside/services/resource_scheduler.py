"""
Resource Scheduler: time slots, courts and umpires for a set of pairings.

Rounds are played in waves: at most batch_size matches start together,
batch_size = min(#courts, #umpires, override). Wave k of a round starts at
round_start + k * slot, slot = match duration + rest time. The next round
starts once every wave of the previous one has had its slot.

Constraints:
- An umpire is never booked twice at the same wave time
- Club neutrality is best-effort: if no neutral umpire is free, any free
  umpire is used and a warning is recorded
- BYEs take a wave time for ordering only: no court, no umpire, no load

All run state (court rotation, umpire loads, bookings, warnings) lives in a
SchedulingContext owned by the caller. Same inputs -> same outputs.
"""

from __future__ import annotations

import logging
import math
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, List, Mapping, Optional, Protocol, Sequence, Set

from courtside.services.pairing import Pairing
from courtside.services.rounds import RoundRef

logger = logging.getLogger(__name__)


class CourtLike(Protocol):
    id: Optional[int]


class UmpireLike(Protocol):
    id: Optional[int]
    club_id: Optional[int]


class OfficialStrategy(str, Enum):
    LEAST_LOADED = "least_loaded"  # fewest assignments so far, ties by input order
    ROTATION = "rotation"  # next umpire in input order after the last one used


@dataclass
class SchedulingContext:
    """Mutable state for one scheduling run."""

    court_index: int = 0
    rotation_index: int = 0
    umpire_load: Dict[int, int] = field(default_factory=dict)
    booked: Dict[datetime, Set[int]] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    neutrality_fallbacks: int = 0

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)


@dataclass
class ScheduledPairing:
    pairing: Pairing
    scheduled_time: datetime
    court_id: Optional[int] = None
    umpire_id: Optional[int] = None
    is_completed: bool = False
    winner_entry_id: Optional[int] = None

    @property
    def round(self) -> RoundRef:
        return self.pairing.round

    @property
    def is_bye(self) -> bool:
        return self.pairing.is_bye


def compute_batch_size(court_count: int, umpire_count: int, override: Optional[int] = None) -> int:
    """Matches that may start together: min(courts, umpires, override)."""
    limits = [court_count, umpire_count]
    if override is not None and override > 0:
        limits.append(override)
    return min(limits)


def match_code_prefix(tournament_id: int) -> str:
    return f"T{tournament_id}"


def generate_match_code(prefix: str, match_order: int) -> str:
    """Stable per-tournament code from the 1-based overall position, e.g. T12-007."""
    return f"{prefix}-{match_order:03d}"


def group_pairings_by_round(pairings: Sequence[Pairing]) -> "OrderedDict[RoundRef, List[Pairing]]":
    grouped: "OrderedDict[RoundRef, List[Pairing]]" = OrderedDict()
    for pairing in pairings:
        grouped.setdefault(pairing.round, []).append(pairing)
    return grouped


def _pick_umpire(
    pairing: Pairing,
    umpires: Sequence[UmpireLike],
    club_lookup: Mapping[int, Optional[int]],
    wave_time: datetime,
    respect_club_neutrality: bool,
    context: SchedulingContext,
    strategy: OfficialStrategy,
) -> Optional[UmpireLike]:
    booked = context.booked.setdefault(wave_time, set())
    available = [u for u in umpires if u.id not in booked]
    if not available:
        context.warn(
            f"No umpire free at {wave_time:%Y-%m-%d %H:%M} for {pairing.round.label}; "
            "match left without an umpire"
        )
        return None

    candidates = available
    if respect_club_neutrality:
        club1 = club_lookup.get(pairing.entry1_id) if pairing.entry1_id is not None else None
        club2 = club_lookup.get(pairing.entry2_id) if pairing.entry2_id is not None else None
        if club1 is not None and club2 is not None:
            neutral = [u for u in available if u.club_id != club1 and u.club_id != club2]
            if neutral:
                candidates = neutral
            else:
                context.neutrality_fallbacks += 1
                context.warn(
                    f"No neutral umpire free for entry {pairing.entry1_id} v entry {pairing.entry2_id} "
                    f"in {pairing.round.label}; assigned a same-club umpire"
                )

    if strategy == OfficialStrategy.ROTATION:
        candidate_ids = {u.id for u in candidates}
        chosen = None
        for step in range(len(umpires)):
            idx = (context.rotation_index + step) % len(umpires)
            if umpires[idx].id in candidate_ids:
                chosen = umpires[idx]
                context.rotation_index = idx + 1
                break
    else:
        # min() keeps the first of equal loads, i.e. input order
        chosen = min(candidates, key=lambda u: context.umpire_load.get(u.id, 0))

    if chosen is None:
        return None

    booked.add(chosen.id)
    context.umpire_load[chosen.id] = context.umpire_load.get(chosen.id, 0) + 1
    return chosen


def schedule_pairings(
    pairings: Sequence[Pairing],
    courts: Sequence[CourtLike],
    umpires: Sequence[UmpireLike],
    club_lookup: Mapping[int, Optional[int]],
    start: datetime,
    slot_minutes: int,
    batch_size: int,
    respect_club_neutrality: bool = True,
    context: Optional[SchedulingContext] = None,
    strategy: OfficialStrategy = OfficialStrategy.LEAST_LOADED,
) -> List[ScheduledPairing]:
    """
    Assign a wave time, court and umpire to every pairing.

    Args:
        pairings: Pairings in generation order, each tagged with its round
        courts / umpires: Available resources, in preference order
        club_lookup: entry_id -> club_id (None when the entrant has no club)
        start: First wave time of the first round
        slot_minutes: Match duration + rest time
        batch_size: Max matches per wave (see compute_batch_size)
        context: Run state; a fresh one is created when omitted

    Returns:
        One ScheduledPairing per input pairing, grouped by round in first-seen
        round order and keeping generation order within each round.
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
    # A zero-length slot would put every wave on the same instant
    if slot_minutes < 1:
        raise ValueError(f"slot_minutes must be >= 1, got {slot_minutes}")

    ctx = context if context is not None else SchedulingContext()
    scheduled: List[ScheduledPairing] = []
    round_start = start

    for ref, round_pairings in group_pairings_by_round(pairings).items():
        for wave_index, offset in enumerate(range(0, len(round_pairings), batch_size)):
            wave_time = round_start + timedelta(minutes=wave_index * slot_minutes)

            for pairing in round_pairings[offset : offset + batch_size]:
                if pairing.is_bye:
                    scheduled.append(
                        ScheduledPairing(
                            pairing=pairing,
                            scheduled_time=wave_time,
                            is_completed=pairing.present_entry_id is not None,
                            winner_entry_id=pairing.present_entry_id,
                        )
                    )
                    continue

                court_id = None
                if courts:
                    court_id = courts[ctx.court_index % len(courts)].id
                    ctx.court_index += 1

                umpire = _pick_umpire(
                    pairing, umpires, club_lookup, wave_time, respect_club_neutrality, ctx, strategy
                )
                scheduled.append(
                    ScheduledPairing(
                        pairing=pairing,
                        scheduled_time=wave_time,
                        court_id=court_id,
                        umpire_id=umpire.id if umpire is not None else None,
                    )
                )

        waves = math.ceil(len(round_pairings) / batch_size)
        round_start = round_start + timedelta(minutes=waves * slot_minutes)
        logger.debug("Scheduled %s: %d pairings in %d wave(s)", ref.label, len(round_pairings), waves)

    return scheduled
