"""
Pairing generation: entrant-vs-entrant pairings for a tournament format.

Knockout: bracket padded to the next power of two, BYEs fill the tail,
adjacent bracket positions meet.
Round robin: circle method; first position fixed, the rest rotate.
Double elimination: only the opening winners-bracket round (no losers bracket).

Works on entry ids only; scheduling and persistence happen elsewhere.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import List, Optional, Sequence

from courtside.models.tournament import TournamentFormat
from courtside.services.rounds import (
    RoundRef,
    knockout_round,
    next_power_of_two,
    round_robin_round,
    winners_bracket_opening_round,
)


@dataclass(frozen=True)
class Pairing:
    entry1_id: Optional[int]
    entry2_id: Optional[int]
    round: RoundRef

    @property
    def is_bye(self) -> bool:
        return self.entry1_id is None or self.entry2_id is None

    @property
    def present_entry_id(self) -> Optional[int]:
        """The entrant that advances from a BYE."""
        return self.entry1_id if self.entry1_id is not None else self.entry2_id


def shuffle_entries(entry_ids: Sequence[int], seed: Optional[int] = None) -> List[int]:
    """Fisher–Yates permutation; pass *seed* for a reproducible draw."""
    shuffled = list(entry_ids)
    rng = random.Random(seed)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def build_knockout_pairings(
    entry_ids: Sequence[int],
    seeded: bool = False,
    seed: Optional[int] = None,
    round_number: int = 1,
) -> List[Pairing]:
    """
    Opening knockout round.

    Seeded draws keep *entry_ids* order; unseeded draws are shuffled.
    BYEs take the tail of the bracket, one per pairing, so exactly
    bracket_size - n pairings have a single entrant and none are empty:
    5 entrants -> bracket of 8 -> (e1 v e2), (e3 v BYE), (e4 v BYE), (e5 v BYE).
    """
    if len(entry_ids) < 2:
        return []

    bracket_size = next_power_of_two(len(entry_ids))
    ordered = list(entry_ids) if seeded else shuffle_entries(entry_ids, seed)

    pair_count = bracket_size // 2
    full_pairs = len(ordered) - pair_count

    bracket: List[Optional[int]] = [None] * bracket_size
    for i, entry_id in enumerate(ordered):
        # Past the full pairs every entrant takes the first slot of its own pairing
        position = i if i < 2 * full_pairs else 2 * (i - full_pairs)
        bracket[position] = entry_id

    ref = knockout_round(bracket_size, round_number)
    return [Pairing(bracket[i], bracket[i + 1], ref) for i in range(0, bracket_size, 2)]


def build_round_robin_pairings(entry_ids: Sequence[int]) -> List[List[Pairing]]:
    """
    Circle method. Returns one list of pairings per round.

    Odd counts get a virtual BYE, so n entrants play n rounds (odd) or
    n-1 rounds (even). Every unordered pair of real entrants meets once.
    """
    if len(entry_ids) < 2:
        return []

    positions: List[Optional[int]] = list(entry_ids)
    if len(positions) % 2 == 1:
        positions.append(None)

    size = len(positions)
    num_rounds = size - 1
    rounds: List[List[Pairing]] = []

    for round_idx in range(num_rounds):
        ref = round_robin_round(round_idx + 1)
        pairs: List[Pairing] = []
        for i in range(size // 2):
            a = positions[i]
            b = positions[size - 1 - i]
            if a is None and b is None:
                continue
            pairs.append(Pairing(a, b, ref))
        rounds.append(pairs)

        # Position 0 stays; last moves to position 1
        positions.insert(1, positions.pop())

    return rounds


def build_double_elimination_pairings(
    entry_ids: Sequence[int],
    seeded: bool = False,
    seed: Optional[int] = None,
) -> List[Pairing]:
    """Opening winners-bracket round only; the losers bracket is not generated."""
    knockout = build_knockout_pairings(entry_ids, seeded=seeded, seed=seed)
    if not knockout:
        return []
    ref = winners_bracket_opening_round(knockout[0].round.size or 2)
    return [Pairing(p.entry1_id, p.entry2_id, ref) for p in knockout]


def generate_pairings(
    entry_ids: Sequence[int],
    tournament_format: TournamentFormat,
    seeded: bool = False,
    seed: Optional[int] = None,
) -> List[Pairing]:
    """
    Flat list of pairings in generation order, each tagged with its round.

    Returns [] for fewer than two entrants; callers must report that as a
    validation error rather than treat it as "nothing to do".
    """
    fmt = TournamentFormat(tournament_format)

    if fmt == TournamentFormat.knockout:
        return build_knockout_pairings(entry_ids, seeded=seeded, seed=seed)

    if fmt == TournamentFormat.round_robin:
        return [p for rnd in build_round_robin_pairings(entry_ids) for p in rnd]

    if fmt == TournamentFormat.double_elimination:
        return build_double_elimination_pairings(entry_ids, seeded=seeded, seed=seed)

    raise ValueError(f"Unsupported tournament format: {tournament_format}")
