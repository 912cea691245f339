"""
Round identity for fixtures.

Advancement logic works on RoundRef (ordinal + entrant slots); the label is
only for display and for looking rows up by the round name callers pass in.
"""

from dataclasses import dataclass
from typing import Optional

ROUND_ROBIN_LABEL = "RR - R{number}"
WINNERS_BRACKET_R1_LABEL = "Winners Bracket - Round 1"


@dataclass(frozen=True)
class RoundRef:
    number: int  # 1-based ordinal in the tournament's progression
    label: str
    size: Optional[int] = None  # knockout entrant slots; None for round robin

    @property
    def is_final(self) -> bool:
        return self.size == 2

    @property
    def match_count(self) -> Optional[int]:
        if self.size is None:
            return None
        return self.size // 2


def next_power_of_two(n: int) -> int:
    if n <= 1:
        return 1
    return 1 << (n - 1).bit_length()


def knockout_round_label(size: int) -> str:
    """Label from bracket depth: 2 -> Final, 4 -> Semifinals, 8 -> Quarterfinals, else Round of N."""
    if size <= 2:
        return "Final"
    if size == 4:
        return "Semifinals"
    if size == 8:
        return "Quarterfinals"
    return f"Round of {size}"


def knockout_round(size: int, number: int = 1) -> RoundRef:
    return RoundRef(number=number, label=knockout_round_label(size), size=size)


def next_knockout_round(winner_count: int, number: int) -> RoundRef:
    """
    Round that *winner_count* advancing entrants will contest.

    Named from the count alone, not from the previous round's label, so a
    bracket thinned unevenly by BYEs still gets the right name.
    Irregular counts take the name of the bracket they fill
    (3 -> Semifinals, 6 -> Quarterfinals) until the count reaches 16.
    """
    if winner_count < 2:
        raise ValueError(f"winner_count must be >= 2, got {winner_count}")

    if winner_count >= 16:
        return RoundRef(number=number, label=f"Round of {winner_count}", size=next_power_of_two(winner_count))

    size = next_power_of_two(winner_count)
    return RoundRef(number=number, label=knockout_round_label(size), size=size)


def round_robin_round(number: int) -> RoundRef:
    return RoundRef(number=number, label=ROUND_ROBIN_LABEL.format(number=number))


def winners_bracket_opening_round(size: int) -> RoundRef:
    return RoundRef(number=1, label=WINNERS_BRACKET_R1_LABEL, size=size)
