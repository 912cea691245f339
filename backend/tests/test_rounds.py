"""Round naming: bracket labels from size, next-round labels from winner count."""
import pytest

from courtside.services.rounds import (
    RoundRef,
    knockout_round,
    knockout_round_label,
    next_knockout_round,
    next_power_of_two,
    round_robin_round,
    winners_bracket_opening_round,
)


def test_next_power_of_two():
    assert [next_power_of_two(n) for n in (1, 2, 3, 4, 5, 8, 9, 17)] == [1, 2, 4, 4, 8, 8, 16, 32]


@pytest.mark.parametrize(
    "size,label",
    [(2, "Final"), (4, "Semifinals"), (8, "Quarterfinals"), (16, "Round of 16"), (32, "Round of 32"), (64, "Round of 64")],
)
def test_knockout_round_label(size, label):
    assert knockout_round_label(size) == label


class TestNextKnockoutRound:
    """Names come from the number of winners advancing."""

    def test_eight_winners_quarterfinals(self):
        ref = next_knockout_round(8, 2)
        assert ref.label == "Quarterfinals"
        assert ref.size == 8
        assert ref.number == 2

    def test_four_winners_semifinals(self):
        assert next_knockout_round(4, 3).label == "Semifinals"

    def test_two_winners_final(self):
        ref = next_knockout_round(2, 4)
        assert ref.label == "Final"
        assert ref.is_final

    def test_sixteen_and_above(self):
        assert next_knockout_round(16, 2).label == "Round of 16"
        assert next_knockout_round(32, 2).label == "Round of 32"

    def test_irregular_counts_fill_next_bracket(self):
        assert next_knockout_round(3, 2).label == "Semifinals"
        assert next_knockout_round(6, 2).label == "Quarterfinals"
        assert next_knockout_round(3, 2).size == 4

    def test_needs_two_winners(self):
        with pytest.raises(ValueError):
            next_knockout_round(1, 5)


def test_round_ref_properties():
    assert knockout_round(8).match_count == 4
    assert not knockout_round(8).is_final
    assert round_robin_round(2) == RoundRef(number=2, label="RR - R2")
    assert round_robin_round(2).match_count is None
    assert winners_bracket_opening_round(8).label == "Winners Bracket - Round 1"
