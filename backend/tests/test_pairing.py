"""
Pairing generation per format: knockout brackets with BYEs, round robin
circle method, double elimination opening round.
"""
from itertools import combinations

import pytest

from courtside.models.tournament import TournamentFormat
from courtside.services.pairing import (
    build_knockout_pairings,
    build_round_robin_pairings,
    generate_pairings,
    shuffle_entries,
)


def _pair_set(pairings):
    return {frozenset((p.entry1_id, p.entry2_id)) for p in pairings if not p.is_bye}


class TestKnockout:
    def test_five_seeded_entrants_get_three_byes(self):
        pairings = build_knockout_pairings([1, 2, 3, 4, 5], seeded=True)

        assert len(pairings) == 4
        byes = [p for p in pairings if p.is_bye]
        assert len(byes) == 3
        assert [p.present_entry_id for p in byes] == [3, 4, 5]
        assert (pairings[0].entry1_id, pairings[0].entry2_id) == (1, 2)
        assert all(p.round.label == "Quarterfinals" and p.round.size == 8 for p in pairings)

    @pytest.mark.parametrize("n", range(2, 20))
    def test_bye_count_is_bracket_minus_entrants(self, n):
        pairings = build_knockout_pairings(list(range(1, n + 1)), seeded=True)
        bracket = len(pairings) * 2
        assert bracket & (bracket - 1) == 0 and bracket >= n > bracket // 2
        assert sum(1 for p in pairings if p.is_bye) == bracket - n
        # No empty pairings, every entrant appears once
        assert all(p.present_entry_id is not None for p in pairings)
        seen = [e for p in pairings for e in (p.entry1_id, p.entry2_id) if e is not None]
        assert sorted(seen) == list(range(1, n + 1))

    def test_power_of_two_has_no_byes(self):
        pairings = build_knockout_pairings([10, 20, 30, 40], seeded=True)
        assert [(p.entry1_id, p.entry2_id) for p in pairings] == [(10, 20), (30, 40)]
        assert pairings[0].round.label == "Semifinals"

    def test_two_entrants_is_final(self):
        pairings = build_knockout_pairings([1, 2], seeded=True)
        assert len(pairings) == 1
        assert pairings[0].round.is_final

    def test_unseeded_draw_is_reproducible_with_seed(self):
        ids = list(range(1, 17))
        first = build_knockout_pairings(ids, seed=42)
        second = build_knockout_pairings(ids, seed=42)
        assert first == second

    def test_shuffle_is_a_permutation(self):
        ids = list(range(1, 33))
        shuffled = shuffle_entries(ids, seed=7)
        assert sorted(shuffled) == ids
        assert shuffle_entries(ids, seed=7) == shuffled

    def test_fewer_than_two_entrants(self):
        assert build_knockout_pairings([]) == []
        assert build_knockout_pairings([1]) == []


class TestRoundRobin:
    def test_four_entrants_three_rounds(self):
        rounds = build_round_robin_pairings([1, 2, 3, 4])
        assert len(rounds) == 3
        assert all(len(r) == 2 for r in rounds)

        flat = [p for r in rounds for p in r]
        assert len(flat) == 6
        assert _pair_set(flat) == {frozenset(c) for c in combinations([1, 2, 3, 4], 2)}
        assert [r[0].round.label for r in rounds] == ["RR - R1", "RR - R2", "RR - R3"]

    def test_each_entrant_plays_once_per_round(self):
        for r in build_round_robin_pairings(list(range(1, 9))):
            players = [e for p in r for e in (p.entry1_id, p.entry2_id)]
            assert len(players) == len(set(players))

    @pytest.mark.parametrize("n", [3, 5, 7])
    def test_odd_count_sits_one_out_per_round(self, n):
        ids = list(range(1, n + 1))
        rounds = build_round_robin_pairings(ids)
        assert len(rounds) == n

        flat = [p for r in rounds for p in r]
        assert _pair_set(flat) == {frozenset(c) for c in combinations(ids, 2)}
        for r in rounds:
            assert sum(1 for p in r if p.is_bye) == 1
        # Everyone sits out exactly once
        assert sorted(p.present_entry_id for p in flat if p.is_bye) == ids

    def test_fewer_than_two_entrants(self):
        assert build_round_robin_pairings([1]) == []


class TestGeneratePairings:
    def test_round_robin_flattens_in_round_order(self):
        pairings = generate_pairings([1, 2, 3, 4], TournamentFormat.round_robin)
        assert [p.round.number for p in pairings] == [1, 1, 2, 2, 3, 3]

    def test_accepts_plain_string_format(self):
        assert len(generate_pairings([1, 2, 3, 4], "knockout", seeded=True)) == 2

    def test_double_elimination_opening_round(self):
        pairings = generate_pairings([1, 2, 3, 4, 5, 6], TournamentFormat.double_elimination, seeded=True)
        assert len(pairings) == 4
        assert {p.round.label for p in pairings} == {"Winners Bracket - Round 1"}
        assert sum(1 for p in pairings if p.is_bye) == 2

    def test_single_entrant_yields_nothing(self):
        assert generate_pairings([1], TournamentFormat.knockout) == []

    def test_unknown_format(self):
        with pytest.raises(ValueError):
            generate_pairings([1, 2], "swiss")
