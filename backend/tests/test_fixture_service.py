"""
Fixture generation pipeline: validation, idempotency (force / dry run),
BYE persistence, scheduling from tournament settings, lock handling.
"""
from datetime import datetime, timedelta

from sqlmodel import Session, select

from courtside.models import Match, TournamentLock
from courtside.services.fixture_service import (
    WARNING_ALREADY_EXISTS,
    WARNING_DRY_RUN,
    FixtureErrorCode,
    FixtureOptions,
    generate_fixtures,
)


def _matches(session: Session, tournament_id: int):
    return session.exec(select(Match).where(Match.tournament_id == tournament_id).order_by(Match.match_order)).all()


class TestKnockoutGeneration:
    def test_five_entrants_three_auto_completed_byes(self, session: Session, factory):
        setup = factory.ready(entrants=5)
        tid = setup["tournament"].id
        entry_ids = [e.id for e in setup["entries"]]

        result = generate_fixtures(session, tid, FixtureOptions(seeded=True))

        assert result.ok, result.error
        assert result.created == 4
        matches = _matches(session, tid)
        assert [m.match_order for m in matches] == [1, 2, 3, 4]
        assert [m.match_code for m in matches] == [f"T{tid}-00{i}" for i in range(1, 5)]
        assert {m.round for m in matches} == {"Quarterfinals"}

        byes = [m for m in matches if m.is_bye]
        assert len(byes) == 3
        for m in byes:
            assert m.is_completed
            assert m.code_valid is False
            assert m.court_id is None and m.umpire_id is None
            assert m.winner_entry_id in (m.entry1_id, m.entry2_id)
        assert [m.winner_entry_id for m in byes] == entry_ids[2:]

        played = matches[0]
        assert (played.entry1_id, played.entry2_id) == (entry_ids[0], entry_ids[1])
        assert played.court_id is not None and played.umpire_id is not None
        assert played.code_valid and not played.is_completed

    def test_schedule_uses_start_and_slot(self, session: Session, factory):
        setup = factory.ready(entrants=8, courts=2, umpires=2, rest_time_minutes=10)
        tid = setup["tournament"].id

        generate_fixtures(session, tid, FixtureOptions(seeded=True))

        times = [m.scheduled_time for m in _matches(session, tid)]
        first = datetime(2026, 3, 14, 9, 0)
        assert times == [first, first, first + timedelta(minutes=40), first + timedelta(minutes=40)]
        assert all(m.rest_enforced for m in _matches(session, tid))

    def test_start_time_override_is_normalized_to_utc(self, session: Session, factory):
        tid = factory.ready(entrants=2)["tournament"].id
        result = generate_fixtures(session, tid, FixtureOptions(start_time_override="2026-03-15T19:30:00+05:30"))
        assert result.ok
        assert _matches(session, tid)[0].scheduled_time == datetime(2026, 3, 15, 14, 0)

    def test_invalid_start_time_override(self, session: Session, factory):
        tid = factory.ready(entrants=2)["tournament"].id
        result = generate_fixtures(session, tid, FixtureOptions(start_time_override="tomorrow-ish"))
        assert result.error_code == FixtureErrorCode.VALIDATION
        assert _matches(session, tid) == []

    def test_withdrawn_entries_are_not_drawn(self, session: Session, factory):
        setup = factory.ready(entrants=5)
        withdrawn = setup["entries"][4]
        withdrawn.status = "withdrawn"
        session.add(withdrawn)
        session.commit()

        result = generate_fixtures(session, setup["tournament"].id, FixtureOptions(seeded=True))
        assert result.created == 2
        drawn = {e for m in result.matches for e in (m.entry1_id, m.entry2_id)}
        assert withdrawn.id not in drawn


class TestRoundRobinGeneration:
    def test_all_rounds_up_front(self, session: Session, factory):
        setup = factory.ready(entrants=4, format="round_robin")
        tid = setup["tournament"].id

        result = generate_fixtures(session, tid)

        assert result.created == 6
        matches = _matches(session, tid)
        assert [m.round for m in matches] == ["RR - R1"] * 2 + ["RR - R2"] * 2 + ["RR - R3"] * 2
        assert [m.round_number for m in matches] == [1, 1, 2, 2, 3, 3]
        assert len({m.match_code for m in matches}) == 6

    def test_odd_entrants_bye_completes(self, session: Session, factory):
        tid = factory.ready(entrants=3, format="round_robin")["tournament"].id
        result = generate_fixtures(session, tid)
        matches = _matches(session, tid)
        assert result.created == 6
        assert sum(1 for m in matches if m.is_bye) == 3
        assert all(m.is_completed for m in matches if m.is_bye)


def test_double_elimination_opening_round_only(session: Session, factory):
    tid = factory.ready(entrants=6, format="double_elimination")["tournament"].id
    result = generate_fixtures(session, tid, FixtureOptions(seeded=True))
    assert result.created == 4
    assert {m.round for m in _matches(session, tid)} == {"Winners Bracket - Round 1"}


class TestIdempotency:
    def test_existing_fixtures_returned_without_force(self, session: Session, factory):
        tid = factory.ready(entrants=4)["tournament"].id
        generate_fixtures(session, tid, FixtureOptions(seeded=True))
        first_ids = [m.id for m in _matches(session, tid)]

        again = generate_fixtures(session, tid, FixtureOptions(seeded=True))

        assert again.ok
        assert again.created == 0
        assert again.warnings == [WARNING_ALREADY_EXISTS]
        assert [m.id for m in again.matches] == first_ids

    def test_force_replaces_fixtures(self, session: Session, factory):
        setup = factory.ready(entrants=4)
        tid = setup["tournament"].id
        generate_fixtures(session, tid, FixtureOptions(seeded=True))
        old_ids = {m.id for m in _matches(session, tid)}

        court = setup["courts"][0]
        court.is_idle = False
        court.last_assigned_match_id = min(old_ids)
        session.add(court)
        session.commit()

        result = generate_fixtures(session, tid, FixtureOptions(seeded=True, force=True))

        assert result.created == 2
        matches = _matches(session, tid)
        assert len(matches) == 2
        assert [m.match_order for m in matches] == [1, 2]

        session.refresh(court)
        assert court.is_idle is True
        assert court.last_assigned_match_id is None

    def test_dry_run_writes_nothing(self, session: Session, factory):
        tid = factory.ready(entrants=5)["tournament"].id

        result = generate_fixtures(session, tid, FixtureOptions(seeded=True, dry_run=True))

        assert result.ok
        assert result.created == 0
        assert len(result.matches) == 4
        assert all(m.id is None for m in result.matches)
        assert WARNING_DRY_RUN in result.warnings
        assert _matches(session, tid) == []


class TestValidation:
    def test_unknown_tournament(self, session: Session):
        result = generate_fixtures(session, 999)
        assert result.status == "error"
        assert result.error_code == FixtureErrorCode.NOT_FOUND

    def test_too_few_entries(self, session: Session, factory):
        tid = factory.ready(entrants=1)["tournament"].id
        result = generate_fixtures(session, tid)
        assert result.error_code == FixtureErrorCode.VALIDATION
        assert "Not enough entries" in result.error

    def test_max_entries_exceeded(self, session: Session, factory):
        tid = factory.ready(entrants=4, max_entries=3)["tournament"].id
        result = generate_fixtures(session, tid)
        assert result.error_code == FixtureErrorCode.VALIDATION
        assert "max_entries" in result.error

    def test_zero_length_slot(self, session: Session, factory):
        setup = factory.ready(entrants=4, courts=1, umpires=1)
        tournament = setup["tournament"]
        tournament.match_duration_minutes = 0
        session.add(tournament)
        session.commit()

        result = generate_fixtures(session, tournament.id)

        assert result.error_code == FixtureErrorCode.VALIDATION
        assert "match_duration_minutes" in result.error
        assert _matches(session, tournament.id) == []

    def test_no_courts(self, session: Session, factory):
        tid = factory.ready(entrants=4, courts=0)["tournament"].id
        result = generate_fixtures(session, tid)
        assert result.error_code == FixtureErrorCode.NO_RESOURCES

    def test_no_umpires(self, session: Session, factory):
        tid = factory.ready(entrants=4, umpires=0)["tournament"].id
        result = generate_fixtures(session, tid)
        assert result.error_code == FixtureErrorCode.NO_RESOURCES
        assert _matches(session, tid) == []


class TestClubNeutrality:
    def test_same_club_fallback_is_a_warning(self, session: Session, factory):
        tournament = factory.tournament()
        club = factory.club("Riverside")
        factory.entries(tournament.id, 2, club_ids=[club.id, club.id], seeded=True)
        factory.courts(tournament.id, 1)
        umpire = factory.umpires(tournament.id, 1, club_ids=[club.id])[0]

        result = generate_fixtures(session, tournament.id, FixtureOptions(seeded=True))

        assert result.ok
        assert result.created == 1
        assert result.matches[0].umpire_id == umpire.id
        assert len(result.warnings) == 1
        assert "neutral" in result.warnings[0]

    def test_neutral_umpire_chosen(self, session: Session, factory):
        tournament = factory.tournament()
        home, away, other = factory.club("Home"), factory.club("Away"), factory.club("Other")
        factory.entries(tournament.id, 2, club_ids=[home.id, away.id], seeded=True)
        factory.courts(tournament.id, 1)
        umpires = factory.umpires(tournament.id, 2, club_ids=[home.id, other.id])

        result = generate_fixtures(session, tournament.id, FixtureOptions(seeded=True))

        assert result.matches[0].umpire_id == umpires[1].id
        assert result.warnings == []


class TestLocking:
    def test_busy_while_another_run_holds_lock(self, session: Session, factory):
        tid = factory.ready(entrants=4)["tournament"].id
        session.add(TournamentLock(tournament_id=tid, operation="generate_fixtures", token="other"))
        session.commit()

        result = generate_fixtures(session, tid)

        assert result.error_code == FixtureErrorCode.BUSY
        assert _matches(session, tid) == []

    def test_stale_lock_is_replaced(self, session: Session, factory):
        tid = factory.ready(entrants=4)["tournament"].id
        session.add(
            TournamentLock(
                tournament_id=tid,
                operation="generate_fixtures",
                token="crashed",
                acquired_at=datetime.utcnow() - timedelta(hours=1),
            )
        )
        session.commit()

        result = generate_fixtures(session, tid)

        assert result.ok
        assert result.created == 2
        assert session.exec(select(TournamentLock)).all() == []


def test_entries_drawn_in_seed_order(session: Session, factory):
    tournament = factory.tournament()
    entries = factory.entries(tournament.id, 4)
    for entry, seed in zip(entries, [None, 2, 1, None]):
        entry.seed = seed
        session.add(entry)
    session.commit()
    factory.courts(tournament.id, 2)
    factory.umpires(tournament.id, 2)

    result = generate_fixtures(session, tournament.id, FixtureOptions(seeded=True))

    order = [e for m in result.matches for e in (m.entry1_id, m.entry2_id)]
    assert order == [entries[2].id, entries[1].id, entries[0].id, entries[3].id]
