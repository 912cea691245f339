"""
Round progression: build the next knockout round from completed results.

Guarantees:
- Refuses to advance while any current-round match lacks a winner
- Next round is named from the number of winners, not the current label
- Safe to repeat: an incomplete next round is deleted and regenerated,
  a completed one is only replaced with force=True (and only while no later
  round exists), a Final with a champion is never touched
- The target round is re-read under the tournament lock, so a result that
  lands while the new round is being computed is never overwritten
- match_order continues from the tournament maximum (a regenerated round
  reuses the positions of the rows it replaces)
- Winners are re-drawn unseeded
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from courtside.models.entry import Entry
from courtside.models.match import Match
from courtside.models.tournament import Tournament, TournamentFormat
from courtside.services.fixture_service import (
    WARNING_DRY_RUN,
    FixtureErrorCode,
    FixtureResult,
    build_club_lookup,
    build_match_records,
    default_start_time,
    load_courts,
    load_umpires,
    replace_matches,
    timing_error,
)
from courtside.services.pairing import Pairing, build_knockout_pairings
from courtside.services.resource_scheduler import (
    OfficialStrategy,
    SchedulingContext,
    compute_batch_size,
    schedule_pairings,
)
from courtside.services.rounds import RoundRef, next_knockout_round
from courtside.services.tournament_lock import OP_ADVANCE_ROUND, TournamentBusyError, tournament_lock

logger = logging.getLogger(__name__)


@dataclass
class NextRoundOptions:
    force: bool = False  # also replace a fully decided (non-Final) next round
    max_parallel_matches_override: Optional[int] = None
    respect_club_neutrality: bool = True
    dry_run: bool = False
    random_seed: Optional[int] = None
    strategy: OfficialStrategy = OfficialStrategy.LEAST_LOADED


def _round_rows(session: Session, tournament_id: int, label: str) -> List[Match]:
    return list(
        session.exec(
            select(Match)
            .where(Match.tournament_id == tournament_id, Match.round == label)
            .order_by(Match.match_order)
        ).all()
    )


def _is_decided(match: Match) -> bool:
    return bool(match.is_completed) and match.winner_entry_id is not None


def _max_match_order(session: Session, tournament_id: int, exclude: Sequence[Match] = ()) -> int:
    query = select(func.max(Match.match_order)).where(Match.tournament_id == tournament_id)
    exclude_ids = [m.id for m in exclude]
    if exclude_ids:
        query = query.where(Match.id.not_in(exclude_ids))
    value = session.exec(query).one()
    if isinstance(value, tuple):
        value = value[0]
    return int(value or 0)


def _target_round_error(
    session: Session,
    tournament_id: int,
    next_round: RoundRef,
    stale: Sequence[Match],
    force: bool,
) -> Optional[FixtureResult]:
    """Why the existing rows of *next_round* must not be replaced, or None."""
    if not stale:
        return None

    if next_round.is_final and any(m.winner_entry_id is not None for m in stale):
        return FixtureResult.failure(
            FixtureErrorCode.TOURNAMENT_COMPLETE,
            "Tournament already has a champion; the Final cannot be regenerated",
        )

    if all(_is_decided(m) for m in stale):
        if not force:
            return FixtureResult.failure(
                FixtureErrorCode.TOURNAMENT_COMPLETE,
                f"{next_round.label} already exists and is complete",
            )
        later = session.exec(
            select(Match.id).where(
                Match.tournament_id == tournament_id,
                Match.round_number > next_round.number,
            )
        ).all()
        if later:
            return FixtureResult.failure(
                FixtureErrorCode.VALIDATION,
                f"Cannot regenerate {next_round.label}: later rounds were already built from its results",
            )
    return None


def generate_next_round_fixtures(
    session: Session,
    tournament_id: int,
    current_round: str,
    options: Optional[NextRoundOptions] = None,
) -> FixtureResult:
    """
    Pair the winners of *current_round* and schedule the following round.

    Errors (status="error"):
        not_found, invalid_format, validation, round_not_found,
        round_incomplete, tournament_complete, no_resources, busy,
        database_error
    """
    options = options or NextRoundOptions()

    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        return FixtureResult.failure(FixtureErrorCode.NOT_FOUND, f"Tournament not found: {tournament_id}")

    if TournamentFormat(tournament.format) != TournamentFormat.knockout:
        return FixtureResult.failure(
            FixtureErrorCode.INVALID_FORMAT,
            f"Round progression is only available for knockout tournaments (format: {tournament.format})",
        )

    bad_timing = timing_error(tournament)
    if bad_timing:
        return FixtureResult.failure(FixtureErrorCode.VALIDATION, bad_timing)

    current = _round_rows(session, tournament_id, current_round)
    if not current:
        return FixtureResult.failure(FixtureErrorCode.ROUND_NOT_FOUND, f"Round not found: {current_round}")

    undecided = [m for m in current if not _is_decided(m)]
    if undecided:
        codes = ", ".join(m.match_code for m in undecided)
        return FixtureResult.failure(
            FixtureErrorCode.ROUND_INCOMPLETE,
            f"Round incomplete: {len(undecided)} match(es) in {current_round} have no winner ({codes})",
        )

    winners = [m.winner_entry_id for m in current]
    if len(winners) < 2:
        return FixtureResult.failure(
            FixtureErrorCode.TOURNAMENT_COMPLETE,
            f"Tournament already complete: {current_round} produced the champion",
        )

    current_number = max(m.round_number for m in current)
    next_round: RoundRef = next_knockout_round(len(winners), current_number + 1)

    stale = _round_rows(session, tournament_id, next_round.label)
    refused = _target_round_error(session, tournament_id, next_round, stale, options.force)
    if refused:
        return refused

    courts = load_courts(session, tournament_id)
    umpires = load_umpires(session, tournament_id)
    if not courts or not umpires:
        return FixtureResult.failure(
            FixtureErrorCode.NO_RESOURCES,
            "No resources available: the tournament needs at least one court and one umpire.",
        )

    entries = list(session.exec(select(Entry).where(Entry.id.in_(winners))).all())
    club_lookup = build_club_lookup(session, entries)

    pairings = build_knockout_pairings(winners, seeded=False, seed=options.random_seed)
    # Name and number come from the winner count, not from bracket depth
    pairings = [Pairing(p.entry1_id, p.entry2_id, next_round) for p in pairings]

    slot = tournament.slot_duration_minutes
    last_times = [m.scheduled_time for m in current if m.scheduled_time is not None]
    start = max(last_times) + timedelta(minutes=slot) if last_times else default_start_time(tournament)

    batch_size = compute_batch_size(len(courts), len(umpires), options.max_parallel_matches_override)
    context = SchedulingContext()
    scheduled = schedule_pairings(
        pairings,
        courts,
        umpires,
        club_lookup,
        start=start,
        slot_minutes=slot,
        batch_size=batch_size,
        respect_club_neutrality=options.respect_club_neutrality,
        context=context,
        strategy=options.strategy,
    )
    warnings = list(context.warnings)

    if options.dry_run:
        first_order = _max_match_order(session, tournament_id, exclude=stale) + 1
        records = build_match_records(scheduled, tournament, first_match_order=first_order)
        if stale:
            warnings.append(f"Would replace {len(stale)} {next_round.label} match(es).")
        return FixtureResult(status="ok", created=0, matches=records, warnings=warnings + [WARNING_DRY_RUN])

    try:
        with tournament_lock(session, tournament_id, OP_ADVANCE_ROUND):
            # Results may have been recorded since the first read
            session.expire_all()
            stale = _round_rows(session, tournament_id, next_round.label)
            refused = _target_round_error(session, tournament_id, next_round, stale, options.force)
            if refused:
                return refused
            if stale:
                logger.warning(
                    "Regenerating %s for tournament %d (%d stale rows, force=%s)",
                    next_round.label,
                    tournament_id,
                    len(stale),
                    options.force,
                )
            replaced_state = "completed" if stale and all(_is_decided(m) for m in stale) else "incomplete"
            first_order = _max_match_order(session, tournament_id, exclude=stale) + 1
            records = build_match_records(scheduled, tournament, first_match_order=first_order)
            replace_matches(session, stale, records)
    except TournamentBusyError as exc:
        return FixtureResult.failure(FixtureErrorCode.BUSY, str(exc))
    except SQLAlchemyError as exc:
        logger.exception("Failed to save %s for tournament %d", next_round.label, tournament_id)
        return FixtureResult.failure(FixtureErrorCode.DATABASE_ERROR, f"Failed to insert matches: {exc}")

    if stale:
        warnings.append(f"Replaced {len(stale)} {replaced_state} {next_round.label} match(es).")

    logger.info(
        "Advanced tournament %d from %s to %s: %d match(es), starting %s",
        tournament_id,
        current_round,
        next_round.label,
        len(records),
        start,
    )
    return FixtureResult(status="ok", created=len(records), matches=records, warnings=warnings)
