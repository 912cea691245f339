"""
Fixture generation: entrants -> pairings -> scheduled, persisted matches.

Pipeline (strict order):
0. Load + validate tournament
1. Idempotency check (existing fixtures are returned unless force=True)
2. Load entries, validate counts
3. Club lookup for neutrality
4. Load courts + umpires
5. Pair (per format)
6. Schedule waves, courts, umpires
7. Build match records
8. Dry run -> return without writing
9. Under the tournament lock: delete old rows + insert new rows, one commit

Expected failures come back as FixtureResult(status="error"); only
programming errors escape as exceptions.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, time
from enum import Enum
from typing import Dict, List, Optional, Sequence, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from courtside import config
from courtside.models.court import Court
from courtside.models.entry import ENTRY_WITHDRAWN, Entry
from courtside.models.match import Match
from courtside.models.player import Player
from courtside.models.team import Team
from courtside.models.tournament import Tournament
from courtside.models.umpire import Umpire
from courtside.services.pairing import generate_pairings
from courtside.services.resource_scheduler import (
    OfficialStrategy,
    ScheduledPairing,
    SchedulingContext,
    compute_batch_size,
    generate_match_code,
    match_code_prefix,
    schedule_pairings,
)
from courtside.services.timestamps import to_naive_utc
from courtside.services.tournament_lock import OP_GENERATE_FIXTURES, TournamentBusyError, tournament_lock

logger = logging.getLogger(__name__)

WARNING_ALREADY_EXISTS = "Fixtures already exist. Use force=true to regenerate."
WARNING_DRY_RUN = "Dry run: No matches were inserted."


class FixtureErrorCode(str, Enum):
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    NO_RESOURCES = "no_resources"
    INVALID_FORMAT = "invalid_format"
    ROUND_NOT_FOUND = "round_not_found"
    ROUND_INCOMPLETE = "round_incomplete"
    TOURNAMENT_COMPLETE = "tournament_complete"
    BUSY = "busy"
    DATABASE_ERROR = "database_error"


@dataclass
class FixtureOptions:
    seeded: bool = False
    force: bool = False
    start_time_override: Optional[Union[str, datetime]] = None
    max_parallel_matches_override: Optional[int] = None
    respect_club_neutrality: bool = True
    dry_run: bool = False
    random_seed: Optional[int] = None  # reproducible unseeded draws
    strategy: OfficialStrategy = OfficialStrategy.LEAST_LOADED


class FixtureResult:
    """Structured outcome of a fixture operation"""

    def __init__(
        self,
        status: str = "ok",
        created: int = 0,
        matches: Optional[List[Match]] = None,
        warnings: Optional[List[str]] = None,
        error: Optional[str] = None,
        error_code: Optional[FixtureErrorCode] = None,
    ):
        self.status = status
        self.created = created
        self.matches: List[Match] = matches or []
        self.warnings: List[str] = warnings or []
        self.error = error
        self.error_code = error_code

    @classmethod
    def failure(cls, error_code: FixtureErrorCode, error: str, warnings: Optional[List[str]] = None) -> "FixtureResult":
        return cls(status="error", error=error, error_code=error_code, warnings=warnings)

    @property
    def ok(self) -> bool:
        return self.status == "ok"


# ============================================================================
# Shared loaders / builders (also used by round progression)
# ============================================================================


def load_entries(session: Session, tournament_id: int) -> List[Entry]:
    """Active entries in draw order: seeded first (by seed), then registration order."""
    return list(
        session.exec(
            select(Entry)
            .where(Entry.tournament_id == tournament_id, Entry.status != ENTRY_WITHDRAWN)
            .order_by(Entry.seed.is_(None), Entry.seed, Entry.id)
        ).all()
    )


def load_courts(session: Session, tournament_id: int) -> List[Court]:
    return list(session.exec(select(Court).where(Court.tournament_id == tournament_id).order_by(Court.id)).all())


def load_umpires(session: Session, tournament_id: int) -> List[Umpire]:
    return list(session.exec(select(Umpire).where(Umpire.tournament_id == tournament_id).order_by(Umpire.id)).all())


def build_club_lookup(session: Session, entries: Sequence[Entry]) -> Dict[int, Optional[int]]:
    """entry_id -> club_id of the player or team behind the entry."""
    player_ids = [e.player_id for e in entries if e.player_id is not None]
    team_ids = [e.team_id for e in entries if e.team_id is not None]

    player_clubs: Dict[int, Optional[int]] = {}
    if player_ids:
        for player in session.exec(select(Player).where(Player.id.in_(player_ids))).all():
            player_clubs[player.id] = player.club_id

    team_clubs: Dict[int, Optional[int]] = {}
    if team_ids:
        for team in session.exec(select(Team).where(Team.id.in_(team_ids))).all():
            team_clubs[team.id] = team.club_id

    lookup: Dict[int, Optional[int]] = {}
    for entry in entries:
        if entry.player_id is not None:
            lookup[entry.id] = player_clubs.get(entry.player_id)
        elif entry.team_id is not None:
            lookup[entry.id] = team_clubs.get(entry.team_id)
        else:
            lookup[entry.id] = None
    return lookup


def timing_error(tournament: Tournament) -> Optional[str]:
    """Reason the tournament's slot can't be scheduled, or None."""
    if not tournament.match_duration_minutes or tournament.match_duration_minutes < 1:
        return f"match_duration_minutes must be >= 1 (got {tournament.match_duration_minutes})"
    if tournament.rest_time_minutes is None or tournament.rest_time_minutes < 0:
        return f"rest_time_minutes must be >= 0 (got {tournament.rest_time_minutes})"
    return None


def default_start_time(tournament: Tournament) -> datetime:
    start = tournament.start_time or time(config.DEFAULT_START_HOUR, 0)
    return datetime.combine(tournament.start_date, start)


def build_match_records(
    scheduled: Sequence[ScheduledPairing],
    tournament: Tournament,
    first_match_order: int = 1,
) -> List[Match]:
    """Unsaved Match rows; match_order continues from *first_match_order*."""
    prefix = match_code_prefix(tournament.id)
    records: List[Match] = []
    for offset, item in enumerate(scheduled):
        order = first_match_order + offset
        records.append(
            Match(
                tournament_id=tournament.id,
                round=item.round.label,
                round_number=item.round.number,
                round_size=item.round.size,
                match_order=order,
                entry1_id=item.pairing.entry1_id,
                entry2_id=item.pairing.entry2_id,
                court_id=item.court_id,
                umpire_id=item.umpire_id,
                scheduled_time=item.scheduled_time,
                duration_minutes=tournament.match_duration_minutes,
                rest_enforced=tournament.rest_time_minutes > 0,
                match_code=generate_match_code(prefix, order),
                code_valid=not item.is_completed,
                winner_entry_id=item.winner_entry_id,
                is_completed=item.is_completed,
            )
        )
    return records


def replace_matches(session: Session, stale: Sequence[Match], new_matches: Sequence[Match]) -> None:
    """
    Delete *stale* and insert *new_matches* in one transaction.

    Court/umpire cache fields pointing at deleted rows are reset so the idle
    dashboards don't chase matches that no longer exist.
    Raises SQLAlchemyError after rolling back.
    """
    try:
        stale_ids = [m.id for m in stale if m.id is not None]
        if stale_ids:
            for model in (Court, Umpire):
                holders = session.exec(select(model).where(model.last_assigned_match_id.in_(stale_ids))).all()
                for holder in holders:
                    holder.is_idle = True
                    holder.last_assigned_start_time = None
                    holder.last_assigned_match_id = None
                    session.add(holder)
        for match in stale:
            session.delete(match)
        # Deletes must hit the DB before inserts reuse match_order / match_code
        session.flush()

        session.add_all(new_matches)
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        raise


def _existing_fixtures_result(session: Session, tournament_id: int) -> FixtureResult:
    matches = session.exec(
        select(Match).where(Match.tournament_id == tournament_id).order_by(Match.match_order)
    ).all()
    return FixtureResult(status="ok", created=0, matches=list(matches), warnings=[WARNING_ALREADY_EXISTS])


# ============================================================================
# Entry point
# ============================================================================


def generate_fixtures(
    session: Session,
    tournament_id: int,
    options: Optional[FixtureOptions] = None,
) -> FixtureResult:
    """
    Generate the opening fixtures for a tournament.

    Knockout / double elimination: first bracket round (BYEs auto-complete).
    Round robin: every round up front.

    Returns:
        FixtureResult; status="error" with an error_code for expected failures
        (not_found, validation, no_resources, busy, database_error).
    """
    options = options or FixtureOptions()

    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        return FixtureResult.failure(FixtureErrorCode.NOT_FOUND, f"Tournament not found: {tournament_id}")

    existing_count = len(session.exec(select(Match.id).where(Match.tournament_id == tournament_id)).all())
    if existing_count > 0 and not options.force:
        return _existing_fixtures_result(session, tournament_id)

    bad_timing = timing_error(tournament)
    if bad_timing:
        return FixtureResult.failure(FixtureErrorCode.VALIDATION, bad_timing)

    entries = load_entries(session, tournament_id)
    min_required = max(2, config.MIN_ENTRIES)
    if len(entries) < min_required:
        return FixtureResult.failure(
            FixtureErrorCode.VALIDATION,
            f"Not enough entries ({len(entries)}). Minimum {min_required} entries required.",
        )
    if tournament.max_entries and len(entries) > tournament.max_entries:
        return FixtureResult.failure(
            FixtureErrorCode.VALIDATION,
            f"Entries count ({len(entries)}) exceeds tournament max_entries ({tournament.max_entries})",
        )

    club_lookup = build_club_lookup(session, entries)

    courts = load_courts(session, tournament_id)
    if not courts:
        return FixtureResult.failure(FixtureErrorCode.NO_RESOURCES, "No courts available for this tournament.")
    umpires = load_umpires(session, tournament_id)
    if not umpires:
        return FixtureResult.failure(FixtureErrorCode.NO_RESOURCES, "No umpires available for this tournament.")

    pairings = generate_pairings(
        [e.id for e in entries],
        tournament.format,
        seeded=options.seeded,
        seed=options.random_seed,
    )
    if not pairings:
        return FixtureResult.failure(
            FixtureErrorCode.VALIDATION,
            "Failed to generate pairings. Unsupported format or no valid entries.",
        )

    if options.start_time_override:
        start = to_naive_utc(options.start_time_override)
        if start is None:
            return FixtureResult.failure(
                FixtureErrorCode.VALIDATION,
                f"Invalid start_time_override: {options.start_time_override!r}",
            )
    else:
        start = default_start_time(tournament)

    batch_size = compute_batch_size(len(courts), len(umpires), options.max_parallel_matches_override)
    context = SchedulingContext()
    scheduled = schedule_pairings(
        pairings,
        courts,
        umpires,
        club_lookup,
        start=start,
        slot_minutes=tournament.slot_duration_minutes,
        batch_size=batch_size,
        respect_club_neutrality=options.respect_club_neutrality,
        context=context,
        strategy=options.strategy,
    )
    records = build_match_records(scheduled, tournament, first_match_order=1)
    warnings = list(context.warnings)

    if options.dry_run:
        return FixtureResult(status="ok", created=0, matches=records, warnings=warnings + [WARNING_DRY_RUN])

    try:
        with tournament_lock(session, tournament_id, OP_GENERATE_FIXTURES):
            # Re-check under the lock: a concurrent call may have written first
            stale = list(session.exec(select(Match).where(Match.tournament_id == tournament_id)).all())
            if stale and not options.force:
                return _existing_fixtures_result(session, tournament_id)
            replace_matches(session, stale, records)
    except TournamentBusyError as exc:
        return FixtureResult.failure(FixtureErrorCode.BUSY, str(exc))
    except SQLAlchemyError as exc:
        logger.exception("Failed to save fixtures for tournament %d", tournament_id)
        return FixtureResult.failure(FixtureErrorCode.DATABASE_ERROR, f"Failed to insert matches: {exc}")

    logger.info(
        "Generated %d fixtures for tournament %d (format=%s, batch_size=%d, replaced=%d, warnings=%d)",
        len(records),
        tournament_id,
        tournament.format,
        batch_size,
        len(stale),
        len(warnings),
    )
    return FixtureResult(status="ok", created=len(records), matches=records, warnings=warnings)
