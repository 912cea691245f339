"""
Read-only views with display names resolved.

Used by bracket pages and by umpires looking up their own assignments.
"""
import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlmodel import Session, select

from courtside.database import get_session
from courtside.models.club import Club
from courtside.models.court import Court
from courtside.models.entry import Entry
from courtside.models.match import Match
from courtside.models.player import Player
from courtside.models.team import Team
from courtside.models.tournament import Tournament, TournamentFormat
from courtside.models.umpire import Umpire
from courtside.routes.tournaments import get_tournament_or_404

logger = logging.getLogger(__name__)

router = APIRouter()


# ── Response models ──────────────────────────────────────────────────────

class BracketMatch(BaseModel):
    match_id: int
    match_order: int
    match_code: str
    status: str  # scheduled | in_progress | completed
    entry1_id: Optional[int] = None
    entry2_id: Optional[int] = None
    entry1_name: Optional[str] = None  # None = BYE
    entry2_name: Optional[str] = None
    entry1_club: Optional[str] = None
    entry2_club: Optional[str] = None
    entry1_score: Optional[int] = None
    entry2_score: Optional[int] = None
    winner_entry_id: Optional[int] = None
    court_name: Optional[str] = None
    umpire_name: Optional[str] = None
    scheduled_time: Optional[datetime] = None
    actual_start_time: Optional[datetime] = None
    awaiting_result: bool = False


class BracketRound(BaseModel):
    name: str
    order: int
    matches: List[BracketMatch]


class BracketResponse(BaseModel):
    tournament_id: int
    tournament_name: str
    format: TournamentFormat
    rounds: List[BracketRound]


class UmpireMatchItem(BaseModel):
    match_id: int
    tournament_id: int
    tournament_name: str
    round: str
    match_code: str
    entry1_name: Optional[str] = None
    entry2_name: Optional[str] = None
    court_name: Optional[str] = None
    scheduled_time: Optional[datetime] = None
    actual_start_time: Optional[datetime] = None
    awaiting_result: bool = False


# ── Helpers ──────────────────────────────────────────────────────────────

def _match_status(match: Match) -> str:
    if match.is_completed:
        return "completed"
    if match.actual_start_time is not None:
        return "in_progress"
    return "scheduled"


def _by_id(session: Session, model, ids: Iterable[Optional[int]]) -> Dict[int, object]:
    wanted = {i for i in ids if i is not None}
    if not wanted:
        return {}
    return {row.id: row for row in session.exec(select(model).where(model.id.in_(wanted))).all()}


class _EntryNames:
    """Batched entry -> display name and club lookup for a set of matches."""

    def __init__(self, session: Session, matches: List[Match]):
        entry_ids = [m.entry1_id for m in matches] + [m.entry2_id for m in matches]
        self.entries = _by_id(session, Entry, entry_ids)
        self.players = _by_id(session, Player, [e.player_id for e in self.entries.values()])
        self.teams = _by_id(session, Team, [e.team_id for e in self.entries.values()])
        club_ids = [p.club_id for p in self.players.values()] + [t.club_id for t in self.teams.values()]
        self.clubs = _by_id(session, Club, club_ids)

    def _participant(self, entry_id: Optional[int]):
        entry = self.entries.get(entry_id) if entry_id is not None else None
        if entry is None:
            return None
        if entry.team_id is not None:
            return self.teams.get(entry.team_id)
        return self.players.get(entry.player_id)

    def name(self, entry_id: Optional[int]) -> Optional[str]:
        if entry_id is None:
            return None
        participant = self._participant(entry_id)
        return participant.name if participant else f"Entry {entry_id}"

    def club(self, entry_id: Optional[int]) -> Optional[str]:
        participant = self._participant(entry_id)
        if participant is None or participant.club_id is None:
            return None
        club = self.clubs.get(participant.club_id)
        return club.name if club else None


# ── Endpoints ────────────────────────────────────────────────────────────

@router.get("/tournaments/{tournament_id}/bracket", response_model=BracketResponse)
def get_bracket(tournament_id: int, session: Session = Depends(get_session)):
    """All matches grouped by round, in play order, with names resolved"""
    tournament = get_tournament_or_404(session, tournament_id)
    matches = session.exec(
        select(Match).where(Match.tournament_id == tournament_id).order_by(Match.match_order)
    ).all()

    names = _EntryNames(session, matches)
    courts = _by_id(session, Court, [m.court_id for m in matches])
    umpires = _by_id(session, Umpire, [m.umpire_id for m in matches])

    rounds: Dict[str, BracketRound] = {}
    for match in matches:
        if match.round not in rounds:
            rounds[match.round] = BracketRound(name=match.round, order=len(rounds) + 1, matches=[])
        court = courts.get(match.court_id)
        umpire = umpires.get(match.umpire_id)
        rounds[match.round].matches.append(
            BracketMatch(
                match_id=match.id,
                match_order=match.match_order,
                match_code=match.match_code,
                status=_match_status(match),
                entry1_id=match.entry1_id,
                entry2_id=match.entry2_id,
                entry1_name=names.name(match.entry1_id),
                entry2_name=names.name(match.entry2_id),
                entry1_club=names.club(match.entry1_id),
                entry2_club=names.club(match.entry2_id),
                entry1_score=match.entry1_score,
                entry2_score=match.entry2_score,
                winner_entry_id=match.winner_entry_id,
                court_name=court.name if court else None,
                umpire_name=umpire.name if umpire else None,
                scheduled_time=match.scheduled_time,
                actual_start_time=match.actual_start_time,
                awaiting_result=match.awaiting_result,
            )
        )

    return BracketResponse(
        tournament_id=tournament.id,
        tournament_name=tournament.name,
        format=tournament.format,
        rounds=list(rounds.values()),
    )


@router.get("/umpires/by-license/{license_no}/matches", response_model=List[UmpireMatchItem])
def get_umpire_matches_by_license(license_no: str, session: Session = Depends(get_session)):
    """
    Outstanding matches for an umpire across every tournament they officiate.

    Umpire rows are per tournament; the license number ties them together.
    Ordered by scheduled time, unscheduled last.
    """
    umpire_ids = session.exec(select(Umpire.id).where(Umpire.license_no == license_no.strip())).all()
    if not umpire_ids:
        raise HTTPException(status_code=404, detail="Umpire not found with the provided license number.")

    matches = session.exec(
        select(Match).where(Match.umpire_id.in_(umpire_ids), Match.is_completed == False)  # noqa: E712
    ).all()
    matches = sorted(matches, key=lambda m: (m.scheduled_time is None, m.scheduled_time or datetime.min, m.match_order))

    names = _EntryNames(session, matches)
    courts = _by_id(session, Court, [m.court_id for m in matches])
    tournaments = _by_id(session, Tournament, [m.tournament_id for m in matches])
    logger.debug("License %s: %d outstanding match(es)", license_no, len(matches))

    items = []
    for match in matches:
        court = courts.get(match.court_id)
        items.append(
            UmpireMatchItem(
                match_id=match.id,
                tournament_id=match.tournament_id,
                tournament_name=tournaments[match.tournament_id].name,
                round=match.round,
                match_code=match.match_code,
                entry1_name=names.name(match.entry1_id),
                entry2_name=names.name(match.entry2_id),
                court_name=court.name if court else None,
                scheduled_time=match.scheduled_time,
                actual_start_time=match.actual_start_time,
                awaiting_result=match.awaiting_result,
            )
        )
    return items
