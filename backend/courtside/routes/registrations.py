"""
Clubs, players, teams and tournament entries.

An entry points at exactly one player (individual tournaments) or one team
(team-based tournaments). Club membership only feeds umpire neutrality.
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, func, select

from courtside.database import get_session
from courtside.models.club import Club
from courtside.models.entry import ENTRY_CONFIRMED, ENTRY_WITHDRAWN, Entry
from courtside.models.player import Player
from courtside.models.team import Team
from courtside.models.team_player import TeamPlayer
from courtside.models.tournament import Tournament
from courtside.routes.tournaments import get_tournament_or_404

router = APIRouter()


class ClubCreate(BaseModel):
    name: str


class ClubResponse(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class PlayerCreate(BaseModel):
    name: str
    club_id: Optional[int] = None
    contact: Optional[str] = None


class PlayerResponse(BaseModel):
    id: int
    name: str
    club_id: Optional[int]
    contact: Optional[str]

    class Config:
        from_attributes = True


class TeamCreate(BaseModel):
    name: str
    club_id: Optional[int] = None


class TeamResponse(BaseModel):
    id: int
    name: str
    club_id: Optional[int]

    class Config:
        from_attributes = True


class EntryCreate(BaseModel):
    player_id: Optional[int] = None
    team_id: Optional[int] = None
    seed: Optional[int] = None

    @model_validator(mode="after")
    def validate_participant(self):
        if (self.player_id is None) == (self.team_id is None):
            raise ValueError("exactly one of player_id or team_id is required")
        if self.seed is not None and self.seed < 1:
            raise ValueError("seed must be >= 1")
        return self


class EntryUpdate(BaseModel):
    seed: Optional[int] = None
    status: Optional[str] = None

    @model_validator(mode="after")
    def validate_status(self):
        if self.status is not None and self.status not in (ENTRY_CONFIRMED, ENTRY_WITHDRAWN):
            raise ValueError(f"status must be '{ENTRY_CONFIRMED}' or '{ENTRY_WITHDRAWN}'")
        return self


class EntryResponse(BaseModel):
    id: int
    tournament_id: int
    player_id: Optional[int]
    team_id: Optional[int]
    seed: Optional[int]
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class TeamEntryCreate(BaseModel):
    """Register a new team and its roster in one step."""

    team_name: str
    club_id: Optional[int] = None
    player_names: List[str]
    contact: Optional[str] = None  # captain's contact
    seed: Optional[int] = None

    @field_validator("team_name")
    @classmethod
    def validate_team_name(cls, v):
        if not v or not v.strip():
            raise ValueError("team_name is required")
        return v.strip()

    @field_validator("player_names")
    @classmethod
    def validate_player_names(cls, v):
        names = [name.strip() for name in v]
        if not names:
            raise ValueError("at least one player is required")
        if any(not name for name in names):
            raise ValueError("Please provide names for all players.")
        return names


class TeamEntryResponse(BaseModel):
    entry: EntryResponse
    team: TeamResponse
    players: List[PlayerResponse]


class RosterAdd(BaseModel):
    player_id: int


def _ensure_club(session: Session, club_id: Optional[int]) -> None:
    if club_id is not None and not session.get(Club, club_id):
        raise HTTPException(status_code=404, detail="Club not found")


def _ensure_capacity(session: Session, tournament: Tournament) -> None:
    if not tournament.max_entries:
        return
    active = session.exec(
        select(func.count(Entry.id)).where(
            Entry.tournament_id == tournament.id,
            Entry.status != ENTRY_WITHDRAWN,
        )
    ).one()
    if active >= tournament.max_entries:
        raise HTTPException(
            status_code=409,
            detail=f"Tournament is full ({tournament.max_entries} entries)",
        )


def _roster_size(session: Session, team_id: int) -> int:
    return session.exec(select(func.count(TeamPlayer.id)).where(TeamPlayer.team_id == team_id)).one()


def _ensure_roster_size(tournament: Tournament, size: int) -> None:
    if tournament.max_players_per_team and size > tournament.max_players_per_team:
        raise HTTPException(
            status_code=422,
            detail=f"Number of players exceeds the allowed limit ({tournament.max_players_per_team}).",
        )


@router.post("/clubs", response_model=ClubResponse, status_code=201)
def create_club(club_data: ClubCreate, session: Session = Depends(get_session)):
    club = Club(name=club_data.name.strip())
    session.add(club)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=409, detail=f"Club '{club_data.name}' already exists")
    session.refresh(club)
    return club


@router.get("/clubs", response_model=List[ClubResponse])
def list_clubs(session: Session = Depends(get_session)):
    return session.exec(select(Club).order_by(Club.name)).all()


@router.post("/players", response_model=PlayerResponse, status_code=201)
def create_player(player_data: PlayerCreate, session: Session = Depends(get_session)):
    _ensure_club(session, player_data.club_id)
    player = Player(**player_data.model_dump())
    session.add(player)
    session.commit()
    session.refresh(player)
    return player


@router.post("/teams", response_model=TeamResponse, status_code=201)
def create_team(team_data: TeamCreate, session: Session = Depends(get_session)):
    _ensure_club(session, team_data.club_id)
    team = Team(**team_data.model_dump())
    session.add(team)
    session.commit()
    session.refresh(team)
    return team


@router.get("/teams/{team_id}/players", response_model=List[PlayerResponse])
def list_team_players(team_id: int, session: Session = Depends(get_session)):
    """Team roster, captain first"""
    if not session.get(Team, team_id):
        raise HTTPException(status_code=404, detail="Team not found")
    rows = session.exec(
        select(Player, TeamPlayer)
        .join(TeamPlayer, TeamPlayer.player_id == Player.id)
        .where(TeamPlayer.team_id == team_id)
        .order_by(TeamPlayer.is_captain.desc(), TeamPlayer.id)
    ).all()
    return [player for player, _ in rows]


@router.post("/teams/{team_id}/players", response_model=List[PlayerResponse], status_code=201)
def add_team_player(team_id: int, payload: RosterAdd, session: Session = Depends(get_session)):
    """
    Add an existing player to a team roster.

    The roster must stay within max_players_per_team of every tournament the
    team is entered in.
    """
    if not session.get(Team, team_id):
        raise HTTPException(status_code=404, detail="Team not found")
    if not session.get(Player, payload.player_id):
        raise HTTPException(status_code=404, detail="Player not found")
    on_team = session.exec(
        select(TeamPlayer.id).where(TeamPlayer.team_id == team_id, TeamPlayer.player_id == payload.player_id)
    ).first()
    if on_team is not None:
        raise HTTPException(status_code=409, detail="Player is already on this team")

    new_size = _roster_size(session, team_id) + 1
    tournaments = session.exec(
        select(Tournament)
        .join(Entry, Entry.tournament_id == Tournament.id)
        .where(Entry.team_id == team_id, Entry.status != ENTRY_WITHDRAWN)
    ).all()
    for tournament in tournaments:
        _ensure_roster_size(tournament, new_size)

    session.add(TeamPlayer(team_id=team_id, player_id=payload.player_id, is_captain=new_size == 1))
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=409, detail="Player is already on this team")
    return list_team_players(team_id, session)


@router.post("/tournaments/{tournament_id}/team-entries", response_model=TeamEntryResponse, status_code=201)
def register_team_entry(tournament_id: int, payload: TeamEntryCreate, session: Session = Depends(get_session)):
    """
    Create a team, its players and roster, and the tournament entry.

    All rows are written in one commit; nothing is left behind on failure.
    The first player is the captain and carries the contact number.
    """
    tournament = get_tournament_or_404(session, tournament_id)
    if not tournament.is_team_based:
        raise HTTPException(status_code=422, detail="Individual tournament: register players instead")
    _ensure_club(session, payload.club_id)
    _ensure_capacity(session, tournament)
    _ensure_roster_size(tournament, len(payload.player_names))

    team = Team(name=payload.team_name, club_id=payload.club_id)
    session.add(team)
    session.flush()

    players = []
    for index, name in enumerate(payload.player_names):
        player = Player(
            name=name,
            club_id=payload.club_id,
            contact=payload.contact if index == 0 else None,
        )
        session.add(player)
        players.append(player)
    session.flush()

    for index, player in enumerate(players):
        session.add(TeamPlayer(team_id=team.id, player_id=player.id, is_captain=index == 0))

    entry = Entry(tournament_id=tournament_id, team_id=team.id, seed=payload.seed)
    session.add(entry)
    session.commit()

    session.refresh(entry)
    session.refresh(team)
    for player in players:
        session.refresh(player)
    return TeamEntryResponse(
        entry=EntryResponse.model_validate(entry),
        team=TeamResponse.model_validate(team),
        players=[PlayerResponse.model_validate(p) for p in players],
    )


@router.get("/tournaments/{tournament_id}/entries", response_model=List[EntryResponse])
def list_entries(tournament_id: int, session: Session = Depends(get_session)):
    get_tournament_or_404(session, tournament_id)
    return session.exec(select(Entry).where(Entry.tournament_id == tournament_id).order_by(Entry.id)).all()


@router.post("/tournaments/{tournament_id}/entries", response_model=EntryResponse, status_code=201)
def create_entry(tournament_id: int, entry_data: EntryCreate, session: Session = Depends(get_session)):
    """Register a player or team for the tournament"""
    tournament = get_tournament_or_404(session, tournament_id)

    if tournament.is_team_based and entry_data.team_id is None:
        raise HTTPException(status_code=422, detail="Team-based tournament: team_id is required")
    if not tournament.is_team_based and entry_data.player_id is None:
        raise HTTPException(status_code=422, detail="Individual tournament: player_id is required")

    if entry_data.player_id is not None and not session.get(Player, entry_data.player_id):
        raise HTTPException(status_code=404, detail="Player not found")
    if entry_data.team_id is not None and not session.get(Team, entry_data.team_id):
        raise HTTPException(status_code=404, detail="Team not found")

    _ensure_capacity(session, tournament)
    if entry_data.team_id is not None:
        _ensure_roster_size(tournament, _roster_size(session, entry_data.team_id))

    entry = Entry(tournament_id=tournament_id, **entry_data.model_dump())
    session.add(entry)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=409, detail="Already registered for this tournament")
    session.refresh(entry)
    return entry


@router.patch("/tournaments/{tournament_id}/entries/{entry_id}", response_model=EntryResponse)
def update_entry(tournament_id: int, entry_id: int, entry_data: EntryUpdate, session: Session = Depends(get_session)):
    """Change seed or withdraw. Existing fixtures are untouched until regenerated."""
    entry = session.get(Entry, entry_id)
    if not entry or entry.tournament_id != tournament_id:
        raise HTTPException(status_code=404, detail="Entry not found")

    for field, value in entry_data.model_dump(exclude_unset=True).items():
        setattr(entry, field, value)
    session.add(entry)
    session.commit()
    session.refresh(entry)
    return entry
