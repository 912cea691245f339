from datetime import date, datetime, time
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlmodel import Session, func, select

from courtside.database import get_session
from courtside.models.match import Match
from courtside.models.tournament import SCHEDULING_FIELDS, Tournament, TournamentFormat

router = APIRouter()

# Non-nullable columns; PATCH may omit them but not null them
REQUIRED_FIELDS = (
    "name",
    "format",
    "is_team_based",
    "start_date",
    "match_duration_minutes",
    "rest_time_minutes",
)


class TournamentCreate(BaseModel):
    name: str
    sport: Optional[str] = None
    format: TournamentFormat = TournamentFormat.knockout
    is_team_based: bool = False
    start_date: date
    start_time: Optional[time] = None
    match_duration_minutes: int = 30
    rest_time_minutes: int = 0
    max_entries: Optional[int] = None
    max_players_per_team: Optional[int] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()

    @field_validator("match_duration_minutes")
    @classmethod
    def validate_duration(cls, v):
        if v < 1:
            raise ValueError("match_duration_minutes must be >= 1")
        return v

    @field_validator("rest_time_minutes")
    @classmethod
    def validate_rest(cls, v):
        if v < 0:
            raise ValueError("rest_time_minutes must be >= 0")
        return v


class TournamentUpdate(BaseModel):
    name: Optional[str] = None
    sport: Optional[str] = None
    format: Optional[TournamentFormat] = None
    is_team_based: Optional[bool] = None
    start_date: Optional[date] = None
    start_time: Optional[time] = None
    match_duration_minutes: Optional[int] = None
    rest_time_minutes: Optional[int] = None
    max_entries: Optional[int] = None
    max_players_per_team: Optional[int] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if v is not None and not v.strip():
            raise ValueError("name cannot be empty")
        return v.strip() if v is not None else v

    @field_validator("match_duration_minutes")
    @classmethod
    def validate_duration(cls, v):
        if v is not None and v < 1:
            raise ValueError("match_duration_minutes must be >= 1")
        return v

    @field_validator("rest_time_minutes")
    @classmethod
    def validate_rest(cls, v):
        if v is not None and v < 0:
            raise ValueError("rest_time_minutes must be >= 0")
        return v


class TournamentResponse(BaseModel):
    id: int
    name: str
    sport: Optional[str]
    format: TournamentFormat
    is_team_based: bool
    start_date: date
    start_time: Optional[time]
    match_duration_minutes: int
    rest_time_minutes: int
    max_entries: Optional[int]
    max_players_per_team: Optional[int]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


def get_tournament_or_404(session: Session, tournament_id: int) -> Tournament:
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return tournament


def has_fixtures(session: Session, tournament_id: int) -> bool:
    count = session.exec(select(func.count(Match.id)).where(Match.tournament_id == tournament_id)).one()
    return count > 0


@router.get("/tournaments", response_model=List[TournamentResponse])
def list_tournaments(session: Session = Depends(get_session)):
    """List all tournaments"""
    return session.exec(select(Tournament).order_by(Tournament.id)).all()


@router.post("/tournaments", response_model=TournamentResponse, status_code=201)
def create_tournament(tournament_data: TournamentCreate, session: Session = Depends(get_session)):
    data = tournament_data.model_dump()
    data["format"] = tournament_data.format.value
    tournament = Tournament(**data)
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    return tournament


@router.get("/tournaments/{tournament_id}", response_model=TournamentResponse)
def get_tournament(tournament_id: int, session: Session = Depends(get_session)):
    return get_tournament_or_404(session, tournament_id)


@router.patch("/tournaments/{tournament_id}", response_model=TournamentResponse)
def update_tournament(tournament_id: int, tournament_data: TournamentUpdate, session: Session = Depends(get_session)):
    """
    Update a tournament.

    Scheduling fields (format, dates, durations, limits) are frozen once
    fixtures exist; changing them returns 409.
    """
    tournament = get_tournament_or_404(session, tournament_id)

    update_data = tournament_data.model_dump(exclude_unset=True)
    cleared = [field for field in REQUIRED_FIELDS if field in update_data and update_data[field] is None]
    if cleared:
        raise HTTPException(status_code=422, detail=f"{', '.join(cleared)} cannot be null")

    changed_scheduling = [
        field for field in SCHEDULING_FIELDS if field in update_data and update_data[field] != getattr(tournament, field)
    ]
    if changed_scheduling and has_fixtures(session, tournament_id):
        raise HTTPException(
            status_code=409,
            detail=f"Fixtures exist; cannot change {', '.join(changed_scheduling)}. Regenerate with force=true instead.",
        )

    for field, value in update_data.items():
        if isinstance(value, TournamentFormat):
            value = value.value
        setattr(tournament, field, value)

    tournament.updated_at = datetime.utcnow()
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    return tournament
