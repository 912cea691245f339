"""
Courts and umpires, plus their live idle status for the dashboards.

Status is computed from the cached assignment fields against the match
records; the cache itself is only written by the match runtime.
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlmodel import Session, select

from courtside.database import get_session
from courtside.models.club import Club
from courtside.models.court import Court
from courtside.models.match import Match
from courtside.models.umpire import Umpire
from courtside.routes.tournaments import get_tournament_or_404
from courtside.services.idle_status import calculate_idle_status_with_match

router = APIRouter()

CERTIFICATION_LEVELS = ("state", "national", "international")


class CourtCreate(BaseModel):
    name: str
    venue: Optional[str] = None


class CourtResponse(BaseModel):
    id: int
    tournament_id: int
    name: str
    venue: Optional[str]
    is_idle: bool
    last_assigned_start_time: Optional[datetime]
    last_assigned_match_id: Optional[int]

    class Config:
        from_attributes = True


class UmpireCreate(BaseModel):
    name: str
    club_id: Optional[int] = None
    license_no: Optional[str] = None
    contact: Optional[str] = None
    certification_level: Optional[str] = None
    experience_years: Optional[int] = None

    @field_validator("certification_level")
    @classmethod
    def validate_certification(cls, v):
        if v is None:
            return v
        v = v.strip().lower()
        if v not in CERTIFICATION_LEVELS:
            raise ValueError(f"certification_level must be one of {', '.join(CERTIFICATION_LEVELS)}")
        return v


class UmpireResponse(BaseModel):
    id: int
    tournament_id: int
    name: str
    club_id: Optional[int]
    license_no: Optional[str]
    contact: Optional[str]
    certification_level: Optional[str]
    experience_years: Optional[int]
    is_idle: bool
    last_assigned_start_time: Optional[datetime]
    last_assigned_match_id: Optional[int]

    class Config:
        from_attributes = True


class ResourceStatus(BaseModel):
    id: int
    name: str
    is_idle: bool
    minutes_until_idle: Optional[int] = None
    human_readable: Optional[str] = None
    last_assigned_match_id: Optional[int] = None


@router.post("/tournaments/{tournament_id}/courts", response_model=CourtResponse, status_code=201)
def create_court(tournament_id: int, court_data: CourtCreate, session: Session = Depends(get_session)):
    get_tournament_or_404(session, tournament_id)
    court = Court(tournament_id=tournament_id, **court_data.model_dump())
    session.add(court)
    session.commit()
    session.refresh(court)
    return court


@router.get("/tournaments/{tournament_id}/courts", response_model=List[CourtResponse])
def list_courts(tournament_id: int, session: Session = Depends(get_session)):
    get_tournament_or_404(session, tournament_id)
    return session.exec(select(Court).where(Court.tournament_id == tournament_id).order_by(Court.id)).all()


@router.post("/tournaments/{tournament_id}/umpires", response_model=UmpireResponse, status_code=201)
def create_umpire(tournament_id: int, umpire_data: UmpireCreate, session: Session = Depends(get_session)):
    get_tournament_or_404(session, tournament_id)
    if umpire_data.club_id is not None and not session.get(Club, umpire_data.club_id):
        raise HTTPException(status_code=404, detail="Club not found")
    umpire = Umpire(tournament_id=tournament_id, **umpire_data.model_dump())
    session.add(umpire)
    session.commit()
    session.refresh(umpire)
    return umpire


@router.get("/tournaments/{tournament_id}/umpires", response_model=List[UmpireResponse])
def list_umpires(tournament_id: int, session: Session = Depends(get_session)):
    get_tournament_or_404(session, tournament_id)
    return session.exec(select(Umpire).where(Umpire.tournament_id == tournament_id).order_by(Umpire.id)).all()


def _assigned_matches(session: Session, resources) -> List[Match]:
    match_ids = {r.last_assigned_match_id for r in resources if r.last_assigned_match_id is not None}
    if not match_ids:
        return []
    return list(session.exec(select(Match).where(Match.id.in_(match_ids))).all())


def _status_rows(resources, matches: List[Match], now: Optional[datetime] = None) -> List[ResourceStatus]:
    rows = []
    for resource in resources:
        status = calculate_idle_status_with_match(
            resource.is_idle,
            resource.last_assigned_start_time,
            resource.last_assigned_match_id,
            matches,
            now=now,
        )
        rows.append(
            ResourceStatus(
                id=resource.id,
                name=resource.name,
                last_assigned_match_id=resource.last_assigned_match_id,
                **status.to_dict(),
            )
        )
    return rows


@router.get("/tournaments/{tournament_id}/courts/status", response_model=List[ResourceStatus])
def court_status(tournament_id: int, session: Session = Depends(get_session)):
    """Idle status and countdown per court"""
    get_tournament_or_404(session, tournament_id)
    courts = session.exec(select(Court).where(Court.tournament_id == tournament_id).order_by(Court.id)).all()
    return _status_rows(courts, _assigned_matches(session, courts))


@router.get("/tournaments/{tournament_id}/umpires/status", response_model=List[ResourceStatus])
def umpire_status(tournament_id: int, session: Session = Depends(get_session)):
    """Idle status and countdown per umpire"""
    get_tournament_or_404(session, tournament_id)
    umpires = session.exec(select(Umpire).where(Umpire.tournament_id == tournament_id).order_by(Umpire.id)).all()
    return _status_rows(umpires, _assigned_matches(session, umpires))
