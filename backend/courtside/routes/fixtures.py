"""
Fixture generation and round advancement.

Both endpoints return the structured FixtureResult with HTTP 200, including
expected failures (status="error" + error_code), so the desk UI can show the
message as-is. Only a missing tournament (404) and a concurrent run (409)
map to HTTP errors.
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlmodel import Session, select

from courtside.database import get_session
from courtside.models.match import Match
from courtside.routes.tournaments import get_tournament_or_404
from courtside.services.fixture_service import FixtureErrorCode, FixtureOptions, FixtureResult, generate_fixtures
from courtside.services.match_runtime import are_all_matches_completed, get_current_round
from courtside.services.resource_scheduler import OfficialStrategy
from courtside.services.round_progression import NextRoundOptions, generate_next_round_fixtures

router = APIRouter()


class FixtureRequest(BaseModel):
    seeded: bool = False
    force: bool = False
    start_time_override: Optional[str] = None
    max_parallel_matches_override: Optional[int] = None
    respect_club_neutrality: bool = True
    dry_run: bool = False
    random_seed: Optional[int] = None
    strategy: OfficialStrategy = OfficialStrategy.LEAST_LOADED


class NextRoundRequest(BaseModel):
    current_round: str
    force: bool = False
    max_parallel_matches_override: Optional[int] = None
    respect_club_neutrality: bool = True
    dry_run: bool = False
    random_seed: Optional[int] = None
    strategy: OfficialStrategy = OfficialStrategy.LEAST_LOADED


class MatchResponse(BaseModel):
    id: Optional[int] = None  # None for dry-run previews
    tournament_id: int
    round: str
    round_number: int
    round_size: Optional[int] = None
    match_order: int
    entry1_id: Optional[int] = None
    entry2_id: Optional[int] = None
    court_id: Optional[int] = None
    umpire_id: Optional[int] = None
    scheduled_time: Optional[datetime] = None
    duration_minutes: int
    rest_enforced: bool
    match_code: str
    code_valid: bool
    winner_entry_id: Optional[int] = None
    is_completed: bool
    entry1_score: Optional[int] = None
    entry2_score: Optional[int] = None
    actual_start_time: Optional[datetime] = None
    awaiting_result: bool = False

    class Config:
        from_attributes = True


class FixtureResponse(BaseModel):
    status: str
    created: int
    matches: List[MatchResponse]
    warnings: List[str]
    error: Optional[str] = None
    error_code: Optional[FixtureErrorCode] = None


class CurrentRoundResponse(BaseModel):
    tournament_id: int
    current_round: Optional[str]
    is_complete: bool


def _to_response(result: FixtureResult) -> FixtureResponse:
    if result.error_code == FixtureErrorCode.NOT_FOUND:
        raise HTTPException(status_code=404, detail=result.error)
    if result.error_code == FixtureErrorCode.BUSY:
        raise HTTPException(status_code=409, detail=result.error)
    return FixtureResponse(
        status=result.status,
        created=result.created,
        matches=[MatchResponse.model_validate(m) for m in result.matches],
        warnings=result.warnings,
        error=result.error,
        error_code=result.error_code,
    )


@router.post("/tournaments/{tournament_id}/fixtures", response_model=FixtureResponse)
def create_fixtures(
    tournament_id: int,
    request: Optional[FixtureRequest] = None,
    session: Session = Depends(get_session),
) -> FixtureResponse:
    """Generate opening fixtures (knockout/double elimination) or the full round robin"""
    options = FixtureOptions(**(request or FixtureRequest()).model_dump())
    return _to_response(generate_fixtures(session, tournament_id, options))


@router.post("/tournaments/{tournament_id}/fixtures/next-round", response_model=FixtureResponse)
def create_next_round(
    tournament_id: int,
    request: NextRoundRequest,
    session: Session = Depends(get_session),
) -> FixtureResponse:
    """Pair the winners of current_round into the next knockout round"""
    data = request.model_dump()
    current_round = data.pop("current_round")
    result = generate_next_round_fixtures(session, tournament_id, current_round, NextRoundOptions(**data))
    return _to_response(result)


@router.get("/tournaments/{tournament_id}/matches", response_model=List[MatchResponse])
def list_matches(
    tournament_id: int,
    round: Optional[str] = None,
    session: Session = Depends(get_session),
) -> List[MatchResponse]:
    """Matches in match_order, optionally filtered by round label"""
    get_tournament_or_404(session, tournament_id)
    query = select(Match).where(Match.tournament_id == tournament_id)
    if round is not None:
        query = query.where(Match.round == round)
    matches = session.exec(query.order_by(Match.match_order)).all()
    return [MatchResponse.model_validate(m) for m in matches]


@router.get("/tournaments/{tournament_id}/rounds/current", response_model=CurrentRoundResponse)
def current_round(tournament_id: int, session: Session = Depends(get_session)) -> CurrentRoundResponse:
    get_tournament_or_404(session, tournament_id)
    label = get_current_round(session, tournament_id)
    return CurrentRoundResponse(
        tournament_id=tournament_id,
        current_round=label,
        is_complete=label is not None and are_all_matches_completed(session, tournament_id, label),
    )
