"""
Match runtime: start, code check, result entry, idle sweep.
No schedule mutation; fixtures are only written by the fixture endpoints.
"""
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlmodel import Session

from courtside.database import get_session
from courtside.routes.fixtures import MatchResponse
from courtside.services.match_runtime import (
    InvalidMatchCodeError,
    MatchNotFoundError,
    MatchResultInput,
    MatchRuntimeError,
    MatchStateError,
    auto_update_idle_status,
    start_match,
    submit_match_result,
    validate_match_code,
)

router = APIRouter()


class MatchCodeRequest(BaseModel):
    match_code: str


class MatchCodeResponse(BaseModel):
    match_id: int
    valid: bool


class MatchResultRequest(BaseModel):
    match_code: str
    winner_entry_id: Optional[int] = None
    entry1_score: Optional[int] = None
    entry2_score: Optional[int] = None
    entry1_disqualified: bool = False
    entry2_disqualified: bool = False


def _raise_http(exc: MatchRuntimeError) -> None:
    if isinstance(exc, MatchNotFoundError):
        raise HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, InvalidMatchCodeError):
        raise HTTPException(status_code=403, detail=str(exc))
    if isinstance(exc, MatchStateError):
        raise HTTPException(status_code=409, detail=str(exc))
    raise HTTPException(status_code=400, detail=str(exc))


@router.post("/matches/{match_id}/start", response_model=MatchResponse)
def start(match_id: int, session: Session = Depends(get_session)):
    """Mark the match started; its court and umpire become busy"""
    try:
        return start_match(session, match_id)
    except MatchRuntimeError as exc:
        _raise_http(exc)


@router.post("/matches/{match_id}/validate-code", response_model=MatchCodeResponse)
def validate_code(match_id: int, payload: MatchCodeRequest, session: Session = Depends(get_session)):
    try:
        valid = validate_match_code(session, match_id, payload.match_code)
    except MatchRuntimeError as exc:
        _raise_http(exc)
    return MatchCodeResponse(match_id=match_id, valid=valid)


@router.post("/matches/{match_id}/result", response_model=MatchResponse)
def submit_result(match_id: int, payload: MatchResultRequest, session: Session = Depends(get_session)):
    """Record the winner and consume the match code (one submission per match)"""
    data = payload.model_dump()
    match_code = data.pop("match_code")
    try:
        return submit_match_result(session, match_id, match_code, MatchResultInput(**data))
    except MatchRuntimeError as exc:
        _raise_http(exc)


@router.post("/runtime/idle-sweep", response_model=Dict[str, int])
def idle_sweep(session: Session = Depends(get_session)) -> Dict[str, int]:
    """Flag overdue matches as awaiting result and free their court/umpire"""
    return auto_update_idle_status(session)
