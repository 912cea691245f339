"""
Match runtime: officials start matches and submit results.

- start_match marks the court/umpire busy (cache fields) and stamps actual_start_time
- submit_match_result consumes the one-time match code
- auto_update_idle_status flags overdue matches as awaiting_result and frees
  resources whose cache still points at them

Never creates or reschedules matches; that is fixture_service/round_progression.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlmodel import Session, select

from courtside.models.court import Court
from courtside.models.match import Match
from courtside.models.umpire import Umpire
from courtside.services.idle_status import IDLE_THRESHOLD_SECONDS
from courtside.services.timestamps import to_naive_utc, utc_now

logger = logging.getLogger(__name__)


class MatchRuntimeError(Exception):
    """Base class for runtime failures the API maps to HTTP errors."""


class MatchNotFoundError(MatchRuntimeError):
    pass


class MatchStateError(MatchRuntimeError):
    """Operation not allowed in the match's current state."""


class InvalidMatchCodeError(MatchRuntimeError):
    pass


@dataclass
class MatchResultInput:
    winner_entry_id: Optional[int] = None
    entry1_score: Optional[int] = None
    entry2_score: Optional[int] = None
    entry1_disqualified: bool = False
    entry2_disqualified: bool = False


def _get_match(session: Session, match_id: int) -> Match:
    match = session.get(Match, match_id)
    if not match:
        raise MatchNotFoundError(f"Match not found: {match_id}")
    return match


def _now_naive(now: Optional[datetime]) -> datetime:
    return to_naive_utc(now or utc_now())


def _mark_busy(resource, match: Match, started_at: datetime) -> None:
    resource.is_idle = False
    resource.last_assigned_start_time = started_at
    resource.last_assigned_match_id = match.id


def _release_if_holding(resource, match_id: int) -> bool:
    """Reset cache fields only while the resource still points at *match_id*."""
    if resource is None or resource.last_assigned_match_id != match_id:
        return False
    resource.is_idle = True
    resource.last_assigned_start_time = None
    resource.last_assigned_match_id = None
    return True


def start_match(session: Session, match_id: int, now: Optional[datetime] = None) -> Match:
    """Stamp actual_start_time and mark the assigned court and umpire busy."""
    match = _get_match(session, match_id)

    if match.is_completed:
        raise MatchStateError("This match has already been completed.")
    if match.actual_start_time is not None:
        raise MatchStateError("This match has already been started.")
    if match.is_bye:
        raise MatchStateError("BYE matches are never played.")

    started_at = _now_naive(now)
    match.actual_start_time = started_at
    session.add(match)

    if match.umpire_id is not None:
        umpire = session.get(Umpire, match.umpire_id)
        if umpire:
            _mark_busy(umpire, match, started_at)
            session.add(umpire)
    if match.court_id is not None:
        court = session.get(Court, match.court_id)
        if court:
            _mark_busy(court, match, started_at)
            session.add(court)

    session.commit()
    session.refresh(match)
    logger.info("Match %d (%s) started at %s", match.id, match.match_code, started_at)
    return match


def validate_match_code(session: Session, match_id: int, match_code: str) -> bool:
    """
    True when *match_code* matches. Raises when the match can no longer take a
    result (completed, or code already consumed).
    """
    match = _get_match(session, match_id)
    if match.is_completed:
        raise MatchStateError("This match has already been completed and cannot be edited.")
    if not match.code_valid:
        raise InvalidMatchCodeError("Match code has been invalidated and cannot be used.")
    return match.match_code == match_code.strip()


def _resolve_winner(match: Match, result: MatchResultInput) -> int:
    if result.entry1_disqualified and result.entry2_disqualified:
        raise MatchStateError("Both entries cannot be disqualified.")

    winner = result.winner_entry_id
    if result.entry1_disqualified:
        if match.entry2_id is None:
            raise MatchStateError("Cannot disqualify entry 1 when entry 2 is not assigned.")
        winner = match.entry2_id
    elif result.entry2_disqualified:
        if match.entry1_id is None:
            raise MatchStateError("Cannot disqualify entry 2 when entry 1 is not assigned.")
        winner = match.entry1_id

    if winner is None:
        raise MatchStateError("A winner must be assigned before completing the match.")
    if winner not in (match.entry1_id, match.entry2_id):
        raise MatchStateError(f"Winner {winner} is not an entrant of this match.")
    return winner


def submit_match_result(session: Session, match_id: int, match_code: str, result: MatchResultInput) -> Match:
    """
    Record the winner (and optional scores) and consume the match code.

    After this call code_valid is False for good; a second submission fails.
    """
    if not validate_match_code(session, match_id, match_code):
        raise InvalidMatchCodeError("Invalid match code.")

    match = _get_match(session, match_id)
    winner = _resolve_winner(match, result)

    for score in (result.entry1_score, result.entry2_score):
        if score is not None and score < 0:
            raise MatchStateError("Scores cannot be negative.")

    match.winner_entry_id = winner
    match.is_completed = True
    match.code_valid = False
    match.awaiting_result = False
    if result.entry1_score is not None:
        match.entry1_score = result.entry1_score
    if result.entry2_score is not None:
        match.entry2_score = result.entry2_score
    session.add(match)

    for model, resource_id in ((Umpire, match.umpire_id), (Court, match.court_id)):
        if resource_id is None:
            continue
        resource = session.get(model, resource_id)
        if _release_if_holding(resource, match.id):
            session.add(resource)

    session.commit()
    session.refresh(match)
    logger.info("Result submitted for match %d (%s): winner entry %d", match.id, match.match_code, winner)
    return match


def auto_update_idle_status(session: Session, now: Optional[datetime] = None) -> Dict[str, int]:
    """
    Sweep started, unfinished matches. Once a match is a minute past its
    scheduled length it is flagged awaiting_result and its court/umpire are
    freed (only if their cache still points at it).

    Returns counts: matches_checked, marked_awaiting, courts_released, umpires_released.
    """
    current = _now_naive(now)
    active = session.exec(
        select(Match).where(
            Match.actual_start_time.is_not(None),
            Match.is_completed == False,  # noqa: E712
        )
    ).all()

    summary = {"matches_checked": 0, "marked_awaiting": 0, "courts_released": 0, "umpires_released": 0}
    for match in active:
        summary["matches_checked"] += 1
        if not match.duration_minutes:
            continue

        end = match.actual_start_time + timedelta(minutes=match.duration_minutes)
        if current <= end + timedelta(seconds=IDLE_THRESHOLD_SECONDS):
            continue

        if not match.awaiting_result:
            match.awaiting_result = True
            session.add(match)
            summary["marked_awaiting"] += 1

        if match.umpire_id is not None:
            umpire = session.get(Umpire, match.umpire_id)
            if _release_if_holding(umpire, match.id):
                session.add(umpire)
                summary["umpires_released"] += 1
        if match.court_id is not None:
            court = session.get(Court, match.court_id)
            if _release_if_holding(court, match.id):
                session.add(court)
                summary["courts_released"] += 1

    session.commit()
    if summary["marked_awaiting"]:
        logger.info("Idle sweep: %s", summary)
    return summary


# ============================================================================
# Round queries
# ============================================================================


def are_all_matches_completed(session: Session, tournament_id: int, round_label: str) -> bool:
    matches = session.exec(
        select(Match).where(Match.tournament_id == tournament_id, Match.round == round_label)
    ).all()
    if not matches:
        return False
    return all(m.is_completed for m in matches)


def get_round_winners(session: Session, tournament_id: int, round_label: str) -> List[int]:
    """Winner entry ids of *round_label* in match_order."""
    matches = session.exec(
        select(Match)
        .where(
            Match.tournament_id == tournament_id,
            Match.round == round_label,
            Match.winner_entry_id.is_not(None),
        )
        .order_by(Match.match_order)
    ).all()
    return [m.winner_entry_id for m in matches]


def get_current_round(session: Session, tournament_id: int) -> Optional[str]:
    """First round (by match_order) with unfinished matches, else the last round."""
    matches = session.exec(
        select(Match).where(Match.tournament_id == tournament_id).order_by(Match.match_order)
    ).all()
    if not matches:
        return None

    stats: Dict[str, List[int]] = {}
    for match in matches:
        total_completed = stats.setdefault(match.round, [0, 0])
        total_completed[0] += 1
        if match.is_completed:
            total_completed[1] += 1

    for label, (total, completed) in stats.items():
        if completed < total:
            return label
    return list(stats)[-1]
