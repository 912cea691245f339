"""
Per-tournament serialization for fixture generation and round advancement.

Two concurrent "generate" calls could otherwise both see "no fixtures yet"
and both insert. The lock is a TournamentLock row guarded by a unique
constraint on tournament_id: the insert either wins or raises
IntegrityError, regardless of which process or worker is calling.
"""

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Iterator, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from courtside import config
from courtside.models.tournament_lock import TournamentLock

logger = logging.getLogger(__name__)

OP_GENERATE_FIXTURES = "generate_fixtures"
OP_ADVANCE_ROUND = "advance_round"


class TournamentBusyError(Exception):
    """Another fixture operation holds the tournament lock."""

    def __init__(self, tournament_id: int, operation: str):
        self.tournament_id = tournament_id
        self.operation = operation
        super().__init__(f"Tournament {tournament_id} is busy: '{operation}' is already running")


def acquire_lock(
    session: Session,
    tournament_id: int,
    operation: str,
    now: Optional[datetime] = None,
    ttl_seconds: Optional[int] = None,
) -> str:
    """Insert the lock row and commit. Returns the holder token."""
    now = now or datetime.utcnow()
    ttl = config.LOCK_TTL_SECONDS if ttl_seconds is None else ttl_seconds

    existing = session.exec(select(TournamentLock).where(TournamentLock.tournament_id == tournament_id)).first()
    if existing:
        if now - existing.acquired_at < timedelta(seconds=ttl):
            raise TournamentBusyError(tournament_id, existing.operation)
        logger.warning(
            "Replacing stale lock on tournament %d (operation=%s, acquired_at=%s)",
            tournament_id,
            existing.operation,
            existing.acquired_at,
        )
        session.delete(existing)
        session.commit()

    token = uuid.uuid4().hex
    session.add(TournamentLock(tournament_id=tournament_id, operation=operation, token=token, acquired_at=now))
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise TournamentBusyError(tournament_id, operation)
    return token


def release_lock(session: Session, tournament_id: int, token: str) -> bool:
    """Delete the lock row if *token* still holds it. Returns True when released."""
    lock = session.exec(
        select(TournamentLock).where(
            TournamentLock.tournament_id == tournament_id,
            TournamentLock.token == token,
        )
    ).first()
    if not lock:
        return False
    session.delete(lock)
    session.commit()
    return True


@contextmanager
def tournament_lock(session: Session, tournament_id: int, operation: str) -> Iterator[str]:
    """Hold the tournament lock for the duration of the block."""
    token = acquire_lock(session, tournament_id, operation)
    try:
        yield token
    except Exception:
        session.rollback()
        raise
    finally:
        release_lock(session, tournament_id, token)
