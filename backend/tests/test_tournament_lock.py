from datetime import datetime, timedelta

import pytest
from sqlmodel import Session, select

from courtside.models import TournamentLock
from courtside.services.tournament_lock import (
    OP_ADVANCE_ROUND,
    OP_GENERATE_FIXTURES,
    TournamentBusyError,
    acquire_lock,
    release_lock,
    tournament_lock,
)


def test_acquire_and_release(session: Session, factory):
    tid = factory.tournament().id
    token = acquire_lock(session, tid, OP_GENERATE_FIXTURES)

    with pytest.raises(TournamentBusyError) as exc_info:
        acquire_lock(session, tid, OP_ADVANCE_ROUND)
    assert exc_info.value.operation == OP_GENERATE_FIXTURES

    assert release_lock(session, tid, "not-the-holder") is False
    assert release_lock(session, tid, token) is True
    assert session.exec(select(TournamentLock)).all() == []


def test_locks_are_per_tournament(session: Session, factory):
    first, second = factory.tournament().id, factory.tournament().id
    acquire_lock(session, first, OP_GENERATE_FIXTURES)
    acquire_lock(session, second, OP_GENERATE_FIXTURES)
    assert len(session.exec(select(TournamentLock)).all()) == 2


def test_stale_lock_expires(session: Session, factory):
    tid = factory.tournament().id
    now = datetime(2026, 3, 14, 12, 0)
    acquire_lock(session, tid, OP_GENERATE_FIXTURES, now=now)

    with pytest.raises(TournamentBusyError):
        acquire_lock(session, tid, OP_GENERATE_FIXTURES, now=now + timedelta(seconds=30), ttl_seconds=60)

    token = acquire_lock(session, tid, OP_ADVANCE_ROUND, now=now + timedelta(seconds=61), ttl_seconds=60)
    lock = session.exec(select(TournamentLock)).one()
    assert lock.token == token
    assert lock.operation == OP_ADVANCE_ROUND


def test_context_manager_releases_on_error(session: Session, factory):
    tid = factory.tournament().id
    with pytest.raises(RuntimeError):
        with tournament_lock(session, tid, OP_GENERATE_FIXTURES):
            raise RuntimeError("boom")
    assert session.exec(select(TournamentLock)).all() == []
