import os

# Keep app startup (init_db) off the on-disk default database
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from datetime import date, time  # noqa: E402
from typing import Dict, List, Optional, Sequence  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from courtside.database import get_session  # noqa: E402
from courtside.main import app  # noqa: E402

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. sqlite:///:memory: with StaticPool so ALL sessions share the same DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. All models imported before create_all() (see session_fixture)
# 4. App dependency overridden to use test_engine (see client_fixture)
# 5. Tables dropped after each test so ids and lock rows never leak
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on a fresh schema"""
    import courtside.models  # noqa: F401

    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session

    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Provide a test client with overridden database session

    Override MUST be set BEFORE TestClient() and stay in place for the
    entire duration so the app never uses its own engine.
    """
    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


# ============================================================================
# Factories
# ============================================================================


class TournamentFactory:
    """Builds tournaments with clubs, players, entries, courts and umpires."""

    def __init__(self, session: Session):
        self.session = session

    def _save(self, obj):
        self.session.add(obj)
        self.session.commit()
        self.session.refresh(obj)
        return obj

    def tournament(self, format: str = "knockout", **overrides):
        from courtside.models import Tournament

        data = dict(
            name="Spring Open",
            sport="badminton",
            format=format,
            start_date=date(2026, 3, 14),
            start_time=time(9, 0),
            match_duration_minutes=30,
            rest_time_minutes=0,
        )
        data.update(overrides)
        return self._save(Tournament(**data))

    def club(self, name: str):
        from courtside.models import Club

        return self._save(Club(name=name))

    def entries(
        self,
        tournament_id: int,
        count: int,
        club_ids: Optional[Sequence[Optional[int]]] = None,
        seeded: bool = False,
    ) -> List:
        """*count* player entries; club_ids[i] is the i-th player's club."""
        from courtside.models import Entry, Player

        created = []
        for i in range(count):
            club_id = club_ids[i] if club_ids else None
            player = self._save(Player(name=f"Player {i + 1}", club_id=club_id))
            entry = Entry(tournament_id=tournament_id, player_id=player.id, seed=(i + 1) if seeded else None)
            created.append(self._save(entry))
        return created

    def courts(self, tournament_id: int, count: int) -> List:
        from courtside.models import Court

        return [self._save(Court(tournament_id=tournament_id, name=f"Court {i + 1}")) for i in range(count)]

    def umpires(self, tournament_id: int, count: int, club_ids: Optional[Sequence[Optional[int]]] = None) -> List:
        from courtside.models import Umpire

        return [
            self._save(
                Umpire(
                    tournament_id=tournament_id,
                    name=f"Umpire {i + 1}",
                    club_id=club_ids[i] if club_ids else None,
                )
            )
            for i in range(count)
        ]

    def ready(self, entrants: int, courts: int = 2, umpires: int = 2, format: str = "knockout", seeded=True, **overrides) -> Dict:
        """A tournament with everything fixture generation needs."""
        tournament = self.tournament(format=format, **overrides)
        return {
            "tournament": tournament,
            "entries": self.entries(tournament.id, entrants, seeded=seeded),
            "courts": self.courts(tournament.id, courts),
            "umpires": self.umpires(tournament.id, umpires),
        }


@pytest.fixture
def factory(session: Session) -> TournamentFactory:
    return TournamentFactory(session)
