from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel


class TournamentLock(SQLModel, table=True):
    __tablename__ = "tournamentlock"
    __table_args__ = (SAUniqueConstraint("tournament_id", name="uq_tournamentlock_tournament"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    operation: str  # "generate_fixtures" | "advance_round"
    token: str
    acquired_at: datetime = Field(default_factory=datetime.utcnow)
