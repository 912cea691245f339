from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from courtside.models.tournament import Tournament

ENTRY_CONFIRMED = "confirmed"
ENTRY_WITHDRAWN = "withdrawn"


class Entry(SQLModel, table=True):
    __table_args__ = (
        SAUniqueConstraint("tournament_id", "player_id", name="uq_entry_tournament_player"),
        SAUniqueConstraint("tournament_id", "team_id", name="uq_entry_tournament_team"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    # Exactly one of player_id / team_id is set
    player_id: Optional[int] = Field(default=None, foreign_key="player.id")
    team_id: Optional[int] = Field(default=None, foreign_key="team.id")
    seed: Optional[int] = Field(default=None)  # 1-based; orders seeded draws
    status: str = Field(default=ENTRY_CONFIRMED)  # "confirmed" | "withdrawn"
    created_at: datetime = Field(default_factory=datetime.utcnow)

    tournament: "Tournament" = Relationship(back_populates="entries")
