from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from courtside.models.tournament import Tournament


class Match(SQLModel, table=True):
    __table_args__ = (
        SAUniqueConstraint("tournament_id", "match_order", name="uq_match_tournament_order"),
        SAUniqueConstraint("tournament_id", "match_code", name="uq_match_tournament_code"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    round: str  # display label, e.g. "Quarterfinals", "RR - R2"
    round_number: int = Field(default=1)  # 1-based progression ordinal
    round_size: Optional[int] = Field(default=None)  # knockout entrant slots; 2 = Final
    match_order: int  # tournament-wide, strictly increasing across rounds

    # Null entry = BYE
    entry1_id: Optional[int] = Field(default=None, foreign_key="entry.id")
    entry2_id: Optional[int] = Field(default=None, foreign_key="entry.id")

    court_id: Optional[int] = Field(default=None, foreign_key="court.id")
    umpire_id: Optional[int] = Field(default=None, foreign_key="umpire.id")
    scheduled_time: Optional[datetime] = Field(default=None)
    duration_minutes: int
    rest_enforced: bool = Field(default=False)

    # One-time access token for result entry
    match_code: str
    code_valid: bool = Field(default=True)

    winner_entry_id: Optional[int] = Field(default=None, foreign_key="entry.id")
    is_completed: bool = Field(default=False)
    entry1_score: Optional[int] = Field(default=None)
    entry2_score: Optional[int] = Field(default=None)

    # Runtime (set by officials, not by the scheduler)
    actual_start_time: Optional[datetime] = Field(default=None, index=True)
    awaiting_result: bool = Field(default=False)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})

    tournament: "Tournament" = Relationship(back_populates="matches")

    @property
    def is_bye(self) -> bool:
        return self.entry1_id is None or self.entry2_id is None
