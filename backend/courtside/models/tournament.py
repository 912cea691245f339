from datetime import date, datetime, time
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from courtside.models.court import Court
    from courtside.models.entry import Entry
    from courtside.models.match import Match
    from courtside.models.umpire import Umpire


class TournamentFormat(str, Enum):
    knockout = "knockout"
    round_robin = "round_robin"
    double_elimination = "double_elimination"


# Fields that feed the scheduler; frozen once fixtures exist
SCHEDULING_FIELDS = (
    "format",
    "start_date",
    "start_time",
    "match_duration_minutes",
    "rest_time_minutes",
    "max_entries",
    "max_players_per_team",
)


class Tournament(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    sport: Optional[str] = None
    format: TournamentFormat = Field(sa_column=Column(String, nullable=False))
    is_team_based: bool = Field(default=False)
    start_date: date
    start_time: Optional[time] = None  # falls back to DEFAULT_START_HOUR
    match_duration_minutes: int = Field(default=30)
    rest_time_minutes: int = Field(default=0)
    max_entries: Optional[int] = None
    max_players_per_team: Optional[int] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})

    # Relationships
    entries: List["Entry"] = Relationship(back_populates="tournament")
    courts: List["Court"] = Relationship(back_populates="tournament")
    umpires: List["Umpire"] = Relationship(back_populates="tournament")
    matches: List["Match"] = Relationship(back_populates="tournament")

    @property
    def slot_duration_minutes(self) -> int:
        return self.match_duration_minutes + self.rest_time_minutes
