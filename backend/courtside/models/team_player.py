from typing import Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel


class TeamPlayer(SQLModel, table=True):
    """Roster row: one player on one team."""

    __table_args__ = (SAUniqueConstraint("team_id", "player_id", name="uq_team_player"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    team_id: int = Field(foreign_key="team.id", index=True)
    player_id: int = Field(foreign_key="player.id")
    is_captain: bool = Field(default=False)
