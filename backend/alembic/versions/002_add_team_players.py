"""Add team rosters

Revision ID: 002_team_players
Revises: 001_initial
Create Date: 2026-10-18 12:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "002_team_players"
down_revision = "001_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "teamplayer",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("player_id", sa.Integer(), nullable=False),
        sa.Column("is_captain", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["team_id"], ["team.id"]),
        sa.ForeignKeyConstraint(["player_id"], ["player.id"]),
        sa.UniqueConstraint("team_id", "player_id", name="uq_team_player"),
    )
    op.create_index("ix_teamplayer_team_id", "teamplayer", ["team_id"])


def downgrade() -> None:
    op.drop_index("ix_teamplayer_team_id", table_name="teamplayer")
    op.drop_table("teamplayer")
