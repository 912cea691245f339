"""Initial schema: tournaments, registrations, resources, matches, locks

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "tournament",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("sport", sa.String(), nullable=True),
        sa.Column("format", sa.String(), nullable=False),
        sa.Column("is_team_based", sa.Boolean(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=True),
        sa.Column("match_duration_minutes", sa.Integer(), nullable=False),
        sa.Column("rest_time_minutes", sa.Integer(), nullable=False),
        sa.Column("max_entries", sa.Integer(), nullable=True),
        sa.Column("max_players_per_team", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "club",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_club_name", "club", ["name"], unique=True)

    op.create_table(
        "player",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("club_id", sa.Integer(), nullable=True),
        sa.Column("contact", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["club_id"], ["club.id"]),
    )

    op.create_table(
        "team",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("club_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["club_id"], ["club.id"]),
    )

    op.create_table(
        "entry",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("player_id", sa.Integer(), nullable=True),
        sa.Column("team_id", sa.Integer(), nullable=True),
        sa.Column("seed", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.ForeignKeyConstraint(["player_id"], ["player.id"]),
        sa.ForeignKeyConstraint(["team_id"], ["team.id"]),
        sa.UniqueConstraint("tournament_id", "player_id", name="uq_entry_tournament_player"),
        sa.UniqueConstraint("tournament_id", "team_id", name="uq_entry_tournament_team"),
    )
    op.create_index("ix_entry_tournament_id", "entry", ["tournament_id"])

    op.create_table(
        "court",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("venue", sa.String(), nullable=True),
        sa.Column("is_idle", sa.Boolean(), nullable=False),
        sa.Column("last_assigned_start_time", sa.DateTime(), nullable=True),
        sa.Column("last_assigned_match_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
    )
    op.create_index("ix_court_tournament_id", "court", ["tournament_id"])
    op.create_index("ix_court_is_idle", "court", ["is_idle"])
    op.create_index("ix_court_last_assigned_match_id", "court", ["last_assigned_match_id"])

    op.create_table(
        "umpire",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("club_id", sa.Integer(), nullable=True),
        sa.Column("license_no", sa.String(), nullable=True),
        sa.Column("contact", sa.String(), nullable=True),
        sa.Column("certification_level", sa.String(), nullable=True),
        sa.Column("experience_years", sa.Integer(), nullable=True),
        sa.Column("is_idle", sa.Boolean(), nullable=False),
        sa.Column("last_assigned_start_time", sa.DateTime(), nullable=True),
        sa.Column("last_assigned_match_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.ForeignKeyConstraint(["club_id"], ["club.id"]),
    )
    op.create_index("ix_umpire_tournament_id", "umpire", ["tournament_id"])
    op.create_index("ix_umpire_license_no", "umpire", ["license_no"])
    op.create_index("ix_umpire_is_idle", "umpire", ["is_idle"])
    op.create_index("ix_umpire_last_assigned_match_id", "umpire", ["last_assigned_match_id"])

    op.create_table(
        "match",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("round", sa.String(), nullable=False),
        sa.Column("round_number", sa.Integer(), nullable=False),
        sa.Column("round_size", sa.Integer(), nullable=True),
        sa.Column("match_order", sa.Integer(), nullable=False),
        sa.Column("entry1_id", sa.Integer(), nullable=True),
        sa.Column("entry2_id", sa.Integer(), nullable=True),
        sa.Column("court_id", sa.Integer(), nullable=True),
        sa.Column("umpire_id", sa.Integer(), nullable=True),
        sa.Column("scheduled_time", sa.DateTime(), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("rest_enforced", sa.Boolean(), nullable=False),
        sa.Column("match_code", sa.String(), nullable=False),
        sa.Column("code_valid", sa.Boolean(), nullable=False),
        sa.Column("winner_entry_id", sa.Integer(), nullable=True),
        sa.Column("is_completed", sa.Boolean(), nullable=False),
        sa.Column("entry1_score", sa.Integer(), nullable=True),
        sa.Column("entry2_score", sa.Integer(), nullable=True),
        sa.Column("actual_start_time", sa.DateTime(), nullable=True),
        sa.Column("awaiting_result", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.ForeignKeyConstraint(["entry1_id"], ["entry.id"]),
        sa.ForeignKeyConstraint(["entry2_id"], ["entry.id"]),
        sa.ForeignKeyConstraint(["winner_entry_id"], ["entry.id"]),
        sa.ForeignKeyConstraint(["court_id"], ["court.id"]),
        sa.ForeignKeyConstraint(["umpire_id"], ["umpire.id"]),
        sa.UniqueConstraint("tournament_id", "match_order", name="uq_match_tournament_order"),
        sa.UniqueConstraint("tournament_id", "match_code", name="uq_match_tournament_code"),
    )
    op.create_index("ix_match_tournament_id", "match", ["tournament_id"])
    op.create_index("ix_match_actual_start_time", "match", ["actual_start_time"])

    op.create_table(
        "tournamentlock",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("operation", sa.String(), nullable=False),
        sa.Column("token", sa.String(), nullable=False),
        sa.Column("acquired_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.UniqueConstraint("tournament_id", name="uq_tournamentlock_tournament"),
    )
    op.create_index("ix_tournamentlock_tournament_id", "tournamentlock", ["tournament_id"])


def downgrade() -> None:
    op.drop_index("ix_tournamentlock_tournament_id", table_name="tournamentlock")
    op.drop_table("tournamentlock")
    op.drop_index("ix_match_actual_start_time", table_name="match")
    op.drop_index("ix_match_tournament_id", table_name="match")
    op.drop_table("match")
    op.drop_index("ix_umpire_last_assigned_match_id", table_name="umpire")
    op.drop_index("ix_umpire_is_idle", table_name="umpire")
    op.drop_index("ix_umpire_license_no", table_name="umpire")
    op.drop_index("ix_umpire_tournament_id", table_name="umpire")
    op.drop_table("umpire")
    op.drop_index("ix_court_last_assigned_match_id", table_name="court")
    op.drop_index("ix_court_is_idle", table_name="court")
    op.drop_index("ix_court_tournament_id", table_name="court")
    op.drop_table("court")
    op.drop_index("ix_entry_tournament_id", table_name="entry")
    op.drop_table("entry")
    op.drop_table("team")
    op.drop_table("player")
    op.drop_index("ix_club_name", table_name="club")
    op.drop_table("club")
    op.drop_table("tournament")
