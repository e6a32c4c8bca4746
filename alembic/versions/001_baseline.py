"""Baseline: profile snapshots and the session history ledger.

Creates profiles (one row per user) and history_entries (append-only,
ordered by autoincrement id).

Revision ID: 001_baseline
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "001_baseline"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the profile and history tables."""
    op.create_table(
        "profiles",
        sa.Column("user_id", sa.String(128), primary_key=True),
        sa.Column("total_xp", sa.Integer(), nullable=False),
        sa.Column("games_played", sa.Integer(), nullable=False),
        sa.Column("placement_scores", sa.JSON(), nullable=False),
        sa.Column("in_placements", sa.Boolean(), nullable=False),
        sa.Column("tier_index", sa.Integer(), nullable=False),
        sa.Column("lp", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        "history_entries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("date", sa.String(10), nullable=False),
        sa.Column("weekday", sa.String(3), nullable=False),
        sa.Column("start_clock_time", sa.String(5), nullable=False),
        sa.Column("end_clock_time", sa.String(5), nullable=False),
        sa.Column("hours_worked", sa.Float(), nullable=False),
        sa.Column("tasks_completed", sa.Integer(), nullable=False),
        sa.Column("xp", sa.Integer(), nullable=False),
        sa.Column("hours_per_task", sa.Float(), nullable=False),
        sa.Column("lp_change", sa.Integer(), nullable=True),
        sa.Column("lp_after", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_history_entries_user_id_id", "history_entries", ["user_id", "id"])


def downgrade() -> None:
    """Drop both tables."""
    op.drop_index("ix_history_entries_user_id_id", table_name="history_entries")
    op.drop_table("history_entries")
    op.drop_table("profiles")
