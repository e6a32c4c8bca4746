"""ORM models for the profile and history stores."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base for all rankedwork tables."""


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


class ProfileRecord(Base):
    """One progression snapshot per user, overwritten on every save."""

    __tablename__ = "profiles"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    total_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    games_played: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    placement_scores: Mapped[list[int]] = mapped_column(JSON, nullable=False, default=list)
    in_placements: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    tier_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


# ---------------------------------------------------------------------------
# History ledger
# ---------------------------------------------------------------------------


class HistoryRecord(Base):
    """Append-only session ledger row. Insertion order is the autoincrement id."""

    __tablename__ = "history_entries"
    __table_args__ = (Index("ix_history_entries_user_id_id", "user_id", "id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    date: Mapped[str] = mapped_column(String(10), nullable=False)
    weekday: Mapped[str] = mapped_column(String(3), nullable=False)
    start_clock_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_clock_time: Mapped[str] = mapped_column(String(5), nullable=False)
    hours_worked: Mapped[float] = mapped_column(Float, nullable=False)
    tasks_completed: Mapped[int] = mapped_column(Integer, nullable=False)
    xp: Mapped[int] = mapped_column(Integer, nullable=False)
    hours_per_task: Mapped[float] = mapped_column(Float, nullable=False)
    lp_change: Mapped[int | None] = mapped_column(Integer, nullable=True)
    lp_after: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
