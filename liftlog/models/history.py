"""History ledger model - append-only log of completed sessions."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from liftlog.core.ids import new_id
from liftlog.db.base import Base


class HistoryEntry(Base):
    """One completed session. workout_id survives as NULL when the workout is deleted."""

    __tablename__ = "history"
    __table_args__ = (
        # Keyset pagination walks (performed_at DESC, id DESC)
        Index("ix_history_performed_at_id", "performed_at", "id"),
        Index("ix_history_workout_id", "workout_id"),
        CheckConstraint("duration_seconds >= 0", name="ck_history_duration"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_id)
    workout_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("workouts.id", ondelete="SET NULL"), nullable=True
    )
    performed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    duration_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )
