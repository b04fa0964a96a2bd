"""User settings model - display units and free-form client preferences."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from liftlog.core.constants import MAX_USER_ID_LENGTH
from liftlog.core.enums import Units
from liftlog.core.ids import new_id
from liftlog.db.base import Base


class UserSettings(Base):
    """One row per user; user_id NULL is the default (single-user) profile."""

    __tablename__ = "user_settings"
    __table_args__ = (Index("ix_user_settings_user_id", "user_id"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_id)
    user_id: Mapped[str | None] = mapped_column(String(MAX_USER_ID_LENGTH), nullable=True)
    units: Mapped[str] = mapped_column(String(16), default=Units.METRIC.value, nullable=False)
    preferences: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )
