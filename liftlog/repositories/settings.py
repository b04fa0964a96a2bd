"""User settings persistence (relational)."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from liftlog.core.ids import new_id, utcnow
from liftlog.models.settings import UserSettings
from liftlog.schemas.settings import SettingsRead, SettingsUpdate

logger = logging.getLogger(__name__)


def _for_user(user_id: str | None):
    stmt = select(UserSettings)
    if user_id is None:
        stmt = stmt.where(UserSettings.user_id.is_(None))
    else:
        stmt = stmt.where(UserSettings.user_id == user_id)
    return stmt.order_by(UserSettings.created_at, UserSettings.id).limit(1)


async def get_preferences(db: AsyncSession, user_id: str | None = None) -> SettingsRead | None:
    result = await db.execute(_for_user(user_id))
    row = result.scalar_one_or_none()
    return SettingsRead.model_validate(row) if row else None


async def save_preferences(db: AsyncSession, payload: SettingsUpdate) -> SettingsRead:
    """Replace the user's settings, creating the row on first save."""
    result = await db.execute(_for_user(payload.user_id).with_for_update())
    row = result.scalar_one_or_none()
    now = utcnow()
    if row is None:
        row = UserSettings(
            id=payload.id or new_id(),
            user_id=payload.user_id,
            units=payload.units.value,
            preferences=dict(payload.preferences),
            created_at=now,
            updated_at=now,
        )
        db.add(row)
        logger.info("Created settings for user %s", payload.user_id or "<default>")
    else:
        row.units = payload.units.value
        row.preferences = dict(payload.preferences)
        row.updated_at = now
    await db.flush()
    return SettingsRead.model_validate(row)
