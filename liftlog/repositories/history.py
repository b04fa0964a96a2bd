"""History ledger persistence (relational) with keyset pagination."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from liftlog.core.constants import DEFAULT_HISTORY_PAGE_SIZE, MAX_HISTORY_PAGE_SIZE
from liftlog.core.errors import ValidationError
from liftlog.core.ids import as_utc, clamp_limit, new_id, utcnow
from liftlog.db.dialect import insert_or_skip
from liftlog.models.history import HistoryEntry
from liftlog.models.workout import Workout
from liftlog.schemas.history import HistoryCreate, HistoryCursor, HistoryPage, HistoryRead

logger = logging.getLogger(__name__)


def _entry_read(entry: HistoryEntry, workout_name: str | None) -> HistoryRead:
    return HistoryRead(
        id=entry.id,
        workout_id=entry.workout_id,
        workout_name=workout_name,
        performed_at=entry.performed_at,
        duration_seconds=entry.duration_seconds,
        notes=entry.notes,
        created_at=entry.created_at,
    )


async def log_session(db: AsyncSession, payload: HistoryCreate) -> HistoryRead:
    """Append a completed session. A given workout_id must exist."""
    workout_name = None
    if payload.workout_id is not None:
        result = await db.execute(select(Workout.name).where(Workout.id == payload.workout_id))
        workout_name = result.scalar_one_or_none()
        if workout_name is None:
            raise ValidationError(f"Workout {payload.workout_id} does not exist")

    now = utcnow()
    entry = HistoryEntry(
        id=payload.id or new_id(),
        workout_id=payload.workout_id,
        performed_at=as_utc(payload.performed_at) if payload.performed_at else now,
        duration_seconds=payload.duration_seconds,
        notes=payload.notes,
        created_at=now,
    )
    db.add(entry)
    await db.flush()
    return _entry_read(entry, workout_name)


async def list_history(
    db: AsyncSession,
    limit: int | None = None,
    cursor: str | None = None,
    from_date: datetime | None = None,
    to_date: datetime | None = None,
    workout_id: uuid.UUID | None = None,
) -> HistoryPage:
    """Newest first by (performed_at, id); ``from_date`` inclusive, ``to_date`` exclusive.

    Walking the returned cursors visits every matching entry exactly once, even
    when several entries share a performed_at.
    """
    size = clamp_limit(limit, DEFAULT_HISTORY_PAGE_SIZE, MAX_HISTORY_PAGE_SIZE)
    after = HistoryCursor.decode(cursor) if cursor else None

    stmt = select(HistoryEntry, Workout.name).outerjoin(Workout, Workout.id == HistoryEntry.workout_id)
    if from_date is not None:
        stmt = stmt.where(HistoryEntry.performed_at >= as_utc(from_date))
    if to_date is not None:
        stmt = stmt.where(HistoryEntry.performed_at < as_utc(to_date))
    if workout_id is not None:
        stmt = stmt.where(HistoryEntry.workout_id == workout_id)
    if after is not None:
        last_at = as_utc(after.performed_at)
        stmt = stmt.where(
            or_(
                HistoryEntry.performed_at < last_at,
                and_(HistoryEntry.performed_at == last_at, HistoryEntry.id < after.id),
            )
        )

    result = await db.execute(
        stmt.order_by(HistoryEntry.performed_at.desc(), HistoryEntry.id.desc()).limit(size + 1)
    )
    rows = result.all()
    has_more = len(rows) > size
    data = [_entry_read(entry, name) for entry, name in rows[:size]]
    return HistoryPage(
        data=data,
        cursor=HistoryCursor.after(data[-1]).encode() if has_more else None,
        has_more=has_more,
    )


async def get_history_by_workout_id(db: AsyncSession, workout_id: uuid.UUID) -> HistoryRead | None:
    """Most recent entry for one workout (first in ledger order), or None."""
    result = await db.execute(
        select(HistoryEntry, Workout.name)
        .outerjoin(Workout, Workout.id == HistoryEntry.workout_id)
        .where(HistoryEntry.workout_id == workout_id)
        .order_by(HistoryEntry.performed_at.desc(), HistoryEntry.id.desc())
        .limit(1)
    )
    row = result.first()
    return _entry_read(row[0], row[1]) if row else None


async def all_history(db: AsyncSession) -> list[HistoryRead]:
    """The whole ledger in ledger order."""
    result = await db.execute(
        select(HistoryEntry, Workout.name)
        .outerjoin(Workout, Workout.id == HistoryEntry.workout_id)
        .order_by(HistoryEntry.performed_at.desc(), HistoryEntry.id.desc())
    )
    return [_entry_read(entry, name) for entry, name in result.all()]


async def import_history_entry(db: AsyncSession, record: HistoryRead) -> bool:
    """Insert a legacy entry unless its id exists; dangling workout refs become NULL."""
    workout_id = record.workout_id
    if workout_id is not None:
        found = await db.execute(select(Workout.id).where(Workout.id == workout_id))
        if found.first() is None:
            logger.warning("History %s references missing workout %s, importing without it", record.id, workout_id)
            workout_id = None

    result = await db.execute(
        insert_or_skip(
            db,
            HistoryEntry,
            {
                "id": record.id,
                "workout_id": workout_id,
                "performed_at": as_utc(record.performed_at),
                "duration_seconds": record.duration_seconds,
                "notes": record.notes,
                "created_at": as_utc(record.created_at),
            },
        )
    )
    return result.scalar_one_or_none() is not None


async def count_history(db: AsyncSession) -> int:
    result = await db.execute(select(func.count()).select_from(HistoryEntry))
    return result.scalar_one()
