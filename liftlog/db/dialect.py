"""Dialect-specific statements the ORM does not abstract."""

from typing import Any

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from liftlog.core.errors import StorageError

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def insert_or_skip(db: AsyncSession, model: type, values: dict[str, Any]):
    """INSERT ... ON CONFLICT DO NOTHING RETURNING id.

    Any unique constraint (primary key or unique index) counts as a conflict;
    the returned id is None when the row was skipped.
    """
    dialect = db.get_bind().dialect.name
    try:
        insert = _INSERTS[dialect]
    except KeyError:
        raise StorageError(f"Insert-or-skip is not supported on {dialect}") from None
    return insert(model).values(**values).on_conflict_do_nothing().returning(model.id)
