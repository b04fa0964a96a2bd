import uuid
from datetime import datetime, timedelta, timezone

import pytest

from liftlog.core.errors import ValidationError
from liftlog.schemas.history import HistoryCreate, HistoryCursor
from liftlog.schemas.workout import WorkoutCreate

T0 = datetime(2024, 1, 1, 7, 0, tzinfo=timezone.utc)


def _at(hours: int) -> datetime:
    return T0 + timedelta(hours=hours)


async def _collect(backend, limit, **filters):
    """Walk every page by following cursors."""
    seen, cursor = [], None
    while True:
        page = await backend.list_history(limit=limit, cursor=cursor, **filters)
        seen.extend(h.id for h in page.data)
        if not page.has_more:
            assert page.cursor is None
            return seen
        cursor = page.cursor


async def test_three_sessions_two_per_page(backend):
    t1 = await backend.log_session(HistoryCreate(performed_at=_at(1)))
    t2 = await backend.log_session(HistoryCreate(performed_at=_at(2)))
    t3 = await backend.log_session(HistoryCreate(performed_at=_at(3)))

    first = await backend.list_history(limit=2)
    assert [h.id for h in first.data] == [t3.id, t2.id]
    assert first.has_more is True
    assert first.cursor

    second = await backend.list_history(limit=2, cursor=first.cursor)
    assert [h.id for h in second.data] == [t1.id]
    assert second.has_more is False
    assert second.cursor is None


async def test_pages_cover_everything_once_for_every_limit(backend):
    # Several entries share a timestamp so the id tie-break matters
    for hours in (1, 1, 1, 2, 3, 3, 4, 5, 5, 5):
        await backend.log_session(HistoryCreate(performed_at=_at(hours)))
    expected = [h.id for h in (await backend.list_history(limit=100)).data]
    assert len(expected) == 10

    for limit in range(1, 11):
        assert await _collect(backend, limit) == expected


async def test_date_bounds_are_inclusive_from_exclusive_to(backend):
    entries = [await backend.log_session(HistoryCreate(performed_at=_at(h))) for h in (1, 2, 3, 4)]

    page = await backend.list_history(from_date=_at(2), to_date=_at(4))

    assert [h.id for h in page.data] == [entries[2].id, entries[1].id]


async def test_naive_bounds_are_read_as_utc(backend):
    entry = await backend.log_session(HistoryCreate(performed_at=_at(5)))
    page = await backend.list_history(from_date=_at(5).replace(tzinfo=None))
    assert [h.id for h in page.data] == [entry.id]


async def test_limit_is_clamped(backend):
    for hours in range(3):
        await backend.log_session(HistoryCreate(performed_at=_at(hours)))
    assert len((await backend.list_history(limit=0)).data) == 1
    assert len((await backend.list_history(limit=500)).data) == 3


async def test_default_performed_at_is_now(backend):
    before = datetime.now(timezone.utc)
    entry = await backend.log_session(HistoryCreate(notes="quick one"))
    assert entry.performed_at.replace(tzinfo=timezone.utc) >= before.replace(microsecond=0)


async def test_rows_carry_workout_name(backend):
    workout = await backend.create_workout(WorkoutCreate(name="Leg day"))
    await backend.log_session(HistoryCreate(workout_id=workout.id, performed_at=_at(1), duration_seconds=3600))

    page = await backend.list_history()

    assert page.data[0].workout_name == "Leg day"
    assert page.data[0].duration_seconds == 3600


async def test_log_session_for_unknown_workout(backend):
    with pytest.raises(ValidationError):
        await backend.log_session(HistoryCreate(workout_id=uuid.uuid4()))


async def test_filter_and_lookup_by_workout(backend):
    workout = await backend.create_workout(WorkoutCreate(name="Upper"))
    older = await backend.log_session(HistoryCreate(workout_id=workout.id, performed_at=_at(1)))
    await backend.log_session(HistoryCreate(performed_at=_at(2)))
    newer = await backend.log_session(HistoryCreate(workout_id=workout.id, performed_at=_at(3)))

    page = await backend.list_history(workout_id=workout.id)
    assert [h.id for h in page.data] == [newer.id, older.id]

    latest = await backend.get_history_by_workout_id(workout.id)
    assert latest.id == newer.id
    assert await backend.get_history_by_workout_id(uuid.uuid4()) is None


@pytest.mark.parametrize("token", ["garbage", "e30", "bm90IGpzb24"])
async def test_malformed_cursor_is_a_validation_error(backend, token):
    with pytest.raises(ValidationError):
        await backend.list_history(cursor=token)


def test_cursor_round_trips():
    cursor = HistoryCursor(performed_at=_at(1), id=uuid.uuid4())
    assert HistoryCursor.decode(cursor.encode()) == cursor
