import json

import pytest

from liftlog.core.enums import Units, WriteMode
from liftlog.core.errors import StorageError
from liftlog.core.ids import as_utc
from liftlog.schemas.settings import SettingsUpdate
from liftlog.services.dual_write import DualWriteCoordinator


async def test_default_profile_starts_empty(backend):
    assert await backend.get_preferences() is None


async def test_first_save_creates_then_later_saves_replace(backend):
    created = await backend.save_preferences(SettingsUpdate(units=Units.IMPERIAL, preferences={"theme": "dark"}))
    assert created.units is Units.IMPERIAL
    assert created.preferences == {"theme": "dark"}

    replaced = await backend.save_preferences(SettingsUpdate(preferences={"rest_timer": 90}))

    assert replaced.id == created.id
    assert replaced.units is Units.METRIC
    assert replaced.preferences == {"rest_timer": 90}
    assert as_utc(replaced.updated_at) >= as_utc(created.updated_at)
    assert (await backend.get_preferences()).preferences == {"rest_timer": 90}


async def test_profiles_are_kept_per_user(backend):
    await backend.save_preferences(SettingsUpdate(units=Units.IMPERIAL))
    await backend.save_preferences(SettingsUpdate(user_id="ana", preferences={"week_starts": "monday"}))

    assert (await backend.get_preferences()).units is Units.IMPERIAL
    ana = await backend.get_preferences("ana")
    assert ana.user_id == "ana"
    assert ana.units is Units.METRIC
    assert await backend.get_preferences("someone-else") is None


async def test_saves_are_mirrored_with_the_same_id(sql_backend, json_backend):
    store = DualWriteCoordinator(sql_backend, json_backend, WriteMode.DUAL_WRITE)

    saved = await store.save_preferences(SettingsUpdate(units=Units.IMPERIAL))

    assert (await sql_backend.get_preferences()).id == saved.id
    assert (await json_backend.get_preferences()).id == saved.id


async def test_settings_file_is_written_beside_entity_files(json_backend):
    await json_backend.save_preferences(SettingsUpdate(user_id="ana", units=Units.IMPERIAL))

    stored = json.loads((json_backend.data_dir / "settings.json").read_text(encoding="utf-8"))
    assert [(s["user_id"], s["units"]) for s in stored] == [("ana", "imperial")]


async def test_malformed_settings_file_raises_storage_error(json_backend):
    json_backend.data_dir.mkdir(parents=True)
    (json_backend.data_dir / "settings.json").write_text('[{"units": "furlongs"}]', encoding="utf-8")

    with pytest.raises(StorageError):
        await json_backend.get_preferences()
