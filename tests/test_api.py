import uuid

import pytest
from httpx import ASGITransport, AsyncClient

from liftlog.core.enums import WriteMode
from liftlog.main import create_application
from liftlog.services.dual_write import DualWriteCoordinator


@pytest.fixture
async def client(json_backend, sql_backend):
    app = create_application()
    app.state.legacy = json_backend
    app.state.relational = sql_backend
    app.state.storage = DualWriteCoordinator(sql_backend, json_backend, WriteMode.PRIMARY_ONLY)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def _exercise(client, name="Bench Press", category="chest"):
    response = await client.post("/api/v1/exercises", json={"name": name, "category": category})
    assert response.status_code == 201
    return response.json()


async def test_health(client):
    assert (await client.get("/api/v1/health")).json()["status"] == "ok"
    ready = await client.get("/api/v1/health/ready")
    assert ready.status_code == 200
    assert ready.json()["storage"]["primary"] == "db"


async def test_workout_lifecycle(client):
    bench = await _exercise(client)
    squat = await _exercise(client, "Back Squat", "legs")

    created = await client.post(
        "/api/v1/workouts",
        json={
            "name": "Strength",
            "exercises": [
                {"exercise_id": bench["id"], "order_index": 0},
                {"exercise_id": squat["id"], "order_index": 1},
            ],
        },
    )
    assert created.status_code == 201
    workout = created.json()
    a, b = workout["exercises"]

    logged = await client.post(f"/api/v1/workouts/exercises/{a['id']}/sets", json={"reps": 10, "weight": 80})
    assert logged.status_code == 201

    reordered = await client.put(
        f"/api/v1/workouts/{workout['id']}",
        json={
            "name": "Strength",
            "exercises": [{"id": b["id"], "order_index": 0}, {"id": a["id"], "order_index": 1}],
        },
    )
    assert reordered.status_code == 200

    fetched = (await client.get(f"/api/v1/workouts/{workout['id']}")).json()
    assert [e["id"] for e in fetched["exercises"]] == [b["id"], a["id"]]
    assert [(s["reps"], s["weight"]) for s in fetched["exercises"][1]["sets"]] == [(10, 80)]

    patched = await client.patch(f"/api/v1/workouts/sets/{logged.json()['id']}", json={"reps": 12})
    assert patched.json()["reps"] == 12

    assert (await client.delete(f"/api/v1/workouts/{workout['id']}")).status_code == 204
    assert (await client.get(f"/api/v1/workouts/{workout['id']}")).status_code == 404
    assert (await client.delete(f"/api/v1/workouts/{workout['id']}")).status_code == 404


async def test_storage_errors_map_to_status_codes(client):
    await _exercise(client)

    duplicate = await client.post("/api/v1/exercises", json={"name": "BENCH PRESS", "category": "chest"})
    assert duplicate.status_code == 409
    assert duplicate.json()["error"]["type"] == "CONFLICT"

    blank = await client.post("/api/v1/workouts", json={"name": "  "})
    assert blank.status_code == 400
    assert blank.json()["error"]["type"] == "VALIDATION"

    missing_parent = await client.post(f"/api/v1/workouts/exercises/{uuid.uuid4()}/sets", json={"reps": 1})
    assert missing_parent.status_code == 404
    assert missing_parent.json()["error"]["type"] == "NOT_FOUND"

    bad_cursor = await client.get("/api/v1/history", params={"cursor": "nope"})
    assert bad_cursor.status_code == 400


async def test_history_paging_over_http(client):
    for day in (1, 2, 3):
        response = await client.post("/api/v1/history", json={"performed_at": f"2024-02-0{day}T08:00:00Z"})
        assert response.status_code == 201

    first = (await client.get("/api/v1/history", params={"limit": 2})).json()
    assert [h["performed_at"][:10] for h in first["data"]] == ["2024-02-03", "2024-02-02"]
    assert first["has_more"] is True

    second = (await client.get("/api/v1/history", params={"limit": 2, "cursor": first["cursor"]})).json()
    assert [h["performed_at"][:10] for h in second["data"]] == ["2024-02-01"]
    assert second["has_more"] is False
    assert second["cursor"] is None

    bounded = (
        await client.get("/api/v1/history", params={"from": "2024-02-02T00:00:00Z", "to": "2024-02-03T08:00:00Z"})
    ).json()
    assert [h["performed_at"][:10] for h in bounded["data"]] == ["2024-02-02"]


async def test_latest_history_for_workout(client):
    workout = (await client.post("/api/v1/workouts", json={"name": "Push"})).json()
    for day in (1, 2):
        await client.post(
            "/api/v1/history",
            json={"workout_id": workout["id"], "performed_at": f"2024-03-0{day}T08:00:00Z"},
        )

    latest = await client.get(f"/api/v1/history/workouts/{workout['id']}/latest")
    assert latest.status_code == 200
    assert latest.json()["performed_at"][:10] == "2024-03-02"
    assert latest.json()["workout_name"] == "Push"

    missing = await client.get(f"/api/v1/history/workouts/{uuid.uuid4()}/latest")
    assert missing.status_code == 404


async def test_migration_endpoints(client, json_backend):
    from liftlog.schemas.exercise import ExerciseCreate

    await json_backend.create_exercise(ExerciseCreate(name="Row", category="back"))

    parity = (await client.get("/api/v1/migration/parity")).json()
    assert parity["is_consistent"] is False
    assert parity["json"]["exercises"] == 1
    assert parity["db"]["exercises"] == 0

    backfill = await client.post("/api/v1/migration/backfill")
    assert backfill.status_code == 200
    assert backfill.json()["inserted"] == 1

    only_history = (await client.post("/api/v1/migration/backfill", params={"entity": "history"})).json()
    assert [r["entity"] for r in only_history["results"]] == ["history"]

    assert (await client.get("/api/v1/migration/parity")).json()["is_consistent"] is True


async def test_dual_write_toggle_mirrors_new_writes(client, json_backend):
    status = (await client.get("/api/v1/migration/dual-write")).json()
    assert status == {"mode": "primary_only", "primary": "db", "secondary": "json"}

    toggled = await client.post("/api/v1/migration/dual-write", json={"enabled": True})
    assert toggled.json()["mode"] == "dual_write"

    created = await _exercise(client, "Curl", "arms")
    mirrored = await json_backend.get_exercise(uuid.UUID(created["id"]))
    assert mirrored.name == "Curl"


async def test_settings_round_trip_over_http(client):
    assert (await client.get("/api/v1/settings")).status_code == 404

    saved = await client.put("/api/v1/settings", json={"units": "imperial", "preferences": {"theme": "dark"}})
    assert saved.status_code == 200

    fetched = (await client.get("/api/v1/settings")).json()
    assert fetched["id"] == saved.json()["id"]
    assert fetched["units"] == "imperial"
    assert fetched["preferences"] == {"theme": "dark"}

    bad_units = await client.put("/api/v1/settings", json={"units": "furlongs"})
    assert bad_units.status_code == 422
