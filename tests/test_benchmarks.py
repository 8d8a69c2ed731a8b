import pytest
from httpx import AsyncClient

from app.config import settings

API = settings.API_V1_STR


async def _record(client, base, headers, **payload):
    resp = await client.post(f"{base}/benchmarks", json=payload, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


@pytest.mark.asyncio
async def test_new_result_moves_previous_to_history(
    client: AsyncClient, gym_url, trainer_headers, create_client, squat_template
):
    created = await create_client()
    base = f"{gym_url}/clients/{created['id']}"

    first = await _record(
        client, base, trainer_headers, template_id=str(squat_template.id), weight=100,
        recorded_date="2026-01-05T10:00:00Z",
    )
    assert first["name"] == "Back Squat"
    assert first["benchmark_type"] == "LIFT"
    assert first["is_current"] is True

    second = await _record(
        client, base, trainer_headers, template_id=str(squat_template.id), weight=110,
        recorded_date="2026-02-05T10:00:00Z",
    )

    current = (await client.get(f"{base}/benchmarks", headers=trainer_headers)).json()
    assert current["count"] == 1
    assert current["data"][0]["id"] == second["id"]
    assert current["data"][0]["weight"] == 110

    history = (await client.get(f"{base}/benchmarks/history", headers=trainer_headers)).json()
    assert [b["id"] for b in history["data"]] == [first["id"]]
    assert history["data"][0]["is_current"] is False


@pytest.mark.asyncio
async def test_deleting_current_promotes_latest_history(
    client: AsyncClient, gym_url, trainer_headers, create_client, squat_template
):
    created = await create_client()
    base = f"{gym_url}/clients/{created['id']}"
    oldest = await _record(
        client, base, trainer_headers, template_id=str(squat_template.id), weight=90,
        recorded_date="2026-01-01T10:00:00Z",
    )
    middle = await _record(
        client, base, trainer_headers, template_id=str(squat_template.id), weight=95,
        recorded_date="2026-01-15T10:00:00Z",
    )
    latest = await _record(
        client, base, trainer_headers, template_id=str(squat_template.id), weight=100,
        recorded_date="2026-02-01T10:00:00Z",
    )

    resp = await client.delete(f"{base}/benchmarks/{latest['id']}", headers=trainer_headers)
    assert resp.status_code == 200
    assert resp.json()["meta"]["promoted_benchmark_id"] == middle["id"]

    current = (await client.get(f"{base}/benchmarks", headers=trainer_headers)).json()["data"]
    assert [b["id"] for b in current] == [middle["id"]]
    history = (await client.get(f"{base}/benchmarks/history", headers=trainer_headers)).json()["data"]
    assert [b["id"] for b in history] == [oldest["id"]]

    missing = await client.get(f"{base}/benchmarks/{latest['id']}", headers=trainer_headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_lift_needs_weight_and_custom_needs_type(client: AsyncClient, gym_url, trainer_headers, create_client, squat_template):
    created = await create_client()
    base = f"{gym_url}/clients/{created['id']}"

    no_weight = await client.post(
        f"{base}/benchmarks", json={"template_id": str(squat_template.id)}, headers=trainer_headers
    )
    assert no_weight.status_code == 400
    assert no_weight.json()["message"] == "Lift benchmarks require a weight"

    no_type = await client.post(f"{base}/benchmarks", json={"name": "Plank"}, headers=trainer_headers)
    assert no_type.status_code == 400
    assert no_type.json()["message"] == "benchmark_type is required when no template is given"

    mismatch = await client.post(
        f"{base}/benchmarks",
        json={"template_id": str(squat_template.id), "benchmark_type": "OTHER", "value": 3},
        headers=trainer_headers,
    )
    assert mismatch.status_code == 400

    unknown = await client.post(
        f"{base}/benchmarks",
        json={"template_id": "00000000-0000-0000-0000-000000000009", "weight": 50},
        headers=trainer_headers,
    )
    assert unknown.status_code == 404


@pytest.mark.asyncio
async def test_other_benchmark_keeps_only_its_fields(client: AsyncClient, gym_url, trainer_headers, create_client):
    created = await create_client()
    base = f"{gym_url}/clients/{created['id']}"
    plank = await _record(
        client, base, trainer_headers, name="Plank", benchmark_type="OTHER", value=180, unit="seconds", weight=40
    )
    assert plank["weight"] is None
    assert (plank["value"], plank["unit"]) == (180, "seconds")

    updated = await client.put(
        f"{base}/benchmarks/{plank['id']}", json={"value": 200, "notes": "New best"}, headers=trainer_headers
    )
    assert updated.status_code == 200
    data = updated.json()["data"]
    assert (data["value"], data["unit"], data["notes"]) == (200, "seconds", "New best")

    # Custom benchmarks are not tied to a template, so both stay current
    await _record(client, base, trainer_headers, name="Plank", benchmark_type="OTHER", value=210, unit="seconds")
    current = (await client.get(f"{base}/benchmarks", headers=trainer_headers)).json()
    assert current["count"] == 2


@pytest.mark.asyncio
async def test_client_cannot_read_someone_elses_benchmarks(
    client: AsyncClient, gym_url, create_client, client_headers
):
    await create_client(email="me@example.com")
    other = await create_client(email="them@example.com")
    resp = await client.get(f"{gym_url}/clients/{other['id']}/benchmarks", headers=client_headers("me@example.com"))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_benchmark_template_catalog(client: AsyncClient, trainer_headers, gym_url, create_client):
    created = await client.post(
        f"{API}/benchmark-templates", json={"name": "Deadlift", "benchmark_type": "LIFT"}, headers=trainer_headers
    )
    assert created.status_code == 201
    template = created.json()["data"]

    listed = await client.get(f"{API}/benchmark-templates", params={"type": "LIFT"}, headers=trainer_headers)
    assert [t["name"] for t in listed.json()["data"]] == ["Deadlift"]

    member = await create_client()
    base = f"{gym_url}/clients/{member['id']}"
    recorded = await _record(client, base, trainer_headers, template_id=template["id"], weight=180)

    deleted = await client.delete(f"{API}/benchmark-templates/{template['id']}", headers=trainer_headers)
    assert deleted.status_code == 200

    kept = await client.get(f"{base}/benchmarks/{recorded['id']}", headers=trainer_headers)
    assert kept.status_code == 200
    assert kept.json()["data"]["template_id"] is None
    assert kept.json()["data"]["name"] == "Deadlift"


@pytest.mark.asyncio
async def test_plain_user_cannot_manage_benchmark_templates(client: AsyncClient, create_client, client_headers):
    await create_client(email="member@example.com")
    resp = await client.post(
        f"{API}/benchmark-templates",
        json={"name": "Bench", "benchmark_type": "LIFT"},
        headers=client_headers("member@example.com"),
    )
    assert resp.status_code == 403
