import pytest
from httpx import AsyncClient

from app.config import settings

API = settings.API_V1_STR


@pytest.mark.asyncio
async def test_activity_catalog(client: AsyncClient, trainer_headers, squat_template):
    group = await client.post(f"{API}/activity-groups", json={"name": "Legs"}, headers=trainer_headers)
    assert group.status_code == 201
    group_id = group.json()["data"]["id"]

    template = await client.post(
        f"{API}/activity-templates",
        json={"name": "Front Squat", "group_id": group_id, "benchmark_template_id": str(squat_template.id)},
        headers=trainer_headers,
    )
    assert template.status_code == 201, template.text
    template_id = template.json()["data"]["id"]

    in_group = await client.get(f"{API}/activity-templates", params={"group_id": group_id}, headers=trainer_headers)
    assert [t["name"] for t in in_group.json()["data"]] == ["Front Squat"]

    blocked = await client.delete(f"{API}/activity-groups/{group_id}", headers=trainer_headers)
    assert blocked.status_code == 400
    assert blocked.json()["message"] == "Cannot delete group with 1 activity template(s)"

    renamed = await client.put(
        f"{API}/activity-templates/{template_id}", json={"name": "Pause Front Squat"}, headers=trainer_headers
    )
    assert renamed.json()["data"]["name"] == "Pause Front Squat"
    assert renamed.json()["data"]["group_id"] == group_id

    assert (await client.delete(f"{API}/activity-templates/{template_id}", headers=trainer_headers)).status_code == 200
    assert (await client.delete(f"{API}/activity-groups/{group_id}", headers=trainer_headers)).status_code == 200


@pytest.mark.asyncio
async def test_activity_template_references_must_exist(client: AsyncClient, trainer_headers):
    resp = await client.post(
        f"{API}/activity-templates",
        json={"name": "Orphan", "group_id": "00000000-0000-0000-0000-000000000005"},
        headers=trainer_headers,
    )
    assert resp.status_code == 404
    assert resp.json()["message"] == "Activity group not found"
