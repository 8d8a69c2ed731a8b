from datetime import datetime, timezone

import pytest
from httpx import AsyncClient

from app.config import settings
from app.main import _seconds_until_next_run

API = settings.API_V1_STR


@pytest.mark.asyncio
async def test_admin_creates_gym_with_owner(client: AsyncClient, admin_headers, trainer_user, trainer_headers):
    resp = await client.post(
        f"{API}/gyms", json={"name": "Barbell Club", "owner_id": str(trainer_user.id)}, headers=admin_headers
    )
    assert resp.status_code == 201, resp.text
    gym = resp.json()["data"]
    assert gym["is_active"] is True

    as_owner = await client.get(f"{API}/gyms/{gym['id']}", headers=trainer_headers)
    assert as_owner.status_code == 200
    assert as_owner.json()["meta"]["user_role"] == "OWNER"

    forbidden = await client.post(f"{API}/gyms", json={"name": "Nope"}, headers=trainer_headers)
    assert forbidden.status_code == 403


@pytest.mark.asyncio
async def test_gym_scope_is_enforced(client: AsyncClient, gym_url, outsider_headers, trainer_headers, admin_headers):
    outsider = await client.get(gym_url, headers=outsider_headers)
    assert outsider.status_code == 403
    assert outsider.json()["message"] == "Access denied. You are not a member of this gym."

    trainer_edit = await client.put(gym_url, json={"name": "Renamed"}, headers=trainer_headers)
    assert trainer_edit.status_code == 403
    assert trainer_edit.json()["message"] == "Access denied. Insufficient permissions for this gym."

    admin_view = await client.get(gym_url, headers=admin_headers)
    assert admin_view.status_code == 200
    assert admin_view.json()["meta"]["user_role"] == "OWNER"

    missing = await client.get(f"{API}/gyms/00000000-0000-0000-0000-000000000042", headers=admin_headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_owner_updates_and_admin_deactivates(client: AsyncClient, gym, gym_url, owner_headers, admin_headers):
    updated = await client.put(gym_url, json={"address": "1 Chalk Street"}, headers=owner_headers)
    assert updated.status_code == 200
    assert updated.json()["data"]["address"] == "1 Chalk Street"

    deleted = await client.delete(gym_url, headers=admin_headers)
    assert deleted.status_code == 200
    assert deleted.json()["message"] == "Gym deactivated successfully"

    listed = await client.get(f"{API}/gyms", headers=admin_headers)
    assert listed.json()["data"][0]["is_active"] is False


@pytest.mark.asyncio
async def test_members_management(client: AsyncClient, gym_url, owner_user, owner_headers, outsider_user):
    added = await client.post(
        f"{gym_url}/members", json={"user_id": str(outsider_user.id), "role": "TRAINER"}, headers=owner_headers
    )
    assert added.status_code == 201
    membership = added.json()["data"]

    again = await client.post(f"{gym_url}/members", json={"user_id": str(outsider_user.id)}, headers=owner_headers)
    assert again.status_code == 400

    members = await client.get(f"{gym_url}/members", headers=owner_headers)
    assert members.json()["meta"]["count"] == 3

    own = next(m for m in members.json()["data"] if m["user_id"] == str(owner_user.id))
    remove_self = await client.delete(f"{gym_url}/members/{own['id']}", headers=owner_headers)
    assert remove_self.status_code == 400

    removed = await client.delete(f"{gym_url}/members/{membership['id']}", headers=owner_headers)
    assert removed.status_code == 200


@pytest.mark.asyncio
async def test_locations_lifecycle(
    client: AsyncClient, gym_url, owner_headers, trainer_user, trainer_headers
):
    created = await client.post(f"{gym_url}/locations", json={"name": "Studio B"}, headers=owner_headers)
    assert created.status_code == 201
    location = created.json()["data"]

    trainer_create = await client.post(f"{gym_url}/locations", json={"name": "Garage"}, headers=trainer_headers)
    assert trainer_create.status_code == 403

    await client.post(
        f"{gym_url}/coaches/{trainer_user.id}/schedules",
        json={
            "name": "Evenings",
            "days": [
                {
                    "day_of_week": 4,
                    "time_slots": [
                        {"start_time": "18:00", "end_time": "19:00", "max_capacity": 8, "location_id": location["id"]}
                    ],
                }
            ],
        },
        headers=trainer_headers,
    )

    blocked = await client.delete(f"{gym_url}/locations/{location['id']}", headers=owner_headers)
    assert blocked.status_code == 400
    assert blocked.json()["message"] == "Cannot delete location used by 1 time slot(s). Deactivate it instead."

    deactivated = await client.put(
        f"{gym_url}/locations/{location['id']}", json={"is_active": False}, headers=owner_headers
    )
    assert deactivated.json()["data"]["is_active"] is False
    active = await client.get(f"{gym_url}/locations", params={"active_only": "true"}, headers=trainer_headers)
    assert active.json()["meta"]["count"] == 0


@pytest.mark.asyncio
async def test_unknown_location_rejected_in_schedule(client: AsyncClient, gym_url, trainer_user, trainer_headers):
    resp = await client.post(
        f"{gym_url}/coaches/{trainer_user.id}/schedules",
        json={
            "name": "Ghost",
            "days": [
                {
                    "day_of_week": 1,
                    "time_slots": [
                        {
                            "start_time": "06:00",
                            "end_time": "07:00",
                            "max_capacity": 4,
                            "location_id": "00000000-0000-0000-0000-000000000077",
                        }
                    ],
                }
            ],
        },
        headers=trainer_headers,
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_owner_adds_and_updates_coach(client: AsyncClient, gym_url, owner_headers, trainer_headers):
    added = await client.post(
        f"{gym_url}/coaches",
        json={"email": "newcoach@example.com", "full_name": "Nina New", "password": "coachpass"},
        headers=owner_headers,
    )
    assert added.status_code == 201, added.text
    coach = added.json()["data"]
    assert coach["role"] == "TRAINER"

    client_role = await client.post(
        f"{gym_url}/coaches", json={"email": "x@example.com", "role": "CLIENT"}, headers=owner_headers
    )
    assert client_role.status_code == 400

    by_trainer = await client.post(f"{gym_url}/coaches", json={"email": "y@example.com"}, headers=trainer_headers)
    assert by_trainer.status_code == 403

    promoted = await client.put(f"{gym_url}/coaches/{coach['id']}", json={"role": "OWNER"}, headers=owner_headers)
    assert promoted.json()["data"]["role"] == "OWNER"

    login = await client.post(
        f"{API}/auth/login", json={"email": "newcoach@example.com", "password": "coachpass"}
    )
    assert login.status_code == 200

    removed = await client.delete(f"{gym_url}/coaches/{coach['id']}", headers=owner_headers)
    assert removed.status_code == 200
    missing = await client.get(f"{gym_url}/coaches/{coach['id']}", headers=owner_headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_gym_audit_log_is_owner_only(
    client: AsyncClient, gym_url, owner_headers, trainer_headers, admin_headers, create_client
):
    await create_client()
    logs = await client.get(f"{gym_url}/audit-logs", params={"action": "CREATE_CLIENT"}, headers=owner_headers)
    assert logs.status_code == 200
    assert logs.json()["count"] == 1

    assert (await client.get(f"{gym_url}/audit-logs", headers=trainer_headers)).status_code == 403

    system = await client.get(f"{API}/audit/logs", headers=admin_headers)
    assert system.status_code == 200
    assert any(entry["action"] == "CREATE_CLIENT" for entry in system.json()["data"])


@pytest.mark.asyncio
async def test_health_endpoints(client: AsyncClient):
    assert (await client.get("/health")).json() == {"status": "ok"}
    root = await client.get("/")
    assert settings.PROJECT_NAME in root.json()["message"]


def test_next_progression_run_targets_configured_slot(monkeypatch):
    monkeypatch.setattr(settings, "PROGRESSION_AUTO_WEEKDAY", 0)
    monkeypatch.setattr(settings, "PROGRESSION_AUTO_HOUR_UTC", 0)

    wednesday_noon = datetime(2026, 3, 4, 12, 0, tzinfo=timezone.utc)
    assert _seconds_until_next_run(wednesday_noon) == 4.5 * 24 * 3600

    monday_midnight = datetime(2026, 3, 9, 0, 0, tzinfo=timezone.utc)
    assert _seconds_until_next_run(monday_midnight) == 7 * 24 * 3600

    sunday_late = datetime(2026, 3, 8, 23, 30, tzinfo=timezone.utc)
    assert _seconds_until_next_run(sunday_late) == 30 * 60
