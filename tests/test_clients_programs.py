import pytest
from httpx import AsyncClient

from tests.helpers import make_blocks


@pytest.mark.asyncio
async def test_client_crud_and_search(client: AsyncClient, gym_url, trainer_headers, owner_headers, create_client):
    jamie = await create_client(email="Jamie@Example.com", phone="555-0100")
    assert jamie["email"] == "jamie@example.com"
    assert (jamie["current_block"], jamie["current_week"], jamie["program_id"]) == (0, 0, None)
    await create_client(email="alex@example.com", first_name="Alex", last_name="Bench")

    duplicate = await client.post(
        f"{gym_url}/clients",
        json={"email": "jamie@example.com", "first_name": "J", "last_name": "L"},
        headers=trainer_headers,
    )
    assert duplicate.status_code == 400
    assert duplicate.json()["message"] == "A user with this email already exists"

    found = await client.get(f"{gym_url}/clients", params={"search": "bench"}, headers=trainer_headers)
    assert found.json()["count"] == 1
    assert found.json()["data"][0]["first_name"] == "Alex"
    assert found.json()["meta"]["total"] == 1

    updated = await client.put(
        f"{gym_url}/clients/{jamie['id']}", json={"weight": 82.5, "membership_status": "SUSPENDED"}, headers=trainer_headers
    )
    assert updated.status_code == 200
    assert updated.json()["data"]["weight"] == 82.5
    assert updated.json()["data"]["membership_status"] == "SUSPENDED"

    suspended = await client.get(f"{gym_url}/clients", params={"status": "SUSPENDED"}, headers=trainer_headers)
    assert [c["id"] for c in suspended.json()["data"]] == [jamie["id"]]

    trainer_delete = await client.delete(f"{gym_url}/clients/{jamie['id']}", headers=trainer_headers)
    assert trainer_delete.status_code == 403

    deleted = await client.delete(f"{gym_url}/clients/{jamie['id']}", headers=owner_headers)
    assert deleted.status_code == 200
    gone = await client.get(f"{gym_url}/clients/{jamie['id']}", headers=trainer_headers)
    assert gone.status_code == 404


@pytest.mark.asyncio
async def test_deleting_client_releases_slot_places(
    client: AsyncClient, gym_url, trainer_user, trainer_headers, owner_headers, location, create_client
):
    member = await create_client()
    created = await client.post(
        f"{gym_url}/coaches/{trainer_user.id}/schedules",
        json={
            "name": "Mornings",
            "days": [
                {
                    "day_of_week": 2,
                    "time_slots": [
                        {"start_time": "07:00", "end_time": "08:00", "max_capacity": 2, "location_id": str(location.id)}
                    ],
                }
            ],
        },
        headers=trainer_headers,
    )
    schedule_url = f"{gym_url}/coaches/{trainer_user.id}/schedules/{created.json()['data']['id']}"
    enrolled = await client.post(
        f"{schedule_url}/enroll",
        json={"day_of_week": 2, "time_slot_index": 0, "client_id": member["id"]},
        headers=trainer_headers,
    )
    assert enrolled.status_code == 200

    await client.delete(f"{gym_url}/clients/{member['id']}", headers=owner_headers)

    slot = (await client.get(schedule_url, headers=trainer_headers)).json()["data"]["days"][2]["time_slots"][0]
    assert slot["enrolled_count"] == 0
    assert slot["client_ids"] == []


@pytest.mark.asyncio
async def test_assigning_template_copies_program_and_resets_position(
    client: AsyncClient, gym_url, trainer_headers, create_template, client_with_program
):
    created, program = await client_with_program((2, 3))
    assert program["is_template"] is False
    assert program["client_id"] == created["id"]
    assert program["name"] == "Strength Base - Client Program"
    assert [len(b["weeks"]) for b in program["blocks"]] == [2, 3]

    base = f"{gym_url}/clients/{created['id']}"
    await client.post(f"{base}/progress/advance", json={"weeks": 3}, headers=trainer_headers)

    other = await create_template((4,), name="Hypertrophy")
    reassigned = await client.post(f"{gym_url}/programs/{other['id']}/assign/{created['id']}", headers=trainer_headers)
    assert reassigned.status_code == 200
    current = (await client.get(base, headers=trainer_headers)).json()["data"]
    assert current["program_id"] == reassigned.json()["data"]["id"]
    assert (current["current_block"], current["current_week"]) == (0, 0)
    assert current["program_start_date"] is not None

    not_template = await client.post(
        f"{gym_url}/programs/{program['id']}/assign/{created['id']}", headers=trainer_headers
    )
    assert not_template.status_code == 400
    assert not_template.json()["message"] == "Only template programs can be assigned"


@pytest.mark.asyncio
async def test_client_created_with_template(client: AsyncClient, gym_url, trainer_headers, create_template, create_client):
    template = await create_template((3,))
    created = await create_client(program_template_id=template["id"])
    assert created["program_id"] is not None
    assert created["program_id"] != template["id"]

    templates = await client.get(f"{gym_url}/programs/templates", headers=trainer_headers)
    assert [t["id"] for t in templates.json()["data"]] == [template["id"]]
    assigned = await client.get(f"{gym_url}/programs", params={"is_template": "false"}, headers=trainer_headers)
    assert assigned.json()["count"] == 1


@pytest.mark.asyncio
async def test_program_structure_is_validated(client: AsyncClient, gym_url, trainer_headers):
    blocks = make_blocks((1,))
    blocks[0]["weeks"][0]["days"][0]["accessory_lift_activities"][0]["id"] = "squat"
    resp = await client.post(f"{gym_url}/programs", json={"name": "Broken", "blocks": blocks}, headers=trainer_headers)
    assert resp.status_code == 400
    assert resp.json()["message"].startswith("Invalid program structure")

    ok = await client.post(f"{gym_url}/programs", json={"name": "Fine", "blocks": make_blocks((1,))}, headers=trainer_headers)
    assert ok.status_code == 201
    stored_day = ok.json()["data"]["blocks"][0]["weeks"][0]["days"][0]
    assert stored_day["id"]
    assert stored_day["primary_lift_activities"][0]["activity_type"] == "PRIMARY_LIFT"


@pytest.mark.asyncio
async def test_template_update_propagates_to_copies(
    client: AsyncClient, gym_url, trainer_headers, client_with_program
):
    created, program = await client_with_program((2, 3))
    template_id = program["template_id"]

    resp = await client.put(
        f"{gym_url}/programs/{template_id}",
        json={"description": "Now three blocks", "blocks": make_blocks((1, 1, 1))},
        headers=trainer_headers,
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["meta"]["propagated_programs"] == 1

    copy = (await client.get(f"{gym_url}/programs/{program['id']}", headers=trainer_headers)).json()["data"]
    assert [len(b["weeks"]) for b in copy["blocks"]] == [1, 1, 1]
    assert copy["description"] == "Now three blocks"


@pytest.mark.asyncio
async def test_client_sees_only_own_program(
    client: AsyncClient, gym_url, client_with_program, client_headers
):
    created, program = await client_with_program((2,), email="reader@example.com")
    headers = client_headers("reader@example.com")

    own = await client.get(f"{gym_url}/programs/{program['id']}", headers=headers)
    assert own.status_code == 200

    template = await client.get(f"{gym_url}/programs/{program['template_id']}", headers=headers)
    assert template.status_code == 403
    assert template.json()["message"] == "Access denied. Clients can only view their own program."

    listing = await client.get(f"{gym_url}/programs", headers=headers)
    assert listing.status_code == 403


@pytest.mark.asyncio
async def test_deleting_program_detaches_clients(
    client: AsyncClient, gym_url, trainer_headers, owner_headers, client_with_program
):
    created, program = await client_with_program((2,))
    resp = await client.delete(f"{gym_url}/programs/{program['id']}", headers=owner_headers)
    assert resp.status_code == 200

    current = (await client.get(f"{gym_url}/clients/{created['id']}", headers=trainer_headers)).json()["data"]
    assert current["program_id"] is None

    progress = await client.get(f"{gym_url}/clients/{created['id']}/progress", headers=trainer_headers)
    assert progress.status_code == 404
