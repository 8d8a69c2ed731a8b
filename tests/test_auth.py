import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from app.auth import security
from app.models.user import User
from app.models.enums import Role
from app.config import settings


async def _login(client: AsyncClient, email: str, password: str):
    return await client.post(
        f"{settings.API_V1_STR}/auth/login",
        json={"email": email, "password": password}
    )


@pytest.mark.asyncio
async def test_register_forces_user_role(client: AsyncClient):
    response = await client.post(
        f"{settings.API_V1_STR}/auth/register",
        json={"email": "new@example.com", "password": "secret1", "full_name": "New Person", "role": "ADMIN"},
    )
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["email"] == "new@example.com"
    assert data["role"] == "USER"

    duplicate = await client.post(
        f"{settings.API_V1_STR}/auth/register",
        json={"email": "new@example.com", "password": "secret1"},
    )
    assert duplicate.status_code == 400


@pytest.mark.asyncio
async def test_login_success(client: AsyncClient, db_session: AsyncSession):
    email = "test@example.com"
    password = "password123"
    user = User(email=email, hashed_password=security.get_password_hash(password), role=Role.USER)
    db_session.add(user)
    await db_session.commit()

    response = await _login(client, email, password)
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert "access_token" in data["data"]
    assert "refresh_token" in data["data"]
    assert data["data"]["token_type"] == "bearer"

    me = await client.get(
        f"{settings.API_V1_STR}/auth/me",
        headers={"Authorization": f"Bearer {data['data']['access_token']}"},
    )
    assert me.status_code == 200
    assert me.json()["data"]["email"] == email


@pytest.mark.asyncio
async def test_login_invalid_credentials(client: AsyncClient):
    response = await _login(client, "wrong@example.com", "wrongpassword")
    assert response.status_code == 401
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Incorrect email or password"
    assert "request_id" in body
    assert "x-request-id" in response.headers


@pytest.mark.asyncio
async def test_refresh_token_rotation_revokes_old_token(client: AsyncClient, db_session: AsyncSession):
    email = "rotation@example.com"
    password = "password123"
    user = User(email=email, hashed_password=security.get_password_hash(password), role=Role.USER)
    db_session.add(user)
    await db_session.commit()

    login_response = await _login(client, email, password)
    assert login_response.status_code == 200
    first_refresh = login_response.json()["data"]["refresh_token"]

    rotate_response = await client.post(
        f"{settings.API_V1_STR}/auth/refresh",
        headers={"Authorization": f"Bearer {first_refresh}"}
    )
    assert rotate_response.status_code == 200
    second_refresh = rotate_response.json()["data"]["refresh_token"]
    assert second_refresh != first_refresh

    reuse_old_response = await client.post(
        f"{settings.API_V1_STR}/auth/refresh",
        headers={"Authorization": f"Bearer {first_refresh}"}
    )
    assert reuse_old_response.status_code == 401

    # Reuse of a rotated token ends every session, including the one it was rotated into
    after_reuse = await client.post(
        f"{settings.API_V1_STR}/auth/refresh",
        headers={"Authorization": f"Bearer {second_refresh}"}
    )
    assert after_reuse.status_code == 401


@pytest.mark.asyncio
async def test_access_token_cannot_refresh(client: AsyncClient, db_session: AsyncSession):
    email = "access@example.com"
    user = User(email=email, hashed_password=security.get_password_hash("password123"), role=Role.USER)
    db_session.add(user)
    await db_session.commit()

    tokens = (await _login(client, email, "password123")).json()["data"]
    response = await client.post(
        f"{settings.API_V1_STR}/auth/refresh",
        headers={"Authorization": f"Bearer {tokens['access_token']}"},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_rate_limit_triggers(client: AsyncClient):
    for _ in range(20):
        response = await _login(client, "wrong@example.com", "wrongpassword")
        assert response.status_code == 401

    blocked = await _login(client, "wrong@example.com", "wrongpassword")
    assert blocked.status_code == 429


@pytest.mark.asyncio
async def test_change_password(client: AsyncClient, db_session: AsyncSession):
    email = "changer@example.com"
    user = User(email=email, hashed_password=security.get_password_hash("password123"), role=Role.USER)
    db_session.add(user)
    await db_session.commit()
    tokens = (await _login(client, email, "password123")).json()["data"]
    headers = {"Authorization": f"Bearer {tokens['access_token']}"}

    wrong = await client.put(
        f"{settings.API_V1_STR}/auth/me/password",
        json={"current_password": "nope-nope", "new_password": "newpass123"},
        headers=headers,
    )
    assert wrong.status_code == 400

    ok = await client.put(
        f"{settings.API_V1_STR}/auth/me/password",
        json={"current_password": "password123", "new_password": "newpass123"},
        headers=headers,
    )
    assert ok.status_code == 200
    assert (await _login(client, email, "newpass123")).status_code == 200

    stale = await client.post(
        f"{settings.API_V1_STR}/auth/refresh",
        headers={"Authorization": f"Bearer {tokens['refresh_token']}"},
    )
    assert stale.status_code == 401


@pytest.mark.asyncio
async def test_my_gyms_lists_memberships(client: AsyncClient, gym, owner_headers, trainer_headers):
    owner_view = await client.get(f"{settings.API_V1_STR}/auth/my-gyms", headers=owner_headers)
    assert owner_view.status_code == 200
    assert owner_view.json()["data"] == [{"gym_id": str(gym.id), "gym_name": "Iron Temple", "role": "OWNER"}]

    trainer_view = await client.get(f"{settings.API_V1_STR}/auth/my-gyms", headers=trainer_headers)
    assert trainer_view.json()["data"][0]["role"] == "TRAINER"


@pytest.mark.asyncio
async def test_missing_token_is_rejected(client: AsyncClient):
    response = await client.get(f"{settings.API_V1_STR}/auth/me")
    assert response.status_code == 401
