import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-that-is-long-enough")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("APP_ENV", "test")

import pytest
from datetime import timedelta
from typing import AsyncGenerator
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from app.database import Base, get_db
from app.config import settings
from app.main import app
from app.auth.security import create_access_token, get_password_hash
from app.core.rate_limit import auth_rate_limiter
from app.models.user import User
from app.models.gym import Gym, GymMembership, Location
from app.models.benchmark import BenchmarkTemplate
from app.models.enums import Role, GymRole, BenchmarkType
from tests.helpers import make_blocks

API = settings.API_V1_STR

@pytest.fixture(scope="function")
async def db_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()

@pytest.fixture(scope="function")
def session_factory(db_engine):
    return async_sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

@pytest.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session

@pytest.fixture(scope="function")
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    await auth_rate_limiter.reset()

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
    await auth_rate_limiter.reset()

def token_headers(user: User) -> dict:
    token = create_access_token(subject=user.email, expires_delta=timedelta(minutes=30))
    return {"Authorization": f"Bearer {token}"}

async def _make_user(db: AsyncSession, email: str, role: Role, full_name: str | None = None) -> User:
    user = User(
        email=email,
        hashed_password=get_password_hash("password123"),
        full_name=full_name,
        role=role,
        is_active=True,
    )
    db.add(user)
    await db.commit()
    return user

@pytest.fixture
async def admin_user(db_session):
    return await _make_user(db_session, "admin@example.com", Role.ADMIN, "Admin User")

@pytest.fixture
async def owner_user(db_session):
    return await _make_user(db_session, "owner@example.com", Role.TRAINER, "Olivia Owner")

@pytest.fixture
async def trainer_user(db_session):
    return await _make_user(db_session, "coach@example.com", Role.TRAINER, "Casey Coach")

@pytest.fixture
async def outsider_user(db_session):
    return await _make_user(db_session, "outsider@example.com", Role.TRAINER, "Other Gym")

@pytest.fixture
def admin_headers(admin_user):
    return token_headers(admin_user)

@pytest.fixture
def owner_headers(owner_user):
    return token_headers(owner_user)

@pytest.fixture
def trainer_headers(trainer_user):
    return token_headers(trainer_user)

@pytest.fixture
def outsider_headers(outsider_user):
    return token_headers(outsider_user)

@pytest.fixture
async def gym(db_session, owner_user, trainer_user):
    gym = Gym(name="Iron Temple", owner_id=owner_user.id)
    db_session.add(gym)
    await db_session.flush()
    db_session.add_all(
        [
            GymMembership(user_id=owner_user.id, gym_id=gym.id, role=GymRole.OWNER),
            GymMembership(user_id=trainer_user.id, gym_id=gym.id, role=GymRole.TRAINER),
        ]
    )
    await db_session.commit()
    return gym

@pytest.fixture
def gym_url(gym):
    return f"{API}/gyms/{gym.id}"

@pytest.fixture
async def location(db_session, gym):
    location = Location(gym_id=gym.id, name="Main Floor")
    db_session.add(location)
    await db_session.commit()
    return location

@pytest.fixture
async def squat_template(db_session):
    template = BenchmarkTemplate(name="Back Squat", benchmark_type=BenchmarkType.LIFT)
    db_session.add(template)
    await db_session.commit()
    return template

@pytest.fixture
def create_client(client, gym_url, trainer_headers):
    async def _create(email="jamie@example.com", first_name="Jamie", last_name="Lifter", **extra):
        payload = {"email": email, "first_name": first_name, "last_name": last_name, **extra}
        resp = await client.post(f"{gym_url}/clients", json=payload, headers=trainer_headers)
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]

    return _create

@pytest.fixture
def create_template(client, gym_url, trainer_headers):
    async def _create(week_counts=(2, 3), name="Strength Base", benchmark_template_id=None):
        payload = {"name": name, "blocks": make_blocks(week_counts, benchmark_template_id), "is_template": True}
        resp = await client.post(f"{gym_url}/programs", json=payload, headers=trainer_headers)
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]

    return _create

@pytest.fixture
def client_with_program(client, gym_url, trainer_headers, create_client, create_template):
    async def _create(week_counts=(2, 3), email="jamie@example.com", benchmark_template_id=None):
        template = await create_template(week_counts, benchmark_template_id=benchmark_template_id)
        created = await create_client(email=email)
        resp = await client.post(
            f"{gym_url}/programs/{template['id']}/assign/{created['id']}", headers=trainer_headers
        )
        assert resp.status_code == 200, resp.text
        return created, resp.json()["data"]

    return _create

@pytest.fixture
def client_headers():
    """Headers for the login account behind a client created through the API."""
    def _headers(email: str) -> dict:
        token = create_access_token(subject=email, expires_delta=timedelta(minutes=30))
        return {"Authorization": f"Bearer {token}"}

    return _headers
