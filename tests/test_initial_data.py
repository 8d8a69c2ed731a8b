import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.initial_data import BENCHMARK_TEMPLATES, seed_data
from app.models.benchmark import BenchmarkTemplate
from app.models.enums import Role
from app.models.user import User


@pytest.mark.asyncio
async def test_seed_is_idempotent(db_session: AsyncSession, monkeypatch):
    monkeypatch.setattr(settings, "FIRST_ADMIN_EMAIL", "root@example.com")
    monkeypatch.setattr(settings, "FIRST_ADMIN_PASSWORD", "bootstrap-pass")

    await seed_data(db_session)
    await seed_data(db_session)

    admins = (await db_session.execute(select(User).where(User.email == "root@example.com"))).scalars().all()
    assert len(admins) == 1
    assert admins[0].role == Role.ADMIN
    templates = (await db_session.execute(select(func.count(BenchmarkTemplate.id)))).scalar_one()
    assert templates == len(BENCHMARK_TEMPLATES)


@pytest.mark.asyncio
async def test_seed_without_admin_password_skips_admin(db_session: AsyncSession, monkeypatch):
    monkeypatch.setattr(settings, "FIRST_ADMIN_PASSWORD", None)
    await seed_data(db_session)
    admins = (await db_session.execute(select(User).where(User.role == Role.ADMIN))).scalars().all()
    assert admins == []
