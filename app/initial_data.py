import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.security import get_password_hash
from app.config import settings
from app.database import AsyncSessionLocal
from app.models.benchmark import BenchmarkTemplate
from app.models.enums import BenchmarkType, Role
from app.models.program import ActivityGroup
from app.models.user import User

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

BENCHMARK_TEMPLATES = [
    {"name": "Back Squat", "benchmark_type": BenchmarkType.LIFT, "tags": "legs"},
    {"name": "Bench Press", "benchmark_type": BenchmarkType.LIFT, "tags": "push"},
    {"name": "Deadlift", "benchmark_type": BenchmarkType.LIFT, "tags": "pull"},
    {"name": "Overhead Press", "benchmark_type": BenchmarkType.LIFT, "tags": "push"},
    {"name": "Plank Hold", "benchmark_type": BenchmarkType.OTHER, "notes": "Seconds held", "tags": "core"},
]

ACTIVITY_GROUPS = [
    {"name": "Legs", "description": "Squat and hinge patterns"},
    {"name": "Push", "description": "Pressing movements"},
    {"name": "Pull", "description": "Rows, pull-ups and deadlift variations"},
    {"name": "Core", "description": "Trunk stability and carries"},
]


async def seed_data(session: AsyncSession) -> None:
    """Create the first system admin and the shared catalogs. Safe to run repeatedly."""
    if settings.FIRST_ADMIN_PASSWORD:
        existing = await session.execute(select(User).where(User.email == settings.FIRST_ADMIN_EMAIL))
        if existing.scalar_one_or_none() is None:
            session.add(
                User(
                    email=settings.FIRST_ADMIN_EMAIL,
                    full_name="System Administrator",
                    hashed_password=get_password_hash(settings.FIRST_ADMIN_PASSWORD),
                    role=Role.ADMIN,
                    is_active=True,
                )
            )
            logger.info(f"Created admin user: {settings.FIRST_ADMIN_EMAIL}")
        else:
            logger.info(f"Admin user already exists: {settings.FIRST_ADMIN_EMAIL}")
    else:
        logger.warning("FIRST_ADMIN_PASSWORD not set; skipping admin user")

    for template_data in BENCHMARK_TEMPLATES:
        found = await session.execute(
            select(BenchmarkTemplate.id).where(BenchmarkTemplate.name == template_data["name"])
        )
        if found.first() is None:
            session.add(BenchmarkTemplate(**template_data))
            logger.info(f"Created benchmark template: {template_data['name']}")

    for group_data in ACTIVITY_GROUPS:
        found = await session.execute(select(ActivityGroup.id).where(ActivityGroup.name == group_data["name"]))
        if found.first() is None:
            session.add(ActivityGroup(**group_data))
            logger.info(f"Created activity group: {group_data['name']}")

    await session.commit()
    logger.info("Seeding complete.")


async def main() -> None:
    async with AsyncSessionLocal() as session:
        await seed_data(session)


if __name__ == "__main__":
    asyncio.run(main())
