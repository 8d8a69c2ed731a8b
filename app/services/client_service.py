import uuid
from typing import Any

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import security
from app.auth.dependencies import GymContext
from app.config import settings
from app.core.exceptions import Forbidden, NotFound, ValidationFailed
from app.models.benchmark import ClientBenchmark
from app.models.client import Client
from app.models.enums import ClientStatus, GymRole, Role
from app.models.gym import GymMembership
from app.models.program import Program
from app.models.schedule import ScheduleTimeSlot, TimeSlotEnrollment
from app.models.user import User
from app.models.workout import CompletedSet, WorkoutSession


class ClientService:
    @staticmethod
    async def get_client(db: AsyncSession, gym_id: uuid.UUID, client_id: uuid.UUID) -> Client:
        client = await db.get(Client, client_id)
        if client is None or client.gym_id != gym_id:
            raise NotFound("Client not found")
        return client

    @staticmethod
    async def get_accessible_client(db: AsyncSession, ctx: GymContext, client_id: uuid.UUID) -> Client:
        """Staff may reach any client of the gym; a client only their own record."""
        client = await ClientService.get_client(db, ctx.gym_id, client_id)
        if not ctx.is_staff and client.user_id != ctx.user.id:
            raise Forbidden("Access denied. Clients can only access their own records.")
        return client

    @staticmethod
    async def list_clients(
        db: AsyncSession,
        gym_id: uuid.UUID,
        *,
        skip: int = 0,
        limit: int = 50,
        search: str | None = None,
        status: ClientStatus | None = None,
    ) -> tuple[list[Client], int]:
        conditions = [Client.gym_id == gym_id]
        if status is not None:
            conditions.append(Client.membership_status == status)
        if search:
            pattern = f"%{search.strip()}%"
            conditions.append(
                or_(
                    Client.first_name.ilike(pattern),
                    Client.last_name.ilike(pattern),
                    Client.email.ilike(pattern),
                )
            )
        total = (await db.execute(select(func.count(Client.id)).where(*conditions))).scalar_one()
        stmt = (
            select(Client)
            .where(*conditions)
            .order_by(Client.last_name, Client.first_name)
            .offset(skip)
            .limit(limit)
        )
        return list((await db.execute(stmt)).scalars().all()), total

    @staticmethod
    async def create_client(db: AsyncSession, gym_id: uuid.UUID, data: dict[str, Any]) -> Client:
        """Create the login account, the CLIENT membership and the client record together."""
        email = data["email"].lower()
        existing = await db.execute(select(User.id).where(func.lower(User.email) == email))
        if existing.first() is not None:
            raise ValidationFailed("A user with this email already exists")

        user = User(
            email=email,
            full_name=f"{data['first_name']} {data['last_name']}".strip(),
            hashed_password=security.get_password_hash(data.get("password") or settings.DEFAULT_CLIENT_PASSWORD),
            role=Role.USER,
        )
        db.add(user)
        await db.flush()
        db.add(GymMembership(user_id=user.id, gym_id=gym_id, role=GymRole.CLIENT))

        client = Client(
            gym_id=gym_id,
            user_id=user.id,
            email=email,
            first_name=data["first_name"],
            last_name=data["last_name"],
            phone=data.get("phone"),
            weight=data.get("weight"),
            notes=data.get("notes"),
            membership_status=data.get("membership_status") or ClientStatus.ACTIVE,
        )
        db.add(client)
        await db.flush()
        return client

    @staticmethod
    async def delete_client(db: AsyncSession, client: Client) -> None:
        """Remove a client with everything that hangs off it, releasing held time-slot places."""
        enrollments = (
            await db.execute(select(TimeSlotEnrollment).where(TimeSlotEnrollment.client_id == client.id))
        ).scalars().all()
        for enrollment in enrollments:
            await db.execute(
                update(ScheduleTimeSlot)
                .where(ScheduleTimeSlot.id == enrollment.time_slot_id, ScheduleTimeSlot.enrolled_count > 0)
                .values(enrolled_count=ScheduleTimeSlot.enrolled_count - 1)
                .execution_options(synchronize_session=False)
            )
            await db.delete(enrollment)

        await db.execute(delete(ClientBenchmark).where(ClientBenchmark.client_id == client.id))
        sessions = (await db.execute(select(WorkoutSession.id).where(WorkoutSession.client_id == client.id))).scalars().all()
        if sessions:
            await db.execute(delete(CompletedSet).where(CompletedSet.session_id.in_(sessions)))
            await db.execute(delete(WorkoutSession).where(WorkoutSession.id.in_(sessions)))

        client.program_id = None
        await db.flush()
        await db.execute(
            delete(Program).where(Program.client_id == client.id, Program.is_template.is_(False))
        )
        if client.user_id is not None:
            await db.execute(
                delete(GymMembership).where(
                    GymMembership.user_id == client.user_id,
                    GymMembership.gym_id == client.gym_id,
                    GymMembership.role == GymRole.CLIENT,
                )
            )
        await db.delete(client)
        await db.flush()
