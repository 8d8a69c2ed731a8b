import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import DataIntegrityError, NotFound, ValidationFailed
from app.models.client import Client
from app.models.program import Program
from app.models.workout import WorkoutSession, CompletedSet
from app.services.program_structure import ProgramStructure
from app.services.progression import ProgressionService, annotate_day


class WorkoutService:
    @staticmethod
    async def get_session(db: AsyncSession, client: Client, session_id: uuid.UUID) -> WorkoutSession:
        stmt = (
            select(WorkoutSession)
            .options(selectinload(WorkoutSession.completed_sets))
            .where(WorkoutSession.id == session_id, WorkoutSession.client_id == client.id)
            .execution_options(populate_existing=True)
        )
        session = (await db.execute(stmt)).scalar_one_or_none()
        if session is None:
            raise NotFound("Workout session not found")
        return session

    @staticmethod
    async def active_session(db: AsyncSession, client: Client) -> WorkoutSession | None:
        stmt = (
            select(WorkoutSession)
            .options(selectinload(WorkoutSession.completed_sets))
            .where(WorkoutSession.client_id == client.id, WorkoutSession.is_active.is_(True))
            .order_by(WorkoutSession.started_at.desc())
        )
        return (await db.execute(stmt)).scalars().first()

    @staticmethod
    async def current_workout(db: AsyncSession, client: Client) -> dict[str, Any]:
        """The client's current week with every day's activities and the active session, if any."""
        program, structure = await ProgressionService.load_program(db, client)
        week = structure.week_at(client.current_block, client.current_week)
        weights = await ProgressionService.current_benchmark_weights(db, client.id)

        days = [
            {"index": index, "id": day.id, "name": day.name, "activities": annotate_day(day, weights)}
            for index, day in enumerate(week.days)
        ]
        session = await WorkoutService.active_session(db, client)
        if session is not None and (session.block, session.week) != (client.current_block, client.current_week):
            session = None

        return {
            "program_id": str(program.id),
            "program_name": program.name,
            "block": client.current_block,
            "week": client.current_week,
            "week_name": week.name or f"Week {client.current_week + 1}",
            "days": days,
            "current_day": days[0],
            "active_session": WorkoutService.serialize(session) if session is not None else None,
        }

    @staticmethod
    async def start_session(
        db: AsyncSession,
        client: Client,
        block: int | None = None,
        week: int | None = None,
        day: int = 0,
    ) -> WorkoutSession:
        """Open a session at a program position; any other active session of the client is closed."""
        _, structure = await ProgressionService.load_program(db, client)
        block = client.current_block if block is None else block
        week = client.current_week if week is None else week
        try:
            structure.day_at(block, week, day)
        except DataIntegrityError as exc:
            raise ValidationFailed(exc.message) from exc

        now = datetime.now(timezone.utc)
        await db.execute(
            update(WorkoutSession)
            .where(WorkoutSession.client_id == client.id, WorkoutSession.is_active.is_(True))
            .values(is_active=False, completed_at=now)
            .execution_options(synchronize_session=False)
        )
        session = WorkoutSession(
            gym_id=client.gym_id,
            client_id=client.id,
            program_id=client.program_id,
            block=block,
            week=week,
            day=day,
            is_active=True,
            started_at=now,
            completed_sets=[],
        )
        db.add(session)
        await db.flush()
        return session

    @staticmethod
    async def complete_set(
        db: AsyncSession,
        session: WorkoutSession,
        activity_id: str,
        set_number: int,
    ) -> dict[str, Any]:
        if not session.is_active:
            raise ValidationFailed("Workout session has already ended")

        program = await db.get(Program, session.program_id)
        if program is None:
            raise NotFound("Program not found")
        day = ProgramStructure.load(program.blocks).day_at(session.block, session.week, session.day)
        activity = day.find_activity(activity_id)
        if activity is None:
            raise NotFound("Activity not found in this workout day")

        done = {(s.activity_id, s.set_number) for s in session.completed_sets}
        recorded = (activity_id, set_number) not in done
        if recorded:
            session.completed_sets.append(CompletedSet(activity_id=activity_id, set_number=set_number))
            await db.flush()
            done.add((activity_id, set_number))

        completed_for_activity = sum(1 for a, _ in done if a == activity_id)
        exercise_completed = completed_for_activity >= (activity.sets or 1)

        next_exercise_id = None
        if exercise_completed:
            ordered = day.activities()
            position = next(i for i, a in enumerate(ordered) if a.id == activity_id)
            for candidate in ordered[position + 1:]:
                if sum(1 for a, _ in done if a == candidate.id) < (candidate.sets or 1):
                    next_exercise_id = candidate.id
                    break

        return {
            "success": recorded,
            "message": "Set recorded" if recorded else "Set already completed",
            "completed_sets": completed_for_activity,
            "exercise_completed": exercise_completed,
            "next_exercise_id": next_exercise_id,
        }

    @staticmethod
    def end_session(session: WorkoutSession) -> WorkoutSession:
        if not session.is_active:
            raise ValidationFailed("Workout session has already ended")
        session.is_active = False
        session.completed_at = datetime.now(timezone.utc)
        return session

    @staticmethod
    def serialize(session: WorkoutSession) -> dict[str, Any]:
        return {
            "id": str(session.id),
            "client_id": str(session.client_id),
            "program_id": str(session.program_id),
            "block": session.block,
            "week": session.week,
            "day": session.day,
            "is_active": session.is_active,
            "started_at": session.started_at,
            "completed_at": session.completed_at,
            "completed_sets": [
                {"activity_id": s.activity_id, "set_number": s.set_number, "completed_at": s.completed_at}
                for s in session.completed_sets
            ],
        }
