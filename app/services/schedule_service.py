import logging
import uuid
from datetime import date
from typing import Any, Iterable

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import DomainError, NotFound, ValidationFailed
from app.models.client import Client
from app.models.gym import Location
from app.models.schedule import WeeklySchedule, ScheduleTimeSlot, TimeSlotEnrollment
from app.services.timeslots import normalize_hhmm, parse_hhmm, overlaps

logger = logging.getLogger(__name__)

SLOT_FIELDS = ("start_time", "end_time", "max_capacity", "location_id", "notes", "activity_type")


def _schedule_query():
    return select(WeeklySchedule).options(
        selectinload(WeeklySchedule.time_slots).selectinload(ScheduleTimeSlot.enrollments)
    ).execution_options(populate_existing=True)


def serialize_slot(slot: ScheduleTimeSlot) -> dict[str, Any]:
    return {
        "id": str(slot.id),
        "time_slot_index": slot.position,
        "start_time": slot.start_time,
        "end_time": slot.end_time,
        "max_capacity": slot.max_capacity,
        "enrolled_count": slot.enrolled_count,
        "client_ids": [str(e.client_id) for e in slot.enrollments],
        "location_id": str(slot.location_id),
        "notes": slot.notes,
        "activity_type": slot.activity_type,
    }


def serialize_schedule(schedule: WeeklySchedule) -> dict[str, Any]:
    """Schedule as seven day entries, each holding its ordered time slots."""
    days: dict[int, list] = {day: [] for day in range(7)}
    for slot in sorted(schedule.time_slots, key=lambda s: (s.day_of_week, s.position)):
        days[slot.day_of_week].append(serialize_slot(slot))
    return {
        "id": str(schedule.id),
        "gym_id": str(schedule.gym_id),
        "coach_id": str(schedule.coach_id),
        "name": schedule.name,
        "description": schedule.description,
        "is_template": schedule.is_template,
        "template_id": str(schedule.template_id) if schedule.template_id else None,
        "week_start_date": schedule.week_start_date.isoformat() if schedule.week_start_date else None,
        "days": [{"day_of_week": day, "time_slots": slots} for day, slots in days.items()],
        "created_at": schedule.created_at,
        "updated_at": schedule.updated_at,
    }


def validate_slot(slot: dict[str, Any]) -> dict[str, Any]:
    """Normalise one slot payload; raises ValidationFailed on bad times or capacity."""
    if not slot.get("location_id"):
        raise ValidationFailed("All time slots must have a location_id specified")
    try:
        start, end = normalize_hhmm(slot["start_time"]), normalize_hhmm(slot["end_time"])
    except ValueError as exc:
        raise ValidationFailed(str(exc)) from exc
    if parse_hhmm(end) <= parse_hhmm(start):
        raise ValidationFailed(f"End time ({end}) must be after start time ({start})")
    if int(slot.get("max_capacity", 0)) < 1:
        raise ValidationFailed("max_capacity must be at least 1")
    return {**slot, "start_time": start, "end_time": end}


class ScheduleService:
    @staticmethod
    async def get_schedule(
        db: AsyncSession,
        gym_id: uuid.UUID,
        schedule_id: uuid.UUID,
        coach_id: uuid.UUID | None = None,
    ) -> WeeklySchedule:
        stmt = _schedule_query().where(WeeklySchedule.id == schedule_id, WeeklySchedule.gym_id == gym_id)
        if coach_id is not None:
            stmt = stmt.where(WeeklySchedule.coach_id == coach_id)
        schedule = (await db.execute(stmt)).scalar_one_or_none()
        if schedule is None:
            raise NotFound("Schedule not found")
        return schedule

    @staticmethod
    async def list_schedules(
        db: AsyncSession,
        gym_id: uuid.UUID,
        *,
        coach_id: uuid.UUID | None = None,
        is_template: bool | None = None,
        week_start_date: date | None = None,
    ) -> list[WeeklySchedule]:
        stmt = _schedule_query().where(WeeklySchedule.gym_id == gym_id)
        if coach_id is not None:
            stmt = stmt.where(WeeklySchedule.coach_id == coach_id)
        if is_template is not None:
            stmt = stmt.where(WeeklySchedule.is_template.is_(is_template))
        if week_start_date is not None:
            stmt = stmt.where(WeeklySchedule.week_start_date == week_start_date)
        stmt = stmt.order_by(WeeklySchedule.created_at)
        return list((await db.execute(stmt)).scalars().all())

    @staticmethod
    async def _check_locations(db: AsyncSession, gym_id: uuid.UUID, location_ids: Iterable[uuid.UUID]) -> None:
        wanted = {uuid.UUID(str(lid)) for lid in location_ids}
        if not wanted:
            return
        stmt = select(Location.id).where(Location.gym_id == gym_id, Location.id.in_(wanted))
        found = set((await db.execute(stmt)).scalars().all())
        missing = wanted - found
        if missing:
            raise NotFound(f"Location not found in this gym: {sorted(str(m) for m in missing)[0]}")

    @staticmethod
    async def replace_slots(db: AsyncSession, schedule: WeeklySchedule, days: list[dict[str, Any]]) -> None:
        """Apply a full set of day entries to a schedule.

        A slot keeps its enrollments when a slot remains at the same (day, index);
        slots no longer present are removed with their enrollments.
        """
        incoming: dict[tuple[int, int], dict] = {}
        for day in days:
            day_of_week = day["day_of_week"]
            for position, raw in enumerate(day.get("time_slots") or []):
                incoming[(day_of_week, position)] = validate_slot(raw)
        await ScheduleService._check_locations(db, schedule.gym_id, (s["location_id"] for s in incoming.values()))

        existing = {(slot.day_of_week, slot.position): slot for slot in schedule.time_slots}
        for key, slot in existing.items():
            if key not in incoming:
                schedule.time_slots.remove(slot)

        for (day_of_week, position), data in incoming.items():
            slot = existing.get((day_of_week, position))
            if slot is None:
                schedule.time_slots.append(
                    ScheduleTimeSlot(
                        day_of_week=day_of_week,
                        position=position,
                        enrolled_count=0,
                        **{k: data.get(k) for k in SLOT_FIELDS},
                    )
                )
                continue
            if data["max_capacity"] < slot.enrolled_count:
                raise ValidationFailed(
                    f"max_capacity ({data['max_capacity']}) is below the {slot.enrolled_count} client(s) already enrolled"
                )
            for key in SLOT_FIELDS:
                setattr(slot, key, data.get(key))

    @staticmethod
    async def _slot_at(db: AsyncSession, schedule: WeeklySchedule, day_of_week: int, index: int) -> ScheduleTimeSlot:
        stmt = select(ScheduleTimeSlot).where(
            ScheduleTimeSlot.schedule_id == schedule.id,
            ScheduleTimeSlot.day_of_week == day_of_week,
            ScheduleTimeSlot.position == index,
        )
        slot = (await db.execute(stmt)).scalar_one_or_none()
        if slot is None:
            raise NotFound("Invalid day or time slot")
        return slot

    @staticmethod
    async def _find_conflict(
        db: AsyncSession,
        schedule: WeeklySchedule,
        slot: ScheduleTimeSlot,
        client_id: uuid.UUID,
    ) -> ScheduleTimeSlot | None:
        """An overlapping slot the client holds on the same weekday in any active schedule of the gym.

        Templates are never scanned, whichever kind of schedule is being enrolled into.
        """
        stmt = (
            select(ScheduleTimeSlot)
            .join(TimeSlotEnrollment, TimeSlotEnrollment.time_slot_id == ScheduleTimeSlot.id)
            .join(WeeklySchedule, WeeklySchedule.id == ScheduleTimeSlot.schedule_id)
            .where(
                TimeSlotEnrollment.client_id == client_id,
                WeeklySchedule.gym_id == schedule.gym_id,
                WeeklySchedule.is_template.is_(False),
                ScheduleTimeSlot.day_of_week == slot.day_of_week,
                ScheduleTimeSlot.id != slot.id,
            )
        )
        for other in (await db.execute(stmt)).scalars().all():
            if overlaps(slot.start_time, slot.end_time, other.start_time, other.end_time):
                return other
        return None

    @staticmethod
    async def _derived_schedules(db: AsyncSession, template: WeeklySchedule) -> list[WeeklySchedule]:
        stmt = select(WeeklySchedule).where(
            WeeklySchedule.template_id == template.id,
            WeeklySchedule.is_template.is_(False),
        )
        return list((await db.execute(stmt)).scalars().all())

    @staticmethod
    async def _enroll_one(
        db: AsyncSession,
        schedule: WeeklySchedule,
        day_of_week: int,
        index: int,
        client_id: uuid.UUID,
    ) -> ScheduleTimeSlot:
        slot = await ScheduleService._slot_at(db, schedule, day_of_week, index)

        already = await db.execute(
            select(TimeSlotEnrollment.id).where(
                TimeSlotEnrollment.time_slot_id == slot.id, TimeSlotEnrollment.client_id == client_id
            )
        )
        if already.first() is not None:
            raise ValidationFailed("Client already enrolled in this time slot")

        conflict = await ScheduleService._find_conflict(db, schedule, slot, client_id)
        if conflict is not None:
            raise ValidationFailed(
                f"Client already has a conflicting time slot from {conflict.start_time} to {conflict.end_time}"
            )

        # The guard is evaluated by the database, so concurrent enrollments cannot overfill the slot.
        result = await db.execute(
            update(ScheduleTimeSlot)
            .where(ScheduleTimeSlot.id == slot.id, ScheduleTimeSlot.enrolled_count < ScheduleTimeSlot.max_capacity)
            .values(enrolled_count=ScheduleTimeSlot.enrolled_count + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ValidationFailed("Time slot is at maximum capacity")

        db.add(TimeSlotEnrollment(time_slot_id=slot.id, client_id=client_id))
        await db.flush()
        return slot

    @staticmethod
    async def _unenroll_one(
        db: AsyncSession,
        schedule: WeeklySchedule,
        day_of_week: int,
        index: int,
        client_id: uuid.UUID,
    ) -> ScheduleTimeSlot:
        slot = await ScheduleService._slot_at(db, schedule, day_of_week, index)
        enrollment = (
            await db.execute(
                select(TimeSlotEnrollment).where(
                    TimeSlotEnrollment.time_slot_id == slot.id, TimeSlotEnrollment.client_id == client_id
                )
            )
        ).scalar_one_or_none()
        if enrollment is None:
            raise ValidationFailed("Client not enrolled in this time slot")

        await db.delete(enrollment)
        await db.execute(
            update(ScheduleTimeSlot)
            .where(ScheduleTimeSlot.id == slot.id, ScheduleTimeSlot.enrolled_count > 0)
            .values(enrolled_count=ScheduleTimeSlot.enrolled_count - 1)
            .execution_options(synchronize_session=False)
        )
        await db.flush()
        return slot

    @staticmethod
    async def _mirror(db: AsyncSession, template: WeeklySchedule, operation, day_of_week: int, index: int, client_id):
        """Repeat a template enrollment change on its active schedules; failures are logged only."""
        mirrored = 0
        for target in await ScheduleService._derived_schedules(db, template):
            try:
                await operation(db, target, day_of_week, index, client_id)
                mirrored += 1
            except DomainError as exc:
                logger.warning(
                    "Could not mirror %s from template %s to schedule %s: %s",
                    operation.__name__.strip("_"),
                    template.id,
                    target.id,
                    exc.message,
                )
        return mirrored

    @staticmethod
    async def ensure_client_in_gym(db: AsyncSession, gym_id: uuid.UUID, client_id: uuid.UUID) -> Client:
        client = await db.get(Client, client_id)
        if client is None or client.gym_id != gym_id:
            raise NotFound("Client not found in this gym")
        return client

    @staticmethod
    async def enroll(
        db: AsyncSession,
        schedule: WeeklySchedule,
        day_of_week: int,
        index: int,
        client_id: uuid.UUID,
    ) -> int:
        """Enroll a client; returns how many derived active schedules were also updated."""
        await ScheduleService.ensure_client_in_gym(db, schedule.gym_id, client_id)
        await ScheduleService._enroll_one(db, schedule, day_of_week, index, client_id)
        if not schedule.is_template:
            return 0
        return await ScheduleService._mirror(
            db, schedule, ScheduleService._enroll_one, day_of_week, index, client_id
        )

    @staticmethod
    async def unenroll(
        db: AsyncSession,
        schedule: WeeklySchedule,
        day_of_week: int,
        index: int,
        client_id: uuid.UUID,
    ) -> int:
        await ScheduleService._unenroll_one(db, schedule, day_of_week, index, client_id)
        if not schedule.is_template:
            return 0
        return await ScheduleService._mirror(
            db, schedule, ScheduleService._unenroll_one, day_of_week, index, client_id
        )

    @staticmethod
    def _copy_slots(template: WeeklySchedule, target: WeeklySchedule) -> None:
        for slot in template.time_slots:
            copy = ScheduleTimeSlot(
                day_of_week=slot.day_of_week,
                position=slot.position,
                enrolled_count=len(slot.enrollments),
                **{k: getattr(slot, k) for k in SLOT_FIELDS},
            )
            copy.enrollments = [TimeSlotEnrollment(client_id=e.client_id) for e in slot.enrollments]
            target.time_slots.append(copy)

    @staticmethod
    async def activate(
        db: AsyncSession,
        template: WeeklySchedule,
        week_start_date: date,
        name: str | None = None,
    ) -> WeeklySchedule:
        """Materialise an active week from a template, carrying its enrollments over."""
        if not template.is_template:
            raise ValidationFailed("Only template schedules can be activated")
        active = WeeklySchedule(
            gym_id=template.gym_id,
            coach_id=template.coach_id,
            name=name or template.name,
            description=template.description,
            is_template=False,
            template_id=template.id,
            week_start_date=week_start_date,
            time_slots=[],
        )
        ScheduleService._copy_slots(template, active)
        db.add(active)
        await db.flush()
        return active

    @staticmethod
    async def rollover(
        db: AsyncSession,
        active: WeeklySchedule,
        week_start_date: date | None = None,
    ) -> WeeklySchedule:
        """Reset an active schedule to its template's slots and enrollments."""
        if active.is_template or active.template_id is None:
            raise ValidationFailed("Only active schedules created from a template can be rolled over")
        template = (
            await db.execute(_schedule_query().where(WeeklySchedule.id == active.template_id))
        ).scalar_one_or_none()
        if template is None:
            raise NotFound("Template schedule not found")

        active.time_slots.clear()
        await db.flush()
        ScheduleService._copy_slots(template, active)
        if week_start_date is not None:
            active.week_start_date = week_start_date
        await db.flush()
        return active

    @staticmethod
    async def count_for_coach(db: AsyncSession, gym_id: uuid.UUID, coach_id: uuid.UUID) -> int:
        stmt = select(func.count(WeeklySchedule.id)).where(
            WeeklySchedule.gym_id == gym_id, WeeklySchedule.coach_id == coach_id
        )
        return (await db.execute(stmt)).scalar_one()
