import uuid
from collections import defaultdict
from datetime import date
from itertools import combinations
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import NotFound
from app.models.gym import Location
from app.models.schedule import WeeklySchedule, ScheduleTimeSlot
from app.models.user import User
from app.services.schedule_service import serialize_schedule
from app.services.timeslots import day_name, overlap_window, parse_hhmm, week_start


def _coach_name(coach: User | None) -> str | None:
    if coach is None:
        return None
    return coach.full_name or coach.email


class ScheduleOverviewService:
    """Read-only, gym-wide views over weekly schedules."""

    @staticmethod
    async def _load(
        db: AsyncSession,
        gym_id: uuid.UUID,
        *,
        is_template: bool | None = None,
        on_date: date | None = None,
    ) -> list[WeeklySchedule]:
        stmt = (
            select(WeeklySchedule)
            .options(
                selectinload(WeeklySchedule.coach),
                selectinload(WeeklySchedule.time_slots).selectinload(ScheduleTimeSlot.enrollments),
            )
            .where(WeeklySchedule.gym_id == gym_id)
            .execution_options(populate_existing=True)
        )
        if on_date is not None:
            stmt = stmt.where(
                WeeklySchedule.is_template.is_(False),
                WeeklySchedule.week_start_date == week_start(on_date),
            )
        elif is_template is not None:
            stmt = stmt.where(WeeklySchedule.is_template.is_(is_template))
        return list((await db.execute(stmt.order_by(WeeklySchedule.created_at))).scalars().all())

    @staticmethod
    async def _locations(db: AsyncSession, gym_id: uuid.UUID) -> list[Location]:
        stmt = select(Location).where(Location.gym_id == gym_id).order_by(Location.name)
        return list((await db.execute(stmt)).scalars().all())

    @staticmethod
    def _slot_entry(schedule: WeeklySchedule, slot: ScheduleTimeSlot) -> dict[str, Any]:
        return {
            "schedule_id": str(schedule.id),
            "schedule_name": schedule.name,
            "is_template": schedule.is_template,
            "coach_id": str(schedule.coach_id),
            "coach_name": _coach_name(schedule.coach),
            "day_of_week": slot.day_of_week,
            "time_slot_index": slot.position,
            "start_time": slot.start_time,
            "end_time": slot.end_time,
            "max_capacity": slot.max_capacity,
            "enrolled_count": slot.enrolled_count,
            "available_spots": max(slot.max_capacity - slot.enrolled_count, 0),
            "client_ids": [str(e.client_id) for e in slot.enrollments],
            "notes": slot.notes,
            "activity_type": slot.activity_type,
        }

    @staticmethod
    async def overview(
        db: AsyncSession,
        gym_id: uuid.UUID,
        *,
        is_template: bool | None = None,
        on_date: date | None = None,
    ) -> dict[str, Any]:
        schedules = await ScheduleOverviewService._load(db, gym_id, is_template=is_template, on_date=on_date)
        locations = await ScheduleOverviewService._locations(db, gym_id)

        by_location: dict[uuid.UUID, dict[int, list]] = {loc.id: defaultdict(list) for loc in locations}
        coaches: dict[uuid.UUID, dict[str, Any]] = {}
        total_slots = total_enrollments = 0

        for schedule in schedules:
            coach = coaches.setdefault(
                schedule.coach_id,
                {
                    "coach_id": str(schedule.coach_id),
                    "coach_name": _coach_name(schedule.coach),
                    "schedule_count": 0,
                    "total_time_slots": 0,
                },
            )
            coach["schedule_count"] += 1
            for slot in schedule.time_slots:
                coach["total_time_slots"] += 1
                total_slots += 1
                total_enrollments += slot.enrolled_count
                days = by_location.setdefault(slot.location_id, defaultdict(list))
                days[slot.day_of_week].append(ScheduleOverviewService._slot_entry(schedule, slot))

        names = {loc.id: loc.name for loc in locations}
        location_entries = []
        for location_id, days in by_location.items():
            location_entries.append(
                {
                    "location_id": str(location_id),
                    "location_name": names.get(location_id),
                    "days": [
                        {
                            "day_of_week": day,
                            "day_name": day_name(day),
                            "time_slots": sorted(days.get(day, []), key=lambda s: parse_hhmm(s["start_time"])),
                        }
                        for day in range(7)
                    ],
                }
            )

        return {
            "locations": location_entries,
            "coaches": list(coaches.values()),
            "summary": {
                "total_schedules": len(schedules),
                "total_time_slots": total_slots,
                "total_enrollments": total_enrollments,
                "total_locations": len(location_entries),
                "total_coaches": len(coaches),
            },
        }

    @staticmethod
    async def conflicts(db: AsyncSession, gym_id: uuid.UUID, *, on_date: date | None = None) -> list[dict[str, Any]]:
        """Pairs of active-schedule slots that overlap in the same location on the same weekday."""
        schedules = await ScheduleOverviewService._load(db, gym_id, is_template=False, on_date=on_date)
        names = {loc.id: loc.name for loc in await ScheduleOverviewService._locations(db, gym_id)}

        groups: dict[tuple[uuid.UUID, int], list[tuple[WeeklySchedule, ScheduleTimeSlot]]] = defaultdict(list)
        for schedule in schedules:
            for slot in schedule.time_slots:
                groups[(slot.location_id, slot.day_of_week)].append((schedule, slot))

        def describe(schedule: WeeklySchedule, slot: ScheduleTimeSlot) -> dict[str, Any]:
            return {
                "id": str(schedule.id),
                "name": schedule.name,
                "coach_id": str(schedule.coach_id),
                "coach_name": _coach_name(schedule.coach),
                "time_slot": f"{slot.start_time} - {slot.end_time}",
            }

        report = []
        for (location_id, day), entries in groups.items():
            for (sched_a, slot_a), (sched_b, slot_b) in combinations(entries, 2):
                window = overlap_window(slot_a.start_time, slot_a.end_time, slot_b.start_time, slot_b.end_time)
                if window is None:
                    continue
                report.append(
                    {
                        "location_id": str(location_id),
                        "location_name": names.get(location_id),
                        "day_of_week": day,
                        "day_name": day_name(day),
                        "schedule1": describe(sched_a, slot_a),
                        "schedule2": describe(sched_b, slot_b),
                        "overlap_period": f"{window[0]} - {window[1]}",
                    }
                )
        return report

    @staticmethod
    async def by_location(
        db: AsyncSession,
        gym_id: uuid.UUID,
        location_id: uuid.UUID,
        *,
        is_template: bool | None = None,
    ) -> dict[str, Any]:
        location = await db.get(Location, location_id)
        if location is None or location.gym_id != gym_id:
            raise NotFound("Location not found")

        schedules = await ScheduleOverviewService._load(db, gym_id, is_template=is_template)
        result = []
        for schedule in schedules:
            payload = serialize_schedule(schedule)
            kept = False
            for day in payload["days"]:
                day["time_slots"] = [s for s in day["time_slots"] if s["location_id"] == str(location_id)]
                kept = kept or bool(day["time_slots"])
            if kept:
                payload["coach_name"] = _coach_name(schedule.coach)
                result.append(payload)
        return {"location": {"id": str(location.id), "name": location.name}, "schedules": result}
