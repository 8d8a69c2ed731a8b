from typing import Annotated, List, Optional
from datetime import date
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import GymContext, require_gym_access, require_gym_trainer
from app.core.responses import GymResponse, ListResponse
from app.database import get_db
from app.models.enums import GymRole
from app.models.gym import GymMembership
from app.models.schedule import WeeklySchedule
from app.services.audit_service import AuditService
from app.services.schedule_service import ScheduleService, serialize_schedule

router = APIRouter()


class TimeSlotIn(BaseModel):
    start_time: str
    end_time: str
    max_capacity: int
    location_id: Optional[uuid.UUID] = None
    notes: Optional[str] = None
    activity_type: Optional[str] = None


class DayIn(BaseModel):
    day_of_week: int = Field(ge=0, le=6)
    time_slots: List[TimeSlotIn] = []


class ScheduleCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    is_template: bool = True
    week_start_date: Optional[date] = None
    days: List[DayIn] = []

    @field_validator("days")
    @classmethod
    def validate_unique_days(cls, days: List[DayIn]) -> List[DayIn]:
        seen = [day.day_of_week for day in days]
        if len(seen) != len(set(seen)):
            raise ValueError("Each day_of_week may appear only once")
        return days


class ScheduleUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    week_start_date: Optional[date] = None
    days: Optional[List[DayIn]] = None

    @field_validator("days")
    @classmethod
    def validate_unique_days(cls, days: Optional[List[DayIn]]) -> Optional[List[DayIn]]:
        if days is None:
            return days
        seen = [day.day_of_week for day in days]
        if len(seen) != len(set(seen)):
            raise ValueError("Each day_of_week may appear only once")
        return days


class EnrollmentRequest(BaseModel):
    day_of_week: int = Field(ge=0, le=6)
    time_slot_index: int = Field(ge=0)
    client_id: uuid.UUID


class ActivateRequest(BaseModel):
    week_start_date: date
    name: Optional[str] = None


class RolloverRequest(BaseModel):
    week_start_date: Optional[date] = None


async def _ensure_coach(db: AsyncSession, gym_id: uuid.UUID, coach_id: uuid.UUID) -> None:
    stmt = select(GymMembership.id).where(
        GymMembership.gym_id == gym_id,
        GymMembership.user_id == coach_id,
        GymMembership.role.in_((GymRole.OWNER, GymRole.TRAINER)),
    )
    if (await db.execute(stmt)).first() is None:
        raise HTTPException(status_code=404, detail="Coach not found in this gym")


def _ensure_can_manage(ctx: GymContext, coach_id: uuid.UUID) -> None:
    if ctx.user_role != GymRole.OWNER and ctx.user.id != coach_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Coaches can only manage their own schedules.",
        )


def _days_payload(days: List[DayIn]) -> list[dict]:
    return [day.model_dump() for day in days]


async def _reload(db: AsyncSession, schedule: WeeklySchedule) -> dict:
    gym_id, schedule_id = schedule.gym_id, schedule.id
    db.expire_all()
    fresh = await ScheduleService.get_schedule(db, gym_id, schedule_id)
    return serialize_schedule(fresh)


@router.get("", response_model=ListResponse[List[dict]])
async def list_coach_schedules(
    coach_id: uuid.UUID,
    ctx: Annotated[GymContext, Depends(require_gym_access)],
    db: Annotated[AsyncSession, Depends(get_db)],
    is_template: Optional[bool] = None,
):
    await _ensure_coach(db, ctx.gym_id, coach_id)
    schedules = await ScheduleService.list_schedules(db, ctx.gym_id, coach_id=coach_id, is_template=is_template)
    return ListResponse(
        data=[serialize_schedule(s) for s in schedules],
        count=len(schedules),
        meta=ctx.meta(coach_id=str(coach_id)),
    )


@router.get("/{schedule_id}", response_model=GymResponse[dict])
async def get_coach_schedule(
    coach_id: uuid.UUID,
    schedule_id: uuid.UUID,
    ctx: Annotated[GymContext, Depends(require_gym_access)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    schedule = await ScheduleService.get_schedule(db, ctx.gym_id, schedule_id, coach_id)
    return GymResponse(data=serialize_schedule(schedule), meta=ctx.meta(coach_id=str(coach_id)))


@router.post("", response_model=GymResponse[dict], status_code=status.HTTP_201_CREATED)
async def create_coach_schedule(
    coach_id: uuid.UUID,
    schedule_in: ScheduleCreate,
    ctx: Annotated[GymContext, Depends(require_gym_trainer)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    _ensure_can_manage(ctx, coach_id)
    await _ensure_coach(db, ctx.gym_id, coach_id)

    schedule = WeeklySchedule(
        gym_id=ctx.gym_id,
        coach_id=coach_id,
        name=schedule_in.name,
        description=schedule_in.description,
        is_template=schedule_in.is_template,
        week_start_date=schedule_in.week_start_date,
        time_slots=[],
    )
    db.add(schedule)
    await ScheduleService.replace_slots(db, schedule, _days_payload(schedule_in.days))
    await db.commit()
    return GymResponse(data=await _reload(db, schedule), meta=ctx.meta(), message="Schedule created successfully")


@router.put("/{schedule_id}", response_model=GymResponse[dict])
async def update_coach_schedule(
    coach_id: uuid.UUID,
    schedule_id: uuid.UUID,
    schedule_in: ScheduleUpdate,
    ctx: Annotated[GymContext, Depends(require_gym_trainer)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    _ensure_can_manage(ctx, coach_id)
    schedule = await ScheduleService.get_schedule(db, ctx.gym_id, schedule_id, coach_id)
    for field, value in schedule_in.model_dump(exclude_unset=True, exclude={"days"}).items():
        if field == "name" and value is None:
            continue
        setattr(schedule, field, value)
    if schedule_in.days is not None:
        await ScheduleService.replace_slots(db, schedule, _days_payload(schedule_in.days))
    await db.commit()
    return GymResponse(data=await _reload(db, schedule), meta=ctx.meta(), message="Schedule updated successfully")


@router.delete("/{schedule_id}", response_model=GymResponse)
async def delete_coach_schedule(
    coach_id: uuid.UUID,
    schedule_id: uuid.UUID,
    ctx: Annotated[GymContext, Depends(require_gym_trainer)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    _ensure_can_manage(ctx, coach_id)
    schedule = await ScheduleService.get_schedule(db, ctx.gym_id, schedule_id, coach_id)
    await db.delete(schedule)
    await db.commit()
    return GymResponse(meta=ctx.meta(), message="Schedule deleted successfully")


@router.post("/{schedule_id}/enroll", response_model=GymResponse[dict])
async def enroll_client(
    coach_id: uuid.UUID,
    schedule_id: uuid.UUID,
    body: EnrollmentRequest,
    ctx: Annotated[GymContext, Depends(require_gym_trainer)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    _ensure_can_manage(ctx, coach_id)
    schedule = await ScheduleService.get_schedule(db, ctx.gym_id, schedule_id, coach_id)
    mirrored = await ScheduleService.enroll(db, schedule, body.day_of_week, body.time_slot_index, body.client_id)
    await AuditService.log_action(
        db,
        user_id=ctx.user.id,
        gym_id=ctx.gym_id,
        action="ENROLL_CLIENT",
        target_id=str(body.client_id),
        details=f"schedule={schedule.id} day={body.day_of_week} slot={body.time_slot_index}",
    )
    await db.commit()
    return GymResponse(
        data=await _reload(db, schedule),
        meta=ctx.meta(mirrored_schedules=mirrored),
        message="Client enrolled successfully",
    )


@router.post("/{schedule_id}/unenroll", response_model=GymResponse[dict])
async def unenroll_client(
    coach_id: uuid.UUID,
    schedule_id: uuid.UUID,
    body: EnrollmentRequest,
    ctx: Annotated[GymContext, Depends(require_gym_trainer)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    _ensure_can_manage(ctx, coach_id)
    schedule = await ScheduleService.get_schedule(db, ctx.gym_id, schedule_id, coach_id)
    mirrored = await ScheduleService.unenroll(db, schedule, body.day_of_week, body.time_slot_index, body.client_id)
    await AuditService.log_action(
        db,
        user_id=ctx.user.id,
        gym_id=ctx.gym_id,
        action="UNENROLL_CLIENT",
        target_id=str(body.client_id),
        details=f"schedule={schedule.id} day={body.day_of_week} slot={body.time_slot_index}",
    )
    await db.commit()
    return GymResponse(
        data=await _reload(db, schedule),
        meta=ctx.meta(mirrored_schedules=mirrored),
        message="Client unenrolled successfully",
    )


@router.post("/{schedule_id}/activate", response_model=GymResponse[dict], status_code=status.HTTP_201_CREATED)
async def activate_schedule(
    coach_id: uuid.UUID,
    schedule_id: uuid.UUID,
    body: ActivateRequest,
    ctx: Annotated[GymContext, Depends(require_gym_trainer)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Create this week's live schedule from a template, enrollments included."""
    _ensure_can_manage(ctx, coach_id)
    template = await ScheduleService.get_schedule(db, ctx.gym_id, schedule_id, coach_id)
    active = await ScheduleService.activate(db, template, body.week_start_date, body.name)
    await db.commit()
    return GymResponse(data=await _reload(db, active), meta=ctx.meta(), message="Schedule activated successfully")


@router.post("/{schedule_id}/rollover", response_model=GymResponse[dict])
async def rollover_schedule(
    coach_id: uuid.UUID,
    schedule_id: uuid.UUID,
    body: RolloverRequest,
    ctx: Annotated[GymContext, Depends(require_gym_trainer)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    _ensure_can_manage(ctx, coach_id)
    active = await ScheduleService.get_schedule(db, ctx.gym_id, schedule_id, coach_id)
    await ScheduleService.rollover(db, active, body.week_start_date)
    await db.commit()
    return GymResponse(data=await _reload(db, active), meta=ctx.meta(), message="Schedule rolled over successfully")
