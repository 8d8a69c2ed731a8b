from typing import Annotated, List, Optional
from datetime import datetime
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, EmailStr, field_validator
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import security
from app.auth.dependencies import GymContext, require_gym_owner, require_gym_trainer
from app.config import settings
from app.core.responses import GymResponse
from app.database import get_db
from app.models.enums import GymRole, Role
from app.models.gym import GymMembership
from app.models.schedule import WeeklySchedule
from app.models.user import User
from app.services.audit_service import AuditService
from app.services.schedule_service import ScheduleService

router = APIRouter()

COACH_ROLES = (GymRole.OWNER, GymRole.TRAINER)


class CoachCreate(BaseModel):
    email: EmailStr
    full_name: Optional[str] = None
    password: Optional[str] = None
    role: GymRole = GymRole.TRAINER

    @field_validator("role")
    @classmethod
    def validate_role(cls, value: GymRole) -> GymRole:
        if value not in COACH_ROLES:
            raise ValueError("Coach role must be TRAINER or OWNER")
        return value


class CoachUpdate(BaseModel):
    full_name: Optional[str] = None
    role: Optional[GymRole] = None

    @field_validator("role")
    @classmethod
    def validate_role(cls, value: Optional[GymRole]) -> Optional[GymRole]:
        if value is not None and value not in COACH_ROLES:
            raise ValueError("Coach role must be TRAINER or OWNER")
        return value


class CoachRead(BaseModel):
    id: uuid.UUID
    email: str
    full_name: Optional[str] = None
    role: GymRole
    membership_id: uuid.UUID
    joined_at: datetime
    schedule_count: int = 0


async def _get_coach_membership_or_404(
    db: AsyncSession, gym_id: uuid.UUID, coach_id: uuid.UUID
) -> tuple[GymMembership, User]:
    stmt = (
        select(GymMembership, User)
        .join(User, User.id == GymMembership.user_id)
        .where(
            GymMembership.gym_id == gym_id,
            GymMembership.user_id == coach_id,
            GymMembership.role.in_(COACH_ROLES),
        )
    )
    row = (await db.execute(stmt)).first()
    if row is None:
        raise HTTPException(status_code=404, detail="Coach not found in this gym")
    return row[0], row[1]


def _coach_read(membership: GymMembership, user: User, schedule_count: int = 0) -> CoachRead:
    return CoachRead(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        role=membership.role,
        membership_id=membership.id,
        joined_at=membership.joined_at,
        schedule_count=schedule_count,
    )


@router.get("", response_model=GymResponse[List[CoachRead]])
async def list_coaches(
    ctx: Annotated[GymContext, Depends(require_gym_trainer)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    schedule_counts = (
        select(WeeklySchedule.coach_id, func.count(WeeklySchedule.id).label("schedule_count"))
        .where(WeeklySchedule.gym_id == ctx.gym_id)
        .group_by(WeeklySchedule.coach_id)
        .subquery()
    )
    stmt = (
        select(GymMembership, User, func.coalesce(schedule_counts.c.schedule_count, 0))
        .join(User, User.id == GymMembership.user_id)
        .outerjoin(schedule_counts, schedule_counts.c.coach_id == GymMembership.user_id)
        .where(GymMembership.gym_id == ctx.gym_id, GymMembership.role.in_(COACH_ROLES))
        .order_by(User.full_name, User.email)
    )
    rows = (await db.execute(stmt)).all()
    coaches = [_coach_read(m, u, count) for m, u, count in rows]
    return GymResponse(data=coaches, meta=ctx.meta(count=len(coaches)))


@router.get("/{coach_id}", response_model=GymResponse[CoachRead])
async def get_coach(
    coach_id: uuid.UUID,
    ctx: Annotated[GymContext, Depends(require_gym_trainer)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    membership, user = await _get_coach_membership_or_404(db, ctx.gym_id, coach_id)
    count = await ScheduleService.count_for_coach(db, ctx.gym_id, user.id)
    return GymResponse(data=_coach_read(membership, user, count), meta=ctx.meta())


@router.post("", response_model=GymResponse[CoachRead], status_code=status.HTTP_201_CREATED)
async def add_coach(
    coach_in: CoachCreate,
    ctx: Annotated[GymContext, Depends(require_gym_owner)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Add a coach to the gym, creating the user account when the email is new."""
    user = (await db.execute(select(User).where(User.email == coach_in.email))).scalar_one_or_none()
    if user is None:
        user = User(
            email=coach_in.email,
            full_name=coach_in.full_name,
            hashed_password=security.get_password_hash(coach_in.password or settings.DEFAULT_CLIENT_PASSWORD),
            role=Role.TRAINER,
        )
        db.add(user)
        await db.flush()
    else:
        existing = await db.execute(
            select(GymMembership.id).where(GymMembership.gym_id == ctx.gym_id, GymMembership.user_id == user.id)
        )
        if existing.first() is not None:
            raise HTTPException(status_code=400, detail="User is already a member of this gym")

    membership = GymMembership(user_id=user.id, gym_id=ctx.gym_id, role=coach_in.role)
    db.add(membership)
    await db.flush()
    await AuditService.log_action(
        db,
        user_id=ctx.user.id,
        gym_id=ctx.gym_id,
        action="ADD_COACH",
        target_id=str(user.id),
        details=f"Added coach {user.email} as {coach_in.role.value}",
    )
    await db.commit()
    await db.refresh(membership)
    return GymResponse(data=_coach_read(membership, user), meta=ctx.meta(), message="Coach added successfully")


@router.put("/{coach_id}", response_model=GymResponse[CoachRead])
async def update_coach(
    coach_id: uuid.UUID,
    coach_in: CoachUpdate,
    ctx: Annotated[GymContext, Depends(require_gym_owner)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    membership, user = await _get_coach_membership_or_404(db, ctx.gym_id, coach_id)
    if coach_in.full_name is not None:
        user.full_name = coach_in.full_name
    if coach_in.role is not None:
        membership.role = coach_in.role
    await db.commit()
    count = await ScheduleService.count_for_coach(db, ctx.gym_id, user.id)
    return GymResponse(data=_coach_read(membership, user, count), meta=ctx.meta(), message="Coach updated successfully")


@router.delete("/{coach_id}", response_model=GymResponse)
async def remove_coach(
    coach_id: uuid.UUID,
    ctx: Annotated[GymContext, Depends(require_gym_owner)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    membership, user = await _get_coach_membership_or_404(db, ctx.gym_id, coach_id)
    count = await ScheduleService.count_for_coach(db, ctx.gym_id, user.id)
    if count:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot remove coach who has {count} schedule(s). Delete or reassign the schedules first.",
        )
    await db.delete(membership)
    await AuditService.log_action(
        db, user_id=ctx.user.id, gym_id=ctx.gym_id, action="REMOVE_COACH", target_id=str(user.id)
    )
    await db.commit()
    return GymResponse(meta=ctx.meta(), message="Coach removed successfully")
