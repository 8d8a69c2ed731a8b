from typing import Annotated, List, Optional
from datetime import datetime
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import dependencies
from app.auth.dependencies import GymContext, require_gym_access, require_gym_owner
from app.core.responses import GymResponse, ListResponse, StandardResponse
from app.database import get_db
from app.models.enums import GymRole, MembershipStatus
from app.models.gym import Gym, GymMembership
from app.models.user import User
from app.services.audit_service import AuditService

router = APIRouter()


class GymCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    owner_id: Optional[uuid.UUID] = None


class GymUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    is_active: Optional[bool] = None


class GymRead(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    owner_id: Optional[uuid.UUID] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class MemberAdd(BaseModel):
    user_id: uuid.UUID
    role: GymRole = GymRole.CLIENT


class MemberUpdate(BaseModel):
    role: Optional[GymRole] = None
    status: Optional[MembershipStatus] = None


class MemberRead(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    gym_id: uuid.UUID
    role: GymRole
    status: MembershipStatus
    joined_at: datetime
    email: Optional[str] = None
    full_name: Optional[str] = None


def _member_read(membership: GymMembership, user: User) -> MemberRead:
    return MemberRead(
        id=membership.id,
        user_id=membership.user_id,
        gym_id=membership.gym_id,
        role=membership.role,
        status=membership.status,
        joined_at=membership.joined_at,
        email=user.email,
        full_name=user.full_name,
    )


async def _get_membership_or_404(db: AsyncSession, gym_id: uuid.UUID, membership_id: uuid.UUID) -> GymMembership:
    membership = await db.get(GymMembership, membership_id)
    if membership is None or membership.gym_id != gym_id:
        raise HTTPException(status_code=404, detail="Membership not found")
    return membership


@router.get("", response_model=ListResponse[List[GymRead]])
async def list_gyms(
    current_user: Annotated[User, Depends(dependencies.get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """All gyms (system admins only)."""
    gyms = (await db.execute(select(Gym).order_by(Gym.name))).scalars().all()
    return ListResponse(data=gyms, count=len(gyms))


@router.post("", response_model=StandardResponse[GymRead], status_code=status.HTTP_201_CREATED)
async def create_gym(
    gym_in: GymCreate,
    current_user: Annotated[User, Depends(dependencies.get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    if gym_in.owner_id is not None and await db.get(User, gym_in.owner_id) is None:
        raise HTTPException(status_code=404, detail="Owner user not found")

    gym = Gym(**gym_in.model_dump())
    db.add(gym)
    await db.flush()
    if gym_in.owner_id is not None:
        db.add(GymMembership(user_id=gym_in.owner_id, gym_id=gym.id, role=GymRole.OWNER))

    await AuditService.log_action(
        db, user_id=current_user.id, gym_id=gym.id, action="CREATE_GYM", target_id=str(gym.id), details=gym.name
    )
    await db.commit()
    await db.refresh(gym)
    return StandardResponse(data=gym, message="Gym created successfully")


@router.get("/{gym_id}", response_model=GymResponse[GymRead])
async def get_gym(ctx: Annotated[GymContext, Depends(require_gym_access)]):
    return GymResponse(data=ctx.gym, meta=ctx.meta())


@router.put("/{gym_id}", response_model=GymResponse[GymRead])
async def update_gym(
    gym_in: GymUpdate,
    ctx: Annotated[GymContext, Depends(require_gym_owner)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    for field, value in gym_in.model_dump(exclude_unset=True).items():
        setattr(ctx.gym, field, value)
    await AuditService.log_action(
        db, user_id=ctx.user.id, gym_id=ctx.gym_id, action="UPDATE_GYM", target_id=str(ctx.gym_id)
    )
    await db.commit()
    await db.refresh(ctx.gym)
    return GymResponse(data=ctx.gym, meta=ctx.meta(), message="Gym updated successfully")


@router.delete("/{gym_id}", response_model=StandardResponse)
async def delete_gym(
    gym_id: uuid.UUID,
    current_user: Annotated[User, Depends(dependencies.get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Deactivate a gym. Its data is kept for audit purposes."""
    gym = await db.get(Gym, gym_id)
    if gym is None:
        raise HTTPException(status_code=404, detail="Gym not found")
    gym.is_active = False
    await AuditService.log_action(
        db, user_id=current_user.id, gym_id=gym.id, action="DEACTIVATE_GYM", target_id=str(gym.id)
    )
    await db.commit()
    return StandardResponse(message="Gym deactivated successfully")


@router.get("/{gym_id}/members", response_model=GymResponse[List[MemberRead]])
async def list_members(
    ctx: Annotated[GymContext, Depends(require_gym_owner)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    stmt = (
        select(GymMembership, User)
        .join(User, User.id == GymMembership.user_id)
        .where(GymMembership.gym_id == ctx.gym_id)
        .order_by(GymMembership.joined_at)
    )
    rows = (await db.execute(stmt)).all()
    return GymResponse(data=[_member_read(m, u) for m, u in rows], meta=ctx.meta(count=len(rows)))


@router.post("/{gym_id}/members", response_model=GymResponse[MemberRead], status_code=status.HTTP_201_CREATED)
async def add_member(
    member_in: MemberAdd,
    ctx: Annotated[GymContext, Depends(require_gym_owner)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    user = await db.get(User, member_in.user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    existing = await db.execute(
        select(GymMembership.id).where(GymMembership.gym_id == ctx.gym_id, GymMembership.user_id == user.id)
    )
    if existing.first() is not None:
        raise HTTPException(status_code=400, detail="User is already a member of this gym")

    membership = GymMembership(user_id=user.id, gym_id=ctx.gym_id, role=member_in.role)
    db.add(membership)
    await db.flush()
    await AuditService.log_action(
        db,
        user_id=ctx.user.id,
        gym_id=ctx.gym_id,
        action="ADD_MEMBER",
        target_id=str(user.id),
        details=f"Added {user.email} as {member_in.role.value}",
    )
    await db.commit()
    await db.refresh(membership)
    return GymResponse(data=_member_read(membership, user), meta=ctx.meta(), message="Member added successfully")


@router.put("/{gym_id}/members/{membership_id}", response_model=GymResponse[MemberRead])
async def update_member(
    membership_id: uuid.UUID,
    member_in: MemberUpdate,
    ctx: Annotated[GymContext, Depends(require_gym_owner)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    membership = await _get_membership_or_404(db, ctx.gym_id, membership_id)
    for field, value in member_in.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(membership, field, value)
    await AuditService.log_action(
        db, user_id=ctx.user.id, gym_id=ctx.gym_id, action="UPDATE_MEMBER", target_id=str(membership.user_id)
    )
    await db.commit()
    await db.refresh(membership)
    user = await db.get(User, membership.user_id)
    return GymResponse(data=_member_read(membership, user), meta=ctx.meta(), message="Member updated successfully")


@router.delete("/{gym_id}/members/{membership_id}", response_model=GymResponse)
async def remove_member(
    membership_id: uuid.UUID,
    ctx: Annotated[GymContext, Depends(require_gym_owner)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    membership = await _get_membership_or_404(db, ctx.gym_id, membership_id)
    if membership.user_id == ctx.user.id:
        raise HTTPException(status_code=400, detail="You cannot remove your own membership")
    await db.delete(membership)
    await AuditService.log_action(
        db, user_id=ctx.user.id, gym_id=ctx.gym_id, action="REMOVE_MEMBER", target_id=str(membership.user_id)
    )
    await db.commit()
    return GymResponse(meta=ctx.meta(), message="Member removed successfully")
