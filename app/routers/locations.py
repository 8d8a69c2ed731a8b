from typing import Annotated, List, Optional
from datetime import datetime
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import GymContext, require_gym_access, require_gym_owner
from app.core.responses import GymResponse
from app.database import get_db
from app.models.gym import Location
from app.models.schedule import ScheduleTimeSlot

router = APIRouter()


class LocationCreate(BaseModel):
    name: str = Field(min_length=1)
    address: Optional[str] = None
    phone: Optional[str] = None
    is_active: bool = True


class LocationUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    address: Optional[str] = None
    phone: Optional[str] = None
    is_active: Optional[bool] = None


class LocationRead(BaseModel):
    id: uuid.UUID
    gym_id: uuid.UUID
    name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


async def _get_location_or_404(db: AsyncSession, gym_id: uuid.UUID, location_id: uuid.UUID) -> Location:
    location = await db.get(Location, location_id)
    if location is None or location.gym_id != gym_id:
        raise HTTPException(status_code=404, detail="Location not found")
    return location


@router.get("", response_model=GymResponse[List[LocationRead]])
async def list_locations(
    ctx: Annotated[GymContext, Depends(require_gym_access)],
    db: Annotated[AsyncSession, Depends(get_db)],
    active_only: bool = False,
):
    stmt = select(Location).where(Location.gym_id == ctx.gym_id)
    if active_only:
        stmt = stmt.where(Location.is_active.is_(True))
    locations = (await db.execute(stmt.order_by(Location.name))).scalars().all()
    return GymResponse(data=locations, meta=ctx.meta(count=len(locations)))


@router.get("/{location_id}", response_model=GymResponse[LocationRead])
async def get_location(
    location_id: uuid.UUID,
    ctx: Annotated[GymContext, Depends(require_gym_access)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return GymResponse(data=await _get_location_or_404(db, ctx.gym_id, location_id), meta=ctx.meta())


@router.post("", response_model=GymResponse[LocationRead], status_code=status.HTTP_201_CREATED)
async def create_location(
    location_in: LocationCreate,
    ctx: Annotated[GymContext, Depends(require_gym_owner)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    location = Location(gym_id=ctx.gym_id, **location_in.model_dump())
    db.add(location)
    await db.commit()
    await db.refresh(location)
    return GymResponse(data=location, meta=ctx.meta(), message="Location created successfully")


@router.put("/{location_id}", response_model=GymResponse[LocationRead])
async def update_location(
    location_id: uuid.UUID,
    location_in: LocationUpdate,
    ctx: Annotated[GymContext, Depends(require_gym_owner)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    location = await _get_location_or_404(db, ctx.gym_id, location_id)
    for field, value in location_in.model_dump(exclude_unset=True).items():
        setattr(location, field, value)
    await db.commit()
    await db.refresh(location)
    return GymResponse(data=location, meta=ctx.meta(), message="Location updated successfully")


@router.delete("/{location_id}", response_model=GymResponse)
async def delete_location(
    location_id: uuid.UUID,
    ctx: Annotated[GymContext, Depends(require_gym_owner)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    location = await _get_location_or_404(db, ctx.gym_id, location_id)
    in_use = (
        await db.execute(select(func.count(ScheduleTimeSlot.id)).where(ScheduleTimeSlot.location_id == location.id))
    ).scalar_one()
    if in_use:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot delete location used by {in_use} time slot(s). Deactivate it instead.",
        )
    await db.delete(location)
    await db.commit()
    return GymResponse(meta=ctx.meta(), message="Location deleted successfully")
