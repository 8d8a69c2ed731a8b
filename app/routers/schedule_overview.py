from typing import Annotated, Optional
from datetime import date
import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import GymContext, require_gym_access, require_gym_trainer
from app.core.responses import GymResponse, ListResponse
from app.database import get_db
from app.services.schedule_overview import ScheduleOverviewService
from app.services.timeslots import week_start

router = APIRouter()


@router.get("/overview", response_model=GymResponse[dict])
async def schedule_overview(
    ctx: Annotated[GymContext, Depends(require_gym_trainer)],
    db: Annotated[AsyncSession, Depends(get_db)],
    is_template: Optional[bool] = None,
    on_date: Annotated[Optional[date], Query(alias="date")] = None,
):
    """Gym-wide slot and enrollment summary, grouped by location and weekday."""
    overview = await ScheduleOverviewService.overview(db, ctx.gym_id, is_template=is_template, on_date=on_date)
    meta = ctx.meta(week_start_date=week_start(on_date).isoformat() if on_date else None)
    return GymResponse(data=overview, meta=meta)


@router.get("/conflicts", response_model=ListResponse[list])
async def schedule_conflicts(
    ctx: Annotated[GymContext, Depends(require_gym_trainer)],
    db: Annotated[AsyncSession, Depends(get_db)],
    on_date: Annotated[Optional[date], Query(alias="date")] = None,
):
    conflicts = await ScheduleOverviewService.conflicts(db, ctx.gym_id, on_date=on_date)
    return ListResponse(data=conflicts, count=len(conflicts), meta=ctx.meta())


@router.get("/by-location/{location_id}", response_model=GymResponse[dict])
async def schedules_by_location(
    location_id: uuid.UUID,
    ctx: Annotated[GymContext, Depends(require_gym_access)],
    db: Annotated[AsyncSession, Depends(get_db)],
    is_template: Optional[bool] = None,
):
    data = await ScheduleOverviewService.by_location(db, ctx.gym_id, location_id, is_template=is_template)
    return GymResponse(data=data, meta=ctx.meta(count=len(data["schedules"])))
