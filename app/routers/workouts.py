from typing import Annotated, Optional
import uuid

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import GymContext, require_gym_access
from app.core.responses import GymResponse
from app.database import get_db
from app.services.audit_service import AuditService
from app.services.client_service import ClientService
from app.services.workout_service import WorkoutService

router = APIRouter()


class SessionStart(BaseModel):
    block: Optional[int] = Field(default=None, ge=0)
    week: Optional[int] = Field(default=None, ge=0)
    day: int = Field(default=0, ge=0)


class SetCompletion(BaseModel):
    activity_id: str = Field(min_length=1)
    set_number: int = Field(ge=1)


@router.get("/current-workout", response_model=GymResponse[dict])
async def get_current_workout(
    client_id: uuid.UUID,
    ctx: Annotated[GymContext, Depends(require_gym_access)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    client = await ClientService.get_accessible_client(db, ctx, client_id)
    workout = await WorkoutService.current_workout(db, client)
    return GymResponse(data=workout, meta=ctx.meta(client_id=str(client.id)))


@router.post("/workout-sessions", response_model=GymResponse[dict], status_code=status.HTTP_201_CREATED)
async def start_workout_session(
    client_id: uuid.UUID,
    body: SessionStart,
    ctx: Annotated[GymContext, Depends(require_gym_access)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    client = await ClientService.get_accessible_client(db, ctx, client_id)
    session = await WorkoutService.start_session(db, client, body.block, body.week, body.day)
    await AuditService.log_action(
        db,
        user_id=ctx.user.id,
        gym_id=ctx.gym_id,
        action="START_WORKOUT",
        target_id=str(session.id),
        details=f"client={client.id} block={session.block} week={session.week} day={session.day}",
    )
    await db.commit()
    return GymResponse(data=WorkoutService.serialize(session), meta=ctx.meta(), message="Workout session started")


@router.get("/workout-sessions/{session_id}", response_model=GymResponse[dict])
async def get_workout_session(
    client_id: uuid.UUID,
    session_id: uuid.UUID,
    ctx: Annotated[GymContext, Depends(require_gym_access)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    client = await ClientService.get_accessible_client(db, ctx, client_id)
    session = await WorkoutService.get_session(db, client, session_id)
    return GymResponse(data=WorkoutService.serialize(session), meta=ctx.meta())


@router.put("/workout-sessions/{session_id}/sets", response_model=GymResponse[dict])
async def complete_workout_set(
    client_id: uuid.UUID,
    session_id: uuid.UUID,
    body: SetCompletion,
    ctx: Annotated[GymContext, Depends(require_gym_access)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Mark one set done. A repeated set is reported with success false rather than an error."""
    client = await ClientService.get_accessible_client(db, ctx, client_id)
    session = await WorkoutService.get_session(db, client, session_id)
    result = await WorkoutService.complete_set(db, session, body.activity_id, body.set_number)
    await db.commit()
    return GymResponse(data=result, meta=ctx.meta(session_id=str(session_id)), message=result["message"])


@router.put("/workout-sessions/{session_id}/end", response_model=GymResponse[dict])
async def end_workout_session(
    client_id: uuid.UUID,
    session_id: uuid.UUID,
    ctx: Annotated[GymContext, Depends(require_gym_access)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    client = await ClientService.get_accessible_client(db, ctx, client_id)
    session = await WorkoutService.get_session(db, client, session_id)
    WorkoutService.end_session(session)
    await AuditService.log_action(
        db,
        user_id=ctx.user.id,
        gym_id=ctx.gym_id,
        action="END_WORKOUT",
        target_id=str(session.id),
        details=f"client={client.id} sets={len(session.completed_sets)}",
    )
    await db.commit()
    return GymResponse(data=WorkoutService.serialize(session), meta=ctx.meta(), message="Workout session ended")
