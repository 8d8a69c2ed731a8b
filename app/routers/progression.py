from typing import Annotated
from dataclasses import asdict
import uuid

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import GymContext, require_gym_access, require_gym_owner, require_gym_trainer
from app.config import settings
from app.core.responses import GymResponse
from app.database import get_db
from app.services.audit_service import AuditService
from app.services.client_service import ClientService
from app.services.progression import ProgressionService

router = APIRouter()


class AdvanceRequest(BaseModel):
    blocks: int = Field(default=0, ge=0)
    weeks: int = Field(default=1, ge=0)


class ResetRequest(BaseModel):
    block: int = Field(default=0, ge=0)
    week: int = Field(default=0, ge=0)


@router.get("/{client_id}/progress", response_model=GymResponse[dict])
async def get_client_progress(
    client_id: uuid.UUID,
    ctx: Annotated[GymContext, Depends(require_gym_access)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Current week's first day with recommended working weights."""
    client = await ClientService.get_accessible_client(db, ctx, client_id)
    workout = await ProgressionService.get_current_workout(db, client)
    return GymResponse(data=workout, meta=ctx.meta(client_id=str(client.id)))


@router.post("/{client_id}/progress/advance", response_model=GymResponse[dict])
async def advance_client(
    client_id: uuid.UUID,
    body: AdvanceRequest,
    ctx: Annotated[GymContext, Depends(require_gym_trainer)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    client = await ClientService.get_client(db, ctx.gym_id, client_id)
    result = await ProgressionService.progress_client(db, client, body.blocks, body.weeks)
    await AuditService.log_action(
        db,
        user_id=ctx.user.id,
        gym_id=ctx.gym_id,
        action="ADVANCE_PROGRESSION",
        target_id=str(client.id),
        details=(
            f"({result.previous_block},{result.previous_week}) -> ({result.new_block},{result.new_week})"
            + (" restarted" if result.program_restarted else "")
        ),
    )
    await db.commit()
    message = "Program completed and restarted" if result.program_restarted else "Client progression advanced"
    return GymResponse(data=asdict(result), meta=ctx.meta(), message=message)


@router.post("/{client_id}/progress/reset", response_model=GymResponse[dict])
async def reset_client(
    client_id: uuid.UUID,
    body: ResetRequest,
    ctx: Annotated[GymContext, Depends(require_gym_trainer)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    client = await ClientService.get_client(db, ctx.gym_id, client_id)
    previous = {"block": client.current_block, "week": client.current_week}
    target = await ProgressionService.reset_client(db, client, body.block, body.week)
    await AuditService.log_action(
        db,
        user_id=ctx.user.id,
        gym_id=ctx.gym_id,
        action="RESET_PROGRESSION",
        target_id=str(client.id),
        details=f"({previous['block']},{previous['week']}) -> ({target.block},{target.week})",
    )
    await db.commit()
    return GymResponse(
        data={
            "client_id": str(client.id),
            "previous_block": previous["block"],
            "previous_week": previous["week"],
            "new_block": target.block,
            "new_week": target.week,
        },
        meta=ctx.meta(),
        message="Client progression reset",
    )


@router.post("/progress/advance-all", response_model=GymResponse[dict])
async def advance_all_clients(
    body: AdvanceRequest,
    ctx: Annotated[GymContext, Depends(require_gym_owner)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Advance every active client with a program. Per-client failures are reported, not raised."""
    cap = settings.BULK_PROGRESSION_MAX_STEP
    if body.blocks > cap or body.weeks > cap:
        raise HTTPException(
            status_code=400,
            detail=f"Bulk advancement is limited to {cap} blocks/weeks at a time for safety",
        )
    summary = await ProgressionService.bulk_progress(db, ctx.gym_id, body.blocks, body.weeks)
    await AuditService.log_action(
        db,
        user_id=ctx.user.id,
        gym_id=ctx.gym_id,
        action="BULK_ADVANCE_PROGRESSION",
        target_id=str(ctx.gym_id),
        details=f"{summary.successful_updates}/{summary.total_clients} advanced by ({body.blocks},{body.weeks})",
    )
    await db.commit()
    return GymResponse(
        data=summary.as_dict(),
        meta=ctx.meta(),
        message=f"Advanced {summary.successful_updates} of {summary.total_clients} clients",
    )
