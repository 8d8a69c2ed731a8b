from typing import Annotated, List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from pydantic import BaseModel
import uuid
from datetime import datetime

from app.database import get_db
from app.auth import dependencies
from app.auth.dependencies import GymContext, require_gym_owner
from app.models.user import User
from app.models.audit import AuditLog
from app.core.responses import ListResponse, StandardResponse
from app.services.audit_service import AuditService

router = APIRouter()
gym_router = APIRouter()

class AuditLogResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID | None
    gym_id: uuid.UUID | None
    action: str
    target_id: str | None
    timestamp: datetime
    details: str | None

    class Config:
        from_attributes = True

@router.get("/logs", response_model=StandardResponse[list[AuditLogResponse]])
async def get_audit_logs(
    current_user: Annotated[User, Depends(dependencies.get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
    limit: int = Query(default=50, ge=1, le=500),
):
    """Retrieve the most recent audit logs across all gyms (Admin only)."""
    stmt = select(AuditLog).order_by(AuditLog.timestamp.desc()).limit(limit)
    result = await db.execute(stmt)
    logs = result.scalars().all()

    return StandardResponse(data=[AuditLogResponse.model_validate(log) for log in logs])


@gym_router.get("/audit-logs", response_model=ListResponse[List[AuditLogResponse]])
async def get_gym_audit_logs(
    ctx: Annotated[GymContext, Depends(require_gym_owner)],
    db: Annotated[AsyncSession, Depends(get_db)],
    action: Optional[str] = None,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=500),
):
    logs = await AuditService.list_for_gym(db, ctx.gym_id, action=action, skip=skip, limit=limit)
    return ListResponse(data=logs, count=len(logs), meta=ctx.meta())
