from typing import Annotated, List, Optional
from datetime import datetime
import uuid

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import GymContext, require_gym_access, require_gym_owner, require_gym_trainer
from app.core.responses import GymResponse, ListResponse
from app.database import get_db
from app.models.client import Client
from app.models.enums import ClientStatus
from app.services.audit_service import AuditService
from app.services.client_service import ClientService
from app.services.program_service import ProgramService

router = APIRouter()


class ClientCreate(BaseModel):
    email: EmailStr
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    phone: Optional[str] = None
    weight: Optional[float] = Field(default=None, gt=0)
    notes: Optional[str] = None
    password: Optional[str] = Field(default=None, min_length=6)
    membership_status: ClientStatus = ClientStatus.ACTIVE
    program_template_id: Optional[uuid.UUID] = None


class ClientUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=1)
    last_name: Optional[str] = Field(default=None, min_length=1)
    phone: Optional[str] = None
    weight: Optional[float] = Field(default=None, gt=0)
    notes: Optional[str] = None
    membership_status: Optional[ClientStatus] = None
    program_template_id: Optional[uuid.UUID] = None


class ClientRead(BaseModel):
    id: uuid.UUID
    gym_id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    weight: Optional[float] = None
    notes: Optional[str] = None
    membership_status: ClientStatus
    program_id: Optional[uuid.UUID] = None
    current_block: int
    current_week: int
    program_start_date: Optional[datetime] = None
    last_progression_update: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


async def _assign_template(db: AsyncSession, ctx: GymContext, client: Client, template_id: uuid.UUID) -> None:
    template = await ProgramService.get_program(db, ctx.gym_id, template_id)
    program = await ProgramService.assign_template(db, template, client, ctx.user.id)
    await AuditService.log_action(
        db,
        user_id=ctx.user.id,
        gym_id=ctx.gym_id,
        action="ASSIGN_PROGRAM",
        target_id=str(client.id),
        details=f"Assigned template {template.id} as program {program.id}",
    )


@router.get("", response_model=ListResponse[List[ClientRead]])
async def list_clients(
    ctx: Annotated[GymContext, Depends(require_gym_trainer)],
    db: Annotated[AsyncSession, Depends(get_db)],
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    search: Optional[str] = None,
    status: Optional[ClientStatus] = None,
):
    clients, total = await ClientService.list_clients(
        db, ctx.gym_id, skip=skip, limit=limit, search=search, status=status
    )
    return ListResponse(data=clients, count=len(clients), meta=ctx.meta(total=total, skip=skip, limit=limit))


@router.get("/{client_id}", response_model=GymResponse[ClientRead])
async def get_client(
    client_id: uuid.UUID,
    ctx: Annotated[GymContext, Depends(require_gym_access)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    client = await ClientService.get_accessible_client(db, ctx, client_id)
    return GymResponse(data=client, meta=ctx.meta())


@router.post("", response_model=GymResponse[ClientRead], status_code=status.HTTP_201_CREATED)
async def create_client(
    client_in: ClientCreate,
    ctx: Annotated[GymContext, Depends(require_gym_trainer)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    client = await ClientService.create_client(db, ctx.gym_id, client_in.model_dump())
    if client_in.program_template_id is not None:
        await _assign_template(db, ctx, client, client_in.program_template_id)
    await AuditService.log_action(
        db, user_id=ctx.user.id, gym_id=ctx.gym_id, action="CREATE_CLIENT", target_id=str(client.id)
    )
    await db.commit()
    await db.refresh(client)
    return GymResponse(data=client, meta=ctx.meta(), message="Client created successfully")


@router.put("/{client_id}", response_model=GymResponse[ClientRead])
async def update_client(
    client_id: uuid.UUID,
    client_in: ClientUpdate,
    ctx: Annotated[GymContext, Depends(require_gym_trainer)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    client = await ClientService.get_client(db, ctx.gym_id, client_id)
    updates = client_in.model_dump(exclude_unset=True)
    template_id = updates.pop("program_template_id", None)
    for field, value in updates.items():
        if value is not None:
            setattr(client, field, value)
    if template_id is not None:
        await _assign_template(db, ctx, client, template_id)
    await db.commit()
    await db.refresh(client)
    return GymResponse(data=client, meta=ctx.meta(), message="Client updated successfully")


@router.delete("/{client_id}", response_model=GymResponse)
async def delete_client(
    client_id: uuid.UUID,
    ctx: Annotated[GymContext, Depends(require_gym_owner)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    client = await ClientService.get_client(db, ctx.gym_id, client_id)
    await ClientService.delete_client(db, client)
    await AuditService.log_action(
        db, user_id=ctx.user.id, gym_id=ctx.gym_id, action="DELETE_CLIENT", target_id=str(client_id)
    )
    await db.commit()
    return GymResponse(meta=ctx.meta(), message="Client deleted successfully")
