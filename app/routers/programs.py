from typing import Annotated, Any, List, Optional
from datetime import datetime
import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import GymContext, require_gym_access, require_gym_owner, require_gym_trainer
from app.core.exceptions import DomainError
from app.core.responses import GymResponse, ListResponse
from app.database import get_db
from app.models.client import Client
from app.models.program import Program
from app.services.audit_service import AuditService
from app.services.client_service import ClientService
from app.services.program_service import ProgramService
from app.services.program_structure import Block

logger = logging.getLogger(__name__)

router = APIRouter()


class ProgramCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    blocks: List[Block] = []
    is_template: bool = True


class ProgramUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    blocks: Optional[List[Block]] = None


class ProgramRead(BaseModel):
    id: uuid.UUID
    gym_id: uuid.UUID
    name: str
    description: Optional[str] = None
    blocks: List[Any]
    is_template: bool
    template_id: Optional[uuid.UUID] = None
    client_id: Optional[uuid.UUID] = None
    created_by: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


def _dump_blocks(blocks: List[Block]) -> list:
    return ProgramService.validate_blocks([block.model_dump(mode="json") for block in blocks])


async def _get_readable_program(db: AsyncSession, ctx: GymContext, program_id: uuid.UUID) -> Program:
    program = await ProgramService.get_program(db, ctx.gym_id, program_id)
    if ctx.is_staff:
        return program
    own = await db.execute(
        select(Client.id).where(Client.user_id == ctx.user.id, Client.program_id == program.id)
    )
    if own.first() is None:
        raise HTTPException(status_code=403, detail="Access denied. Clients can only view their own program.")
    return program


@router.get("", response_model=ListResponse[List[ProgramRead]])
async def list_programs(
    ctx: Annotated[GymContext, Depends(require_gym_trainer)],
    db: Annotated[AsyncSession, Depends(get_db)],
    is_template: Optional[bool] = None,
):
    stmt = select(Program).where(Program.gym_id == ctx.gym_id)
    if is_template is not None:
        stmt = stmt.where(Program.is_template.is_(is_template))
    programs = (await db.execute(stmt.order_by(Program.name))).scalars().all()
    return ListResponse(data=programs, count=len(programs), meta=ctx.meta())


@router.get("/templates", response_model=ListResponse[List[ProgramRead]])
async def list_templates(
    ctx: Annotated[GymContext, Depends(require_gym_trainer)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    stmt = select(Program).where(Program.gym_id == ctx.gym_id, Program.is_template.is_(True)).order_by(Program.name)
    programs = (await db.execute(stmt)).scalars().all()
    return ListResponse(data=programs, count=len(programs), meta=ctx.meta())


@router.get("/{program_id}", response_model=GymResponse[ProgramRead])
async def get_program(
    program_id: uuid.UUID,
    ctx: Annotated[GymContext, Depends(require_gym_access)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return GymResponse(data=await _get_readable_program(db, ctx, program_id), meta=ctx.meta())


@router.post("", response_model=GymResponse[ProgramRead], status_code=status.HTTP_201_CREATED)
async def create_program(
    program_in: ProgramCreate,
    ctx: Annotated[GymContext, Depends(require_gym_trainer)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    program = Program(
        gym_id=ctx.gym_id,
        name=program_in.name,
        description=program_in.description,
        blocks=_dump_blocks(program_in.blocks),
        is_template=program_in.is_template,
        created_by=ctx.user.id,
    )
    db.add(program)
    await db.commit()
    await db.refresh(program)
    return GymResponse(data=program, meta=ctx.meta(), message="Program created successfully")


@router.put("/{program_id}", response_model=GymResponse[ProgramRead])
async def update_program(
    program_id: uuid.UUID,
    program_in: ProgramUpdate,
    ctx: Annotated[GymContext, Depends(require_gym_trainer)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Update a program. Template changes are pushed to the clients' copies where possible."""
    program = await ProgramService.get_program(db, ctx.gym_id, program_id)
    updates = program_in.model_dump(exclude_unset=True, exclude={"blocks"})
    for field, value in updates.items():
        if value is not None:
            setattr(program, field, value)
    if program_in.blocks is not None:
        program.blocks = _dump_blocks(program_in.blocks)

    propagated = 0
    if program.is_template and program_in.blocks is not None:
        try:
            propagated = await ProgramService.propagate_template(db, program)
        except DomainError as exc:
            logger.warning("Template %s saved but not propagated: %s", program.id, exc.message)

    await db.commit()
    await db.refresh(program)
    return GymResponse(
        data=program,
        meta=ctx.meta(propagated_programs=propagated),
        message="Program updated successfully",
    )


@router.delete("/{program_id}", response_model=GymResponse)
async def delete_program(
    program_id: uuid.UUID,
    ctx: Annotated[GymContext, Depends(require_gym_owner)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    program = await ProgramService.get_program(db, ctx.gym_id, program_id)
    await db.execute(
        update(Client).where(Client.program_id == program.id).values(program_id=None)
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        update(Program).where(Program.template_id == program.id).values(template_id=None)
        .execution_options(synchronize_session=False)
    )
    await db.delete(program)
    await AuditService.log_action(
        db, user_id=ctx.user.id, gym_id=ctx.gym_id, action="DELETE_PROGRAM", target_id=str(program_id)
    )
    await db.commit()
    return GymResponse(meta=ctx.meta(), message="Program deleted successfully")


@router.post("/{template_id}/assign/{client_id}", response_model=GymResponse[ProgramRead])
async def assign_program(
    template_id: uuid.UUID,
    client_id: uuid.UUID,
    ctx: Annotated[GymContext, Depends(require_gym_trainer)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Give a client their own copy of a template and restart their progression."""
    template = await ProgramService.get_program(db, ctx.gym_id, template_id)
    client = await ClientService.get_client(db, ctx.gym_id, client_id)
    program = await ProgramService.assign_template(db, template, client, ctx.user.id)
    await AuditService.log_action(
        db,
        user_id=ctx.user.id,
        gym_id=ctx.gym_id,
        action="ASSIGN_PROGRAM",
        target_id=str(client.id),
        details=f"Assigned template {template.id} as program {program.id}",
    )
    await db.commit()
    await db.refresh(program)
    return GymResponse(data=program, meta=ctx.meta(client_id=str(client.id)), message="Program assigned successfully")
