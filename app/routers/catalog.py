from typing import Annotated, List, Optional
from datetime import datetime
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import dependencies
from app.core.responses import ListResponse, StandardResponse
from app.database import get_db
from app.models.benchmark import BenchmarkTemplate
from app.models.program import ActivityGroup, ActivityTemplate
from app.models.user import User

groups_router = APIRouter()
templates_router = APIRouter()


class ActivityGroupCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None


class ActivityGroupUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None


class ActivityGroupRead(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ActivityTemplateCreate(BaseModel):
    name: str = Field(min_length=1)
    notes: Optional[str] = None
    group_id: uuid.UUID
    benchmark_template_id: Optional[uuid.UUID] = None


class ActivityTemplateUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    notes: Optional[str] = None
    group_id: Optional[uuid.UUID] = None
    benchmark_template_id: Optional[uuid.UUID] = None


class ActivityTemplateRead(BaseModel):
    id: uuid.UUID
    name: str
    notes: Optional[str] = None
    group_id: uuid.UUID
    benchmark_template_id: Optional[uuid.UUID] = None
    created_at: datetime

    class Config:
        from_attributes = True


async def _get_group_or_404(db: AsyncSession, group_id: uuid.UUID) -> ActivityGroup:
    group = await db.get(ActivityGroup, group_id)
    if group is None:
        raise HTTPException(status_code=404, detail="Activity group not found")
    return group


async def _get_activity_template_or_404(db: AsyncSession, template_id: uuid.UUID) -> ActivityTemplate:
    template = await db.get(ActivityTemplate, template_id)
    if template is None:
        raise HTTPException(status_code=404, detail="Activity template not found")
    return template


async def _check_references(db: AsyncSession, group_id: uuid.UUID | None, benchmark_template_id: uuid.UUID | None):
    if group_id is not None:
        await _get_group_or_404(db, group_id)
    if benchmark_template_id is not None and await db.get(BenchmarkTemplate, benchmark_template_id) is None:
        raise HTTPException(status_code=404, detail="Benchmark template not found")


# Activity groups

@groups_router.get("", response_model=ListResponse[List[ActivityGroupRead]])
async def list_activity_groups(
    current_user: Annotated[User, Depends(dependencies.get_current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    groups = (await db.execute(select(ActivityGroup).order_by(ActivityGroup.name))).scalars().all()
    return ListResponse(data=groups, count=len(groups))


@groups_router.get("/{group_id}", response_model=StandardResponse[ActivityGroupRead])
async def get_activity_group(
    group_id: uuid.UUID,
    current_user: Annotated[User, Depends(dependencies.get_current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return StandardResponse(data=await _get_group_or_404(db, group_id))


@groups_router.post("", response_model=StandardResponse[ActivityGroupRead], status_code=status.HTTP_201_CREATED)
async def create_activity_group(
    group_in: ActivityGroupCreate,
    current_user: Annotated[User, Depends(dependencies.get_current_trainer)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    group = ActivityGroup(**group_in.model_dump())
    db.add(group)
    await db.commit()
    await db.refresh(group)
    return StandardResponse(data=group, message="Activity group created successfully")


@groups_router.put("/{group_id}", response_model=StandardResponse[ActivityGroupRead])
async def update_activity_group(
    group_id: uuid.UUID,
    group_in: ActivityGroupUpdate,
    current_user: Annotated[User, Depends(dependencies.get_current_trainer)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    group = await _get_group_or_404(db, group_id)
    for field, value in group_in.model_dump(exclude_unset=True).items():
        setattr(group, field, value)
    await db.commit()
    await db.refresh(group)
    return StandardResponse(data=group, message="Activity group updated successfully")


@groups_router.delete("/{group_id}", response_model=StandardResponse)
async def delete_activity_group(
    group_id: uuid.UUID,
    current_user: Annotated[User, Depends(dependencies.get_current_trainer)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    group = await _get_group_or_404(db, group_id)
    in_use = (
        await db.execute(select(func.count(ActivityTemplate.id)).where(ActivityTemplate.group_id == group.id))
    ).scalar_one()
    if in_use:
        raise HTTPException(status_code=400, detail=f"Cannot delete group with {in_use} activity template(s)")
    await db.delete(group)
    await db.commit()
    return StandardResponse(message="Activity group deleted successfully")


# Activity templates

@templates_router.get("", response_model=ListResponse[List[ActivityTemplateRead]])
async def list_activity_templates(
    current_user: Annotated[User, Depends(dependencies.get_current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    group_id: Optional[uuid.UUID] = None,
):
    stmt = select(ActivityTemplate)
    if group_id is not None:
        stmt = stmt.where(ActivityTemplate.group_id == group_id)
    templates = (await db.execute(stmt.order_by(ActivityTemplate.name))).scalars().all()
    return ListResponse(data=templates, count=len(templates))


@templates_router.get("/{template_id}", response_model=StandardResponse[ActivityTemplateRead])
async def get_activity_template(
    template_id: uuid.UUID,
    current_user: Annotated[User, Depends(dependencies.get_current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return StandardResponse(data=await _get_activity_template_or_404(db, template_id))


@templates_router.post("", response_model=StandardResponse[ActivityTemplateRead], status_code=status.HTTP_201_CREATED)
async def create_activity_template(
    template_in: ActivityTemplateCreate,
    current_user: Annotated[User, Depends(dependencies.get_current_trainer)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    await _check_references(db, template_in.group_id, template_in.benchmark_template_id)
    template = ActivityTemplate(**template_in.model_dump())
    db.add(template)
    await db.commit()
    await db.refresh(template)
    return StandardResponse(data=template, message="Activity template created successfully")


@templates_router.put("/{template_id}", response_model=StandardResponse[ActivityTemplateRead])
async def update_activity_template(
    template_id: uuid.UUID,
    template_in: ActivityTemplateUpdate,
    current_user: Annotated[User, Depends(dependencies.get_current_trainer)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    template = await _get_activity_template_or_404(db, template_id)
    await _check_references(db, template_in.group_id, template_in.benchmark_template_id)
    for field, value in template_in.model_dump(exclude_unset=True).items():
        if field == "group_id" and value is None:
            continue
        setattr(template, field, value)
    await db.commit()
    await db.refresh(template)
    return StandardResponse(data=template, message="Activity template updated successfully")


@templates_router.delete("/{template_id}", response_model=StandardResponse)
async def delete_activity_template(
    template_id: uuid.UUID,
    current_user: Annotated[User, Depends(dependencies.get_current_trainer)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    template = await _get_activity_template_or_404(db, template_id)
    await db.delete(template)
    await db.commit()
    return StandardResponse(message="Activity template deleted successfully")
