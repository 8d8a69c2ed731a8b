from typing import Annotated, List, Optional
from datetime import datetime
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import dependencies
from app.core.responses import ListResponse, StandardResponse
from app.database import get_db
from app.models.benchmark import BenchmarkTemplate, ClientBenchmark
from app.models.enums import BenchmarkType
from app.models.user import User

router = APIRouter()


class BenchmarkTemplateCreate(BaseModel):
    name: str = Field(min_length=1)
    notes: Optional[str] = None
    benchmark_type: BenchmarkType
    tags: Optional[str] = None


class BenchmarkTemplateUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    notes: Optional[str] = None
    tags: Optional[str] = None


class BenchmarkTemplateRead(BaseModel):
    id: uuid.UUID
    name: str
    notes: Optional[str] = None
    benchmark_type: BenchmarkType
    tags: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


async def _get_template_or_404(db: AsyncSession, template_id: uuid.UUID) -> BenchmarkTemplate:
    template = await db.get(BenchmarkTemplate, template_id)
    if template is None:
        raise HTTPException(status_code=404, detail="Benchmark template not found")
    return template


@router.get("", response_model=ListResponse[List[BenchmarkTemplateRead]])
async def list_benchmark_templates(
    current_user: Annotated[User, Depends(dependencies.get_current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    type: Optional[BenchmarkType] = None,
):
    stmt = select(BenchmarkTemplate)
    if type is not None:
        stmt = stmt.where(BenchmarkTemplate.benchmark_type == type)
    templates = (await db.execute(stmt.order_by(BenchmarkTemplate.name))).scalars().all()
    return ListResponse(data=templates, count=len(templates))


@router.get("/{template_id}", response_model=StandardResponse[BenchmarkTemplateRead])
async def get_benchmark_template(
    template_id: uuid.UUID,
    current_user: Annotated[User, Depends(dependencies.get_current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return StandardResponse(data=await _get_template_or_404(db, template_id))


@router.post("", response_model=StandardResponse[BenchmarkTemplateRead], status_code=status.HTTP_201_CREATED)
async def create_benchmark_template(
    template_in: BenchmarkTemplateCreate,
    current_user: Annotated[User, Depends(dependencies.get_current_trainer)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    template = BenchmarkTemplate(**template_in.model_dump())
    db.add(template)
    await db.commit()
    await db.refresh(template)
    return StandardResponse(data=template, message="Benchmark template created successfully")


@router.put("/{template_id}", response_model=StandardResponse[BenchmarkTemplateRead])
async def update_benchmark_template(
    template_id: uuid.UUID,
    template_in: BenchmarkTemplateUpdate,
    current_user: Annotated[User, Depends(dependencies.get_current_trainer)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    template = await _get_template_or_404(db, template_id)
    for field, value in template_in.model_dump(exclude_unset=True).items():
        setattr(template, field, value)
    await db.commit()
    await db.refresh(template)
    return StandardResponse(data=template, message="Benchmark template updated successfully")


@router.delete("/{template_id}", response_model=StandardResponse)
async def delete_benchmark_template(
    template_id: uuid.UUID,
    current_user: Annotated[User, Depends(dependencies.get_current_trainer)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Delete a template. Recorded client benchmarks are kept, detached from it."""
    template = await _get_template_or_404(db, template_id)
    await db.execute(
        update(ClientBenchmark).where(ClientBenchmark.template_id == template.id).values(template_id=None)
        .execution_options(synchronize_session=False)
    )
    await db.delete(template)
    await db.commit()
    return StandardResponse(message="Benchmark template deleted successfully")
