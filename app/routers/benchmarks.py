from typing import Annotated, List, Optional
from datetime import datetime
import uuid

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import GymContext, require_gym_access
from app.core.responses import GymResponse, ListResponse
from app.database import get_db
from app.models.enums import BenchmarkType
from app.services.audit_service import AuditService
from app.services.benchmark_service import BenchmarkService
from app.services.client_service import ClientService

router = APIRouter()


class BenchmarkCreate(BaseModel):
    template_id: Optional[uuid.UUID] = None
    name: Optional[str] = None
    benchmark_type: Optional[BenchmarkType] = None
    notes: Optional[str] = None
    recorded_date: Optional[datetime] = None
    weight: Optional[float] = Field(default=None, gt=0)
    value: Optional[float] = None
    unit: Optional[str] = None
    measurement_notes: Optional[str] = None


class BenchmarkUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    notes: Optional[str] = None
    recorded_date: Optional[datetime] = None
    weight: Optional[float] = Field(default=None, gt=0)
    value: Optional[float] = None
    unit: Optional[str] = None
    measurement_notes: Optional[str] = None


class BenchmarkRead(BaseModel):
    id: uuid.UUID
    client_id: uuid.UUID
    template_id: Optional[uuid.UUID] = None
    name: str
    benchmark_type: BenchmarkType
    notes: Optional[str] = None
    weight: Optional[float] = None
    value: Optional[float] = None
    unit: Optional[str] = None
    measurement_notes: Optional[str] = None
    recorded_date: datetime
    is_current: bool

    class Config:
        from_attributes = True


@router.get("", response_model=ListResponse[List[BenchmarkRead]])
async def list_current_benchmarks(
    client_id: uuid.UUID,
    ctx: Annotated[GymContext, Depends(require_gym_access)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    client = await ClientService.get_accessible_client(db, ctx, client_id)
    benchmarks = await BenchmarkService.list_for_client(db, client, current=True)
    return ListResponse(data=benchmarks, count=len(benchmarks), meta=ctx.meta(client_id=str(client.id)))


@router.get("/history", response_model=ListResponse[List[BenchmarkRead]])
async def list_historical_benchmarks(
    client_id: uuid.UUID,
    ctx: Annotated[GymContext, Depends(require_gym_access)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    client = await ClientService.get_accessible_client(db, ctx, client_id)
    benchmarks = await BenchmarkService.list_for_client(db, client, current=False)
    return ListResponse(data=benchmarks, count=len(benchmarks), meta=ctx.meta(client_id=str(client.id)))


@router.get("/{benchmark_id}", response_model=GymResponse[BenchmarkRead])
async def get_benchmark(
    client_id: uuid.UUID,
    benchmark_id: uuid.UUID,
    ctx: Annotated[GymContext, Depends(require_gym_access)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    client = await ClientService.get_accessible_client(db, ctx, client_id)
    return GymResponse(data=await BenchmarkService.get(db, client, benchmark_id), meta=ctx.meta())


@router.post("", response_model=GymResponse[BenchmarkRead], status_code=status.HTTP_201_CREATED)
async def create_benchmark(
    client_id: uuid.UUID,
    benchmark_in: BenchmarkCreate,
    ctx: Annotated[GymContext, Depends(require_gym_access)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    client = await ClientService.get_accessible_client(db, ctx, client_id)
    benchmark = await BenchmarkService.create(db, client, benchmark_in.model_dump(exclude_unset=True))
    await AuditService.log_action(
        db,
        user_id=ctx.user.id,
        gym_id=ctx.gym_id,
        action="RECORD_BENCHMARK",
        target_id=str(client.id),
        details=f"{benchmark.name}: {benchmark.weight if benchmark.weight is not None else benchmark.value}",
    )
    await db.commit()
    await db.refresh(benchmark)
    return GymResponse(data=benchmark, meta=ctx.meta(), message="Benchmark recorded successfully")


@router.put("/{benchmark_id}", response_model=GymResponse[BenchmarkRead])
async def update_benchmark(
    client_id: uuid.UUID,
    benchmark_id: uuid.UUID,
    benchmark_in: BenchmarkUpdate,
    ctx: Annotated[GymContext, Depends(require_gym_access)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    client = await ClientService.get_accessible_client(db, ctx, client_id)
    benchmark = await BenchmarkService.get(db, client, benchmark_id)
    BenchmarkService.update(benchmark, benchmark_in.model_dump(exclude_unset=True))
    await db.commit()
    await db.refresh(benchmark)
    return GymResponse(data=benchmark, meta=ctx.meta(), message="Benchmark updated successfully")


@router.delete("/{benchmark_id}", response_model=GymResponse)
async def delete_benchmark(
    client_id: uuid.UUID,
    benchmark_id: uuid.UUID,
    ctx: Annotated[GymContext, Depends(require_gym_access)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Delete a benchmark; the latest historical entry for the same template becomes current."""
    client = await ClientService.get_accessible_client(db, ctx, client_id)
    benchmark = await BenchmarkService.get(db, client, benchmark_id)
    promoted = await BenchmarkService.delete(db, benchmark)
    await db.commit()
    return GymResponse(
        meta=ctx.meta(promoted_benchmark_id=str(promoted.id) if promoted else None),
        message="Benchmark deleted successfully",
    )
