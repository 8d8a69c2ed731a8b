import uuid
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFound, ValidationFailed
from app.models.benchmark import BenchmarkTemplate, ClientBenchmark
from app.models.client import Client
from app.models.enums import BenchmarkType

LIFT_FIELDS = ("weight",)
OTHER_FIELDS = ("value", "unit", "measurement_notes")


def _apply_type_fields(benchmark: ClientBenchmark, data: dict[str, Any]) -> None:
    """Keep only the fields that belong to the benchmark's variant."""
    if benchmark.benchmark_type == BenchmarkType.LIFT:
        if "weight" in data:
            benchmark.weight = data["weight"]
        if benchmark.weight is None:
            raise ValidationFailed("Lift benchmarks require a weight")
        benchmark.value = benchmark.unit = benchmark.measurement_notes = None
    else:
        for key in OTHER_FIELDS:
            if key in data:
                setattr(benchmark, key, data[key])
        benchmark.weight = None


class BenchmarkService:
    @staticmethod
    async def get_template(db: AsyncSession, template_id: uuid.UUID) -> BenchmarkTemplate:
        template = await db.get(BenchmarkTemplate, template_id)
        if template is None:
            raise NotFound("Benchmark template not found")
        return template

    @staticmethod
    async def list_for_client(db: AsyncSession, client: Client, *, current: bool) -> list[ClientBenchmark]:
        stmt = (
            select(ClientBenchmark)
            .where(ClientBenchmark.client_id == client.id, ClientBenchmark.is_current.is_(current))
            .order_by(ClientBenchmark.recorded_date.desc())
        )
        return list((await db.execute(stmt)).scalars().all())

    @staticmethod
    async def get(db: AsyncSession, client: Client, benchmark_id: uuid.UUID) -> ClientBenchmark:
        benchmark = await db.get(ClientBenchmark, benchmark_id)
        if benchmark is None or benchmark.client_id != client.id:
            raise NotFound("Benchmark not found")
        return benchmark

    @staticmethod
    async def create(db: AsyncSession, client: Client, data: dict[str, Any]) -> ClientBenchmark:
        """Record a new current benchmark; a previous current entry for the same template moves to history."""
        template = None
        if data.get("template_id"):
            template = await BenchmarkService.get_template(db, data["template_id"])

        benchmark_type = data.get("benchmark_type") or (template.benchmark_type if template else None)
        if benchmark_type is None:
            raise ValidationFailed("benchmark_type is required when no template is given")
        if template is not None and benchmark_type != template.benchmark_type:
            raise ValidationFailed(
                f"benchmark_type {benchmark_type.value} does not match template type {template.benchmark_type.value}"
            )
        name = data.get("name") or (template.name if template else None)
        if not name:
            raise ValidationFailed("name is required when no template is given")

        benchmark = ClientBenchmark(
            client_id=client.id,
            template_id=template.id if template else None,
            name=name,
            benchmark_type=benchmark_type,
            notes=data.get("notes"),
            is_current=True,
        )
        if data.get("recorded_date"):
            benchmark.recorded_date = data["recorded_date"]
        _apply_type_fields(benchmark, data)

        if template is not None:
            await db.execute(
                update(ClientBenchmark)
                .where(
                    ClientBenchmark.client_id == client.id,
                    ClientBenchmark.template_id == template.id,
                    ClientBenchmark.is_current.is_(True),
                )
                .values(is_current=False)
                .execution_options(synchronize_session=False)
            )
        db.add(benchmark)
        await db.flush()
        return benchmark

    @staticmethod
    def update(benchmark: ClientBenchmark, data: dict[str, Any]) -> ClientBenchmark:
        for key in ("name", "notes", "recorded_date"):
            if data.get(key) is not None:
                setattr(benchmark, key, data[key])
        _apply_type_fields(benchmark, data)
        return benchmark

    @staticmethod
    async def delete(db: AsyncSession, benchmark: ClientBenchmark) -> ClientBenchmark | None:
        """Delete a benchmark. Returns the historical entry promoted in its place, if any."""
        promoted = None
        if benchmark.is_current and benchmark.template_id is not None:
            stmt = (
                select(ClientBenchmark)
                .where(
                    ClientBenchmark.client_id == benchmark.client_id,
                    ClientBenchmark.template_id == benchmark.template_id,
                    ClientBenchmark.is_current.is_(False),
                    ClientBenchmark.id != benchmark.id,
                )
                .order_by(ClientBenchmark.recorded_date.desc(), ClientBenchmark.created_at.desc())
            )
            promoted = (await db.execute(stmt)).scalars().first()
            if promoted is not None:
                promoted.is_current = True
        await db.delete(benchmark)
        await db.flush()
        return promoted
