import uuid
from datetime import datetime, timezone
from sqlalchemy import String, ForeignKey, DateTime, Boolean, Float, Text, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.database import Base
from app.models.enums import BenchmarkType


class BenchmarkTemplate(Base):
    __tablename__ = "benchmark_templates"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    benchmark_type: Mapped[BenchmarkType] = mapped_column(SAEnum(BenchmarkType, native_enum=False), nullable=False)
    tags: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )


class ClientBenchmark(Base):
    """One recorded result. is_current marks the latest entry per (client, template); older ones are history."""

    __tablename__ = "client_benchmarks"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    client_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    template_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("benchmark_templates.id", ondelete="SET NULL"), nullable=True, index=True
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    benchmark_type: Mapped[BenchmarkType] = mapped_column(SAEnum(BenchmarkType, native_enum=False), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    # LIFT
    weight: Mapped[float | None] = mapped_column(Float, nullable=True)
    # OTHER
    value: Mapped[float | None] = mapped_column(Float, nullable=True)
    unit: Mapped[str | None] = mapped_column(String, nullable=True)
    measurement_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    recorded_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )
    is_current: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )

    template = relationship("BenchmarkTemplate")
