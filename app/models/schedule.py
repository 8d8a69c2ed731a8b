import uuid
from datetime import datetime, date, timezone
from sqlalchemy import (
    String, ForeignKey, DateTime, Date, Boolean, Integer, Text, UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.database import Base


class WeeklySchedule(Base):
    __tablename__ = "weekly_schedules"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    gym_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("gyms.id"), nullable=False, index=True)
    coach_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_template: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    template_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("weekly_schedules.id", ondelete="SET NULL"), nullable=True, index=True
    )
    week_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    coach = relationship("User")
    time_slots = relationship(
        "ScheduleTimeSlot",
        back_populates="schedule",
        cascade="all, delete-orphan",
        order_by=lambda: [ScheduleTimeSlot.day_of_week, ScheduleTimeSlot.position],
    )


class ScheduleTimeSlot(Base):
    __tablename__ = "schedule_time_slots"
    __table_args__ = (
        CheckConstraint("day_of_week >= 0 AND day_of_week <= 6", name="ck_time_slot_day_of_week"),
        CheckConstraint("enrolled_count <= max_capacity", name="ck_time_slot_capacity"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    schedule_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("weekly_schedules.id", ondelete="CASCADE"), nullable=False, index=True
    )
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)  # 0 = Sunday
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    max_capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    enrolled_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    location_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("locations.id"), nullable=False, index=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    activity_type: Mapped[str | None] = mapped_column(String, nullable=True)

    schedule = relationship("WeeklySchedule", back_populates="time_slots")
    location = relationship("Location")
    enrollments = relationship(
        "TimeSlotEnrollment",
        back_populates="time_slot",
        cascade="all, delete-orphan",
        order_by="TimeSlotEnrollment.enrolled_at",
    )


class TimeSlotEnrollment(Base):
    __tablename__ = "time_slot_enrollments"
    __table_args__ = (UniqueConstraint("time_slot_id", "client_id", name="uq_time_slot_enrollment"),)

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    time_slot_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("schedule_time_slots.id", ondelete="CASCADE"), nullable=False, index=True
    )
    client_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    enrolled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )

    time_slot = relationship("ScheduleTimeSlot", back_populates="enrollments")
