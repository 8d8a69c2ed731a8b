from app.models.user import User
from app.models.auth import RefreshToken
from app.models.audit import AuditLog
from app.models.gym import Gym, GymMembership, Location
from app.models.client import Client
from app.models.program import Program, ActivityGroup, ActivityTemplate
from app.models.benchmark import BenchmarkTemplate, ClientBenchmark
from app.models.schedule import WeeklySchedule, ScheduleTimeSlot, TimeSlotEnrollment
from app.models.workout import WorkoutSession, CompletedSet


__all__ = [
    "User",
    "RefreshToken",
    "AuditLog",
    "Gym",
    "GymMembership",
    "Location",
    "Client",
    "Program",
    "ActivityGroup",
    "ActivityTemplate",
    "BenchmarkTemplate",
    "ClientBenchmark",
    "WeeklySchedule",
    "ScheduleTimeSlot",
    "TimeSlotEnrollment",
    "WorkoutSession",
    "CompletedSet",
]
