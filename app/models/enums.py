from enum import Enum

class Role(str, Enum):
    """System-wide role of a user account."""
    ADMIN = "ADMIN"
    TRAINER = "TRAINER"
    USER = "USER"

class GymRole(str, Enum):
    """Role of a user within one gym."""
    OWNER = "OWNER"
    TRAINER = "TRAINER"
    CLIENT = "CLIENT"

class MembershipStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"

class ClientStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"

class BenchmarkType(str, Enum):
    LIFT = "LIFT"
    OTHER = "OTHER"

class ActivityType(str, Enum):
    PRIMARY_LIFT = "PRIMARY_LIFT"
    ACCESSORY_LIFT = "ACCESSORY_LIFT"
    OTHER = "OTHER"
