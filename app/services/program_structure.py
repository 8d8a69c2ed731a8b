"""Typed view over a program's nested blocks -> weeks -> days -> activities.

Programs persist their structure as JSON; these models validate it on write and
give the progression engine bounds-checked access on read.
"""
import uuid
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from app.core.exceptions import DataIntegrityError
from app.models.enums import ActivityType


def _new_id() -> str:
    return uuid.uuid4().hex


class _ActivityBase(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str = Field(min_length=1)
    notes: Optional[str] = None
    activity_template_id: Optional[str] = None


class LiftActivity(_ActivityBase):
    percent_of_max: Optional[float] = Field(default=None, ge=0, le=100)
    sets: int = Field(default=1, ge=1)
    repetitions: int = Field(default=1, ge=1)
    benchmark_template_id: Optional[str] = None


class PrimaryLiftActivity(LiftActivity):
    activity_type: Literal["PRIMARY_LIFT"] = ActivityType.PRIMARY_LIFT.value


class AccessoryLiftActivity(LiftActivity):
    activity_type: Literal["ACCESSORY_LIFT"] = ActivityType.ACCESSORY_LIFT.value


class OtherActivity(_ActivityBase):
    activity_type: Literal["OTHER"] = ActivityType.OTHER.value
    measurement_notes: Optional[str] = None
    sets: int = Field(default=1, ge=1)


Activity = Annotated[
    Union[PrimaryLiftActivity, AccessoryLiftActivity, OtherActivity],
    Field(discriminator="activity_type"),
]


class Day(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: Optional[str] = None
    primary_lift_activities: List[PrimaryLiftActivity] = []
    accessory_lift_activities: List[AccessoryLiftActivity] = []
    other_activities: List[OtherActivity] = []

    def activities(self) -> List[Activity]:
        return [*self.primary_lift_activities, *self.accessory_lift_activities, *self.other_activities]

    def find_activity(self, activity_id: str) -> Activity | None:
        return next((a for a in self.activities() if a.id == activity_id), None)


class Week(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: Optional[str] = None
    days: List[Day] = Field(min_length=1)


class Block(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: Optional[str] = None
    weeks: List[Week] = Field(min_length=1)


class ProgramStructure(BaseModel):
    blocks: List[Block] = []

    @field_validator("blocks")
    @classmethod
    def _unique_activity_ids(cls, blocks: List[Block]) -> List[Block]:
        for block in blocks:
            for week in block.weeks:
                for day in week.days:
                    ids = [a.id for a in day.activities()]
                    if len(ids) != len(set(ids)):
                        raise ValueError("Activity ids must be unique within a day")
        return blocks

    @classmethod
    def load(cls, raw_blocks: list | None) -> "ProgramStructure":
        """Parse stored JSON. Corrupt stored data is an integrity problem, not a client error."""
        try:
            return cls.model_validate({"blocks": raw_blocks or []})
        except ValidationError as exc:
            raise DataIntegrityError(f"Invalid program structure: {exc.error_count()} error(s)") from exc

    def dump(self) -> list:
        return [block.model_dump(mode="json") for block in self.blocks]

    @property
    def week_counts(self) -> list[int]:
        return [len(block.weeks) for block in self.blocks]

    def block_at(self, index: int) -> Block:
        if index < 0 or index >= len(self.blocks):
            raise DataIntegrityError("Client block progression is out of bounds")
        return self.blocks[index]

    def week_at(self, block_index: int, week_index: int) -> Week:
        block = self.block_at(block_index)
        if week_index < 0 or week_index >= len(block.weeks):
            raise DataIntegrityError("Client week progression is out of bounds")
        return block.weeks[week_index]

    def day_at(self, block_index: int, week_index: int, day_index: int) -> Day:
        week = self.week_at(block_index, week_index)
        if day_index < 0 or day_index >= len(week.days):
            raise DataIntegrityError("Workout day is out of bounds")
        return week.days[day_index]
