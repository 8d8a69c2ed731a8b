import logging
import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import DataIntegrityError, DomainError, NotFound, ValidationFailed
from app.models.benchmark import ClientBenchmark
from app.models.client import Client
from app.models.enums import ClientStatus
from app.models.gym import Gym
from app.models.program import Program
from app.services.audit_service import AuditService
from app.services.program_structure import Day, LiftActivity, ProgramStructure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Position:
    block: int
    week: int


@dataclass(frozen=True)
class AdvanceOutcome:
    position: Position
    program_restarted: bool


def advance_position(
    week_counts: Sequence[int],
    current: Position,
    block_increment: int = 0,
    week_increment: int = 1,
) -> AdvanceOutcome:
    """Move a (block, week) pointer forward through blocks of varying length.

    Surplus weeks carry into the following blocks, each block using its own week
    count as radix. Running off the end of the program restarts it at (0, 0).
    """
    new_block = current.block + block_increment
    new_week = current.week + week_increment

    while 0 <= new_block < len(week_counts):
        weeks_in_block = week_counts[new_block]
        if weeks_in_block == 0:
            raise DataIntegrityError(f"Invalid program structure: Block {new_block} has no weeks")
        if new_week < weeks_in_block:
            break
        new_week -= weeks_in_block
        new_block += 1

    program_restarted = False
    if new_block >= len(week_counts):
        new_block, new_week = 0, 0
        program_restarted = True

    return AdvanceOutcome(Position(max(new_block, 0), max(new_week, 0)), program_restarted)


def validate_reset_target(week_counts: Sequence[int], block: int, week: int) -> Position:
    if block < 0 or block >= len(week_counts):
        raise ValidationFailed(f"Invalid target block: {block}. Program has {len(week_counts)} blocks.")
    if week < 0 or week >= week_counts[block]:
        raise ValidationFailed(
            f"Invalid target week: {week}. Block {block} has {week_counts[block]} weeks."
        )
    return Position(block, week)


def recommended_weight(benchmark_weight: float | None, percent_of_max: float | None) -> float | None:
    """Working weight for a percentage-of-max target; values above 1 are whole percentages."""
    if benchmark_weight is None or percent_of_max is None:
        return None
    fraction = percent_of_max / 100 if percent_of_max > 1 else percent_of_max
    return round(benchmark_weight * fraction, 2)


def annotate_day(day: Day, weights_by_template: dict[str, float]) -> list[dict]:
    """Serialise a day's activities, adding recommended_weight where a current benchmark exists."""
    annotated = []
    for activity in day.activities():
        payload = activity.model_dump(mode="json")
        if isinstance(activity, LiftActivity) and activity.benchmark_template_id:
            weight = recommended_weight(
                weights_by_template.get(activity.benchmark_template_id), activity.percent_of_max
            )
            if weight is not None:
                payload["recommended_weight"] = weight
        annotated.append(payload)
    return annotated


@dataclass
class ProgressionResult:
    client_id: str
    previous_block: int
    previous_week: int
    new_block: int
    new_week: int
    program_restarted: bool


@dataclass
class BulkProgressionSummary:
    total_clients: int = 0
    successful_updates: int = 0
    failed_updates: int = 0
    results: list[dict] = field(default_factory=list)
    errors: list[dict] = field(default_factory=list)

    def as_dict(self) -> dict:
        return asdict(self)


class ProgressionService:
    @staticmethod
    async def load_program(db: AsyncSession, client: Client) -> tuple[Program, ProgramStructure]:
        if client.program_id is None:
            raise NotFound("Client has no assigned program")
        program = await db.get(Program, client.program_id)
        if program is None:
            raise NotFound("Assigned program not found")
        return program, ProgramStructure.load(program.blocks)

    @staticmethod
    async def current_benchmark_weights(db: AsyncSession, client_id: uuid.UUID) -> dict[str, float]:
        stmt = select(ClientBenchmark).where(
            ClientBenchmark.client_id == client_id,
            ClientBenchmark.is_current.is_(True),
            ClientBenchmark.template_id.is_not(None),
            ClientBenchmark.weight.is_not(None),
        )
        rows = (await db.execute(stmt)).scalars().all()
        return {str(row.template_id): row.weight for row in rows}

    @staticmethod
    async def progress_client(
        db: AsyncSession,
        client: Client,
        block_increment: int = 0,
        week_increment: int = 1,
    ) -> ProgressionResult:
        _, structure = await ProgressionService.load_program(db, client)
        if not structure.blocks:
            raise DataIntegrityError("Invalid program structure: program has no blocks")

        previous = Position(client.current_block, client.current_week)
        outcome = advance_position(structure.week_counts, previous, block_increment, week_increment)

        client.current_block = outcome.position.block
        client.current_week = outcome.position.week
        client.last_progression_update = datetime.now(timezone.utc)

        return ProgressionResult(
            client_id=str(client.id),
            previous_block=previous.block,
            previous_week=previous.week,
            new_block=outcome.position.block,
            new_week=outcome.position.week,
            program_restarted=outcome.program_restarted,
        )

    @staticmethod
    async def reset_client(db: AsyncSession, client: Client, block: int = 0, week: int = 0) -> Position:
        _, structure = await ProgressionService.load_program(db, client)
        target = validate_reset_target(structure.week_counts, block, week)
        client.current_block = target.block
        client.current_week = target.week
        client.last_progression_update = datetime.now(timezone.utc)
        return target

    @staticmethod
    def reset_for_new_program(client: Client, program: Program) -> None:
        client.program_id = program.id
        client.current_block = 0
        client.current_week = 0
        client.program_start_date = datetime.now(timezone.utc)
        client.last_progression_update = None

    @staticmethod
    async def get_current_workout(db: AsyncSession, client: Client) -> dict:
        program, structure = await ProgressionService.load_program(db, client)
        block = structure.block_at(client.current_block)
        week = structure.week_at(client.current_block, client.current_week)
        weights = await ProgressionService.current_benchmark_weights(db, client.id)
        first_day = week.days[0]

        return {
            "client_id": str(client.id),
            "program_id": str(program.id),
            "program_name": program.name,
            "current_block": client.current_block,
            "current_week": client.current_week,
            "block": {"id": block.id, "name": block.name},
            "week": {"id": week.id, "name": week.name},
            "day": {"id": first_day.id, "name": first_day.name, "activities": annotate_day(first_day, weights)},
            "progression": {
                "block": client.current_block,
                "week": client.current_week,
                "block_name": block.name or f"Block {client.current_block + 1}",
                "week_name": week.name or f"Week {client.current_week + 1}",
                "total_blocks": len(structure.blocks),
                "total_weeks_in_block": len(block.weeks),
            },
            "last_progression_update": client.last_progression_update,
        }

    @staticmethod
    async def _clients_with_program(db: AsyncSession, gym_id: uuid.UUID | None = None) -> list[Client]:
        stmt = select(Client).where(
            Client.membership_status == ClientStatus.ACTIVE,
            Client.program_id.is_not(None),
        )
        if gym_id is not None:
            stmt = stmt.where(Client.gym_id == gym_id)
        return list((await db.execute(stmt.order_by(Client.created_at))).scalars().all())

    @staticmethod
    async def bulk_progress(
        db: AsyncSession,
        gym_id: uuid.UUID,
        block_increment: int = 0,
        week_increment: int = 1,
    ) -> BulkProgressionSummary:
        """Advance every active client of a gym; one client's failure never stops the rest."""
        clients = await ProgressionService._clients_with_program(db, gym_id)
        summary = BulkProgressionSummary(total_clients=len(clients))

        for client in clients:
            try:
                result = await ProgressionService.progress_client(db, client, block_increment, week_increment)
            except DomainError as exc:
                summary.failed_updates += 1
                summary.errors.append({"client_id": str(client.id), "error": exc.message})
                logger.warning("Progression failed for client %s in gym %s: %s", client.id, gym_id, exc.message)
                continue
            summary.successful_updates += 1
            summary.results.append(asdict(result))

        logger.info(
            "Bulk progression for gym %s: %d/%d clients advanced",
            gym_id,
            summary.successful_updates,
            summary.total_clients,
        )
        return summary

    @staticmethod
    async def weekly_auto_progression(db: AsyncSession) -> dict[str, BulkProgressionSummary]:
        """Advance every active client in every active gym by one week and commit per gym."""
        gym_ids = (await db.execute(select(Gym.id).where(Gym.is_active.is_(True)))).scalars().all()
        summaries: dict[str, BulkProgressionSummary] = {}
        for gym_id in gym_ids:
            summary = await ProgressionService.bulk_progress(db, gym_id, 0, 1)
            await AuditService.log_action(
                db,
                user_id=None,
                gym_id=gym_id,
                action="WEEKLY_AUTO_PROGRESSION",
                target_id=str(gym_id),
                details=f"{summary.successful_updates} advanced, {summary.failed_updates} failed",
            )
            await db.commit()
            summaries[str(gym_id)] = summary

        logger.info("Weekly auto-progression finished for %d gym(s)", len(summaries))
        return summaries
