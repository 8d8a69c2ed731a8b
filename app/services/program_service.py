import logging
import uuid
from typing import Any

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFound, ValidationFailed
from app.models.client import Client
from app.models.program import Program
from app.services.program_structure import ProgramStructure
from app.services.progression import ProgressionService

logger = logging.getLogger(__name__)


class ProgramService:
    @staticmethod
    async def get_program(db: AsyncSession, gym_id: uuid.UUID, program_id: uuid.UUID) -> Program:
        program = await db.get(Program, program_id)
        if program is None or program.gym_id != gym_id:
            raise NotFound("Program not found")
        return program

    @staticmethod
    def validate_blocks(blocks: list[Any]) -> list:
        """Round-trip through the structure models so stored JSON always carries ids and types."""
        try:
            return ProgramStructure.model_validate({"blocks": blocks}).dump()
        except ValidationError as exc:
            first = exc.errors()[0]
            raise ValidationFailed(f"Invalid program structure: {first['msg']}") from exc

    @staticmethod
    async def assign_template(db: AsyncSession, template: Program, client: Client, assigned_by: uuid.UUID | None) -> Program:
        """Copy a template into a client-specific program and restart the client's progression."""
        if not template.is_template:
            raise ValidationFailed("Only template programs can be assigned")
        if client.gym_id != template.gym_id:
            raise NotFound("Client not found in this gym")

        copy = Program(
            gym_id=template.gym_id,
            name=f"{template.name} - Client Program",
            description=template.description,
            blocks=ProgramStructure.load(template.blocks).dump(),
            is_template=False,
            template_id=template.id,
            client_id=client.id,
            created_by=assigned_by,
        )
        db.add(copy)
        await db.flush()
        ProgressionService.reset_for_new_program(client, copy)
        return copy

    @staticmethod
    async def propagate_template(db: AsyncSession, template: Program) -> int:
        """Push a template's structure to its assigned copies. Copies whose clients now point
        past the end of the new shape are left for an explicit reset."""
        stmt = select(Program).where(Program.template_id == template.id, Program.is_template.is_(False))
        copies = (await db.execute(stmt)).scalars().all()
        blocks = ProgramStructure.load(template.blocks).dump()
        for copy in copies:
            copy.blocks = [dict(block) for block in blocks]
            copy.description = template.description
        logger.info("Propagated template %s to %d assigned program(s)", template.id, len(copies))
        return len(copies)
