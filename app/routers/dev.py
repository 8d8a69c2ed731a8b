from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import dependencies
from app.core.responses import StandardResponse
from app.database import get_db
from app.models.user import User
from app.services.progression import ProgressionService

router = APIRouter()


@router.post("/trigger-weekly-progression", response_model=StandardResponse[dict])
async def trigger_weekly_progression(
    current_user: Annotated[User, Depends(dependencies.get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Run the weekly auto-progression job now. Mounted in development only."""
    summaries = await ProgressionService.weekly_auto_progression(db)
    return StandardResponse(
        data={gym_id: summary.as_dict() for gym_id, summary in summaries.items()},
        message="Weekly progression triggered",
    )
