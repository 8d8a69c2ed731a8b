from datetime import datetime, timezone
import uuid
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from app.models.audit import AuditLog

class AuditService:
    @staticmethod
    async def log_action(
        db: AsyncSession,
        user_id: uuid.UUID | None,
        action: str,
        target_id: str | None = None,
        details: str | None = None,
        gym_id: uuid.UUID | None = None,
    ):
        """
        Record an audit event in the caller's transaction.

        Nothing is committed here; the entry lands together with the change it describes.
        """
        db.add(
            AuditLog(
                user_id=user_id,
                gym_id=gym_id,
                action=action,
                target_id=target_id,
                details=details,
                timestamp=datetime.now(timezone.utc),
            )
        )

    @staticmethod
    async def list_for_gym(
        db: AsyncSession,
        gym_id: uuid.UUID,
        *,
        action: str | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[AuditLog]:
        stmt = select(AuditLog).where(AuditLog.gym_id == gym_id)
        if action:
            stmt = stmt.where(AuditLog.action == action)
        stmt = stmt.order_by(AuditLog.timestamp.desc()).offset(skip).limit(limit)
        return list((await db.execute(stmt)).scalars().all())
