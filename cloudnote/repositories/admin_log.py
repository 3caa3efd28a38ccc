"""
Admin Log Repository.

Append and read queries for the admin audit trail.
"""

from sqlalchemy import select

from cloudnote.models.admin_log import AdminLog
from cloudnote.repositories.base import BaseRepository


class AdminLogRepository(BaseRepository[AdminLog]):
    """Repository for AdminLog model. Entries are never updated or deleted."""

    model = AdminLog

    async def recent(self, limit: int = 100) -> list[AdminLog]:
        """Newest entries first."""
        result = await self.session.execute(
            select(AdminLog)
            .order_by(AdminLog.timestamp.desc(), AdminLog.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
