from __future__ import annotations

from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import func, select

from hull_mes.db.models.history import AuditLogEntry, WorkOrderVersion
from .base import BaseRepository


class VersionRepository(BaseRepository):
    """Repository for work order version snapshots."""

    async def max_version_number(self, work_order_id: UUID) -> int:
        stmt = select(func.max(WorkOrderVersion.version_number)).where(
            WorkOrderVersion.work_order_id == work_order_id
        )
        result = await self.execute(stmt)
        return int(result.scalar_one() or 0)

    async def get_version(self, version_id: UUID) -> Optional[WorkOrderVersion]:
        return await self.session.get(WorkOrderVersion, version_id)

    async def list_versions(self, work_order_id: UUID) -> List[WorkOrderVersion]:
        stmt = (
            select(WorkOrderVersion)
            .where(WorkOrderVersion.work_order_id == work_order_id)
            .order_by(WorkOrderVersion.version_number.desc())
        )
        res = await self.scalars(stmt)
        return list(res)


class AuditRepository(BaseRepository):
    """Repository for audit log entries."""

    async def latest_for(self, model: str, model_id: UUID, actions: Iterable[str]) -> Optional[AuditLogEntry]:
        stmt = (
            select(AuditLogEntry)
            .where(
                AuditLogEntry.model == model,
                AuditLogEntry.model_id == model_id,
                AuditLogEntry.action.in_(list(actions)),
            )
            .order_by(AuditLogEntry.created_at.desc())
            .limit(1)
        )
        return await self.scalar_one_or_none(stmt)

    async def list_for(self, model: str, model_id: UUID, limit: int = 200, offset: int = 0) -> List[AuditLogEntry]:
        stmt = (
            select(AuditLogEntry)
            .where(AuditLogEntry.model == model, AuditLogEntry.model_id == model_id)
            .order_by(AuditLogEntry.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        res = await self.scalars(stmt)
        return list(res)
