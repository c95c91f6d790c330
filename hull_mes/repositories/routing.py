from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select

from hull_mes.db.models.routing import RoutingDefinition, RoutingStage
from .base import BaseRepository


class RoutingRepository(BaseRepository):
    """Repository for routing definitions and their stages."""

    async def get_definition(self, definition_id: UUID, *, refresh: bool = False) -> Optional[RoutingDefinition]:
        """With refresh the row and its stages are re-read even if already in the session."""
        stmt = select(RoutingDefinition).where(RoutingDefinition.id == definition_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        return await self.scalar_one_or_none(stmt)

    async def list_definitions(
        self, *, model: Optional[str], trim: Optional[str], limit: int, offset: int
    ) -> List[RoutingDefinition]:
        stmt = select(RoutingDefinition)
        if model:
            stmt = stmt.where(RoutingDefinition.model == model)
        if trim:
            stmt = stmt.where(RoutingDefinition.trim == trim)
        stmt = (
            stmt.order_by(RoutingDefinition.model, RoutingDefinition.trim, RoutingDefinition.version.desc())
            .offset(offset)
            .limit(limit)
        )
        res = await self.scalars(stmt)
        return list(res)

    async def max_version(self, model: str, trim: Optional[str]) -> int:
        stmt = select(func.max(RoutingDefinition.version)).where(RoutingDefinition.model == model)
        if trim is None:
            stmt = stmt.where(RoutingDefinition.trim.is_(None))
        else:
            stmt = stmt.where(RoutingDefinition.trim == trim)
        result = await self.execute(stmt)
        return int(result.scalar_one() or 0)

    async def get_stage(self, definition_id: UUID, stage_id: UUID) -> Optional[RoutingStage]:
        stmt = select(RoutingStage).where(
            RoutingStage.id == stage_id, RoutingStage.routing_definition_id == definition_id
        )
        return await self.scalar_one_or_none(stmt)
