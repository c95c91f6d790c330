from __future__ import annotations

from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import or_, select

from hull_mes.core.enums import WOStatus
from hull_mes.db.models.production import StageEvent, WorkOrder
from .base import BaseRepository


class WorkOrderRepository(BaseRepository):
    """Repository for work orders."""

    async def get_work_order(self, wo_id: UUID, *, for_update: bool = False) -> Optional[WorkOrder]:
        """
        Load a work order. With for_update the row is locked (SELECT ... FOR UPDATE
        on PostgreSQL) and re-read from the database, so transitions validate
        against the freshest state.
        """
        stmt = select(WorkOrder).where(WorkOrder.id == wo_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return await self.scalar_one_or_none(stmt)

    async def get_by_number(self, number: str) -> Optional[WorkOrder]:
        stmt = select(WorkOrder).where(WorkOrder.number == number)
        return await self.scalar_one_or_none(stmt)

    async def find(self, query: str) -> Optional[WorkOrder]:
        """Exact match on work order number first, then on hull id (newest first)."""
        found = await self.get_by_number(query)
        if found:
            return found
        stmt = select(WorkOrder).where(WorkOrder.hull_id == query).order_by(WorkOrder.created_at.desc()).limit(1)
        return await self.scalar_one_or_none(stmt)

    async def list_work_orders(
        self, *, status: Optional[WOStatus], search: Optional[str], limit: int, offset: int
    ) -> List[WorkOrder]:
        stmt = select(WorkOrder)
        if status:
            stmt = stmt.where(WorkOrder.status == status)
        if search:
            like = f"%{search}%"
            stmt = stmt.where(or_(WorkOrder.number.ilike(like), WorkOrder.hull_id.ilike(like)))
        stmt = stmt.order_by(WorkOrder.created_at.desc()).offset(offset).limit(limit)
        res = await self.scalars(stmt)
        return list(res)

    async def list_by_statuses(self, statuses: Iterable[WOStatus]) -> List[WorkOrder]:
        stmt = select(WorkOrder).where(WorkOrder.status.in_(list(statuses))).order_by(WorkOrder.created_at.asc())
        res = await self.scalars(stmt)
        return list(res)


class StageEventRepository(BaseRepository):
    """Repository for the append-only stage event ledger."""

    async def list_for_work_order(self, work_order_id: UUID) -> List[StageEvent]:
        """Events newest first; ties on timestamp keep insertion-independent order by id."""
        stmt = (
            select(StageEvent)
            .where(StageEvent.work_order_id == work_order_id)
            .order_by(StageEvent.created_at.desc(), StageEvent.id)
        )
        res = await self.scalars(stmt)
        return list(res)

    async def latest_for_work_order(self, work_order_id: UUID) -> Optional[StageEvent]:
        stmt = (
            select(StageEvent)
            .where(StageEvent.work_order_id == work_order_id)
            .order_by(StageEvent.created_at.desc())
            .limit(1)
        )
        return await self.scalar_one_or_none(stmt)
