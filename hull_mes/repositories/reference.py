from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select

from hull_mes.db.models.reference import Station, WorkCenter
from .base import BaseRepository


class ReferenceRepository(BaseRepository):
    """Lookups for departments, work centers and stations."""

    async def get_work_centers(self, ids: List[UUID]) -> List[WorkCenter]:
        if not ids:
            return []
        res = await self.scalars(select(WorkCenter).where(WorkCenter.id.in_(ids)))
        return list(res)

    async def get_active_station(self, station_id: UUID, work_center_id: UUID) -> Optional[Station]:
        """Return the station only when it is active and belongs to the given work center."""
        stmt = select(Station).where(
            Station.id == station_id,
            Station.work_center_id == work_center_id,
            Station.is_active.is_(True),
        )
        return await self.scalar_one_or_none(stmt)

    async def list_active_stations(self, work_center_ids: List[UUID]) -> List[Station]:
        if not work_center_ids:
            return []
        stmt = (
            select(Station)
            .where(Station.work_center_id.in_(work_center_ids), Station.is_active.is_(True))
            .order_by(Station.code)
        )
        res = await self.scalars(stmt)
        return list(res)
