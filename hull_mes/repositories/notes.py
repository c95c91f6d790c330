from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import and_, or_, select

from hull_mes.core.enums import NoteScope
from hull_mes.db.models.notes import WorkOrderNote
from .base import BaseRepository


class NoteRepository(BaseRepository):
    """Repository for work order notes."""

    async def get_note(self, note_id: UUID) -> Optional[WorkOrderNote]:
        stmt = select(WorkOrderNote).where(WorkOrderNote.id == note_id)
        return await self.scalar_one_or_none(stmt)

    async def list_for_work_order(
        self, work_order_id: UUID, *, department_id: Optional[UUID] = None, all_scopes: bool = False
    ) -> List[WorkOrderNote]:
        """
        Notes of a work order, newest first. Unless all_scopes is set, only GENERAL
        notes and DEPARTMENT notes of department_id are returned.
        """
        stmt = select(WorkOrderNote).where(WorkOrderNote.work_order_id == work_order_id)
        if not all_scopes:
            stmt = stmt.where(
                or_(
                    WorkOrderNote.scope == NoteScope.GENERAL,
                    and_(
                        WorkOrderNote.scope == NoteScope.DEPARTMENT,
                        WorkOrderNote.department_id == department_id,
                    ),
                )
            )
        stmt = stmt.order_by(WorkOrderNote.created_at.desc())
        res = await self.scalars(stmt)
        return list(res)

    async def delete(self, note: WorkOrderNote) -> None:
        await self.session.delete(note)
