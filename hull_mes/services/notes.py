from __future__ import annotations

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from hull_mes.core.authorization import Actor, Capability, effective_department, has_capability
from hull_mes.core.enums import NoteScope
from hull_mes.core.errors import NotFoundError, PermissionDeniedError, ValidationFailedError
from hull_mes.db.models.notes import WorkOrderNote
from hull_mes.db.models.production import WorkOrder
from hull_mes.repositories.notes import NoteRepository
from hull_mes.repositories.production import WorkOrderRepository
from hull_mes.schemas.work_orders import WorkOrderNoteCreate, WorkOrderNoteRead, WorkOrderNoteUpdate
from hull_mes.services.base import BaseService
from hull_mes.services.routing import ensure_can_access_work_order

logger = logging.getLogger(__name__)


def _note_read(note: WorkOrderNote) -> WorkOrderNoteRead:
    return WorkOrderNoteRead(
        id=note.id,
        work_order_id=note.work_order_id,
        user_id=note.user_id,
        user_email=note.user.email if note.user else "",
        content=note.content,
        scope=note.scope,
        department_id=note.department_id,
        department_name=note.department.name if note.department else None,
        created_at=note.created_at,
        updated_at=note.updated_at,
    )


def _content(raw: str) -> str:
    content = (raw or "").strip()
    if not content:
        raise ValidationFailedError("Note content is required")
    return content


class WorkOrderNoteService(BaseService):
    """
    Free-text notes on work orders.

    Every operation is gated by the work order read rule, so operators only
    reach notes of orders whose current stage is in their (selected)
    department. Within an order operators see GENERAL notes and the
    DEPARTMENT notes of that department; supervisors and admins see all.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.wo_repo = WorkOrderRepository(session)
        self.note_repo = NoteRepository(session)

    async def _work_order(self, actor: Actor, wo_id: UUID, selected_department_id: Optional[UUID]) -> WorkOrder:
        wo = await self.wo_repo.get_work_order(wo_id)
        if not wo:
            raise NotFoundError("Work order")
        ensure_can_access_work_order(actor, wo, selected_department_id)
        return wo

    async def _note(self, actor: Actor, note_id: UUID, selected_department_id: Optional[UUID]) -> WorkOrderNote:
        note = await self.note_repo.get_note(note_id)
        if not note:
            raise NotFoundError("Note")
        await self._work_order(actor, note.work_order_id, selected_department_id)
        return note

    # PUBLIC_INTERFACE
    async def list_notes(
        self, actor: Actor, wo_id: UUID, selected_department_id: Optional[UUID] = None
    ) -> List[WorkOrderNoteRead]:
        """Notes visible to the actor, newest first."""
        await self._work_order(actor, wo_id, selected_department_id)
        notes = await self.note_repo.list_for_work_order(
            wo_id,
            department_id=effective_department(actor, selected_department_id),
            all_scopes=has_capability(actor.role, Capability.ACT_ANY_DEPARTMENT),
        )
        return [_note_read(n) for n in notes]

    # PUBLIC_INTERFACE
    async def add_note(
        self,
        actor: Actor,
        wo_id: UUID,
        payload: WorkOrderNoteCreate,
        selected_department_id: Optional[UUID] = None,
    ) -> WorkOrderNoteRead:
        """
        Add a note. DEPARTMENT notes need a department, and operators may only
        address their own (selected) department.
        """
        content = _content(payload.content)
        department_id = None
        if payload.scope == NoteScope.DEPARTMENT:
            if payload.department_id is None:
                raise ValidationFailedError("Department ID is required for department-scoped notes")
            own_department = effective_department(actor, selected_department_id)
            if not has_capability(actor.role, Capability.ACT_ANY_DEPARTMENT) and payload.department_id != own_department:
                raise PermissionDeniedError("You can only create department notes for your own department")
            department_id = payload.department_id

        async with self.transaction():
            wo = await self._work_order(actor, wo_id, selected_department_id)
            note = WorkOrderNote(
                work_order_id=wo.id,
                user_id=actor.id,
                content=content,
                scope=payload.scope,
                department_id=department_id,
            )
            await self.note_repo.add(note)
            await self.note_repo.flush()
            await self.session.refresh(note, ["user", "department"])

        logger.info("Note %s added to work order %s (%s)", note.id, wo.number, note.scope.value)
        return _note_read(note)

    # PUBLIC_INTERFACE
    async def update_note(
        self,
        actor: Actor,
        note_id: UUID,
        payload: WorkOrderNoteUpdate,
        selected_department_id: Optional[UUID] = None,
    ) -> WorkOrderNoteRead:
        """Operators edit only their own notes; supervisors and admins edit any."""
        content = _content(payload.content)
        async with self.transaction():
            note = await self._note(actor, note_id, selected_department_id)
            if not has_capability(actor.role, Capability.ACT_ANY_DEPARTMENT):
                if note.user_id != actor.id:
                    raise PermissionDeniedError("You can only edit your own notes")
                if note.scope == NoteScope.DEPARTMENT and note.department_id != effective_department(
                    actor, selected_department_id
                ):
                    raise PermissionDeniedError("You can only edit department notes from your own department")
            note.content = content
            await self.note_repo.flush()

        logger.info("Note %s updated", note.id)
        return _note_read(note)

    # PUBLIC_INTERFACE
    async def delete_note(
        self, actor: Actor, note_id: UUID, selected_department_id: Optional[UUID] = None
    ) -> None:
        """
        Admins delete any note. Everyone else needs the note's department to be
        their own for DEPARTMENT notes, and operators may only delete their own.
        """
        async with self.transaction():
            note = await self._note(actor, note_id, selected_department_id)
            if not has_capability(actor.role, Capability.MANAGE_ALL_NOTES):
                if not has_capability(actor.role, Capability.ACT_ANY_DEPARTMENT) and note.user_id != actor.id:
                    raise PermissionDeniedError("You can only delete your own notes")
                if note.scope == NoteScope.DEPARTMENT and note.department_id != effective_department(
                    actor, selected_department_id
                ):
                    raise PermissionDeniedError("You can only delete department notes from your own department")
            await self.note_repo.delete(note)

        logger.info("Note %s deleted by %s", note_id, actor.id)
