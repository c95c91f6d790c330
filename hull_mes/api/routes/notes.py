from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from hull_mes.core.authorization import Actor
from hull_mes.core.deps import get_current_actor, get_selected_department, get_session
from hull_mes.schemas.common import MessageResponse
from hull_mes.schemas.work_orders import WorkOrderNoteRead, WorkOrderNoteUpdate
from hull_mes.services.notes import WorkOrderNoteService

router = APIRouter(prefix="/notes", tags=["Notes"])


# PUBLIC_INTERFACE
@router.put("/{note_id}", response_model=WorkOrderNoteRead, summary="Edit note")
async def update_note(
    payload: WorkOrderNoteUpdate,
    note_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    department_id: Optional[UUID] = Depends(get_selected_department),
) -> WorkOrderNoteRead:
    return await WorkOrderNoteService(session).update_note(actor, note_id, payload, department_id)


# PUBLIC_INTERFACE
@router.delete("/{note_id}", response_model=MessageResponse, summary="Delete note")
async def delete_note(
    note_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    department_id: Optional[UUID] = Depends(get_selected_department),
) -> MessageResponse:
    await WorkOrderNoteService(session).delete_note(actor, note_id, department_id)
    return MessageResponse(message="Note deleted")
