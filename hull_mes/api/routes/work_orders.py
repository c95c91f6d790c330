from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from hull_mes.core.authorization import Actor
from hull_mes.core.deps import get_current_actor, get_selected_department, get_session
from hull_mes.core.enums import WOStatus
from hull_mes.schemas.work_orders import (
    ActionResult,
    AuditEntryRead,
    CancelRequest,
    HoldRequest,
    ManualVersionRequest,
    RestoreRequest,
    StageActionRequest,
    StageCompleteRequest,
    StageEventRead,
    VersionRead,
    WorkOrderCreate,
    WorkOrderDetail,
    WorkOrderNoteCreate,
    WorkOrderNoteRead,
    WorkOrderRead,
    WorkOrderUpdate,
)
from hull_mes.services.lifecycle import LifecycleService
from hull_mes.services.notes import WorkOrderNoteService
from hull_mes.services.queries import WorkOrderQueryService

router = APIRouter(prefix="/work-orders", tags=["Work Orders"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[WorkOrderRead],
    summary="List work orders",
    description="List work orders ordered by created_at desc, optionally filtered by status or number/hull search.",
)
async def list_work_orders(
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    status_filter: Optional[WOStatus] = Query(None, alias="status", description="Filter by status"),
    search: Optional[str] = Query(None, description="Substring of work order number or hull id"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[WorkOrderRead]:
    items = await WorkOrderQueryService(session).list_work_orders(
        status=status_filter, search=search, limit=limit, offset=offset
    )
    return [WorkOrderRead.model_validate(x) for x in items]


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=ActionResult,
    status_code=status.HTTP_201_CREATED,
    summary="Create work order",
    description="Create a PLANNED work order against a routing definition. Supervisors and admins only.",
)
async def create_work_order(
    payload: WorkOrderCreate,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
) -> ActionResult:
    return await LifecycleService(session).create_work_order(actor, payload)


# PUBLIC_INTERFACE
@router.get(
    "/find",
    response_model=WorkOrderRead,
    summary="Find work order",
    description="Find a work order by exact number or hull id.",
)
async def find_work_order(
    q: str = Query(..., min_length=1, description="Work order number or hull id"),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
) -> WorkOrderRead:
    wo = await WorkOrderQueryService(session).find_work_order(q)
    return WorkOrderRead.model_validate(wo)


# PUBLIC_INTERFACE
@router.post(
    "/start",
    response_model=ActionResult,
    summary="Start stage work",
    description="Log a START at a station for the work order's current stage.",
)
async def start_work_order(
    payload: StageActionRequest,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    department_id: Optional[UUID] = Depends(get_selected_department),
) -> ActionResult:
    return await LifecycleService(session).start(actor, payload, department_id)


# PUBLIC_INTERFACE
@router.post(
    "/pause",
    response_model=ActionResult,
    summary="Pause stage work",
    description="Log a PAUSE at a station and put the work order on hold.",
)
async def pause_work_order(
    payload: StageActionRequest,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    department_id: Optional[UUID] = Depends(get_selected_department),
) -> ActionResult:
    return await LifecycleService(session).pause(actor, payload, department_id)


# PUBLIC_INTERFACE
@router.post(
    "/complete",
    response_model=ActionResult,
    summary="Complete stage",
    description="Log a COMPLETE with good/scrap quantities and advance to the next stage or finish the order.",
)
async def complete_work_order(
    payload: StageCompleteRequest,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    department_id: Optional[UUID] = Depends(get_selected_department),
) -> ActionResult:
    return await LifecycleService(session).complete(actor, payload, department_id)


# PUBLIC_INTERFACE
@router.get(
    "/{wo_id}",
    response_model=WorkOrderDetail,
    summary="Get work order detail",
    description="Work order with current stage, stage list, timeline and notes. Operators see only their department's orders.",
)
async def get_work_order(
    wo_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    department_id: Optional[UUID] = Depends(get_selected_department),
) -> WorkOrderDetail:
    return await WorkOrderQueryService(session).get_work_order_detail(actor, wo_id, department_id)


# PUBLIC_INTERFACE
@router.patch(
    "/{wo_id}",
    response_model=ActionResult,
    summary="Update work order",
    description="Edit hull, SKU, quantity, priority or planned dates. Hull, SKU and quantity are frozen once active.",
)
async def update_work_order(
    payload: WorkOrderUpdate,
    wo_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
) -> ActionResult:
    return await LifecycleService(session).update(actor, wo_id, payload)


# PUBLIC_INTERFACE
@router.post("/{wo_id}/release", response_model=ActionResult, summary="Release work order")
async def release_work_order(
    wo_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
) -> ActionResult:
    return await LifecycleService(session).release(actor, wo_id)


# PUBLIC_INTERFACE
@router.post("/{wo_id}/hold", response_model=ActionResult, summary="Place work order on hold")
async def hold_work_order(
    payload: HoldRequest,
    wo_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
) -> ActionResult:
    return await LifecycleService(session).hold(actor, wo_id, payload.reason)


# PUBLIC_INTERFACE
@router.post("/{wo_id}/unhold", response_model=ActionResult, summary="Remove work order from hold")
async def unhold_work_order(
    wo_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
) -> ActionResult:
    return await LifecycleService(session).unhold(actor, wo_id)


# PUBLIC_INTERFACE
@router.post("/{wo_id}/cancel", response_model=ActionResult, summary="Cancel work order")
async def cancel_work_order(
    payload: Optional[CancelRequest] = None,
    wo_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
) -> ActionResult:
    reason = payload.reason if payload else None
    return await LifecycleService(session).cancel(actor, wo_id, reason)


# PUBLIC_INTERFACE
@router.post("/{wo_id}/uncancel", response_model=ActionResult, summary="Uncancel work order")
async def uncancel_work_order(
    wo_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
) -> ActionResult:
    return await LifecycleService(session).uncancel(actor, wo_id)


# PUBLIC_INTERFACE
@router.post("/{wo_id}/close", response_model=ActionResult, summary="Close completed work order")
async def close_work_order(
    wo_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
) -> ActionResult:
    return await LifecycleService(session).close(actor, wo_id)


# PUBLIC_INTERFACE
@router.post(
    "/{wo_id}/restore",
    response_model=ActionResult,
    summary="Restore from version",
    description="Overwrite the work order from one of its versions; the restore itself becomes a new version.",
)
async def restore_work_order(
    payload: RestoreRequest,
    wo_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
) -> ActionResult:
    return await LifecycleService(session).restore_version(actor, wo_id, payload.version_id)


# PUBLIC_INTERFACE
@router.get("/{wo_id}/versions", response_model=List[VersionRead], summary="List versions")
async def list_versions(
    wo_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    department_id: Optional[UUID] = Depends(get_selected_department),
) -> List[VersionRead]:
    items = await WorkOrderQueryService(session).list_versions(actor, wo_id, department_id)
    return [VersionRead.model_validate(x) for x in items]


# PUBLIC_INTERFACE
@router.post(
    "/{wo_id}/versions",
    response_model=VersionRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create checkpoint version",
)
async def create_version(
    payload: ManualVersionRequest,
    wo_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
) -> VersionRead:
    version = await LifecycleService(session).create_manual_version(actor, wo_id, payload.reason)
    return VersionRead.model_validate(version)


# PUBLIC_INTERFACE
@router.get("/{wo_id}/audit", response_model=List[AuditEntryRead], summary="List audit entries")
async def list_audit_entries(
    wo_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    limit: int = Query(200, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[AuditEntryRead]:
    items = await WorkOrderQueryService(session).list_audit_entries(actor, wo_id, limit=limit, offset=offset)
    return [AuditEntryRead.model_validate(x) for x in items]


# PUBLIC_INTERFACE
@router.get("/{wo_id}/events", response_model=List[StageEventRead], summary="List stage events")
async def list_stage_events(
    wo_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    department_id: Optional[UUID] = Depends(get_selected_department),
) -> List[StageEventRead]:
    items = await WorkOrderQueryService(session).list_stage_events(actor, wo_id, department_id)
    return [StageEventRead.model_validate(x) for x in items]


# PUBLIC_INTERFACE
@router.get(
    "/{wo_id}/notes",
    response_model=List[WorkOrderNoteRead],
    summary="List notes",
    description="Notes visible to the caller, newest first. Operators see GENERAL notes and their department's notes.",
)
async def list_notes(
    wo_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    department_id: Optional[UUID] = Depends(get_selected_department),
) -> List[WorkOrderNoteRead]:
    return await WorkOrderNoteService(session).list_notes(actor, wo_id, department_id)


# PUBLIC_INTERFACE
@router.post(
    "/{wo_id}/notes",
    response_model=WorkOrderNoteRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add note",
)
async def add_note(
    payload: WorkOrderNoteCreate,
    wo_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    department_id: Optional[UUID] = Depends(get_selected_department),
) -> WorkOrderNoteRead:
    return await WorkOrderNoteService(session).add_note(actor, wo_id, payload, department_id)
