from __future__ import annotations

import logging
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from hull_mes.core.authorization import Actor, effective_department, require_supervisor
from hull_mes.core.enums import WOStatus
from hull_mes.core.errors import NotFoundError, ValidationFailedError
from hull_mes.db.models.history import AuditLogEntry, WorkOrderVersion
from hull_mes.db.models.production import StageEvent, WorkOrder
from hull_mes.db.models.routing import RoutingStage
from hull_mes.repositories.history import AuditRepository, VersionRepository
from hull_mes.repositories.production import StageEventRepository, WorkOrderRepository
from hull_mes.repositories.reference import ReferenceRepository
from hull_mes.schemas.work_orders import (
    DepartmentQueue,
    NoteView,
    QueueItem,
    StageEventRead,
    StageTimeline,
    StageView,
    StationView,
    TimelineEvent,
    WorkOrderDetail,
    WorkOrderProjection,
    WorkOrderRead,
)
from hull_mes.services.audit import WORK_ORDER_MODEL
from hull_mes.services.base import BaseService
from hull_mes.services.routing import (
    enabled_stages,
    ensure_can_access_work_order,
    resolve_current_stage,
    stage_department_id,
)

logger = logging.getLogger(__name__)

QUEUE_STATUSES = (WOStatus.RELEASED, WOStatus.IN_PROGRESS)


def _stage_view(stage: RoutingStage) -> StageView:
    wc = stage.work_center
    return StageView(
        id=stage.id,
        sequence=stage.sequence,
        code=stage.code,
        name=stage.name,
        work_center_id=wc.id,
        work_center_name=wc.name,
        department_id=wc.department_id,
        department_name=wc.department.name if wc.department else "",
        standard_stage_seconds=stage.standard_stage_seconds,
    )


def _projection(wo: WorkOrder) -> WorkOrderProjection:
    return WorkOrderProjection(
        id=wo.id, number=wo.number, status=wo.status, current_stage_index=wo.current_stage_index
    )


class WorkOrderQueryService(BaseService):
    """Read side: work order detail, department queues and history listings."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.wo_repo = WorkOrderRepository(session)
        self.event_repo = StageEventRepository(session)
        self.version_repo = VersionRepository(session)
        self.audit_repo = AuditRepository(session)
        self.ref_repo = ReferenceRepository(session)

    async def _get(self, wo_id: UUID) -> WorkOrder:
        wo = await self.wo_repo.get_work_order(wo_id)
        if not wo:
            raise NotFoundError("Work order")
        return wo

    # PUBLIC_INTERFACE
    async def get_work_order_detail(
        self, actor: Actor, wo_id: UUID, selected_department_id: Optional[UUID] = None
    ) -> WorkOrderDetail:
        """
        Work order with its current stage, enabled stages, per-stage timeline and notes.

        Operators only see work orders whose current stage belongs to their department.
        """
        wo = await self._get(wo_id)
        current = ensure_can_access_work_order(actor, wo, selected_department_id)
        stages = enabled_stages(wo.routing_definition.stages if wo.routing_definition else [])

        events = await self.event_repo.list_for_work_order(wo.id)
        by_stage: Dict[UUID, List[StageEvent]] = {}
        for ev in events:
            by_stage.setdefault(ev.routing_stage_id, []).append(ev)

        stage_views = {s.id: _stage_view(s) for s in stages}
        timeline = [
            StageTimeline(
                stage=stage_views[s.id],
                events=[
                    TimelineEvent(
                        id=ev.id,
                        event=ev.event,
                        station_code=ev.station.code,
                        user_email=ev.user.email,
                        good_qty=ev.good_qty,
                        scrap_qty=ev.scrap_qty,
                        note=ev.note,
                        created_at=ev.created_at,
                    )
                    for ev in by_stage.get(s.id, [])
                ],
            )
            for s in stages
        ]
        notes = [
            NoteView(
                event_id=ev.id,
                stage_code=ev.routing_stage.code,
                event=ev.event,
                user_email=ev.user.email,
                note=ev.note,
                created_at=ev.created_at,
            )
            for ev in events
            if ev.note
        ]
        return WorkOrderDetail(
            work_order=WorkOrderRead.model_validate(wo),
            current_stage=stage_views[current.id] if current else None,
            stages=list(stage_views.values()),
            timeline=timeline,
            notes=notes,
        )

    # PUBLIC_INTERFACE
    async def department_queue(
        self, actor: Actor, selected_department_id: Optional[UUID] = None
    ) -> DepartmentQueue:
        """
        RELEASED and IN_PROGRESS work orders whose current stage belongs to the
        department, IN_PROGRESS first and then oldest first.
        """
        department_id = effective_department(actor, selected_department_id)
        if department_id is None:
            raise ValidationFailedError("No department specified")

        candidates = await self.wo_repo.list_by_statuses(QUEUE_STATUSES)
        matched = []
        for wo in candidates:
            stage = resolve_current_stage(wo.routing_definition.stages, wo.current_stage_index)
            if stage is not None and stage_department_id(stage) == department_id:
                matched.append((wo, stage))
        # Candidates arrive oldest first; the stable sort keeps that order within each status.
        matched.sort(key=lambda pair: 0 if pair[0].status == WOStatus.IN_PROGRESS else 1)

        stations = await self.ref_repo.list_active_stations(list({s.work_center_id for _, s in matched}))
        stations_by_wc: Dict[UUID, List[StationView]] = {}
        for st in stations:
            stations_by_wc.setdefault(st.work_center_id, []).append(StationView.model_validate(st))

        items: List[QueueItem] = []
        for wo, stage in matched:
            last = await self.event_repo.latest_for_work_order(wo.id)
            items.append(
                QueueItem(
                    work_order=_projection(wo),
                    hull_id=wo.hull_id,
                    product_sku=wo.product_sku,
                    priority=wo.priority,
                    current_stage=_stage_view(stage),
                    last_event=StageEventRead.model_validate(last) if last else None,
                    stations=stations_by_wc.get(stage.work_center_id, []),
                )
            )
        return DepartmentQueue(
            department_id=department_id,
            items=items,
            total_ready=sum(1 for i in items if i.work_order.status == WOStatus.RELEASED),
            total_in_progress=sum(1 for i in items if i.work_order.status == WOStatus.IN_PROGRESS),
        )

    # PUBLIC_INTERFACE
    async def list_work_orders(
        self, *, status: Optional[WOStatus] = None, search: Optional[str] = None, limit: int = 100, offset: int = 0
    ) -> List[WorkOrder]:
        """List work orders, newest first, filtered by status and number/hull search."""
        return await self.wo_repo.list_work_orders(status=status, search=search, limit=limit, offset=offset)

    # PUBLIC_INTERFACE
    async def find_work_order(self, query: str) -> WorkOrder:
        """Find a work order by exact number or hull id."""
        query = (query or "").strip()
        if not query:
            raise ValidationFailedError("Search query is required")
        wo = await self.wo_repo.find(query)
        if not wo:
            raise NotFoundError("Work order")
        return wo

    # PUBLIC_INTERFACE
    async def list_versions(
        self, actor: Actor, wo_id: UUID, selected_department_id: Optional[UUID] = None
    ) -> List[WorkOrderVersion]:
        """Versions of a work order, newest first. Operators only see their department's orders."""
        ensure_can_access_work_order(actor, await self._get(wo_id), selected_department_id)
        return await self.version_repo.list_versions(wo_id)

    # PUBLIC_INTERFACE
    async def list_audit_entries(self, actor: Actor, wo_id: UUID, limit: int = 200, offset: int = 0) -> List[AuditLogEntry]:
        """Audit trail of a work order, newest first. Supervisors and admins only."""
        require_supervisor(actor)
        await self._get(wo_id)
        return await self.audit_repo.list_for(WORK_ORDER_MODEL, wo_id, limit=limit, offset=offset)

    # PUBLIC_INTERFACE
    async def list_stage_events(
        self, actor: Actor, wo_id: UUID, selected_department_id: Optional[UUID] = None
    ) -> List[StageEvent]:
        """Stage events of a work order, newest first. Same read rule as the detail view."""
        ensure_can_access_work_order(actor, await self._get(wo_id), selected_department_id)
        return await self.event_repo.list_for_work_order(wo_id)
