from __future__ import annotations

import functools
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from hull_mes.core.authorization import Actor, ensure_can_act, require_supervisor
from hull_mes.core.dates import (
    check_release_dates,
    check_start_before_finish,
    check_start_not_before_today,
    ensure_utc,
)
from hull_mes.core.enums import AuditAction, RoutingStatus, StageEventKind, WOStatus, WORKABLE_STATUSES
from hull_mes.core.errors import (
    DomainError,
    DuplicateError,
    InvalidStationError,
    InvalidTransitionError,
    NoCurrentStageError,
    NotFoundError,
    ValidationFailedError,
    WorkOrderOnHoldError,
)
from hull_mes.core.settings import AppSettings, get_app_settings
from hull_mes.db.base import utcnow
from hull_mes.db.models.history import WorkOrderVersion
from hull_mes.db.models.production import StageEvent, WorkOrder
from hull_mes.db.models.reference import Station
from hull_mes.db.models.routing import RoutingDefinition, RoutingStage
from hull_mes.repositories.history import VersionRepository
from hull_mes.repositories.production import StageEventRepository, WorkOrderRepository
from hull_mes.repositories.reference import ReferenceRepository
from hull_mes.repositories.routing import RoutingRepository
from hull_mes.schemas.work_orders import (
    ActionResult,
    StageActionRequest,
    StageCompleteRequest,
    WorkOrderCreate,
    WorkOrderProjection,
    WorkOrderUpdate,
)
from hull_mes.services.audit import ROUTING_DEFINITION_MODEL, WORK_ORDER_MODEL, AuditLog
from hull_mes.services.base import BaseService
from hull_mes.services.routing import (
    enabled_stages,
    is_final_stage,
    stage_at,
    stage_department_id,
    stage_summary,
)
from hull_mes.services.versioning import VersionStore, apply_snapshot

logger = logging.getLogger(__name__)

# Statuses in which a work order may still be edited.
EDITABLE_STATUSES = frozenset(
    {WOStatus.PLANNED, WOStatus.RELEASED, WOStatus.IN_PROGRESS, WOStatus.HOLD, WOStatus.CANCELLED}
)
# Hull, SKU and quantity may only change in these statuses.
IDENTITY_EDITABLE_STATUSES = frozenset({WOStatus.PLANNED, WOStatus.CANCELLED})
IDENTITY_FIELDS = (("hull_id", "Hull"), ("product_sku", "Product SKU"), ("qty", "Quantity"))
NOT_HOLDABLE_STATUSES = frozenset({WOStatus.COMPLETED, WOStatus.CLOSED, WOStatus.CANCELLED})
NOT_CANCELLABLE_STATUSES = frozenset({WOStatus.COMPLETED, WOStatus.CLOSED})


def generate_work_order_number(now: datetime) -> str:
    """WO-<epoch milliseconds>-<random suffix>."""
    return f"WO-{int(now.timestamp() * 1000)}-{secrets.token_hex(3).upper()}"


def build_spec_snapshot(routing: RoutingDefinition, features: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Frozen product/routing context stored on the work order."""
    return {
        "model": routing.model,
        "trim": routing.trim,
        "features": features if features is not None else (routing.features or {}),
        "routing_definition_id": str(routing.id),
        "stages": [stage_summary(s) for s in enabled_stages(routing.stages)],
    }


def _lifecycle_action(name: str):
    """Log every rejected action at WARNING before propagating the error."""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            try:
                return await func(self, *args, **kwargs)
            except DomainError as exc:
                logger.warning("%s rejected (%s): %s", name, exc.error_type, exc.message)
                raise

        return wrapper

    return decorator


@dataclass
class _StageContext:
    work_order: WorkOrder
    stages: List[RoutingStage]
    stage: RoutingStage
    station: Station


class LifecycleService(BaseService):
    """
    Work-order lifecycle controller.

    Each public action runs in its own transaction: the work order row is read
    (and locked where the database supports it) inside the transaction, the
    preconditions are checked against that fresh row, and the status change,
    stage event, version and audit entries are committed together or not at all.
    """

    def __init__(
        self,
        session: AsyncSession,
        clock: Callable[[], datetime] = utcnow,
        settings: Optional[AppSettings] = None,
    ) -> None:
        super().__init__(session)
        self.clock = clock
        self.settings = settings or get_app_settings()
        self.wo_repo = WorkOrderRepository(session)
        self.event_repo = StageEventRepository(session)
        self.routing_repo = RoutingRepository(session)
        self.ref_repo = ReferenceRepository(session)
        self.version_repo = VersionRepository(session)
        self.versions = VersionStore(session)
        self.audit = AuditLog(session)

    async def _load(self, wo_id: UUID) -> WorkOrder:
        wo = await self.wo_repo.get_work_order(wo_id, for_update=True)
        if not wo:
            raise NotFoundError("Work order")
        return wo

    @staticmethod
    def _result(
        wo: WorkOrder,
        message: str,
        previous_status: Optional[WOStatus] = None,
        is_complete: Optional[bool] = None,
    ) -> ActionResult:
        return ActionResult(
            success=True,
            message=message,
            work_order=WorkOrderProjection(
                id=wo.id,
                number=wo.number,
                status=wo.status,
                current_stage_index=wo.current_stage_index,
                previous_status=previous_status,
            ),
            is_complete=is_complete,
        )

    # ------------------------------------------------------------------ create

    # PUBLIC_INTERFACE
    @_lifecycle_action("create")
    async def create_work_order(self, actor: Actor, payload: WorkOrderCreate) -> ActionResult:
        """
        Create a PLANNED work order at stage index 0 with version 1 "Initial creation".

        Raises:
            NotFoundError: unknown routing definition.
            ValidationFailedError: bad planned dates.
            DuplicateError: the work order number is taken.
        """
        require_supervisor(actor)
        now = self.clock()
        start = ensure_utc(payload.planned_start_date)
        finish = ensure_utc(payload.planned_finish_date)
        check_start_before_finish(start, finish)
        check_start_not_before_today(start, now)

        async with self.transaction():
            routing = await self.routing_repo.get_definition(payload.routing_definition_id)
            if not routing:
                raise NotFoundError("Routing definition")
            number = payload.number or generate_work_order_number(now)
            if await self.wo_repo.get_by_number(number):
                raise DuplicateError(f"Work order number {number} already exists")

            wo = WorkOrder(
                number=number,
                hull_id=payload.hull_id,
                product_sku=payload.product_sku,
                qty=payload.qty,
                priority=payload.priority,
                status=WOStatus.PLANNED,
                planned_start_date=start,
                planned_finish_date=finish,
                routing_definition=routing,
                current_stage_index=0,
                spec_snapshot=build_spec_snapshot(routing, payload.features),
            )
            await self.wo_repo.add(wo)
            await self.wo_repo.flush()
            await self.versions.create_version(wo, "Initial creation", actor.id)
            await self.audit.record(
                actor.id,
                AuditAction.CREATE,
                WORK_ORDER_MODEL,
                wo.id,
                None,
                {"number": wo.number, "hull_id": wo.hull_id, "status": wo.status},
            )

        logger.info("Created work order %s for hull %s", wo.number, wo.hull_id)
        return self._result(wo, f"Work order {wo.number} created")

    # ----------------------------------------------------------------- release

    # PUBLIC_INTERFACE
    @_lifecycle_action("release")
    async def release(self, actor: Actor, wo_id: UUID) -> ActionResult:
        """
        PLANNED -> RELEASED. Releases a DRAFT routing definition along the way and
        refreshes the spec snapshot with the enabled stages.
        """
        require_supervisor(actor)
        async with self.transaction():
            wo = await self._load(wo_id)
            if wo.status != WOStatus.PLANNED:
                raise InvalidTransitionError("Work order must be in PLANNED status to release")
            now = self.clock()
            check_release_dates(
                wo.planned_start_date, wo.planned_finish_date, now, self.settings.RELEASE_START_GRACE_DAYS
            )
            routing = wo.routing_definition
            if routing is None:
                raise NotFoundError("Routing definition")
            if not enabled_stages(routing.stages):
                raise ValidationFailedError("Routing definition has no enabled stages")

            if routing.status == RoutingStatus.DRAFT:
                routing.status = RoutingStatus.RELEASED
                routing.released_at = now
                await self.audit.record(
                    actor.id,
                    AuditAction.RELEASE,
                    ROUTING_DEFINITION_MODEL,
                    routing.id,
                    {"status": RoutingStatus.DRAFT},
                    {"status": RoutingStatus.RELEASED, "released_at": now},
                )

            spec = build_spec_snapshot(routing, (wo.spec_snapshot or {}).get("features"))
            wo.spec_snapshot = spec
            wo.status = WOStatus.RELEASED
            # A (re-)release restarts the routing at its first enabled stage, also after
            # cancel and uncancel of an order that had already progressed.
            wo.current_stage_index = 0
            await self.versions.create_version(wo, "Work order released", actor.id)
            await self.audit.record(
                actor.id,
                AuditAction.RELEASE,
                WORK_ORDER_MODEL,
                wo.id,
                {"status": WOStatus.PLANNED},
                {"status": WOStatus.RELEASED, "specSnapshot": spec},
            )

        logger.info("Released work order %s", wo.number)
        return self._result(wo, f"Work order {wo.number} released")

    # ------------------------------------------------------------ stage work

    async def _stage_context(
        self,
        actor: Actor,
        payload: StageActionRequest,
        selected_department_id: Optional[UUID],
        on_hold_message: str,
    ) -> _StageContext:
        wo = await self._load(payload.work_order_id)
        if wo.status == WOStatus.HOLD:
            raise WorkOrderOnHoldError(on_hold_message)
        if wo.status not in WORKABLE_STATUSES:
            raise InvalidTransitionError(f"Work order is {wo.status.value} and cannot be worked")

        stages = enabled_stages(wo.routing_definition.stages if wo.routing_definition else [])
        stage = stage_at(stages, wo.current_stage_index)
        ensure_can_act(
            actor,
            stage_department_id(stage),
            has_current_stage=stage is not None,
            selected_department_id=selected_department_id,
        )
        if stage is None:
            raise NoCurrentStageError()

        station = await self.ref_repo.get_active_station(payload.station_id, stage.work_center_id)
        if not station:
            raise InvalidStationError()
        return _StageContext(work_order=wo, stages=stages, stage=stage, station=station)

    async def _log_event(
        self,
        ctx: _StageContext,
        actor: Actor,
        kind: StageEventKind,
        note: Optional[str],
        good_qty: Optional[float] = None,
        scrap_qty: Optional[float] = None,
    ) -> StageEvent:
        event = StageEvent(
            work_order_id=ctx.work_order.id,
            routing_stage_id=ctx.stage.id,
            station_id=ctx.station.id,
            user_id=actor.id,
            event=kind,
            good_qty=good_qty,
            scrap_qty=scrap_qty,
            note=note or None,
            created_at=self.clock(),
        )
        await self.event_repo.add(event)
        return event

    # PUBLIC_INTERFACE
    @_lifecycle_action("start")
    async def start(
        self, actor: Actor, payload: StageActionRequest, selected_department_id: Optional[UUID] = None
    ) -> ActionResult:
        """
        Log a START at a station. RELEASED becomes IN_PROGRESS; an order already
        IN_PROGRESS keeps its status and stage index but still gets the event.
        """
        async with self.transaction():
            ctx = await self._stage_context(actor, payload, selected_department_id, "Work order is on hold")
            wo = ctx.work_order
            await self._log_event(ctx, actor, StageEventKind.START, payload.note)
            if wo.status == WOStatus.RELEASED:
                wo.status = WOStatus.IN_PROGRESS

        logger.info("Started stage %s of %s at station %s", ctx.stage.code, wo.number, ctx.station.code)
        return self._result(wo, f"Started work on {wo.number} at station {ctx.station.code}")

    # PUBLIC_INTERFACE
    @_lifecycle_action("pause")
    async def pause(
        self, actor: Actor, payload: StageActionRequest, selected_department_id: Optional[UUID] = None
    ) -> ActionResult:
        """Log a PAUSE at a station and put the work order on HOLD, remembering the interrupted status."""
        async with self.transaction():
            ctx = await self._stage_context(
                actor, payload, selected_department_id, "Work order is already on hold"
            )
            wo = ctx.work_order
            previous = wo.status
            await self._log_event(ctx, actor, StageEventKind.PAUSE, payload.note)
            wo.status = WOStatus.HOLD
            wo.held_from_status = previous
            await self.audit.record(
                actor.id,
                AuditAction.PAUSE,
                WORK_ORDER_MODEL,
                wo.id,
                {"status": previous},
                {
                    "status": WOStatus.HOLD,
                    "previousStatus": previous,
                    "stage": ctx.stage.code,
                    "station": ctx.station.code,
                    "note": payload.note,
                },
            )

        logger.info("Paused %s at stage %s", wo.number, ctx.stage.code)
        return self._result(wo, f"Paused work on {wo.number}", previous_status=previous)

    # PUBLIC_INTERFACE
    @_lifecycle_action("complete")
    async def complete(
        self, actor: Actor, payload: StageCompleteRequest, selected_department_id: Optional[UUID] = None
    ) -> ActionResult:
        """
        Log a COMPLETE with quantities. A non-final stage advances the index by one
        and leaves the order RELEASED for the next department; the final stage
        marks it COMPLETED without moving the index.
        """
        if payload.good_qty < 0 or payload.scrap_qty < 0:
            raise ValidationFailedError("Quantities must not be negative")

        async with self.transaction():
            ctx = await self._stage_context(actor, payload, selected_department_id, "Work order is on hold")
            wo = ctx.work_order
            await self._log_event(
                ctx, actor, StageEventKind.COMPLETE, payload.note, payload.good_qty, payload.scrap_qty
            )
            is_last = is_final_stage(ctx.stages, wo.current_stage_index)
            if is_last:
                wo.status = WOStatus.COMPLETED
            else:
                wo.status = WOStatus.RELEASED
                wo.current_stage_index = wo.current_stage_index + 1

        if is_last:
            logger.info("Completed work order %s", wo.number)
            message = f"Completed work order {wo.number}"
        else:
            logger.info("Completed stage %s of %s, now at index %s", ctx.stage.code, wo.number, wo.current_stage_index)
            message = f"Completed stage {ctx.stage.name} for {wo.number}"
        return self._result(wo, message, is_complete=is_last)

    # ------------------------------------------------------- administrative

    # PUBLIC_INTERFACE
    @_lifecycle_action("hold")
    async def hold(self, actor: Actor, wo_id: UUID, reason: str) -> ActionResult:
        """Administrative hold with a mandatory reason."""
        require_supervisor(actor)
        reason = (reason or "").strip()
        if not reason:
            raise ValidationFailedError("Reason is required")

        async with self.transaction():
            wo = await self._load(wo_id)
            if wo.status == WOStatus.HOLD:
                raise InvalidTransitionError("Work order is already on hold")
            if wo.status in NOT_HOLDABLE_STATUSES:
                raise InvalidTransitionError(f"Cannot hold a work order in {wo.status.value} status")
            previous = wo.status
            wo.status = WOStatus.HOLD
            wo.held_from_status = previous
            await self.versions.create_version(wo, f"Placed on hold: {reason}", actor.id)
            await self.audit.record(
                actor.id,
                AuditAction.HOLD,
                WORK_ORDER_MODEL,
                wo.id,
                {"status": previous},
                {"status": WOStatus.HOLD, "reason": reason, "previousStatus": previous},
            )

        logger.info("Work order %s placed on hold from %s", wo.number, previous.value)
        return self._result(wo, f"Work order {wo.number} placed on hold", previous_status=previous)

    # PUBLIC_INTERFACE
    @_lifecycle_action("unhold")
    async def unhold(self, actor: Actor, wo_id: UUID) -> ActionResult:
        """HOLD -> the status the hold interrupted (RELEASED when unknown)."""
        require_supervisor(actor)
        async with self.transaction():
            wo = await self._load(wo_id)
            if wo.status != WOStatus.HOLD:
                raise InvalidTransitionError("Work order is not on hold")
            target = await self.audit.resolve_previous_status(wo)
            wo.status = target
            wo.held_from_status = None
            await self.versions.create_version(wo, "Removed from hold", actor.id)
            await self.audit.record(
                actor.id,
                AuditAction.UNHOLD,
                WORK_ORDER_MODEL,
                wo.id,
                {"status": WOStatus.HOLD},
                {"status": target},
            )

        logger.info("Work order %s removed from hold to %s", wo.number, target.value)
        return self._result(wo, f"Work order {wo.number} removed from hold", previous_status=WOStatus.HOLD)

    # PUBLIC_INTERFACE
    @_lifecycle_action("cancel")
    async def cancel(self, actor: Actor, wo_id: UUID, reason: Optional[str] = None) -> ActionResult:
        """Any status except COMPLETED/CLOSED -> CANCELLED."""
        require_supervisor(actor)
        async with self.transaction():
            wo = await self._load(wo_id)
            if wo.status in NOT_CANCELLABLE_STATUSES:
                raise InvalidTransitionError("Cannot cancel completed or closed work orders")
            if wo.status == WOStatus.CANCELLED:
                raise InvalidTransitionError("Work order is already cancelled")
            previous = wo.status
            wo.status = WOStatus.CANCELLED
            wo.held_from_status = None
            version_reason = f"Work order cancelled: {reason}" if reason else "Work order cancelled"
            await self.versions.create_version(wo, version_reason, actor.id)
            await self.audit.record(
                actor.id,
                AuditAction.CANCEL,
                WORK_ORDER_MODEL,
                wo.id,
                {"status": previous},
                {"status": WOStatus.CANCELLED, "reason": reason},
            )

        logger.info("Work order %s cancelled from %s", wo.number, previous.value)
        return self._result(wo, "Work order cancelled successfully", previous_status=previous)

    # PUBLIC_INTERFACE
    @_lifecycle_action("uncancel")
    async def uncancel(self, actor: Actor, wo_id: UUID) -> ActionResult:
        """CANCELLED -> PLANNED."""
        require_supervisor(actor)
        async with self.transaction():
            wo = await self._load(wo_id)
            if wo.status != WOStatus.CANCELLED:
                raise InvalidTransitionError("Only cancelled work orders can be uncancelled")
            wo.status = WOStatus.PLANNED
            await self.versions.create_version(wo, "Work order uncancelled", actor.id)
            await self.audit.record(
                actor.id,
                AuditAction.UNCANCEL,
                WORK_ORDER_MODEL,
                wo.id,
                {"status": WOStatus.CANCELLED},
                {"status": WOStatus.PLANNED},
            )

        logger.info("Work order %s uncancelled", wo.number)
        return self._result(
            wo, f"Work order {wo.number} restored to PLANNED", previous_status=WOStatus.CANCELLED
        )

    # PUBLIC_INTERFACE
    @_lifecycle_action("close")
    async def close(self, actor: Actor, wo_id: UUID) -> ActionResult:
        """COMPLETED -> CLOSED, the only way into CLOSED."""
        require_supervisor(actor)
        async with self.transaction():
            wo = await self._load(wo_id)
            if wo.status != WOStatus.COMPLETED:
                raise InvalidTransitionError("Only completed work orders can be closed")
            wo.status = WOStatus.CLOSED
            await self.versions.create_version(wo, "Work order closed", actor.id)
            await self.audit.record(
                actor.id,
                AuditAction.CLOSE,
                WORK_ORDER_MODEL,
                wo.id,
                {"status": WOStatus.COMPLETED},
                {"status": WOStatus.CLOSED},
            )

        logger.info("Work order %s closed", wo.number)
        return self._result(wo, f"Work order {wo.number} closed", previous_status=WOStatus.COMPLETED)

    # PUBLIC_INTERFACE
    @_lifecycle_action("update")
    async def update(self, actor: Actor, wo_id: UUID, payload: WorkOrderUpdate) -> ActionResult:
        """
        Edit hull, SKU, quantity, priority and planned dates.

        Hull, SKU and quantity are frozen once the order is active. Each changed
        field gets its own audit entry; one version records the whole edit.
        """
        require_supervisor(actor)
        changes = payload.model_dump(exclude_unset=True)
        for key in ("planned_start_date", "planned_finish_date"):
            if key in changes:
                changes[key] = ensure_utc(changes[key])
        for key in ("hull_id", "product_sku", "qty", "priority"):
            if key in changes and changes[key] is None:
                changes.pop(key)

        async with self.transaction():
            wo = await self._load(wo_id)
            if wo.status not in EDITABLE_STATUSES:
                raise ValidationFailedError("Work order can only be edited while active")

            check_start_before_finish(
                changes.get("planned_start_date", wo.planned_start_date),
                changes.get("planned_finish_date", wo.planned_finish_date),
            )
            if wo.status not in IDENTITY_EDITABLE_STATUSES:
                for field, label in IDENTITY_FIELDS:
                    if field in changes and changes[field] != getattr(wo, field):
                        raise ValidationFailedError(f"{label} cannot be changed once the work order is active")

            described: List[str] = []
            for field, new_value in changes.items():
                old_value = getattr(wo, field)
                if field.endswith("_date"):
                    old_value = ensure_utc(old_value)
                if old_value == new_value:
                    continue
                setattr(wo, field, new_value)
                described.append(f"{field}: {_display(old_value)} -> {_display(new_value)}")
                await self.audit.record(
                    actor.id, AuditAction.UPDATE, WORK_ORDER_MODEL, wo.id, {field: old_value}, {field: new_value}
                )

            if not described:
                return self._result(wo, "No changes detected")
            await self.versions.create_version(wo, "Updated " + "; ".join(described), actor.id)

        logger.info("Updated work order %s: %s", wo.number, ", ".join(described))
        return self._result(wo, f"Work order {wo.number} updated")

    # PUBLIC_INTERFACE
    @_lifecycle_action("restore")
    async def restore_version(self, actor: Actor, wo_id: UUID, version_id: UUID) -> ActionResult:
        """Overwrite the live work order from a version, then record a new version for the restore."""
        require_supervisor(actor)
        async with self.transaction():
            wo = await self._load(wo_id)
            version = await self.version_repo.get_version(version_id)
            if not version:
                raise NotFoundError("Version")
            if version.work_order_id != wo.id:
                raise ValidationFailedError("Version does not belong to this work order")
            before = {"status": wo.status, "current_stage_index": wo.current_stage_index}
            apply_snapshot(wo, version.snapshot_data)
            await self.versions.create_version(wo, f"Restored from Version {version.version_number}", actor.id)
            await self.audit.record(
                actor.id,
                AuditAction.RESTORE,
                WORK_ORDER_MODEL,
                wo.id,
                before,
                {
                    "status": wo.status,
                    "current_stage_index": wo.current_stage_index,
                    "restoredFromVersion": version.version_number,
                },
            )

        logger.info("Restored work order %s from version %s", wo.number, version.version_number)
        return self._result(wo, f"Work order restored to Version {version.version_number}")

    # PUBLIC_INTERFACE
    @_lifecycle_action("create_version")
    async def create_manual_version(self, actor: Actor, wo_id: UUID, reason: str) -> WorkOrderVersion:
        """Checkpoint the current state as a new version."""
        require_supervisor(actor)
        reason = (reason or "").strip()
        if not reason:
            raise ValidationFailedError("Reason is required")
        async with self.transaction():
            wo = await self._load(wo_id)
            version = await self.versions.create_version(wo, reason, actor.id)
        logger.info("Created version %s for %s", version.version_number, wo.number)
        return version


def _display(value: Any) -> str:
    if value is None:
        return "none"
    if isinstance(value, datetime):
        return value.date().isoformat()
    return str(getattr(value, "value", value))
