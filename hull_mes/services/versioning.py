"""
Version snapshot store.

A version is a full copy of a work order plus a summary of its routing
definition. Numbers are allocated as max + 1 inside the caller's transaction
and are never supplied by callers.
"""
from __future__ import annotations

import hashlib
import logging
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic_core import to_jsonable_python
from sqlalchemy.ext.asyncio import AsyncSession

from hull_mes.core.dates import parse_datetime
from hull_mes.core.enums import WOPriority, WOStatus
from hull_mes.db.models.history import WorkOrderVersion
from hull_mes.db.models.production import WorkOrder
from hull_mes.repositories.history import VersionRepository
from hull_mes.services.routing import stage_summary

logger = logging.getLogger(__name__)

SNAPSHOT_FIELDS = (
    "number",
    "hull_id",
    "product_sku",
    "qty",
    "status",
    "priority",
    "planned_start_date",
    "planned_finish_date",
    "routing_definition_id",
    "current_stage_index",
    "held_from_status",
    "spec_snapshot",
)
SCHEMA_HASH = hashlib.sha256(",".join(SNAPSHOT_FIELDS).encode("utf-8")).hexdigest()


# PUBLIC_INTERFACE
def build_snapshot(work_order: WorkOrder) -> Dict[str, Any]:
    """Serialize the work order and its routing definition summary to JSON-safe data."""
    data: Dict[str, Any] = {name: to_jsonable_python(getattr(work_order, name)) for name in SNAPSHOT_FIELDS}
    routing = work_order.routing_definition
    if routing is not None:
        data["routing_definition"] = {
            "model": routing.model,
            "trim": routing.trim,
            "version": routing.version,
            "status": routing.status.value,
            "stages": [stage_summary(s) for s in sorted(routing.stages, key=lambda s: s.sequence)],
        }
    data["schema_hash"] = SCHEMA_HASH
    return data


# PUBLIC_INTERFACE
def apply_snapshot(work_order: WorkOrder, snapshot: Dict[str, Any]) -> None:
    """Overwrite the live work order's mutable fields from a recorded snapshot."""
    if "status" in snapshot:
        work_order.status = WOStatus(snapshot["status"])
    if snapshot.get("priority"):
        work_order.priority = WOPriority(snapshot["priority"])
    if "planned_start_date" in snapshot:
        work_order.planned_start_date = parse_datetime(snapshot["planned_start_date"])
    if "planned_finish_date" in snapshot:
        work_order.planned_finish_date = parse_datetime(snapshot["planned_finish_date"])
    if "current_stage_index" in snapshot:
        work_order.current_stage_index = int(snapshot["current_stage_index"])
    if "qty" in snapshot:
        work_order.qty = int(snapshot["qty"])
    if snapshot.get("hull_id"):
        work_order.hull_id = snapshot["hull_id"]
    if "product_sku" in snapshot:
        work_order.product_sku = snapshot["product_sku"] or ""
    held = snapshot.get("held_from_status")
    work_order.held_from_status = WOStatus(held) if held else None


class VersionStore:
    """Writes numbered snapshots for a work order inside the caller's transaction."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repo = VersionRepository(session)

    # PUBLIC_INTERFACE
    async def create_version(
        self, work_order: WorkOrder, reason: str, actor_id: Optional[UUID]
    ) -> WorkOrderVersion:
        """Append version max+1 capturing the work order's current state."""
        # Pending attribute changes must be visible to the max() query and the snapshot.
        await self.repo.flush()
        next_number = await self.repo.max_version_number(work_order.id) + 1
        version = WorkOrderVersion(
            work_order_id=work_order.id,
            version_number=next_number,
            snapshot_data=build_snapshot(work_order),
            reason=reason,
            created_by=actor_id,
        )
        await self.repo.add(version)
        await self.repo.flush()
        logger.debug("Created version %s for work order %s", next_number, work_order.number)
        return version
