from __future__ import annotations

from typing import Any, Dict, Optional
from uuid import UUID

from pydantic_core import to_jsonable_python
from sqlalchemy.ext.asyncio import AsyncSession

from hull_mes.core.enums import AuditAction, WOStatus
from hull_mes.db.models.history import AuditLogEntry
from hull_mes.db.models.production import WorkOrder
from hull_mes.repositories.history import AuditRepository

WORK_ORDER_MODEL = "WorkOrder"
ROUTING_DEFINITION_MODEL = "RoutingDefinition"


class AuditLog:
    """Explicit audit writes performed as a step of each lifecycle transaction."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repo = AuditRepository(session)

    # PUBLIC_INTERFACE
    async def record(
        self,
        actor_id: Optional[UUID],
        action: AuditAction,
        model: str,
        model_id: UUID,
        before: Optional[Dict[str, Any]] = None,
        after: Optional[Dict[str, Any]] = None,
    ) -> AuditLogEntry:
        """Append one audit entry; before/after are converted to JSON-safe values."""
        entry = AuditLogEntry(
            actor_id=actor_id,
            action=action.value,
            model=model,
            model_id=model_id,
            before=to_jsonable_python(before) if before is not None else None,
            after=to_jsonable_python(after) if after is not None else None,
        )
        await self.repo.add(entry)
        return entry

    # PUBLIC_INTERFACE
    async def resolve_previous_status(self, work_order: WorkOrder) -> WOStatus:
        """
        Status an unhold returns to: the status recorded on the work order when
        it was held, else the latest HOLD/PAUSE audit entry's previousStatus,
        else RELEASED.
        """
        if work_order.held_from_status is not None:
            return work_order.held_from_status
        entry = await self.repo.latest_for(
            WORK_ORDER_MODEL, work_order.id, (AuditAction.HOLD.value, AuditAction.PAUSE.value)
        )
        previous = (entry.after or {}).get("previousStatus") if entry else None
        try:
            return WOStatus(previous) if previous else WOStatus.RELEASED
        except ValueError:
            return WOStatus.RELEASED
