"""
Stage resolution over a routing definition.

The current stage of a work order is always derived: filter the definition's
stages to enabled ones, sort by sequence, then index by current_stage_index.
Every read and every transition goes through these helpers.
"""
from __future__ import annotations

from typing import Iterable, List, Optional, TypeVar
from uuid import UUID

from hull_mes.core.authorization import Actor, ensure_can_act
from hull_mes.db.models.production import WorkOrder
from hull_mes.db.models.routing import RoutingStage

StageT = TypeVar("StageT")


# PUBLIC_INTERFACE
def enabled_stages(stages: Iterable[RoutingStage]) -> List[RoutingStage]:
    """Enabled stages sorted ascending by sequence."""
    return sorted((s for s in stages if s.enabled), key=lambda s: s.sequence)


# PUBLIC_INTERFACE
def stage_at(ordered: List[StageT], index: int) -> Optional[StageT]:
    """Return ordered[index], or None when the list is empty or the index is out of range."""
    if index < 0 or index >= len(ordered):
        return None
    return ordered[index]


# PUBLIC_INTERFACE
def resolve_current_stage(stages: Iterable[RoutingStage], current_stage_index: int) -> Optional[RoutingStage]:
    """Current stage for a work order sitting at current_stage_index, or None."""
    return stage_at(enabled_stages(stages), current_stage_index)


# PUBLIC_INTERFACE
def is_final_stage(stages: Iterable[RoutingStage], current_stage_index: int) -> bool:
    """True when current_stage_index points at the last enabled stage."""
    ordered = enabled_stages(stages)
    return len(ordered) > 0 and current_stage_index == len(ordered) - 1


# PUBLIC_INTERFACE
def stage_department_id(stage: Optional[RoutingStage]) -> Optional[UUID]:
    """Department owning the stage, derived through its work center."""
    if stage is None or stage.work_center is None:
        return None
    return stage.work_center.department_id


def stage_summary(stage: RoutingStage) -> dict:
    """JSON-friendly description of a stage for snapshots."""
    return {
        "id": str(stage.id),
        "sequence": stage.sequence,
        "code": stage.code,
        "name": stage.name,
        "enabled": stage.enabled,
        "work_center_id": str(stage.work_center_id),
        "standard_stage_seconds": stage.standard_stage_seconds,
    }


# PUBLIC_INTERFACE
def ensure_can_access_work_order(
    actor: Actor, work_order: WorkOrder, selected_department_id: Optional[UUID] = None
) -> Optional[RoutingStage]:
    """
    Read rule for a single work order: the same department gate as stage
    actions, evaluated against the order's current stage. Returns that stage.
    """
    stages = work_order.routing_definition.stages if work_order.routing_definition else []
    current = resolve_current_stage(stages, work_order.current_stage_index)
    ensure_can_act(
        actor,
        stage_department_id(current),
        has_current_stage=current is not None,
        selected_department_id=selected_department_id,
    )
    return current
