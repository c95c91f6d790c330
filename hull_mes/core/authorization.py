"""
Authorization gate for work-order actions.

Role handling is a capability lookup evaluated in one place: each role maps
to the set of things it may do, and callers ask the gate instead of branching
on role names.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional
from uuid import UUID

from hull_mes.core.enums import Role
from hull_mes.core.errors import (
    DepartmentMismatchError,
    NoCurrentStageError,
    PermissionDeniedError,
    ValidationFailedError,
)

logger = logging.getLogger(__name__)


class Capability(str, Enum):
    ACT_ANY_DEPARTMENT = "act_any_department"
    ACT_OWN_DEPARTMENT = "act_own_department"
    ADMINISTER_WORK_ORDERS = "administer_work_orders"
    AUTHOR_ROUTINGS = "author_routings"
    MANAGE_ALL_NOTES = "manage_all_notes"


ROLE_CAPABILITIES: Dict[Role, FrozenSet[Capability]] = {
    Role.ADMIN: frozenset(
        {
            Capability.ACT_ANY_DEPARTMENT,
            Capability.ADMINISTER_WORK_ORDERS,
            Capability.AUTHOR_ROUTINGS,
            Capability.MANAGE_ALL_NOTES,
        }
    ),
    Role.SUPERVISOR: frozenset(
        {
            Capability.ACT_ANY_DEPARTMENT,
            Capability.ADMINISTER_WORK_ORDERS,
            Capability.AUTHOR_ROUTINGS,
        }
    ),
    Role.OPERATOR: frozenset({Capability.ACT_OWN_DEPARTMENT}),
}


@dataclass(frozen=True)
class Actor:
    """Authenticated caller: identity, role and optional home department."""

    id: UUID
    role: Role
    department_id: Optional[UUID] = None
    email: Optional[str] = None


# PUBLIC_INTERFACE
def has_capability(role: Role, capability: Capability) -> bool:
    """Return True if the role grants the capability."""
    return capability in ROLE_CAPABILITIES.get(role, frozenset())


# PUBLIC_INTERFACE
def can_act(role: Role, actor_department_id: Optional[UUID], stage_department_id: Optional[UUID]) -> bool:
    """
    Pure predicate: may an actor with this role and department act on a stage
    owned by stage_department_id?

    Cross-department roles always pass. Own-department roles pass only on an
    exact department match; a missing department on either side never matches.
    """
    if has_capability(role, Capability.ACT_ANY_DEPARTMENT):
        return True
    if has_capability(role, Capability.ACT_OWN_DEPARTMENT):
        return (
            actor_department_id is not None
            and stage_department_id is not None
            and actor_department_id == stage_department_id
        )
    return False


# PUBLIC_INTERFACE
def effective_department(actor: Actor, selected_department_id: Optional[UUID] = None) -> Optional[UUID]:
    """The caller-selected department overrides the actor's home department."""
    return selected_department_id or actor.department_id


# PUBLIC_INTERFACE
def ensure_can_act(
    actor: Actor,
    stage_department_id: Optional[UUID],
    *,
    has_current_stage: bool,
    selected_department_id: Optional[UUID] = None,
) -> None:
    """
    Raise unless the actor may act on the work order's current stage.

    Raises:
        NoCurrentStageError: the work order has no resolvable current stage.
        ValidationFailedError: an own-department actor has no department at all.
        DepartmentMismatchError: the departments differ.
    """
    if has_capability(actor.role, Capability.ACT_ANY_DEPARTMENT):
        return
    if not has_current_stage:
        raise NoCurrentStageError()
    department_id = effective_department(actor, selected_department_id)
    if department_id is None:
        raise ValidationFailedError("No department specified")
    if not can_act(actor.role, department_id, stage_department_id):
        logger.warning(
            "Department mismatch: actor department %s, stage department %s", department_id, stage_department_id
        )
        raise DepartmentMismatchError()


# PUBLIC_INTERFACE
def require_capability(actor: Actor, capability: Capability) -> None:
    """Raise PermissionDeniedError if the actor's role lacks the capability."""
    if not has_capability(actor.role, capability):
        raise PermissionDeniedError()


# PUBLIC_INTERFACE
def require_supervisor(actor: Actor) -> None:
    """Administrative work-order actions are reserved to supervisors and admins."""
    require_capability(actor, Capability.ADMINISTER_WORK_ORDERS)
