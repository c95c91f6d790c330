from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hull_mes.core.authorization import Actor
from hull_mes.core.deps import get_current_actor, get_selected_department, get_session
from hull_mes.schemas.work_orders import DepartmentQueue
from hull_mes.services.queries import WorkOrderQueryService

router = APIRouter(prefix="/queues", tags=["Queues"])


# PUBLIC_INTERFACE
@router.get(
    "/my-department",
    response_model=DepartmentQueue,
    summary="Department queue",
    description=(
        "Released and in-progress work orders whose current stage belongs to the caller's department "
        "(or the departmentId override), in-progress first, then oldest first."
    ),
)
async def my_department_queue(
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    department_id: Optional[UUID] = Depends(get_selected_department),
) -> DepartmentQueue:
    return await WorkOrderQueryService(session).department_queue(actor, department_id)
