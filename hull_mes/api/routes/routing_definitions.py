from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from hull_mes.core.authorization import Actor
from hull_mes.core.deps import get_current_actor, get_session, get_supervisor_actor
from hull_mes.schemas.routing import RoutingDefinitionCreate, RoutingDefinitionRead, RoutingStageUpdate
from hull_mes.services.routing_definitions import RoutingDefinitionService

router = APIRouter(prefix="/routing-definitions", tags=["Routing"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[RoutingDefinitionRead],
    summary="List routing definitions",
    description="Routing definitions filtered by model/trim, newest version first.",
)
async def list_routing_definitions(
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    model: Optional[str] = Query(None),
    trim: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[RoutingDefinitionRead]:
    items = await RoutingDefinitionService(session).list_definitions(
        model=model, trim=trim, limit=limit, offset=offset
    )
    return [RoutingDefinitionRead.model_validate(x) for x in items]


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=RoutingDefinitionRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create routing definition",
    description="Create a DRAFT routing definition, optionally cloning another definition's stages.",
)
async def create_routing_definition(
    payload: RoutingDefinitionCreate,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_supervisor_actor),
) -> RoutingDefinitionRead:
    created = await RoutingDefinitionService(session).create_definition(actor, payload)
    return RoutingDefinitionRead.model_validate(created)


# PUBLIC_INTERFACE
@router.get("/{definition_id}", response_model=RoutingDefinitionRead, summary="Get routing definition")
async def get_routing_definition(
    definition_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
) -> RoutingDefinitionRead:
    definition = await RoutingDefinitionService(session).get_definition(definition_id)
    return RoutingDefinitionRead.model_validate(definition)


# PUBLIC_INTERFACE
@router.post("/{definition_id}/release", response_model=RoutingDefinitionRead, summary="Release routing definition")
async def release_routing_definition(
    definition_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_supervisor_actor),
) -> RoutingDefinitionRead:
    definition = await RoutingDefinitionService(session).release_definition(actor, definition_id)
    return RoutingDefinitionRead.model_validate(definition)


# PUBLIC_INTERFACE
@router.patch(
    "/{definition_id}/stages/{stage_id}",
    response_model=RoutingDefinitionRead,
    summary="Update routing stage",
    description="Change a stage's enabled flag, sequence, name or standard duration while the definition is DRAFT.",
)
async def update_routing_stage(
    payload: RoutingStageUpdate,
    definition_id: UUID = Path(...),
    stage_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_supervisor_actor),
) -> RoutingDefinitionRead:
    definition = await RoutingDefinitionService(session).update_stage(actor, definition_id, stage_id, payload)
    return RoutingDefinitionRead.model_validate(definition)
