from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from hull_mes.core.authorization import Actor, Capability, require_capability
from hull_mes.core.enums import AuditAction, RoutingStatus
from hull_mes.core.errors import InvalidTransitionError, NotFoundError, ValidationFailedError
from hull_mes.db.base import utcnow
from hull_mes.db.models.routing import RoutingDefinition, RoutingStage
from hull_mes.repositories.reference import ReferenceRepository
from hull_mes.repositories.routing import RoutingRepository
from hull_mes.schemas.routing import RoutingDefinitionCreate, RoutingStageIn, RoutingStageUpdate
from hull_mes.services.audit import ROUTING_DEFINITION_MODEL, AuditLog
from hull_mes.services.base import BaseService
from hull_mes.services.routing import enabled_stages

logger = logging.getLogger(__name__)


class RoutingDefinitionService(BaseService):
    """
    Authoring of routing definitions.

    Definitions start as DRAFT and may be edited freely; release is one-way and
    freezes the stage set for every work order that follows it.
    """

    def __init__(self, session: AsyncSession, clock: Callable[[], datetime] = utcnow) -> None:
        super().__init__(session)
        self.clock = clock
        self.repo = RoutingRepository(session)
        self.ref_repo = ReferenceRepository(session)
        self.audit = AuditLog(session)

    async def _get(self, definition_id: UUID) -> RoutingDefinition:
        definition = await self.repo.get_definition(definition_id)
        if not definition:
            raise NotFoundError("Routing definition")
        return definition

    async def _validate_stages(self, stages: List[RoutingStageIn]) -> None:
        if not stages:
            raise ValidationFailedError("At least one stage is required")
        sequences = [s.sequence for s in stages]
        if len(set(sequences)) != len(sequences):
            raise ValidationFailedError("Stage sequence numbers must be unique", details={"sequences": sequences})
        wc_ids = {s.work_center_id for s in stages}
        found = {wc.id for wc in await self.ref_repo.get_work_centers(list(wc_ids))}
        missing = wc_ids - found
        if missing:
            raise ValidationFailedError(
                "Unknown work center", details={"work_center_ids": sorted(str(m) for m in missing)}
            )

    # PUBLIC_INTERFACE
    async def create_definition(self, actor: Actor, payload: RoutingDefinitionCreate) -> RoutingDefinition:
        """
        Create a DRAFT definition with version = latest version for the model/trim + 1.
        When clone_from_id is given, model, trim, features and stages default to the source's.
        """
        require_capability(actor, Capability.AUTHOR_ROUTINGS)
        async with self.transaction():
            model, trim, features = payload.model, payload.trim, payload.features
            stages_in = payload.stages
            if payload.clone_from_id:
                source = await self._get(payload.clone_from_id)
                model = model or source.model
                trim = trim if trim is not None else source.trim
                features = features if features is not None else source.features
                if stages_in is None:
                    stages_in = [RoutingStageIn.model_validate(s, from_attributes=True) for s in source.stages]
            if not model:
                raise ValidationFailedError("Model is required")
            stages_in = stages_in or []
            await self._validate_stages(stages_in)

            version = await self.repo.max_version(model, trim) + 1
            definition = RoutingDefinition(
                model=model,
                trim=trim,
                features=features,
                version=version,
                status=RoutingStatus.DRAFT,
                stages=[RoutingStage(**s.model_dump()) for s in sorted(stages_in, key=lambda s: s.sequence)],
            )
            await self.repo.add(definition)
            await self.repo.flush()
            await self.audit.record(
                actor.id,
                AuditAction.CREATE,
                ROUTING_DEFINITION_MODEL,
                definition.id,
                None,
                {
                    "model": model,
                    "trim": trim,
                    "version": version,
                    "cloned_from": payload.clone_from_id,
                },
            )
            definition_id = definition.id

        logger.info("Created routing definition %s/%s v%s", model, trim, version)
        return await self.repo.get_definition(definition_id, refresh=True)

    # PUBLIC_INTERFACE
    async def update_stage(
        self, actor: Actor, definition_id: UUID, stage_id: UUID, payload: RoutingStageUpdate
    ) -> RoutingDefinition:
        """Edit a stage of a DRAFT definition. Released definitions are immutable."""
        require_capability(actor, Capability.AUTHOR_ROUTINGS)
        changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
        async with self.transaction():
            definition = await self._get(definition_id)
            if definition.status != RoutingStatus.DRAFT:
                raise InvalidTransitionError("Released routing definitions cannot be modified")
            stage = await self.repo.get_stage(definition_id, stage_id)
            if stage is None:
                raise NotFoundError("Routing stage")
            new_sequence = changes.get("sequence")
            if new_sequence is not None and any(
                s.sequence == new_sequence and s.id != stage.id for s in definition.stages
            ):
                raise ValidationFailedError(f"Sequence {new_sequence} is already used in this routing")

            before = {k: getattr(stage, k) for k in changes}
            for key, value in changes.items():
                setattr(stage, key, value)
            if changes:
                await self.audit.record(
                    actor.id,
                    AuditAction.UPDATE,
                    ROUTING_DEFINITION_MODEL,
                    definition.id,
                    {"stage": stage.code, **before},
                    {"stage": stage.code, **changes},
                )

        logger.info("Updated stage %s of routing definition %s", stage.code, definition_id)
        return await self.repo.get_definition(definition_id, refresh=True)

    # PUBLIC_INTERFACE
    async def release_definition(self, actor: Actor, definition_id: UUID) -> RoutingDefinition:
        """DRAFT -> RELEASED. There is no way back."""
        require_capability(actor, Capability.AUTHOR_ROUTINGS)
        async with self.transaction():
            definition = await self._get(definition_id)
            if definition.status == RoutingStatus.RELEASED:
                raise InvalidTransitionError("Routing definition is already released")
            if not enabled_stages(definition.stages):
                raise ValidationFailedError("Routing definition has no enabled stages")
            definition.status = RoutingStatus.RELEASED
            definition.released_at = self.clock()
            await self.audit.record(
                actor.id,
                AuditAction.RELEASE,
                ROUTING_DEFINITION_MODEL,
                definition.id,
                {"status": RoutingStatus.DRAFT},
                {"status": RoutingStatus.RELEASED, "released_at": definition.released_at},
            )

        logger.info("Released routing definition %s/%s v%s", definition.model, definition.trim, definition.version)
        return definition

    # PUBLIC_INTERFACE
    async def list_definitions(
        self, *, model: Optional[str] = None, trim: Optional[str] = None, limit: int = 100, offset: int = 0
    ) -> List[RoutingDefinition]:
        """Definitions grouped by model/trim, newest version first."""
        return await self.repo.list_definitions(model=model, trim=trim, limit=limit, offset=offset)

    # PUBLIC_INTERFACE
    async def get_definition(self, definition_id: UUID) -> RoutingDefinition:
        """Fetch one definition with its stages."""
        return await self._get(definition_id)
