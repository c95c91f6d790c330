from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from hull_mes.core.enums import RoutingStatus


class RoutingStageIn(BaseModel):
    """Stage payload for a new routing definition."""
    sequence: int = Field(..., ge=1, description="Position in the routing (unique per definition)")
    code: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    enabled: bool = Field(True)
    work_center_id: UUID = Field(...)
    standard_stage_seconds: int = Field(0, ge=0)


class RoutingDefinitionCreate(BaseModel):
    """Create a DRAFT routing definition, optionally cloning another definition's stages."""
    model: Optional[str] = Field(None, description="Product model; defaults to the clone source's")
    trim: Optional[str] = Field(None, description="Product trim; defaults to the clone source's")
    features: Optional[Dict[str, Any]] = Field(None)
    clone_from_id: Optional[UUID] = Field(None, description="Definition whose stages are copied")
    stages: Optional[List[RoutingStageIn]] = Field(None, description="Stages; required unless cloning")


class RoutingStageUpdate(BaseModel):
    """Editable stage fields while the definition is DRAFT."""
    enabled: Optional[bool] = Field(None)
    sequence: Optional[int] = Field(None, ge=1)
    name: Optional[str] = Field(None, min_length=1)
    standard_stage_seconds: Optional[int] = Field(None, ge=0)


class RoutingStageRead(BaseModel):
    """Routing stage read model."""
    id: UUID
    sequence: int
    code: str
    name: str
    enabled: bool
    work_center_id: UUID
    standard_stage_seconds: int

    class Config:
        from_attributes = True


class RoutingDefinitionRead(BaseModel):
    """Routing definition read model."""
    id: UUID
    model: str
    trim: Optional[str] = None
    features: Optional[Dict[str, Any]] = None
    version: int
    status: RoutingStatus
    released_at: Optional[datetime] = None
    stages: List[RoutingStageRead] = Field(default_factory=list)
    created_at: datetime

    class Config:
        from_attributes = True
