from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from hull_mes.core.enums import NoteScope, StageEventKind, WOPriority, WOStatus


class WorkOrderCreate(BaseModel):
    """Create work order payload."""
    hull_id: str = Field(..., min_length=1, description="Hull identifier")
    product_sku: str = Field("", description="Product SKU")
    qty: int = Field(1, ge=1, description="Quantity")
    priority: WOPriority = Field(WOPriority.NORMAL, description="Priority")
    planned_start_date: Optional[datetime] = Field(None, description="Planned start (UTC)")
    planned_finish_date: Optional[datetime] = Field(None, description="Planned finish (UTC)")
    routing_definition_id: UUID = Field(..., description="Routing definition to follow")
    number: Optional[str] = Field(None, description="Work order number; generated when omitted")
    features: Optional[Dict[str, Any]] = Field(None, description="Selected product features for the spec snapshot")


class WorkOrderUpdate(BaseModel):
    """Partial update of editable work order fields. Omitted fields are left untouched."""
    hull_id: Optional[str] = Field(None, min_length=1)
    product_sku: Optional[str] = Field(None)
    qty: Optional[int] = Field(None, ge=1)
    priority: Optional[WOPriority] = Field(None)
    planned_start_date: Optional[datetime] = Field(None)
    planned_finish_date: Optional[datetime] = Field(None)


class WorkOrderRead(BaseModel):
    """Work order read model."""
    id: UUID = Field(..., description="Work order id")
    number: str = Field(..., description="Work order number")
    hull_id: str = Field(...)
    product_sku: str = Field(...)
    qty: int = Field(...)
    status: WOStatus = Field(...)
    priority: WOPriority = Field(...)
    planned_start_date: Optional[datetime] = Field(None)
    planned_finish_date: Optional[datetime] = Field(None)
    routing_definition_id: UUID = Field(...)
    current_stage_index: int = Field(...)
    held_from_status: Optional[WOStatus] = Field(None)
    spec_snapshot: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(..., description="Created at")
    updated_at: datetime = Field(..., description="Updated at")

    class Config:
        from_attributes = True


class StageActionRequest(BaseModel):
    """Start or pause work on the current stage at a station."""
    work_order_id: UUID = Field(..., description="Work order id")
    station_id: UUID = Field(..., description="Station where the work happens")
    note: Optional[str] = Field(None, description="Optional operator note")


class StageCompleteRequest(StageActionRequest):
    """Complete the current stage at a station."""
    good_qty: float = Field(..., ge=0, description="Good quantity produced")
    scrap_qty: float = Field(0, ge=0, description="Scrapped quantity")


class HoldRequest(BaseModel):
    """Administrative hold payload."""
    reason: str = Field(..., description="Why the work order is held")


class CancelRequest(BaseModel):
    """Cancellation payload."""
    reason: Optional[str] = Field(None, description="Optional cancellation reason")


class RestoreRequest(BaseModel):
    """Restore a work order from one of its versions."""
    version_id: UUID = Field(..., description="Version to restore from")


class ManualVersionRequest(BaseModel):
    """Create a checkpoint version."""
    reason: str = Field(..., description="Reason recorded on the version")


class WorkOrderProjection(BaseModel):
    """Compact work order state returned by lifecycle actions."""
    id: UUID
    number: str
    status: WOStatus
    current_stage_index: int
    previous_status: Optional[WOStatus] = None


# PUBLIC_INTERFACE
class ActionResult(BaseModel):
    """Outcome of a lifecycle action."""
    success: bool = Field(True)
    message: str = Field(..., description="Human readable outcome")
    work_order: WorkOrderProjection
    is_complete: Optional[bool] = Field(None, description="Set by stage completion: True when the last stage finished")


class VersionRead(BaseModel):
    """Version snapshot read model."""
    id: UUID
    work_order_id: UUID
    version_number: int
    snapshot_data: Dict[str, Any]
    reason: str
    created_by: Optional[UUID] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AuditEntryRead(BaseModel):
    """Audit log entry read model."""
    id: UUID
    actor_id: Optional[UUID] = None
    action: str
    model: str
    model_id: UUID
    before: Optional[Dict[str, Any]] = None
    after: Optional[Dict[str, Any]] = None
    created_at: datetime

    class Config:
        from_attributes = True


class StageEventRead(BaseModel):
    """Stage event read model."""
    id: UUID
    work_order_id: UUID
    routing_stage_id: UUID
    station_id: UUID
    user_id: UUID
    event: StageEventKind
    good_qty: Optional[float] = None
    scrap_qty: Optional[float] = None
    note: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class StageView(BaseModel):
    """Enabled routing stage with its work center and department."""
    id: UUID
    sequence: int
    code: str
    name: str
    work_center_id: UUID
    work_center_name: str
    department_id: UUID
    department_name: str
    standard_stage_seconds: int


class TimelineEvent(BaseModel):
    """One event in a stage timeline."""
    id: UUID
    event: StageEventKind
    station_code: str
    user_email: str
    good_qty: Optional[float] = None
    scrap_qty: Optional[float] = None
    note: Optional[str] = None
    created_at: datetime


class StageTimeline(BaseModel):
    """Events logged against one stage, newest first."""
    stage: StageView
    events: List[TimelineEvent] = Field(default_factory=list)


class NoteView(BaseModel):
    """Operator note extracted from a stage event."""
    event_id: UUID
    stage_code: str
    event: StageEventKind
    user_email: str
    note: str
    created_at: datetime


class WorkOrderDetail(BaseModel):
    """Full view of a work order for the floor and the office."""
    work_order: WorkOrderRead
    current_stage: Optional[StageView] = None
    stages: List[StageView] = Field(default_factory=list)
    timeline: List[StageTimeline] = Field(default_factory=list)
    notes: List[NoteView] = Field(default_factory=list)


class StationView(BaseModel):
    """Active station of a work center."""
    id: UUID
    code: str
    name: str

    class Config:
        from_attributes = True


class QueueItem(BaseModel):
    """Work order waiting at, or being worked in, a department."""
    work_order: WorkOrderProjection
    hull_id: str
    product_sku: str
    priority: WOPriority
    current_stage: StageView
    last_event: Optional[StageEventRead] = None
    stations: List[StationView] = Field(default_factory=list)


class DepartmentQueue(BaseModel):
    """Queue of work orders whose current stage belongs to a department."""
    department_id: UUID
    items: List[QueueItem] = Field(default_factory=list)
    total_ready: int = 0
    total_in_progress: int = 0


class WorkOrderNoteCreate(BaseModel):
    """New work order note."""
    content: str = Field(..., description="Note text")
    scope: NoteScope = Field(NoteScope.GENERAL, description="GENERAL notes are visible to every department")
    department_id: Optional[UUID] = Field(None, description="Owning department; required for DEPARTMENT notes")


class WorkOrderNoteUpdate(BaseModel):
    """Edit the text of a note."""
    content: str = Field(..., description="Note text")


class WorkOrderNoteRead(BaseModel):
    """Work order note with its author and department."""
    id: UUID
    work_order_id: UUID
    user_id: UUID
    user_email: str
    content: str
    scope: NoteScope
    department_id: Optional[UUID] = None
    department_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime
