from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, Numeric, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hull_mes.core.enums import StageEventKind, WOPriority, WOStatus
from hull_mes.db.base import Base, CreatedAtMixin, JSONType, TimestampMixin, UUIDPkMixin
from hull_mes.db.models.reference import Station
from hull_mes.db.models.routing import RoutingDefinition, RoutingStage
from hull_mes.db.models.security import User


class WorkOrder(UUIDPkMixin, TimestampMixin, Base):
    """One hull moving through the stages of its routing definition."""
    __tablename__ = "work_orders"

    number: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    hull_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    product_sku: Mapped[str] = mapped_column(Text, nullable=False, default="")
    qty: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[WOStatus] = mapped_column(
        Enum(WOStatus, native_enum=False, length=16), nullable=False, default=WOStatus.PLANNED, index=True
    )
    priority: Mapped[WOPriority] = mapped_column(
        Enum(WOPriority, native_enum=False, length=16), nullable=False, default=WOPriority.NORMAL
    )
    planned_start_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    planned_finish_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    spec_snapshot: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    routing_definition_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("routing_definitions.id", ondelete="RESTRICT"), nullable=False
    )
    current_stage_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Status interrupted by the latest hold/pause; cleared on unhold.
    held_from_status: Mapped[Optional[WOStatus]] = mapped_column(
        Enum(WOStatus, native_enum=False, length=16), nullable=True
    )
    row_version: Mapped[int] = mapped_column(Integer, nullable=False)

    routing_definition: Mapped[RoutingDefinition] = relationship(lazy="selectin")

    __mapper_args__ = {"version_id_col": row_version}


class StageEvent(UUIDPkMixin, CreatedAtMixin, Base):
    """Append-only START/PAUSE/COMPLETE record logged at a station."""
    __tablename__ = "stage_events"

    work_order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("work_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    routing_stage_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("routing_stages.id", ondelete="RESTRICT"), nullable=False
    )
    station_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("stations.id", ondelete="RESTRICT"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    event: Mapped[StageEventKind] = mapped_column(Enum(StageEventKind, native_enum=False, length=16), nullable=False)
    good_qty: Mapped[Optional[float]] = mapped_column(Numeric(18, 6, asdecimal=False), nullable=True)
    scrap_qty: Mapped[Optional[float]] = mapped_column(Numeric(18, 6, asdecimal=False), nullable=True)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    routing_stage: Mapped[RoutingStage] = relationship(lazy="selectin")
    station: Mapped[Station] = relationship(lazy="selectin")
    user: Mapped[User] = relationship(lazy="selectin")
