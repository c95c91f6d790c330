from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, Text, UniqueConstraint, Uuid, true
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hull_mes.core.enums import RoutingStatus
from hull_mes.db.base import Base, JSONType, TimestampMixin, UUIDPkMixin
from hull_mes.db.models.reference import WorkCenter


class RoutingDefinition(UUIDPkMixin, TimestampMixin, Base):
    """Versioned, ordered stage template for a product model/trim."""
    __tablename__ = "routing_definitions"
    __table_args__ = (
        UniqueConstraint("model", "trim", "version", name="uq_routing_definitions_model_trim_version"),
    )

    model: Mapped[str] = mapped_column(Text, nullable=False)
    trim: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    features: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[RoutingStatus] = mapped_column(
        Enum(RoutingStatus, native_enum=False, length=16), nullable=False, default=RoutingStatus.DRAFT
    )
    released_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    stages: Mapped[List["RoutingStage"]] = relationship(
        back_populates="routing_definition",
        order_by="RoutingStage.sequence",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class RoutingStage(UUIDPkMixin, TimestampMixin, Base):
    """One step of a routing definition, bound to a work center."""
    __tablename__ = "routing_stages"
    __table_args__ = (
        UniqueConstraint("routing_definition_id", "sequence", name="uq_routing_stages_definition_sequence"),
    )

    routing_definition_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("routing_definitions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    code: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    work_center_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("work_centers.id", ondelete="RESTRICT"), nullable=False
    )
    standard_stage_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    routing_definition: Mapped[RoutingDefinition] = relationship(back_populates="stages")
    work_center: Mapped[WorkCenter] = relationship(lazy="selectin")
