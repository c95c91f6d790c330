from __future__ import annotations

import uuid
from typing import Any, Optional

from sqlalchemy import ForeignKey, Integer, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from hull_mes.db.base import Base, CreatedAtMixin, JSONType, UUIDPkMixin


class WorkOrderVersion(UUIDPkMixin, CreatedAtMixin, Base):
    """Full point-in-time snapshot of a work order, numbered 1..N per work order."""
    __tablename__ = "work_order_versions"
    __table_args__ = (
        UniqueConstraint("work_order_id", "version_number", name="uq_work_order_versions_work_order_version"),
    )

    work_order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("work_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)
    snapshot_data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)


class AuditLogEntry(UUIDPkMixin, CreatedAtMixin, Base):
    """Administrative change record with before/after fragments."""
    __tablename__ = "audit_log"

    actor_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)
    action: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    model: Mapped[str] = mapped_column(Text, nullable=False)
    model_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False, index=True)
    before: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    after: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType, nullable=True)
