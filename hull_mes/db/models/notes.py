from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import Enum, ForeignKey, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hull_mes.core.enums import NoteScope
from hull_mes.db.base import Base, TimestampMixin, UUIDPkMixin
from hull_mes.db.models.reference import Department
from hull_mes.db.models.security import User


class WorkOrderNote(UUIDPkMixin, TimestampMixin, Base):
    """Free-text note on a work order, visible to everyone (GENERAL) or to one department."""
    __tablename__ = "work_order_notes"

    work_order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("work_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    scope: Mapped[NoteScope] = mapped_column(
        Enum(NoteScope, native_enum=False, length=16), nullable=False, default=NoteScope.GENERAL
    )
    # Set only for DEPARTMENT notes.
    department_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("departments.id", ondelete="SET NULL"), nullable=True
    )

    user: Mapped[User] = relationship(lazy="selectin")
    department: Mapped[Optional[Department]] = relationship(lazy="selectin")
