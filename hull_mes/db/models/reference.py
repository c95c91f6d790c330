from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Text, Uuid, true
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hull_mes.db.base import Base, TimestampMixin, UUIDPkMixin


class Department(UUIDPkMixin, TimestampMixin, Base):
    """Organizational owner of work centers (e.g. Lamination, Rigging)."""
    __tablename__ = "departments"

    code: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)


class WorkCenter(UUIDPkMixin, TimestampMixin, Base):
    """Functional area containing stations; belongs to exactly one department."""
    __tablename__ = "work_centers"

    code: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    department_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("departments.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())

    department: Mapped[Department] = relationship(lazy="selectin")


class Station(UUIDPkMixin, TimestampMixin, Base):
    """Physical location inside a work center where stage work is performed."""
    __tablename__ = "stations"

    code: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    work_center_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("work_centers.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
