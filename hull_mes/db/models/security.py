from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import Boolean, Enum, ForeignKey, Text, Uuid, true
from sqlalchemy.orm import Mapped, mapped_column

from hull_mes.core.enums import Role
from hull_mes.db.base import Base, TimestampMixin, UUIDPkMixin


class User(UUIDPkMixin, TimestampMixin, Base):
    """Shop-floor or office user with a single role and an optional home department."""
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    full_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    role: Mapped[Role] = mapped_column(Enum(Role, native_enum=False, length=16), nullable=False)
    department_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("departments.id", ondelete="SET NULL"), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
