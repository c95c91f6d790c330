from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy import select

from hull_mes.db.models.security import User
from .base import BaseRepository


class UserRepository(BaseRepository):
    """Repository for users resolved from bearer tokens."""

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        stmt = select(User).where(User.id == user_id)
        return await self.scalar_one_or_none(stmt)
