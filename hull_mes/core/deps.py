from __future__ import annotations

import logging
from typing import AsyncGenerator, Optional
from uuid import UUID

from fastapi import Depends, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from hull_mes.core.authorization import Actor, require_supervisor
from hull_mes.core.errors import AuthenticationError, PermissionDeniedError
from hull_mes.core.logging import bind_actor
from hull_mes.core.security import decode_token
from hull_mes.db.session import get_async_session
from hull_mes.repositories.security import UserRepository

logger = logging.getLogger(__name__)

# Bearer JWT; missing credentials are reported through the standard error envelope.
bearer_scheme = HTTPBearer(auto_error=False)


# PUBLIC_INTERFACE
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a request-scoped AsyncSession."""
    async for session in get_async_session():
        yield session


# PUBLIC_INTERFACE
async def get_current_actor(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_session),
) -> AsyncGenerator[Actor, None]:
    """
    Resolve the authenticated actor from the Authorization bearer token.

    The token names the user (sub); role and home department are read from the
    user row so that a role change takes effect without reissuing tokens. The
    actor is bound to the logging context until the request is done.
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError()
    try:
        payload = decode_token(credentials.credentials)
    except JWTError:
        raise AuthenticationError("Invalid token")

    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError:
        raise AuthenticationError("Invalid token")

    user = await UserRepository(session).get_user_by_id(user_id)
    if not user:
        raise AuthenticationError("User not found")
    if not user.is_active:
        raise PermissionDeniedError("Inactive user")

    request.state.actor_id = str(user.id)
    with bind_actor(str(user.id)):
        yield Actor(id=user.id, role=user.role, department_id=user.department_id, email=user.email)


# PUBLIC_INTERFACE
async def get_supervisor_actor(actor: Actor = Depends(get_current_actor)) -> Actor:
    """Current actor, required to be a supervisor or admin."""
    require_supervisor(actor)
    return actor


# PUBLIC_INTERFACE
def get_selected_department(
    department_id: Optional[UUID] = Query(
        None,
        alias="departmentId",
        description="Department the caller is acting for; defaults to the caller's home department",
    ),
) -> Optional[UUID]:
    """Caller-selected department override for stage actions and queues."""
    return department_id
