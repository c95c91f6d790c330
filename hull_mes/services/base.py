from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from hull_mes.core.errors import ConcurrencyConflictError, DomainError

logger = logging.getLogger(__name__)


class BaseService:
    """
    Base class for services. Holds a session for use across multiple repositories.

    Services keep business logic and orchestration and own the transaction
    boundary; repositories only stage and flush changes.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """
        Run a block as one atomic unit: commit on success, roll back on any
        exception and re-raise it. A failed optimistic version check surfaces
        as ConcurrencyConflictError.
        """
        try:
            yield self.session
            await self.session.commit()
        except StaleDataError as exc:
            await self.session.rollback()
            logger.warning("Optimistic version check failed: %s", exc)
            raise ConcurrencyConflictError() from exc
        except DomainError:
            await self.session.rollback()
            raise
        except Exception:
            await self.session.rollback()
            logger.exception("Transaction rolled back after unexpected error")
            raise
