"""Unit of Work over an :class:`AsyncSession`.

Services flush; the unit of work owns commit and rollback.  Once COMMIT has
been issued it runs to completion even if the calling task is cancelled; the
cancellation is re-raised afterwards.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger("emporium.db")

T = TypeVar("T")


class UnitOfWork:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @property
    def session(self) -> AsyncSession:
        return self._session

    def _pending_changes(self) -> int:
        s = self._session
        return len(s.new) + len(s.dirty) + len(s.deleted)

    async def save_changes(self) -> int:
        """Flush and commit pending changes; return how many objects were written."""
        count = self._pending_changes()
        try:
            await self._session.flush()
        except BaseException:
            await self._session.rollback()
            raise
        await self._commit()
        return count

    async def execute_in_transaction(self, action: Callable[[], Awaitable[T]]) -> T:
        """Run *action* and commit, or roll everything back if anything raises.

        Cancellation before the commit starts is treated like any other
        failure: nothing written by *action* survives.
        """
        try:
            result = await action()
            await self._session.flush()
        except BaseException:
            logger.debug("Transaction rolled back")
            await self._session.rollback()
            raise
        await self._commit()
        return result

    async def _commit(self) -> None:
        commit = asyncio.ensure_future(self._session.commit())
        try:
            await asyncio.shield(commit)
        except asyncio.CancelledError:
            try:
                await commit
            except Exception:
                logger.warning("Commit failed while the caller was being cancelled", exc_info=True)
                await self._session.rollback()
            raise
        except Exception:
            await self._session.rollback()
            raise
