"""
Serialized access to the run's single transactional session.

Fetch tasks run concurrently on the event loop, but one AsyncSession (and
the connection under it) cannot interleave statements from several tasks.
Every statement of a run is therefore issued through ``SerializedSession``,
which holds an ``asyncio.Lock`` for the duration of each statement. The
network part of a fetch task stays concurrent; only its writes queue.
"""

import asyncio
from typing import Any, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from core.database import dialect_insert
import logging

logger = logging.getLogger(__name__)


class SerializedSession:
    """
    Wrap an AsyncSession so statements execute one at a time, in lock
    acquisition order.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self._lock = asyncio.Lock()
        self.statements_executed = 0

    @property
    def dialect_name(self) -> str:
        return self.session.get_bind().dialect.name

    def insert(self, table):
        """Dialect-specific ``insert`` supporting ``ON CONFLICT``"""
        return dialect_insert(self.dialect_name)(table)

    async def execute(self, statement, params: Optional[Any] = None):
        """
        Execute one statement on the shared session.

        The returned result is fully buffered, so it can be consumed after
        the lock is released.
        """
        async with self._lock:
            if params is None:
                result = await self.session.execute(statement)
            else:
                result = await self.session.execute(statement, params)
            self.statements_executed += 1
            return result
