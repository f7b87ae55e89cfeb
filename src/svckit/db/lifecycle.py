"""Database startup health check and graceful shutdown."""

import asyncio
import enum
from typing import Optional

from svckit.config.settings import get_config
from svckit.db.errors import LifecycleError
from svckit.db.pool import ConnectionPool
from svckit.log import AppLogger

SHUTDOWN_TIMEOUT_SECONDS = 10.0

HEALTH_CHECK_QUERY = "SELECT 1"


class LifecycleState(enum.Enum):
    STOPPED = "stopped"
    STARTED = "started"
    CLOSED = "closed"


class DatabaseLifecycle:
    """
    Start and stop a ConnectionPool.

    STOPPED -> STARTED on init_db(), STARTED -> CLOSED on a successful
    shut_down_db(). Repeated init_db() while started and shut_down_db()
    while not started are logged no-ops. A closed pool cannot be restarted.
    """

    def __init__(
        self,
        pool: ConnectionPool,
        logger: Optional[AppLogger] = None,
        shutdown_timeout: float = SHUTDOWN_TIMEOUT_SECONDS,
    ):
        self.pool = pool
        self.logger = logger or pool.logger
        self.shutdown_timeout = shutdown_timeout
        self._state = LifecycleState.STOPPED

    @property
    def state(self) -> LifecycleState:
        return self._state

    async def init_db(self) -> None:
        """
        Verify the database is reachable.

        Borrows one connection and runs a health check query. The pool counts as
        started once a connection was obtained, even if the health check fails.

        Raises:
            PoolExhaustedOrConnectError: If no connection could be obtained
            LifecycleError: If the pool was already shut down
            Exception: Whatever the health check query raised
        """
        if self._state is LifecycleState.STARTED:
            self.logger.warn("PostgreSQL is already started")
            return
        if self._state is LifecycleState.CLOSED:
            raise LifecycleError("PostgreSQL pool is closed and cannot be restarted")

        conn = await self.pool.connect()
        self._state = LifecycleState.STARTED
        broken = False
        try:
            result = await conn.fetchval(HEALTH_CHECK_QUERY)
            if result != 1:
                raise RuntimeError(f"Health check failed: expected 1, got {result}")
            self.logger.info("PostgreSQL connected")
        except Exception as e:
            broken = True
            self.logger.error("PostgreSQL health check failed", {"error": str(e)})
            raise
        finally:
            await self.pool.release(conn, broken)

    async def shut_down_db(self) -> None:
        """
        Close the pool, giving up after ``shutdown_timeout`` seconds.

        Failures and timeouts are logged, never raised.
        """
        if self._state is not LifecycleState.STARTED:
            self.logger.info("PostgreSQL pool is not running", {"state": self._state.value})
            return

        # The drain is abandoned, not cancelled, if the timer wins
        drain = asyncio.ensure_future(self.pool.close())
        done, _ = await asyncio.wait({drain}, timeout=self.shutdown_timeout)
        if drain not in done:
            self.logger.error(
                "PostgreSQL pool shutdown timed out",
                {"timeout_seconds": self.shutdown_timeout},
            )
            return

        try:
            drain.result()
        except Exception as e:
            self.logger.error("PostgreSQL pool shutdown failed", {"error": str(e)})
            return

        self._state = LifecycleState.CLOSED
        self.logger.info("PostgreSQL pool closed")


_database: Optional[DatabaseLifecycle] = None


def get_database() -> DatabaseLifecycle:
    """Get or create the lifecycle for the environment-configured pool."""
    global _database
    if _database is None:
        _database = DatabaseLifecycle(ConnectionPool(get_config()))
    return _database


async def init_db() -> None:
    await get_database().init_db()


async def shut_down_db() -> None:
    await get_database().shut_down_db()
