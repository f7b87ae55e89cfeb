"""PostgreSQL connection pool with session defaults and safe release."""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import asyncpg

from svckit.config.settings import DatabaseConfig
from svckit.db.errors import PoolExhaustedOrConnectError, SessionDefaultsError
from svckit.log import AppLogger, create_logger

SESSION_DEFAULTS_SQL = """
    SET TIME ZONE 'UTC';
    SET idle_in_transaction_session_timeout = '30000ms';
    SET lock_timeout = '5000ms';
"""

SESSION_DEFAULTS_RETRIES = 1
SESSION_DEFAULTS_DELAY = 0.150  # seconds, multiplied by attempt number

# Recycle a physical connection after this many queries
MAX_QUERIES_PER_CONNECTION = 7500

SERVER_ERROR_SEVERITIES = frozenset({"ERROR", "FATAL", "PANIC"})


class ManagedConnection(asyncpg.Connection):
    """Connection that records whether this process asked for it to close.

    The pool closes connections through close() or terminate() when it
    recycles, expires or discards them. A connection that ends without either
    call was dropped by the server or the network.
    """

    closed_by_client = False

    async def close(self, *, timeout=None):
        self.closed_by_client = True
        await super().close(timeout=timeout)

    def terminate(self):
        self.closed_by_client = True
        super().terminate()


async def apply_session_defaults(conn: asyncpg.Connection) -> None:
    """
    Apply per-session settings to a freshly opened connection.

    - UTC time zone for all timestamps returned to this service
    - transactions left idle for 30s are terminated by the server
    - waiting on a contended row/table lock fails after 5s
    """
    await conn.execute(SESSION_DEFAULTS_SQL)


async def apply_session_defaults_with_retry(
    conn: asyncpg.Connection,
    retries: int = SESSION_DEFAULTS_RETRIES,
    delay: float = SESSION_DEFAULTS_DELAY,
) -> None:
    """
    Apply session defaults, retrying with linear backoff.

    Args:
        conn: New physical connection
        retries: Additional attempts after the first one
        delay: Base delay in seconds; attempt n waits delay * n before retrying

    Raises:
        Exception: The last error once all attempts have failed
    """
    last_error: Optional[BaseException] = None
    for attempt in range(retries + 1):
        try:
            await apply_session_defaults(conn)
            return
        except Exception as e:
            last_error = e
            if attempt == retries:
                break
            await asyncio.sleep(delay * (attempt + 1))
    assert last_error is not None
    raise last_error


class ConnectionPool:
    """
    Process-wide asyncpg pool built from DatabaseConfig.

    Every new physical connection gets session defaults applied before it is
    handed out. A connection whose defaults cannot be applied is terminated
    and never reaches application code.
    """

    def __init__(self, config: DatabaseConfig, logger: Optional[AppLogger] = None):
        self.config = config
        self.logger = logger or create_logger(
            {"service": "database", "app_name": config.app_name}
        )
        self._pool: Optional[asyncpg.Pool] = None
        self._lock = asyncio.Lock()
        self._closing = False

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    def pool_options(self) -> dict[str, Any]:
        """Keyword arguments passed to ``asyncpg.create_pool``."""
        config = self.config
        return {
            "host": config.pg_host,
            "port": config.pg_port,
            "database": config.pg_database,
            "user": config.pg_user,
            "password": (
                config.pg_password.get_secret_value() if config.pg_password else None
            ),
            "ssl": "require" if config.pg_ssl else False,
            "min_size": config.pg_pool_min,
            "max_size": config.pg_pool_max,
            "timeout": config.pg_conn_timeout_ms / 1000,
            "command_timeout": config.pg_query_timeout_ms / 1000,
            "max_inactive_connection_lifetime": config.pg_idle_timeout_ms / 1000,
            "max_queries": MAX_QUERIES_PER_CONNECTION,
            "server_settings": {
                "application_name": config.app_name,
                "statement_timeout": str(config.pg_statement_timeout_ms),
            },
            "init": self._on_connect,
            "connection_class": ManagedConnection,
        }

    async def open(self) -> asyncpg.Pool:
        """Create the underlying pool on first use."""
        if self._pool is None:
            async with self._lock:
                if self._pool is None:
                    self._pool = await asyncpg.create_pool(**self.pool_options())
        return self._pool

    async def connect(self) -> asyncpg.Connection:
        """
        Borrow a connection from the pool.

        Returns:
            asyncpg.Connection: Connection owned by the caller until released

        Raises:
            PoolExhaustedOrConnectError: If no connection could be obtained
                within the configured connection timeout
        """
        timeout = self.config.pg_conn_timeout_ms / 1000
        try:
            pool = await self.open()
            return await pool.acquire(timeout=timeout)
        except Exception as e:
            raise PoolExhaustedOrConnectError(
                f"Could not obtain a PostgreSQL connection within {timeout}s: {e}"
            ) from e

    async def release(self, conn: asyncpg.Connection, broken: bool = False) -> None:
        """
        Return a connection to the pool. Never raises.

        Args:
            conn: Connection obtained from connect()
            broken: Terminate the physical connection instead of reusing it
        """
        try:
            if broken:
                conn.terminate()
            await self._pool.release(conn)
        except Exception as e:
            self.logger.warn(
                "Failed to release PostgreSQL connection",
                {"error": str(e), "broken": broken},
            )

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        """
        Borrow a connection for the duration of a ``async with`` block.

        Errors reported by the server leave the session usable; any other
        error (network, timeout, cancellation) discards the connection.
        """
        conn = await self.connect()
        broken = False
        try:
            yield conn
        except asyncpg.PostgresError:
            raise
        except BaseException:
            broken = True
            raise
        finally:
            await self.release(conn, broken)

    async def close(self) -> None:
        """Wait for borrowed connections to come back, then close them all."""
        if self._pool is None:
            return
        self._closing = True
        try:
            await self._pool.close()
        finally:
            self._closing = False
        self._pool = None

    async def _on_connect(self, conn: asyncpg.Connection) -> None:
        conn.add_log_listener(self._on_server_message)
        conn.add_termination_listener(self._on_connection_lost)
        try:
            await apply_session_defaults_with_retry(
                conn, retries=SESSION_DEFAULTS_RETRIES, delay=SESSION_DEFAULTS_DELAY
            )
        except Exception as e:
            self.logger.error("Failed to apply PostgreSQL session defaults", {"error": str(e)})
            self._discard(conn)
            raise SessionDefaultsError(f"Session defaults not applied: {e}") from e

    def _discard(self, conn: asyncpg.Connection) -> None:
        try:
            conn.terminate()
        except Exception as e:
            self.logger.warn(
                "Failed to discard PostgreSQL connection",
                {"error": str(e), "broken": True},
            )

    def _on_server_message(self, conn: asyncpg.Connection, message: Any) -> None:
        severity = (getattr(message, "severity", None) or "").upper()
        meta = {
            "severity": severity,
            "sqlstate": getattr(message, "sqlstate", None),
            "detail": getattr(message, "message", None) or str(message),
        }
        if severity in SERVER_ERROR_SEVERITIES:
            self.logger.error("Unexpected PostgreSQL client error", meta)
        elif severity == "WARNING":
            self.logger.warn("PostgreSQL server warning", meta)
        else:
            self.logger.debug("PostgreSQL server notice", meta)

    def _on_connection_lost(self, conn: asyncpg.Connection) -> None:
        if self._closing or getattr(conn, "closed_by_client", False):
            return
        self.logger.error(
            "Unexpected PostgreSQL client error",
            {"error": "connection terminated by server or network"},
        )
