"""PostgreSQL pool and lifecycle."""

from svckit.db.errors import (
    DatabaseError,
    LifecycleError,
    PoolExhaustedOrConnectError,
    SessionDefaultsError,
)
from svckit.db.lifecycle import (
    DatabaseLifecycle,
    LifecycleState,
    get_database,
    init_db,
    shut_down_db,
)
from svckit.db.pool import ConnectionPool

__all__ = [
    "ConnectionPool",
    "DatabaseError",
    "DatabaseLifecycle",
    "LifecycleError",
    "LifecycleState",
    "PoolExhaustedOrConnectError",
    "SessionDefaultsError",
    "get_database",
    "init_db",
    "shut_down_db",
]
