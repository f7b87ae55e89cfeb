"""Database error hierarchy."""


class DatabaseError(Exception):
    """Base class for pool and lifecycle failures."""


class PoolExhaustedOrConnectError(DatabaseError):
    """No connection could be obtained within the connection timeout."""


class SessionDefaultsError(DatabaseError):
    """Session defaults could not be applied to a new connection."""


class LifecycleError(DatabaseError):
    """Invalid lifecycle transition, e.g. starting a closed pool."""
