"""Database pool lifecycle and structured logging for asyncio services."""

__version__ = "0.1.0"
