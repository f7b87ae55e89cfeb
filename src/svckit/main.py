"""Application entry point."""

import asyncio
import signal
import sys

from pydantic import ValidationError

from svckit.config import get_config
from svckit.context import RequestContext, new_request_id, run
from svckit.db import ConnectionPool, DatabaseLifecycle, LifecycleState
from svckit.log import configure_logging, create_logger, install_rejection_handler


async def boot() -> None:
    """
    Boot sequence: load config → initialize pool → wait for signal → shutdown.

    Raises:
        SystemExit: On configuration or database errors
    """
    logger = create_logger({"service": "main"})
    install_rejection_handler()

    try:
        config = get_config()
    except ValidationError as e:
        logger.error("Invalid database configuration", {"error": str(e)})
        await logger.close()
        raise SystemExit(1) from e

    database = DatabaseLifecycle(ConnectionPool(config))
    try:
        # Startup runs under its own request id so its log lines group together
        await run(RequestContext(request_id=new_request_id()), database.init_db)
    except Exception as e:
        logger.error("Boot sequence failed", {"error": str(e)})
        if database.state is LifecycleState.STARTED:
            await database.shut_down_db()
        else:
            # pool may have been created before acquisition failed
            try:
                await database.pool.close()
            except Exception as close_error:
                logger.warn("Failed to close PostgreSQL pool", {"error": str(close_error)})
        await logger.close()
        raise SystemExit(1) from e

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    logger.info(
        "Service started",
        {"pool_min": config.pg_pool_min, "pool_max": config.pg_pool_max},
    )
    await stop.wait()

    logger.info("Shutdown signal received")
    await database.shut_down_db()
    logger.info("Application shutdown complete")
    await logger.close()


def main() -> None:
    """Main entry point with logging configuration."""
    try:
        configure_logging()
    except ValidationError as e:
        print(f"Invalid logging configuration: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        asyncio.run(boot())
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    main()
