"""Standalone entrypoint - runs the monitoring engine until interrupted."""
import asyncio
import logging
import signal

from .config import settings
from .database import init_db, close_db
from .services.engine import MonitorEngine

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def main():
    """Initialize the database, schedule active targets, and wait for a signal."""
    logger.info("Starting PulseWatch monitoring engine")

    await init_db()
    logger.info("Database initialized")

    engine = MonitorEngine.from_settings(settings)
    engine.startup()

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows event loops have no signal handler support
            pass

    try:
        await engine.initialize_all()
        await stop_event.wait()
    finally:
        engine.shutdown()
        await close_db()
        logger.info("Shutdown complete")


def run():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
