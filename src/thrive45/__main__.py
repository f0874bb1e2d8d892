"""Main entry point: run the progress engine as a local service."""
import asyncio
import logging
import signal
from typing import Optional

from thrive45.app import Thrive45App
from thrive45.config import ensure_directories, settings
from thrive45.logging_config import setup_logging

logger = logging.getLogger(__name__)


async def main(stop: Optional[asyncio.Event] = None) -> None:
    """Run the application until ``stop`` is set or a termination signal arrives."""
    stop = stop or asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError):
            # Not available outside the main thread or on Windows
            pass

    app = Thrive45App()
    try:
        logger.info("Starting Thrive45...")
        await app.start()
        app.reconciliation.identity_changed(None)
        await stop.wait()
        logger.info("Received exit signal, shutting down...")
    finally:
        logger.info("Cleaning up...")
        await app.stop()


if __name__ == "__main__":
    ensure_directories(settings.paths.data_dir)
    setup_logging("Starting Thrive45 progress engine ...")

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
