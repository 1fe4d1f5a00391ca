"""
stockfeed - main entry point.

Starts the sync scheduler (weekly stock catalog + logo backfill, news every
20 minutes) and runs until SIGINT/SIGTERM, then shuts every component down
within a bounded time.
"""

from __future__ import annotations

import asyncio
import signal

from dotenv import load_dotenv

load_dotenv()

from stockfeed.app import StockFeed
from stockfeed.db.connection import init_db
from stockfeed.utils.logger import get_logger

logger = get_logger(__name__)

_SHUTDOWN_TIMEOUT: float = 30.0


async def main() -> None:
    feed = StockFeed()
    shutdown_event = asyncio.Event()

    def signal_handler(sig: signal.Signals) -> None:
        logger.info("Received signal %s, initiating graceful shutdown...", sig.name)
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))

    try:
        await init_db()
        feed.scheduler.start()
        logger.info("stockfeed running. Waiting for shutdown signal.")
        await shutdown_event.wait()
    except Exception as e:
        logger.exception("Fatal error in main: %s", e)
    finally:
        logger.info("Running shutdown sequence (timeout=%.0fs)...", _SHUTDOWN_TIMEOUT)
        try:
            await asyncio.wait_for(feed.shutdown(), timeout=_SHUTDOWN_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning(
                "Shutdown timed out after %.0f seconds, forcing exit.", _SHUTDOWN_TIMEOUT
            )
        except Exception as exc:
            logger.error("Error during shutdown: %s", exc)


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
