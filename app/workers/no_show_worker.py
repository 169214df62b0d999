"""Executable worker for the periodic no-show sweep."""

from __future__ import annotations

import asyncio
import logging
import os

from app.core.database import close_engine
from app.modules.booking.no_show import build_no_show_detector

logger = logging.getLogger(__name__)


async def run_cycle() -> dict:
    """Run one sweep; every booking is committed in its own transaction."""
    detector = build_no_show_detector()
    return await detector.process_batch()


async def main() -> None:
    """Run once or keep polling according to worker mode."""
    logging.basicConfig(level=os.getenv("NO_SHOW_WORKER_LOG_LEVEL", "INFO"))
    mode = os.getenv("NO_SHOW_WORKER_MODE", "once").strip().lower()
    poll_seconds = int(os.getenv("NO_SHOW_WORKER_POLL_SECONDS", "3600"))

    try:
        if mode == "once":
            stats = await run_cycle()
            logger.info("No-show worker stats: %s", stats)
            return

        while True:
            try:
                stats = await run_cycle()
                logger.info("No-show worker stats: %s", stats)
            except Exception:
                logger.exception("No-show worker cycle failed")
            await asyncio.sleep(poll_seconds)
    finally:
        await close_engine()


if __name__ == "__main__":
    asyncio.run(main())
