"""
Background task that deletes expired video messages.

Started from the application lifespan when EXPIRY_SWEEP_INTERVAL > 0 and
cancelled on shutdown. Each pass runs in its own session; a failed pass is
logged and the loop keeps going.
"""

import asyncio
import logging

from sunnyvideo.database import session_scope
from sunnyvideo.services.message_service import message_service

logger = logging.getLogger(__name__)


async def sweep_once() -> int:
    async with session_scope() as db:
        return await message_service.purge_expired(db)


async def run_expiry_sweeper(interval_seconds: int) -> None:
    logger.info("Expiry sweeper started (interval=%ds)", interval_seconds)
    try:
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                removed = await sweep_once()
                if removed:
                    logger.info("Expiry sweep removed %d message(s)", removed)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("Expiry sweep failed: %s", str(e), exc_info=True)
    finally:
        logger.info("Expiry sweeper stopped")
