#!/usr/bin/env python3
"""Run one planning notification sweep immediately.

Usage:
    uv run python scripts/run_manual_check.py
"""

import asyncio
import logging

from src.core import db_client
from src.core.scheduler import run_manual_check


logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


async def main() -> None:
    await db_client.init_db()
    try:
        result = await run_manual_check()
    finally:
        await db_client.close_connection()

    logger.info(
        f"Users: {result.users_total} total, {result.users_processed} processed, {result.users_skipped} skipped"
    )
    logger.info(f"Messages sent: {result.messages_sent}")
    for failure in result.failures:
        logger.error(f"Failed for user {failure.user_id}: {failure.error}")


if __name__ == "__main__":
    asyncio.run(main())
