"""
Run one pass of the reorder advisor.

Run locally (or from cron, once a day):
  python backend/scripts/run_reorder_advisor.py

Uses DATABASE_URL, the LLM_* and VAPID_* env vars (dotenv supported by core.config).
"""

from __future__ import annotations

import asyncio
import logging
import os

from core.error_reporting import configure_logging, init_error_reporting
from core.llm_client import LLMClient
from core.push_client import PushSender
from services.reorder_advisor import run_reorder_advisor

logger = logging.getLogger("reorder_advisor")


async def main() -> int:
    configure_logging()
    init_error_reporting()

    session_factory = None
    if os.getenv("DATABASE_URL"):
        from db.database import async_session_maker

        session_factory = async_session_maker

    summary = await run_reorder_advisor(session_factory, LLMClient(), PushSender())

    logger.info("Low-stock items: %d", summary.low_stock_count)
    for supplier, outcome in summary.outcomes.items():
        logger.info(
            "%s: %d low, notified=%s%s",
            supplier,
            outcome.low_stock_count,
            outcome.notified,
            f" ({outcome.error})" if outcome.error else "",
        )
    if summary.error:
        logger.error("Reorder advisor failed: %s", summary.error)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
