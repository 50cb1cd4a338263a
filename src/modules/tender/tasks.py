"""Celery tasks for tender lifecycle automation."""

from __future__ import annotations

import asyncio
import logging

from celery_app import celery
from src.config import settings

logger = logging.getLogger(__name__)


async def _close_expired_tenders_async() -> int:
    """Run one sweep through the engine within the configured time budget."""
    from src.database.engine import engine as db_engine
    from src.engine import build_default_engine

    engine = build_default_engine()
    try:
        result = await asyncio.wait_for(
            engine.sweep_expired_tenders(engine.clock.now()),
            timeout=settings.tender_sweep_time_budget_seconds,
        )
    finally:
        # Pooled connections are bound to this tick's event loop
        await db_engine.dispose()
    if not result.ok:
        raise RuntimeError(result.error.message)
    return result.value


# ---------------------------------------------------------------------------
# Celery task definitions
# ---------------------------------------------------------------------------


@celery.task(
    name="src.modules.tender.tasks.close_expired_tenders",
    soft_time_limit=settings.tender_sweep_time_budget_seconds + 5,
)
def close_expired_tenders():
    """Auto-transition OPEN tenders past their deadline to CLOSED.

    A failed tick is logged and swallowed; beat schedules the next one.
    """
    try:
        closed = asyncio.run(_close_expired_tenders_async())
    except TimeoutError:
        logger.error(
            "close_expired_tenders exceeded its %ss budget; resuming next tick",
            settings.tender_sweep_time_budget_seconds,
        )
        return {"closed": 0, "timed_out": True}
    except Exception:
        logger.exception("close_expired_tenders tick failed; resuming next tick")
        return {"closed": 0, "failed": True}
    logger.info("close_expired_tenders complete: closed %d tenders", closed)
    return {"closed": closed}
