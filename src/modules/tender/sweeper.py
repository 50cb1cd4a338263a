"""Closes OPEN tenders whose deadline has elapsed."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.clock import Clock, SystemClock, as_utc
from src.database.session import session_scope
from src.modules.events.outbox_service import OutboxService
from src.modules.tender.repository import TenderRepository
from src.modules.tender.tender_service import TenderService

logger = logging.getLogger(__name__)


class DeadlineSweeper:
    """Bulk, best-effort close of expired tenders.

    Each tender is closed in its own transaction, so one failing row never
    blocks the rest. Running twice with the same ``now`` closes nothing the
    second time because only OPEN tenders are selected.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock | None = None,
    ):
        self.session_factory = session_factory
        self.clock = clock or SystemClock()

    async def sweep(self, now: datetime | None = None) -> dict:
        now = as_utc(now) if now is not None else self.clock.now()
        stats = {"checked": 0, "closed": 0, "skipped": 0, "errors": 0}

        async with session_scope(self.session_factory) as session:
            tender_ids = await TenderRepository(session).find_expired_ids(now)
        stats["checked"] = len(tender_ids)

        for tender_id in tender_ids:
            try:
                async with session_scope(self.session_factory) as session:
                    service = TenderService(
                        TenderRepository(session), OutboxService(session), self.clock
                    )
                    closed = await service.close_if_expired(tender_id, now)
            except Exception:
                logger.exception("Error auto-closing expired tender %s", tender_id)
                stats["errors"] += 1
                continue

            if closed:
                stats["closed"] += 1
            else:
                stats["skipped"] += 1

        if stats["closed"] or stats["errors"]:
            logger.info(
                "Deadline sweep at %s closed %d of %d expired tenders (%d errors)",
                now.isoformat(), stats["closed"], stats["checked"], stats["errors"],
            )
        return stats
