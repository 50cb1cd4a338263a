"""Tender persistence: lookups, listing, and compare-and-set status writes."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.enums import TenderStatus
from src.models.tender import Tender
from src.models.tender_transition import TenderTransition


class TenderRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, tender_id: uuid.UUID, for_share: bool = False) -> Tender | None:
        """Load a tender; ``for_share`` holds a FOR SHARE row lock until commit."""
        query = select(Tender).where(Tender.id == tender_id)
        if for_share:
            query = query.with_for_update(read=True).execution_options(
                populate_existing=True
            )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def add(self, tender: Tender) -> Tender:
        self.db.add(tender)
        await self.db.flush()
        return tender

    async def list(
        self,
        status: TenderStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Tender], int]:
        query = select(Tender)
        count_query = select(func.count()).select_from(Tender)
        if status is not None:
            query = query.where(Tender.status == status)
            count_query = count_query.where(Tender.status == status)

        total_result = await self.db.execute(count_query)
        total = total_result.scalar() or 0

        query = query.order_by(Tender.deadline.asc()).offset(offset).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def find_expired_ids(self, now: datetime) -> list[uuid.UUID]:
        """IDs of OPEN tenders whose deadline is at or before ``now``."""
        result = await self.db.execute(
            select(Tender.id)
            .where(
                Tender.status == TenderStatus.OPEN,
                Tender.deadline <= now,
            )
            .order_by(Tender.deadline.asc())
        )
        return list(result.scalars().all())

    async def compare_and_set_status(
        self,
        tender: Tender,
        expected: TenderStatus,
        new_status: TenderStatus,
        **values: Any,
    ) -> bool:
        """Move ``tender`` to ``new_status`` only if the stored status is still ``expected``.

        Returns False when another writer changed the status first; the row is
        left untouched in that case.
        """
        result = await self.db.execute(
            update(Tender)
            .where(Tender.id == tender.id, Tender.status == expected)
            .values(status=new_status, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        await self.db.refresh(tender)
        return True

    async def add_transition(self, transition: TenderTransition) -> TenderTransition:
        self.db.add(transition)
        await self.db.flush()
        return transition

    async def list_transitions(self, tender_id: uuid.UUID) -> list[TenderTransition]:
        result = await self.db.execute(
            select(TenderTransition)
            .where(TenderTransition.tender_id == tender_id)
            .order_by(TenderTransition.created_at.asc())
        )
        return list(result.scalars().all())
