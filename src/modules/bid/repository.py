"""Bid persistence with optimistic locking on the bid row."""

from __future__ import annotations

import uuid

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from src.exceptions import ConflictException
from src.models.bid import Bid
from src.models.enums import BidStatus


class BidRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, bid_id: uuid.UUID) -> Bid | None:
        result = await self.db.execute(select(Bid).where(Bid.id == bid_id))
        return result.scalar_one_or_none()

    async def find_by_tender_and_vendor(
        self, tender_id: uuid.UUID, vendor_id: uuid.UUID
    ) -> Bid | None:
        result = await self.db.execute(
            select(Bid).where(Bid.tender_id == tender_id, Bid.vendor_id == vendor_id)
        )
        return result.scalar_one_or_none()

    async def list_for_tender(self, tender_id: uuid.UUID) -> list[Bid]:
        result = await self.db.execute(
            select(Bid).where(Bid.tender_id == tender_id).order_by(Bid.created_at.asc())
        )
        return list(result.scalars().all())

    async def count_for_tender(
        self, tender_id: uuid.UUID, statuses: set[BidStatus] | None = None
    ) -> int:
        query = select(func.count()).select_from(Bid).where(Bid.tender_id == tender_id)
        if statuses is not None:
            query = query.where(Bid.status.in_(list(statuses)))
        result = await self.db.execute(query)
        return result.scalar() or 0

    async def exists_for_vendor(
        self, tender_id: uuid.UUID, vendor_id: uuid.UUID, statuses: set[BidStatus]
    ) -> bool:
        result = await self.db.execute(
            select(func.count())
            .select_from(Bid)
            .where(
                Bid.tender_id == tender_id,
                Bid.vendor_id == vendor_id,
                Bid.status.in_(list(statuses)),
            )
        )
        return (result.scalar() or 0) > 0

    async def add(self, bid: Bid) -> Bid:
        """Insert a new bid; a duplicate (tender, vendor) pair raises ConflictException."""
        # Attributes expire once a failed flush rolls the session back.
        tender_id, vendor_id = bid.tender_id, bid.vendor_id
        self.db.add(bid)
        try:
            await self.db.flush()
        except IntegrityError as exc:
            if "uq_bids_tender_vendor" in str(exc) or "UNIQUE" in str(exc):
                raise ConflictException(
                    f"A bid for vendor {vendor_id} on tender {tender_id} already exists"
                ) from exc
            raise
        return bid

    async def save(self, *bids: Bid) -> None:
        """Flush pending changes; a stale version on any bid raises ConflictException."""
        bid_ids = ", ".join(str(bid.id) for bid in bids) or "unknown"
        try:
            await self.db.flush()
        except StaleDataError as exc:
            raise ConflictException(
                f"Bid {bid_ids} was modified concurrently; reload and retry"
            ) from exc
