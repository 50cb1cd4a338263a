"""Single-winner award with rejection cascade."""

from __future__ import annotations

import logging
import uuid

from src.clock import Clock
from src.exceptions import NotFoundException, TenderNotAwardableException
from src.models.bid import Bid
from src.models.enums import BidStatus, TenderTransitionType
from src.modules.bid.constants import EVENT_BID_AWARDED, EVENT_BID_REJECTED, TERMINAL_STATUSES
from src.modules.bid.repository import BidRepository
from src.modules.events.outbox_service import OutboxService
from src.modules.tender.tender_service import TenderService

logger = logging.getLogger(__name__)


class AwardService:
    def __init__(
        self,
        bids: BidRepository,
        tender_service: TenderService,
        events: OutboxService,
        clock: Clock,
    ):
        self.bids = bids
        self.tender_service = tender_service
        self.events = events
        self.clock = clock

    async def award_bid(self, bid_id: uuid.UUID, triggered_by: uuid.UUID | None = None) -> Bid:
        """Award ``bid_id`` and reject every other live bid on its tender.

        The tender moves open -> awarded through a compare-and-set, so of two
        concurrent awards (or an award racing the deadline sweeper) exactly one
        wins. The whole cascade runs in the caller's transaction.
        """
        bid = await self.bids.get(bid_id)
        if bid is None:
            raise NotFoundException(f"Bid {bid_id} not found")
        tender = await self.tender_service.get_tender(bid.tender_id)

        if not self.tender_service.is_accepting_bids(tender):
            raise TenderNotAwardableException(
                f"Tender {tender.id} is '{tender.status.value}' and cannot be awarded"
            )
        if bid.status in TERMINAL_STATUSES:
            raise TenderNotAwardableException(
                f"Bid {bid.id} is '{bid.status.value}' and cannot be awarded"
            )

        now = self.clock.now()
        applied = await self.tender_service.try_transition(
            tender,
            TenderTransitionType.AWARD,
            triggered_by=triggered_by,
            metadata={"bid_id": str(bid.id), "vendor_id": str(bid.vendor_id)},
            values={
                "awarded_to": bid.vendor_id,
                "awarded_bid_id": bid.id,
                "awarded_amount": bid.bid_amount,
                "awarded_at": now,
                "closed_at": now,
            },
        )
        if not applied:
            raise TenderNotAwardableException(
                f"Tender {tender.id} is no longer open and cannot be awarded"
            )

        rejected: list[Bid] = []
        for other in await self.bids.list_for_tender(tender.id):
            if other.id == bid.id or other.status in TERMINAL_STATUSES:
                continue
            other.status = BidStatus.REJECTED
            rejected.append(other)

        bid.status = BidStatus.AWARDED
        bid.awarded_at = now
        await self.bids.save(bid, *rejected)

        await self.events.publish_event(
            event_type=EVENT_BID_AWARDED,
            aggregate_type="bid",
            aggregate_id=str(bid.id),
            payload={
                "bid_id": str(bid.id),
                "tender_id": str(tender.id),
                "vendor_id": str(bid.vendor_id),
                "bid_amount": str(bid.bid_amount),
            },
        )
        for other in rejected:
            await self.events.publish_event(
                event_type=EVENT_BID_REJECTED,
                aggregate_type="bid",
                aggregate_id=str(other.id),
                payload={
                    "bid_id": str(other.id),
                    "tender_id": str(tender.id),
                    "reason": "award",
                    "awarded_bid_id": str(bid.id),
                },
            )

        logger.info(
            "Awarded tender %s to bid %s (vendor %s); rejected %d other bids",
            tender.id, bid.id, bid.vendor_id, len(rejected),
        )
        return bid
