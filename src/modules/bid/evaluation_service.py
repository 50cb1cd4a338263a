"""Merges evaluation scores into a bid and derives its total score."""

from __future__ import annotations

import logging
import uuid

from src.clock import Clock
from src.exceptions import NotFoundException, ValidationException
from src.models.bid import Bid
from src.models.enums import BidRecommendation, BidStatus
from src.modules.bid.constants import EVENT_BID_EVALUATED, EVENT_BID_REJECTED, TERMINAL_STATUSES
from src.modules.bid.repository import BidRepository
from src.modules.bid.schemas import BidEvaluation
from src.modules.events.outbox_service import OutboxService
from src.modules.tender.tender_service import TenderService

logger = logging.getLogger(__name__)


def compute_total_score(
    technical: int | None,
    financial: int | None,
    weights: tuple[int, int] | None = None,
) -> float | None:
    """Total of the two component scores, or None unless both are present.

    Without ``weights`` this is the arithmetic mean. With ``(tech, financial)``
    percentages summing to 100 it is the weighted mean.
    """
    if technical is None or financial is None:
        return None
    if weights is None:
        return (technical + financial) / 2
    tech_weight, financial_weight = weights
    return (technical * tech_weight + financial * financial_weight) / 100


class EvaluationService:
    def __init__(
        self,
        bids: BidRepository,
        tender_service: TenderService,
        events: OutboxService,
        clock: Clock,
        apply_weights: bool = False,
    ):
        self.bids = bids
        self.tender_service = tender_service
        self.events = events
        self.clock = clock
        self.apply_weights = apply_weights

    async def evaluate_bid(self, bid_id: uuid.UUID, evaluation: BidEvaluation) -> Bid:
        bid = await self.bids.get(bid_id)
        if bid is None:
            raise NotFoundException(f"Bid {bid_id} not found")
        if bid.status == BidStatus.DRAFT:
            raise ValidationException(
                f"Bid {bid_id} has not been submitted and cannot be evaluated"
            )
        if bid.status in TERMINAL_STATUSES:
            raise ValidationException(
                f"Bid {bid_id} is {bid.status.value} and can no longer be evaluated"
            )

        provided = evaluation.model_dump(exclude_unset=True)
        if "technical_score" in provided:
            bid.technical_score = evaluation.technical_score
        if "financial_score" in provided:
            bid.financial_score = evaluation.financial_score
        if "comments" in provided:
            bid.evaluation_comments = evaluation.comments
        if evaluation.recommendation is not None:
            bid.recommendation = evaluation.recommendation

        weights = None
        if self.apply_weights:
            tender = await self.tender_service.get_tender(bid.tender_id)
            weights = (tender.tech_score_weight, tender.financial_score_weight)
        bid.total_score = compute_total_score(bid.technical_score, bid.financial_score, weights)

        previous_status = bid.status
        if bid.status == BidStatus.SUBMITTED:
            bid.status = BidStatus.UNDER_REVIEW
        if bid.recommendation == BidRecommendation.REJECT:
            bid.status = BidStatus.REJECTED
        bid.evaluated_at = self.clock.now()
        await self.bids.save(bid)

        await self.events.publish_event(
            event_type=EVENT_BID_EVALUATED,
            aggregate_type="bid",
            aggregate_id=str(bid.id),
            payload={
                "bid_id": str(bid.id),
                "tender_id": str(bid.tender_id),
                "technical_score": bid.technical_score,
                "financial_score": bid.financial_score,
                "total_score": bid.total_score,
                "recommendation": bid.recommendation.value,
            },
        )
        if bid.status == BidStatus.REJECTED:
            await self.events.publish_event(
                event_type=EVENT_BID_REJECTED,
                aggregate_type="bid",
                aggregate_id=str(bid.id),
                payload={
                    "bid_id": str(bid.id),
                    "tender_id": str(bid.tender_id),
                    "reason": "evaluation",
                },
            )

        logger.info(
            "Evaluated bid %s (%s -> %s, total: %s)",
            bid.id, previous_status.value, bid.status.value, bid.total_score,
        )
        return bid
