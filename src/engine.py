"""Operation boundary of the tender and bid lifecycle.

Every public coroutine runs as one unit of work and returns an
``OperationResult``. Domain exceptions raised by the services are turned into
structured errors here; nothing escapes to the caller.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.clock import Clock, SystemClock
from src.config import settings
from src.database.session import session_scope
from src.exceptions import AppException, ConflictException
from src.models.enums import BidRecommendation, TenderStatus
from src.modules.bid.award_service import AwardService
from src.modules.bid.bid_service import BidService
from src.modules.bid.evaluation_service import EvaluationService
from src.modules.bid.repository import BidRepository
from src.modules.bid.schemas import (
    BidEvaluation,
    BidResponse,
    BidSave,
    DocumentContent,
    DocumentResponse,
    DocumentUpload,
)
from src.modules.events.outbox_service import OutboxService
from src.modules.storage.base import DocumentStorageBase
from src.modules.tender.repository import TenderRepository
from src.modules.tender.schemas import (
    TenderCreate,
    TenderListResponse,
    TenderResponse,
    TenderTransitionResponse,
)
from src.modules.tender.sweeper import DeadlineSweeper
from src.modules.tender.tender_service import TenderService
from src.modules.vendor.directory import SqlVendorDirectory, VendorDirectoryBase
from src.schemas.responses import OperationResult
from src.schemas.validation import parse_payload

logger = logging.getLogger(__name__)

T = TypeVar("T")

INTERNAL_ERROR = "INTERNAL_ERROR"


@dataclass
class _Services:
    tenders: TenderService
    bids: BidService
    evaluation: EvaluationService
    award: AwardService


class TenderEngine:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        storage: DocumentStorageBase,
        clock: Clock | None = None,
        vendor_directory: Callable[[AsyncSession], VendorDirectoryBase] = SqlVendorDirectory,
        apply_score_weights: bool | None = None,
    ):
        self.session_factory = session_factory
        self.storage = storage
        self.clock = clock or SystemClock()
        self.vendor_directory = vendor_directory
        if apply_score_weights is None:
            apply_score_weights = settings.apply_tender_score_weights
        self.apply_score_weights = apply_score_weights

    # ------------------------------------------------------------------
    # Tenders
    # ------------------------------------------------------------------

    async def create_tender(self, **data: Any) -> OperationResult[TenderResponse]:
        async def op(services: _Services) -> TenderResponse:
            payload = parse_payload(TenderCreate, **data)
            tender = await services.tenders.create_tender(payload)
            return TenderResponse.model_validate(tender)

        return await self._run("create_tender", op)

    async def get_tender(self, tender_id: uuid.UUID) -> OperationResult[TenderResponse]:
        async def op(services: _Services) -> TenderResponse:
            return TenderResponse.model_validate(await services.tenders.get_tender(tender_id))

        return await self._run("get_tender", op)

    async def list_tenders(
        self,
        status: TenderStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> OperationResult[TenderListResponse]:
        async def op(services: _Services) -> TenderListResponse:
            items, total = await services.tenders.list_tenders(status, limit, offset)
            return TenderListResponse(
                items=[TenderResponse.model_validate(t) for t in items], total=total
            )

        return await self._run("list_tenders", op)

    async def start_review(
        self, tender_id: uuid.UUID, triggered_by: uuid.UUID | None = None
    ) -> OperationResult[TenderResponse]:
        async def op(services: _Services) -> TenderResponse:
            tender = await services.tenders.start_review(tender_id, triggered_by)
            return TenderResponse.model_validate(tender)

        return await self._run("start_review", op)

    async def close_tender(
        self,
        tender_id: uuid.UUID,
        triggered_by: uuid.UUID | None = None,
        reason: str | None = None,
    ) -> OperationResult[TenderResponse]:
        async def op(services: _Services) -> TenderResponse:
            tender = await services.tenders.close_tender(tender_id, triggered_by, reason)
            return TenderResponse.model_validate(tender)

        return await self._run("close_tender", op)

    async def cancel_tender(
        self,
        tender_id: uuid.UUID,
        reason: str,
        triggered_by: uuid.UUID | None = None,
    ) -> OperationResult[TenderResponse]:
        async def op(services: _Services) -> TenderResponse:
            tender = await services.tenders.cancel_tender(tender_id, reason, triggered_by)
            return TenderResponse.model_validate(tender)

        return await self._run("cancel_tender", op)

    async def get_tender_transitions(
        self, tender_id: uuid.UUID
    ) -> OperationResult[list[TenderTransitionResponse]]:
        async def op(services: _Services) -> list[TenderTransitionResponse]:
            transitions = await services.tenders.get_transitions(tender_id)
            return [TenderTransitionResponse.model_validate(t) for t in transitions]

        return await self._run("get_tender_transitions", op)

    async def sweep_expired_tenders(self, now: datetime | None = None) -> OperationResult[int]:
        """Close every OPEN tender whose deadline is at or before ``now``."""
        try:
            stats = await DeadlineSweeper(self.session_factory, self.clock).sweep(now)
        except Exception:
            logger.exception("sweep_expired_tenders failed")
            return OperationResult.failure(INTERNAL_ERROR, "Deadline sweep failed")
        return OperationResult.success(stats["closed"])

    # ------------------------------------------------------------------
    # Bids
    # ------------------------------------------------------------------

    async def create_or_update_bid(
        self,
        tender_id: uuid.UUID,
        vendor_id: uuid.UUID,
        bid_amount: Decimal | None = None,
        proposal: str | None = None,
    ) -> OperationResult[BidResponse]:
        async def op(services: _Services) -> BidResponse:
            payload = parse_payload(BidSave, bid_amount=bid_amount, proposal=proposal)
            bid = await services.bids.create_or_update_bid(tender_id, vendor_id, payload)
            return BidResponse.model_validate(bid)

        return await self._run("create_or_update_bid", op, retry_on_conflict=True)

    async def upload_document(
        self,
        bid_id: uuid.UUID | str | None,
        tender_id: uuid.UUID,
        vendor_id: uuid.UUID,
        document_type: str,
        file_name: str,
        content: bytes,
    ) -> OperationResult[BidResponse]:
        async def op(services: _Services) -> BidResponse:
            payload = parse_payload(
                DocumentUpload,
                document_type=document_type,
                file_name=file_name,
                content=content,
            )
            bid = await services.bids.upload_document(bid_id, tender_id, vendor_id, payload)
            return BidResponse.model_validate(bid)

        return await self._run("upload_document", op, retry_on_conflict=True)

    async def submit_bid(
        self,
        bid_id: uuid.UUID,
        tender_id: uuid.UUID,
        vendor_id: uuid.UUID,
        bid_amount: Decimal | None = None,
        proposal: str | None = None,
    ) -> OperationResult[BidResponse]:
        async def op(services: _Services) -> BidResponse:
            payload = parse_payload(BidSave, bid_amount=bid_amount, proposal=proposal)
            bid = await services.bids.submit_bid(bid_id, tender_id, vendor_id, payload)
            return BidResponse.model_validate(bid)

        return await self._run("submit_bid", op, retry_on_conflict=True)

    async def evaluate_bid(
        self,
        bid_id: uuid.UUID,
        technical_score: int | None = None,
        financial_score: int | None = None,
        comments: str | None = None,
        recommendation: BidRecommendation | str | None = None,
    ) -> OperationResult[BidResponse]:
        provided = {
            key: value
            for key, value in {
                "technical_score": technical_score,
                "financial_score": financial_score,
                "comments": comments,
                "recommendation": recommendation,
            }.items()
            if value is not None
        }

        async def op(services: _Services) -> BidResponse:
            payload = parse_payload(BidEvaluation, **provided)
            bid = await services.evaluation.evaluate_bid(bid_id, payload)
            return BidResponse.model_validate(bid)

        return await self._run("evaluate_bid", op)

    async def award_bid(
        self, bid_id: uuid.UUID, triggered_by: uuid.UUID | None = None
    ) -> OperationResult[BidResponse]:
        async def op(services: _Services) -> BidResponse:
            bid = await services.award.award_bid(bid_id, triggered_by)
            return BidResponse.model_validate(bid)

        return await self._run("award_bid", op)

    async def get_bid(self, bid_id: uuid.UUID) -> OperationResult[BidResponse]:
        async def op(services: _Services) -> BidResponse:
            return BidResponse.model_validate(await services.bids.get_bid(bid_id))

        return await self._run("get_bid", op)

    async def get_vendor_bid(
        self, tender_id: uuid.UUID, vendor_id: uuid.UUID
    ) -> OperationResult[BidResponse]:
        async def op(services: _Services) -> BidResponse:
            bid = await services.bids.get_vendor_bid(tender_id, vendor_id)
            return BidResponse.model_validate(bid)

        return await self._run("get_vendor_bid", op)

    async def list_bids(self, tender_id: uuid.UUID) -> OperationResult[list[BidResponse]]:
        async def op(services: _Services) -> list[BidResponse]:
            bids = await services.bids.list_bids(tender_id)
            return [BidResponse.model_validate(bid) for bid in bids]

        return await self._run("list_bids", op)

    async def count_active_bids(self, tender_id: uuid.UUID) -> OperationResult[int]:
        async def op(services: _Services) -> int:
            return await services.bids.count_active_bids(tender_id)

        return await self._run("count_active_bids", op)

    async def has_applied(
        self, tender_id: uuid.UUID, vendor_id: uuid.UUID
    ) -> OperationResult[bool]:
        async def op(services: _Services) -> bool:
            return await services.bids.has_applied(tender_id, vendor_id)

        return await self._run("has_applied", op)

    async def open_document(
        self, bid_id: uuid.UUID, document_type: str
    ) -> OperationResult[DocumentContent]:
        async def op(services: _Services) -> DocumentContent:
            document, content = await services.bids.read_document(bid_id, document_type)
            return DocumentContent(
                document=DocumentResponse(**document.to_record()), content=content
            )

        return await self._run("open_document", op)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _services(self, session: AsyncSession) -> _Services:
        events = OutboxService(session)
        tender_service = TenderService(TenderRepository(session), events, self.clock)
        bids = BidRepository(session)
        return _Services(
            tenders=tender_service,
            bids=BidService(
                bids,
                tender_service,
                self.vendor_directory(session),
                self.storage,
                events,
                self.clock,
            ),
            evaluation=EvaluationService(
                bids, tender_service, events, self.clock, self.apply_score_weights
            ),
            award=AwardService(bids, tender_service, events, self.clock),
        )

    async def _run(
        self,
        operation: str,
        fn: Callable[[_Services], Awaitable[T]],
        retry_on_conflict: bool = False,
    ) -> OperationResult[T]:
        """Run ``fn`` in its own transaction and wrap the outcome.

        With ``retry_on_conflict`` a ConflictException re-runs the whole
        read-modify-write once in a fresh transaction.
        """
        attempt = 1
        while True:
            try:
                async with session_scope(self.session_factory) as session:
                    value = await fn(self._services(session))
                return OperationResult.success(value)
            except ConflictException as exc:
                if retry_on_conflict and attempt == 1:
                    logger.warning("%s hit a conflict, retrying once: %s", operation, exc.message)
                    attempt += 1
                    continue
                return self._failure(operation, exc)
            except AppException as exc:
                return self._failure(operation, exc)
            except Exception:
                logger.exception("Unhandled error in %s", operation)
                return OperationResult.failure(
                    INTERNAL_ERROR, f"Unexpected error while running {operation}"
                )

    @staticmethod
    def _failure(operation: str, exc: AppException) -> OperationResult:
        logger.info("%s failed with %s: %s", operation, exc.code, exc.message)
        return OperationResult.failure(exc.code, exc.message, exc.details)


def build_default_engine() -> TenderEngine:
    """Engine wired to the configured database and document storage."""
    from src.database.engine import async_session
    from src.modules.storage.factory import get_document_storage

    return TenderEngine(async_session, get_document_storage())
