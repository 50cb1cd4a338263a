"""Bid lifecycle service — drafts, document uploads, submission gate, reads."""

from __future__ import annotations

import asyncio
import logging
import uuid
from decimal import Decimal

from src.clock import Clock
from src.exceptions import (
    AlreadySubmittedException,
    IncompleteDocumentsException,
    NotFoundException,
    ValidationException,
)
from src.models.bid import Bid
from src.models.enums import BidStatus
from src.models.tender import Tender
from src.modules.bid.constants import (
    ACTIVE_STATUSES,
    EDITABLE_STATUSES,
    EVENT_BID_CREATED,
    EVENT_BID_DOCUMENT_UPLOADED,
    EVENT_BID_SUBMITTED,
    NEW_BID_SENTINEL,
    REQUIRED_DOCUMENT_TYPES,
)
from src.modules.bid.document_set import Document, DocumentSet
from src.modules.bid.repository import BidRepository
from src.modules.bid.schemas import BidSave, DocumentUpload
from src.modules.events.outbox_service import OutboxService
from src.modules.storage.base import DocumentStorageBase
from src.modules.tender.tender_service import TenderService
from src.modules.vendor.directory import VendorDirectoryBase

logger = logging.getLogger(__name__)


def parse_bid_reference(bid_id: uuid.UUID | str | None) -> uuid.UUID | None:
    """Normalise a caller-supplied bid id; None means "start a fresh application"."""
    if bid_id is None or isinstance(bid_id, uuid.UUID):
        return bid_id
    if bid_id.strip().lower() in ("", NEW_BID_SENTINEL):
        return None
    try:
        return uuid.UUID(bid_id)
    except ValueError as exc:
        raise ValidationException(
            f"Invalid bid id '{bid_id}'",
            details=[{"field": "bid_id", "message": "Must be a UUID or 'new'"}],
        ) from exc


class BidService:
    def __init__(
        self,
        bids: BidRepository,
        tender_service: TenderService,
        vendors: VendorDirectoryBase,
        storage: DocumentStorageBase,
        events: OutboxService,
        clock: Clock,
    ):
        self.bids = bids
        self.tender_service = tender_service
        self.vendors = vendors
        self.storage = storage
        self.events = events
        self.clock = clock

    # ------------------------------------------------------------------
    # Draft
    # ------------------------------------------------------------------

    async def create_or_update_bid(
        self, tender_id: uuid.UUID, vendor_id: uuid.UUID, data: BidSave
    ) -> Bid:
        """Save amount/proposal on the vendor's draft, creating the draft if needed."""
        await self.vendors.find_vendor(vendor_id)
        tender = await self.tender_service.get_tender(tender_id, lock=True)
        self.tender_service.ensure_accepting_bids(tender)

        bid = await self.bids.find_by_tender_and_vendor(tender_id, vendor_id)
        if bid is None:
            bid = await self._create_draft(tender, vendor_id)
        else:
            self._ensure_editable(bid)

        if data.bid_amount is not None:
            bid.bid_amount = data.bid_amount
        if data.proposal is not None:
            bid.proposal = data.proposal
        await self.bids.save(bid)

        logger.info("Saved draft bid %s on tender %s", bid.id, tender_id)
        return bid

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def upload_document(
        self,
        bid_id: uuid.UUID | str | None,
        tender_id: uuid.UUID,
        vendor_id: uuid.UUID,
        upload: DocumentUpload,
    ) -> Bid:
        """Attach a document to the vendor's bid, replacing any of the same type.

        Without an explicit bid id the upload starts a fresh application: an
        existing draft has its Document Set cleared first. Bids past DRAFT are
        frozen and reject every upload with AlreadySubmittedException.
        """
        reference = parse_bid_reference(bid_id)

        await self.vendors.find_vendor(vendor_id)
        tender = await self.tender_service.get_tender(tender_id, lock=True)
        self.tender_service.ensure_accepting_bids(tender)

        fresh = reference is None
        if fresh:
            bid = await self.bids.find_by_tender_and_vendor(tender_id, vendor_id)
            if bid is None:
                bid = await self._create_draft(tender, vendor_id)
        else:
            bid = await self._get_owned_bid(reference, tender_id, vendor_id)
        self._ensure_editable(bid)

        document_set = DocumentSet.from_records(bid.documents)
        if fresh and len(document_set):
            logger.info("Resetting documents on draft bid %s for a fresh upload", bid.id)
            document_set = document_set.reset()

        locator = await asyncio.to_thread(self.storage.store, upload.content, upload.file_name)
        document = Document(
            document_type=upload.document_type,
            name=upload.file_name,
            locator=locator,
            size=len(upload.content),
            uploaded_at=self.clock.now(),
        )
        replaced = document_set.get(upload.document_type)
        bid.documents = document_set.put(document).to_records()
        await self.bids.save(bid)

        await self.events.publish_event(
            event_type=EVENT_BID_DOCUMENT_UPLOADED,
            aggregate_type="bid",
            aggregate_id=str(bid.id),
            payload={
                "bid_id": str(bid.id),
                "tender_id": str(tender_id),
                "vendor_id": str(vendor_id),
                "document_type": upload.document_type,
                "locator": locator,
                "replaced_locator": replaced.locator if replaced else None,
            },
        )
        logger.info(
            "Uploaded %s for bid %s (%d bytes)", upload.document_type, bid.id, len(upload.content)
        )
        return bid

    async def read_document(self, bid_id: uuid.UUID, document_type: str) -> tuple[Document, bytes]:
        bid = await self.get_bid(bid_id)
        document = DocumentSet.from_records(bid.documents).get(document_type)
        if document is None:
            raise NotFoundException(f"Bid {bid_id} has no '{document_type}' document")

        def _read() -> bytes:
            with self.storage.open_for_read(document.locator) as stream:
                return stream.read()

        return document, await asyncio.to_thread(_read)

    # ------------------------------------------------------------------
    # Submit
    # ------------------------------------------------------------------

    async def submit_bid(
        self,
        bid_id: uuid.UUID,
        tender_id: uuid.UUID,
        vendor_id: uuid.UUID,
        data: BidSave,
    ) -> Bid:
        """Submit a draft bid.

        Validates:
        - Tender is accepting bids
        - Bid belongs to this tender and vendor and is still a draft
        - Every required document type is present exactly once
        - Bid amount is greater than zero
        """
        await self.vendors.find_vendor(vendor_id)
        tender = await self.tender_service.get_tender(tender_id, lock=True)
        self.tender_service.ensure_accepting_bids(tender)

        bid = await self._get_owned_bid(bid_id, tender_id, vendor_id)
        if bid.status != BidStatus.DRAFT:
            raise AlreadySubmittedException(f"Bid {bid.id} has already been submitted")

        missing = DocumentSet.from_records(bid.documents).missing(REQUIRED_DOCUMENT_TYPES)
        if missing:
            raise IncompleteDocumentsException(
                f"Bid {bid.id} is missing required documents: {', '.join(missing)}",
                missing_types=missing,
            )

        amount = data.bid_amount if data.bid_amount is not None else bid.bid_amount
        if amount is None or Decimal(amount) <= 0:
            raise ValidationException(
                "Bid amount must be greater than zero",
                details=[{"field": "bid_amount", "message": "Must be greater than zero"}],
            )

        bid.bid_amount = amount
        if data.proposal is not None:
            bid.proposal = data.proposal
        bid.status = BidStatus.SUBMITTED
        bid.submitted_at = self.clock.now()
        await self.bids.save(bid)

        await self.events.publish_event(
            event_type=EVENT_BID_SUBMITTED,
            aggregate_type="bid",
            aggregate_id=str(bid.id),
            payload={
                "bid_id": str(bid.id),
                "tender_id": str(tender_id),
                "vendor_id": str(vendor_id),
                "bid_amount": str(bid.bid_amount),
            },
        )
        logger.info("Bid %s submitted on tender %s (amount: %s)", bid.id, tender_id, amount)
        return bid

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get_bid(self, bid_id: uuid.UUID) -> Bid:
        bid = await self.bids.get(bid_id)
        if bid is None:
            raise NotFoundException(f"Bid {bid_id} not found")
        return bid

    async def get_vendor_bid(self, tender_id: uuid.UUID, vendor_id: uuid.UUID) -> Bid:
        bid = await self.bids.find_by_tender_and_vendor(tender_id, vendor_id)
        if bid is None:
            raise NotFoundException(f"No bid from vendor {vendor_id} on tender {tender_id}")
        return bid

    async def list_bids(self, tender_id: uuid.UUID) -> list[Bid]:
        await self.tender_service.get_tender(tender_id)
        return await self.bids.list_for_tender(tender_id)

    async def count_active_bids(self, tender_id: uuid.UUID) -> int:
        await self.tender_service.get_tender(tender_id)
        return await self.bids.count_for_tender(tender_id, ACTIVE_STATUSES)

    async def has_applied(self, tender_id: uuid.UUID, vendor_id: uuid.UUID) -> bool:
        """True if the vendor holds a submitted-or-later bid on the tender."""
        return await self.bids.exists_for_vendor(tender_id, vendor_id, ACTIVE_STATUSES)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _create_draft(self, tender: Tender, vendor_id: uuid.UUID) -> Bid:
        bid = Bid(
            tender_id=tender.id,
            vendor_id=vendor_id,
            status=BidStatus.DRAFT,
            bid_amount=Decimal("0"),
            proposal="",
            documents=[],
        )
        await self.bids.add(bid)

        await self.events.publish_event(
            event_type=EVENT_BID_CREATED,
            aggregate_type="bid",
            aggregate_id=str(bid.id),
            payload={
                "bid_id": str(bid.id),
                "tender_id": str(tender.id),
                "vendor_id": str(vendor_id),
            },
        )
        logger.info("Created draft bid %s for vendor %s on tender %s", bid.id, vendor_id, tender.id)
        return bid

    async def _get_owned_bid(
        self, bid_id: uuid.UUID, tender_id: uuid.UUID, vendor_id: uuid.UUID
    ) -> Bid:
        bid = await self.get_bid(bid_id)
        if bid.tender_id != tender_id or bid.vendor_id != vendor_id:
            raise ValidationException(
                f"Bid {bid_id} does not belong to vendor {vendor_id} on tender {tender_id}",
                details=[{"field": "bid_id", "message": "Bid does not match tender and vendor"}],
            )
        return bid

    @staticmethod
    def _ensure_editable(bid: Bid) -> None:
        if bid.status not in EDITABLE_STATUSES:
            raise AlreadySubmittedException(
                f"Bid {bid.id} has already been submitted and can no longer be changed"
            )
