"""Bid lifecycle statuses, required documents, and event types."""

from __future__ import annotations

from src.models.enums import BidStatus, DocumentType

# Every bid must carry exactly one document of each of these before submission
REQUIRED_DOCUMENT_TYPES: tuple[str, ...] = (
    DocumentType.TECHNICAL_PROPOSAL.value,
    DocumentType.FINANCIAL_PROPOSAL.value,
    DocumentType.COMPANY_PROFILE.value,
)

# Placeholder bid identifier meaning "start a fresh application"
NEW_BID_SENTINEL = "new"

# Statuses where amount, proposal and documents can still change
EDITABLE_STATUSES: set[BidStatus] = {
    BidStatus.DRAFT,
}

# Statuses counted as an application on the tender
ACTIVE_STATUSES: set[BidStatus] = {
    BidStatus.SUBMITTED,
    BidStatus.UNDER_REVIEW,
    BidStatus.TECHNICAL_EVALUATION,
    BidStatus.FINANCIAL_EVALUATION,
    BidStatus.AWARDED,
}

# Terminal statuses (no further transitions possible)
TERMINAL_STATUSES: set[BidStatus] = {
    BidStatus.AWARDED,
    BidStatus.REJECTED,
}

# Event type strings for the outbox
EVENT_BID_CREATED = "bid.created"
EVENT_BID_DOCUMENT_UPLOADED = "bid.document_uploaded"
EVENT_BID_SUBMITTED = "bid.submitted"
EVENT_BID_EVALUATED = "bid.evaluated"
EVENT_BID_AWARDED = "bid.awarded"
EVENT_BID_REJECTED = "bid.rejected"
