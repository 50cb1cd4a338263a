"""Tender state machine transitions, event types, and gate statuses."""

from __future__ import annotations

from src.models.enums import TenderStatus, TenderTransitionType

# Valid transitions: from_status -> {transition_type -> to_status}
# CLOSED has no outgoing transitions: awards are only taken from OPEN tenders.
VALID_TRANSITIONS: dict[TenderStatus, dict[TenderTransitionType, TenderStatus]] = {
    TenderStatus.OPEN: {
        TenderTransitionType.START_REVIEW: TenderStatus.UNDER_REVIEW,
        TenderTransitionType.CLOSE: TenderStatus.CLOSED,
        TenderTransitionType.AWARD: TenderStatus.AWARDED,
        TenderTransitionType.CANCEL: TenderStatus.CANCELLED,
    },
    TenderStatus.UNDER_REVIEW: {
        TenderTransitionType.CLOSE: TenderStatus.CLOSED,
    },
}

# Event type strings for the outbox
EVENT_TENDER_CREATED = "tender.created"
EVENT_TENDER_REVIEW_STARTED = "tender.review_started"
EVENT_TENDER_CLOSED = "tender.closed"
EVENT_TENDER_AWARDED = "tender.awarded"
EVENT_TENDER_CANCELLED = "tender.cancelled"

TRANSITION_EVENT_MAP: dict[TenderTransitionType, str] = {
    TenderTransitionType.START_REVIEW: EVENT_TENDER_REVIEW_STARTED,
    TenderTransitionType.CLOSE: EVENT_TENDER_CLOSED,
    TenderTransitionType.AWARD: EVENT_TENDER_AWARDED,
    TenderTransitionType.CANCEL: EVENT_TENDER_CANCELLED,
}

# Statuses where bids can be created, updated, uploaded to, or submitted
ACCEPTING_STATUSES: set[TenderStatus] = {
    TenderStatus.OPEN,
}

DEFAULT_TECH_SCORE_WEIGHT = 70
DEFAULT_FINANCIAL_SCORE_WEIGHT = 30
