# Import all models so SQLAlchemy metadata is populated for Alembic autogenerate
from src.models.bid import Bid
from src.models.enums import (
    BidRecommendation,
    BidStatus,
    DocumentType,
    EventStatus,
    TenderStatus,
    TenderTransitionType,
    TriggerSource,
)
from src.models.event_outbox import EventOutbox
from src.models.tender import Tender
from src.models.tender_transition import TenderTransition
from src.models.vendor import Vendor

__all__ = [
    "Bid",
    "BidRecommendation",
    "BidStatus",
    "DocumentType",
    "EventOutbox",
    "EventStatus",
    "Tender",
    "TenderStatus",
    "TenderTransition",
    "TenderTransitionType",
    "TriggerSource",
    "Vendor",
]
