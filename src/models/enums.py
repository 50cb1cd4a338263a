import enum


class TenderStatus(str, enum.Enum):
    OPEN = "open"
    UNDER_REVIEW = "under_review"
    CLOSED = "closed"
    AWARDED = "awarded"
    CANCELLED = "cancelled"


class TenderTransitionType(str, enum.Enum):
    START_REVIEW = "start_review"
    CLOSE = "close"
    AWARD = "award"
    CANCEL = "cancel"


class TriggerSource(str, enum.Enum):
    USER = "USER"
    SYSTEM = "SYSTEM"


class BidStatus(str, enum.Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    TECHNICAL_EVALUATION = "technical_evaluation"
    FINANCIAL_EVALUATION = "financial_evaluation"
    AWARDED = "awarded"
    REJECTED = "rejected"


class BidRecommendation(str, enum.Enum):
    AWARD = "award"
    SHORTLIST = "shortlist"
    REJECT = "reject"
    NONE = "none"


class DocumentType(str, enum.Enum):
    """Document types every bid must carry before submission.

    Bids may also carry any number of optional types (certificates,
    references, ...) identified by free-form slugs.
    """

    TECHNICAL_PROPOSAL = "technical_proposal"
    FINANCIAL_PROPOSAL = "financial_proposal"
    COMPANY_PROFILE = "company_profile"


class EventStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
