from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from src.models.enums import BidRecommendation, BidStatus

if TYPE_CHECKING:
    from src.models.tender import Tender
    from src.models.vendor import Vendor


class Bid(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "bids"

    tender_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenders.id", ondelete="CASCADE"), nullable=False
    )
    vendor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False
    )
    bid_amount: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0"), server_default="0"
    )
    proposal: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")
    status: Mapped[BidStatus] = mapped_column(
        nullable=False, default=BidStatus.DRAFT, server_default="DRAFT"
    )
    # Document Set records; always reassigned whole, never mutated in place
    documents: Mapped[list[dict]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=list
    )

    technical_score: Mapped[int | None] = mapped_column(Integer)
    financial_score: Mapped[int | None] = mapped_column(Integer)
    total_score: Mapped[float | None] = mapped_column(Float)
    evaluation_comments: Mapped[str | None] = mapped_column(Text)
    recommendation: Mapped[BidRecommendation] = mapped_column(
        nullable=False, default=BidRecommendation.NONE, server_default="NONE"
    )

    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    evaluated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    awarded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    # Relationships
    tender: Mapped[Tender] = relationship("Tender", back_populates="bids", lazy="noload")
    vendor: Mapped[Vendor] = relationship("Vendor", lazy="noload")

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        UniqueConstraint("tender_id", "vendor_id", name="uq_bids_tender_vendor"),
        CheckConstraint("bid_amount >= 0", name="ck_bids_amount_non_negative"),
        CheckConstraint(
            "technical_score IS NULL OR (technical_score >= 0 AND technical_score <= 100)",
            name="ck_bids_technical_score_range",
        ),
        CheckConstraint(
            "financial_score IS NULL OR (financial_score >= 0 AND financial_score <= 100)",
            name="ck_bids_financial_score_range",
        ),
        Index("ix_bids_tender_id", "tender_id"),
        Index("ix_bids_vendor_id", "vendor_id"),
        Index("ix_bids_status", "status"),
    )
