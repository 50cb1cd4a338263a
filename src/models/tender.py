from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from src.models.enums import TenderStatus

if TYPE_CHECKING:
    from src.models.bid import Bid
    from src.models.tender_transition import TenderTransition
    from src.models.vendor import Vendor


class Tender(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "tenders"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    location: Mapped[str | None] = mapped_column(String(255))
    budget: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    deadline: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[TenderStatus] = mapped_column(
        nullable=False, default=TenderStatus.OPEN, server_default="OPEN"
    )
    tech_score_weight: Mapped[int] = mapped_column(
        Integer, nullable=False, default=70, server_default="70"
    )
    financial_score_weight: Mapped[int] = mapped_column(
        Integer, nullable=False, default=30, server_default="30"
    )
    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid)

    awarded_to: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("vendors.id", ondelete="SET NULL")
    )
    awarded_bid_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    awarded_amount: Mapped[Decimal | None] = mapped_column(Numeric(15, 2))
    awarded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancellation_reason: Mapped[str | None] = mapped_column(Text)

    # Relationships (lazy="noload"; bids are fetched through BidRepository)
    awarded_vendor: Mapped[Vendor | None] = relationship("Vendor", lazy="noload")
    bids: Mapped[list[Bid]] = relationship("Bid", back_populates="tender", lazy="noload")
    transitions: Mapped[list[TenderTransition]] = relationship(
        "TenderTransition", back_populates="tender", lazy="noload"
    )

    __table_args__ = (
        CheckConstraint("budget > 0", name="ck_tenders_budget_positive"),
        CheckConstraint(
            "tech_score_weight + financial_score_weight = 100",
            name="ck_tenders_weights_sum_100",
        ),
        CheckConstraint(
            "(status = 'AWARDED') = (awarded_to IS NOT NULL)",
            name="ck_tenders_awarded_to_iff_awarded",
        ),
        Index("ix_tenders_status", "status"),
        Index("ix_tenders_deadline_open", "deadline", "status"),
    )
