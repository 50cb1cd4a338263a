from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.base import Base, UUIDPrimaryKeyMixin, utcnow
from src.models.enums import TenderStatus, TenderTransitionType, TriggerSource

if TYPE_CHECKING:
    from src.models.tender import Tender


class TenderTransition(UUIDPrimaryKeyMixin, Base):
    """Immutable audit log for tender state transitions. No updated_at column."""

    __tablename__ = "tender_transitions"

    tender_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenders.id", ondelete="CASCADE"), nullable=False
    )
    from_status: Mapped[TenderStatus] = mapped_column(nullable=False)
    to_status: Mapped[TenderStatus] = mapped_column(nullable=False)
    transition_type: Mapped[TenderTransitionType] = mapped_column(nullable=False)
    triggered_by: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    trigger_source: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TriggerSource.USER.value, server_default="USER"
    )
    reason: Mapped[str | None] = mapped_column(Text)
    metadata_extra: Mapped[dict] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=dict
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    tender: Mapped[Tender] = relationship("Tender", back_populates="transitions", lazy="noload")

    __table_args__ = (
        Index("ix_tender_transitions_tender_id", "tender_id"),
        Index("ix_tender_transitions_to_status", "to_status"),
    )
