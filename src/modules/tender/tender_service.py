"""Tender lifecycle service — creation, acceptance gate, state machine."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any

from src.clock import Clock, as_utc
from src.exceptions import (
    BusinessRuleException,
    ConflictException,
    NotFoundException,
    TenderClosedException,
    ValidationException,
)
from src.models.enums import TenderStatus, TenderTransitionType, TriggerSource
from src.models.tender import Tender
from src.models.tender_transition import TenderTransition
from src.modules.events.outbox_service import OutboxService
from src.modules.tender.constants import (
    ACCEPTING_STATUSES,
    EVENT_TENDER_CREATED,
    TRANSITION_EVENT_MAP,
    VALID_TRANSITIONS,
)
from src.modules.tender.repository import TenderRepository
from src.modules.tender.schemas import TenderCreate

logger = logging.getLogger(__name__)


class TenderService:
    def __init__(self, tenders: TenderRepository, events: OutboxService, clock: Clock):
        self.tenders = tenders
        self.events = events
        self.clock = clock

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def create_tender(self, data: TenderCreate) -> Tender:
        """Create a new tender in OPEN status. The deadline must be in the future."""
        if as_utc(data.deadline) <= self.clock.now():
            raise ValidationException(
                "Deadline must be in the future",
                details=[{"field": "deadline", "message": "Deadline must be in the future"}],
            )

        tender = Tender(
            title=data.title,
            category=data.category,
            description=data.description,
            location=data.location,
            budget=data.budget,
            deadline=data.deadline,
            tech_score_weight=data.tech_score_weight,
            financial_score_weight=data.financial_score_weight,
            created_by=data.created_by,
            status=TenderStatus.OPEN,
        )
        await self.tenders.add(tender)

        await self.events.publish_event(
            event_type=EVENT_TENDER_CREATED,
            aggregate_type="tender",
            aggregate_id=str(tender.id),
            payload={
                "tender_id": str(tender.id),
                "title": tender.title,
                "deadline": as_utc(tender.deadline).isoformat(),
            },
        )
        logger.info("Created tender %s (%s)", tender.id, tender.title)
        return tender

    async def get_tender(self, tender_id: uuid.UUID, lock: bool = False) -> Tender:
        """Get a tender by ID. Raises NotFoundException if not found.

        With ``lock`` the row is share-locked for the rest of the transaction,
        so a concurrent status change (award, close, sweep) waits for the
        caller to commit and the caller never writes against a stale status.
        """
        tender = await self.tenders.get(tender_id, for_share=lock)
        if tender is None:
            raise NotFoundException(f"Tender {tender_id} not found")
        return tender

    async def list_tenders(
        self,
        status: TenderStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Tender], int]:
        return await self.tenders.list(status=status, limit=limit, offset=offset)

    # ------------------------------------------------------------------
    # Acceptance gate
    # ------------------------------------------------------------------

    @staticmethod
    def is_accepting_bids(tender: Tender) -> bool:
        return tender.status in ACCEPTING_STATUSES

    def ensure_accepting_bids(self, tender: Tender) -> None:
        """Raise TenderClosedException unless the tender still takes bid changes."""
        if not self.is_accepting_bids(tender):
            raise TenderClosedException(
                f"Tender {tender.id} is no longer accepting bids "
                f"(status '{tender.status.value}')"
            )

    # ------------------------------------------------------------------
    # State Machine
    # ------------------------------------------------------------------

    async def try_transition(
        self,
        tender: Tender,
        transition_type: TenderTransitionType,
        triggered_by: uuid.UUID | None = None,
        trigger_source: TriggerSource = TriggerSource.USER,
        reason: str | None = None,
        metadata: dict | None = None,
        values: dict[str, Any] | None = None,
    ) -> bool:
        """Apply a transition with compare-and-set on the tender's current status.

        Raises BusinessRuleException when the transition is not allowed from the
        status the caller observed. Returns False, leaving the tender untouched,
        when a concurrent writer moved the status first.
        """
        current_status = tender.status
        allowed_transitions = VALID_TRANSITIONS.get(current_status, {})
        if transition_type not in allowed_transitions:
            raise BusinessRuleException(
                f"Cannot perform '{transition_type.value}' from status '{current_status.value}'. "
                f"Allowed transitions: {[t.value for t in allowed_transitions.keys()]}"
            )
        new_status = allowed_transitions[transition_type]

        applied = await self.tenders.compare_and_set_status(
            tender, current_status, new_status, **(values or {})
        )
        if not applied:
            logger.warning(
                "Tender %s left status %s before %s could be applied",
                tender.id, current_status.value, transition_type.value,
            )
            return False

        await self.tenders.add_transition(
            TenderTransition(
                tender_id=tender.id,
                from_status=current_status,
                to_status=new_status,
                transition_type=transition_type,
                triggered_by=triggered_by,
                trigger_source=trigger_source.value,
                reason=reason,
                metadata_extra=metadata or {},
            )
        )

        await self.events.publish_event(
            event_type=TRANSITION_EVENT_MAP[transition_type],
            aggregate_type="tender",
            aggregate_id=str(tender.id),
            payload={
                "tender_id": str(tender.id),
                "from_status": current_status.value,
                "to_status": new_status.value,
                "triggered_by": str(triggered_by) if triggered_by else None,
                "trigger_source": trigger_source.value,
                "reason": reason,
                "metadata": metadata,
            },
        )

        logger.info(
            "Tender %s transitioned %s -> %s via %s",
            tender.id, current_status.value, new_status.value, transition_type.value,
        )
        return True

    async def transition(
        self,
        tender_id: uuid.UUID,
        transition_type: TenderTransitionType,
        triggered_by: uuid.UUID | None = None,
        reason: str | None = None,
        values: dict[str, Any] | None = None,
    ) -> Tender:
        """Execute a user-triggered transition; a lost race raises ConflictException."""
        tender = await self.get_tender(tender_id)
        applied = await self.try_transition(
            tender,
            transition_type,
            triggered_by=triggered_by,
            reason=reason,
            values=values,
        )
        if not applied:
            raise ConflictException(
                f"Tender {tender_id} was modified concurrently; reload and retry"
            )
        return tender

    async def start_review(
        self, tender_id: uuid.UUID, triggered_by: uuid.UUID | None = None
    ) -> Tender:
        return await self.transition(
            tender_id, TenderTransitionType.START_REVIEW, triggered_by=triggered_by
        )

    async def close_tender(
        self,
        tender_id: uuid.UUID,
        triggered_by: uuid.UUID | None = None,
        reason: str | None = None,
    ) -> Tender:
        return await self.transition(
            tender_id,
            TenderTransitionType.CLOSE,
            triggered_by=triggered_by,
            reason=reason,
            values={"closed_at": self.clock.now()},
        )

    async def cancel_tender(
        self,
        tender_id: uuid.UUID,
        reason: str,
        triggered_by: uuid.UUID | None = None,
    ) -> Tender:
        if not reason or not reason.strip():
            raise ValidationException(
                "Cancelling a tender requires a reason",
                details=[{"field": "reason", "message": "A cancellation reason is required"}],
            )
        return await self.transition(
            tender_id,
            TenderTransitionType.CANCEL,
            triggered_by=triggered_by,
            reason=reason,
            values={"cancelled_at": self.clock.now(), "cancellation_reason": reason},
        )

    async def close_if_expired(self, tender_id: uuid.UUID, now: datetime) -> bool:
        """Close an OPEN tender whose deadline is at or before ``now``.

        Returns False without error when the tender is gone, no longer OPEN,
        or not yet due, so a sweep can safely race awards and other sweeps.
        """
        tender = await self.tenders.get(tender_id)
        if tender is None or tender.status != TenderStatus.OPEN:
            return False
        if as_utc(tender.deadline) > now:
            return False
        return await self.try_transition(
            tender,
            TenderTransitionType.CLOSE,
            trigger_source=TriggerSource.SYSTEM,
            reason="Automated: deadline reached",
            values={"closed_at": now},
        )

    # ------------------------------------------------------------------
    # Audit trail
    # ------------------------------------------------------------------

    async def get_transitions(self, tender_id: uuid.UUID) -> list[TenderTransition]:
        """Get the full transition history for a tender."""
        await self.get_tender(tender_id)
        return await self.tenders.list_transitions(tender_id)
