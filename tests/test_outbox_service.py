"""Unit tests for OutboxService and the events emitted by lifecycle operations."""

import uuid
from decimal import Decimal

import pytest
from sqlalchemy import select

from src.models.enums import EventStatus
from src.models.event_outbox import EventOutbox
from src.modules.events.outbox_service import OutboxService


class TestOutboxServicePublish:
    """Tests for OutboxService.publish_event."""

    @pytest.mark.asyncio
    async def test_publish_event_creates_pending_event(self, async_test_session):
        service = OutboxService(async_test_session)

        event = await service.publish_event(
            event_type="tender.created",
            aggregate_type="tender",
            aggregate_id=str(uuid.uuid4()),
            payload={"title": "Bridge inspection"},
        )

        assert event.id is not None
        assert event.status == EventStatus.PENDING
        assert event.retry_count == 0
        assert event.schema_version == 1
        assert event.payload["title"] == "Bridge inspection"

    @pytest.mark.asyncio
    async def test_get_pending_events_respects_batch_size(self, async_test_session):
        service = OutboxService(async_test_session)

        for i in range(5):
            await service.publish_event(
                event_type=f"test.event.{i}",
                aggregate_type="test",
                aggregate_id=str(uuid.uuid4()),
                payload={},
            )

        pending = await service.get_pending_events(batch_size=3)
        assert len(pending) == 3


class TestLifecycleEvents:
    @pytest.mark.asyncio
    async def test_submission_flow_writes_events_in_same_transactions(
        self, tender_engine, make_vendor, make_tender, submitted_bid, async_test_session
    ):
        tender_id = await make_tender()
        bid_id = await submitted_bid(tender_id, await make_vendor(), Decimal("500"))

        result = await async_test_session.execute(
            select(EventOutbox.event_type).order_by(EventOutbox.created_at.asc())
        )
        event_types = list(result.scalars().all())

        assert event_types[0] == "tender.created"
        assert "bid.created" in event_types
        assert event_types.count("bid.document_uploaded") == 3
        assert event_types[-1] == "bid.submitted"

        submitted = await async_test_session.execute(
            select(EventOutbox).where(EventOutbox.event_type == "bid.submitted")
        )
        assert submitted.scalar_one().aggregate_id == str(bid_id)

    @pytest.mark.asyncio
    async def test_failed_operation_writes_no_events(
        self, tender_engine, make_vendor, make_tender, prepare_bid, async_test_session
    ):
        tender_id = await make_tender()
        vendor_id = await make_vendor()
        bid_id = await prepare_bid(tender_id, vendor_id, document_types=())

        result = await tender_engine.submit_bid(bid_id, tender_id, vendor_id, Decimal("10"))

        assert result.error.code == "INCOMPLETE_DOCUMENTS"
        submitted = await async_test_session.execute(
            select(EventOutbox).where(EventOutbox.event_type == "bid.submitted")
        )
        assert submitted.first() is None

    @pytest.mark.asyncio
    async def test_award_events_are_recorded_per_aggregate(
        self, tender_engine, make_vendor, make_tender, submitted_bid, async_test_session
    ):
        tender_id = await make_tender()
        winner = await submitted_bid(tender_id, await make_vendor("Winner"))
        loser = await submitted_bid(tender_id, await make_vendor("Loser"))
        assert (await tender_engine.award_bid(winner)).ok

        service = OutboxService(async_test_session)
        tender_events = await service.get_events_for_aggregate("tender", str(tender_id))
        loser_events = await service.get_events_for_aggregate("bid", str(loser))

        assert [e.event_type for e in tender_events] == ["tender.created", "tender.awarded"]
        assert loser_events[-1].event_type == "bid.rejected"
        assert loser_events[-1].payload["awarded_bid_id"] == str(winner)
