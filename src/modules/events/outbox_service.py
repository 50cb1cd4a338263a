"""OutboxService — async service for publishing lifecycle events to the outbox."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.models.enums import EventStatus
from src.models.event_outbox import EventOutbox


class OutboxService:
    """Writes outbox rows inside the caller's transaction.

    Delivery (notifications, webhooks) is handled by downstream consumers
    reading PENDING rows; nothing here sends anything.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def publish_event(
        self,
        event_type: str,
        aggregate_type: str,
        aggregate_id: str,
        payload: dict,
        schema_version: int = 1,
    ) -> EventOutbox:
        """Create a new event in the outbox with PENDING status."""
        event = EventOutbox(
            event_type=event_type,
            aggregate_type=aggregate_type,
            aggregate_id=aggregate_id,
            payload=payload,
            status=EventStatus.PENDING,
            schema_version=schema_version,
        )
        self.session.add(event)
        await self.session.flush()
        return event

    async def get_pending_events(self, batch_size: int | None = None) -> list[EventOutbox]:
        """Oldest pending events, up to batch_size; the entry point for downstream relays."""
        batch_size = batch_size or settings.event_outbox_batch_size
        statement = (
            select(EventOutbox)
            .where(EventOutbox.status == EventStatus.PENDING)
            .order_by(EventOutbox.created_at.asc())
            .limit(batch_size)
        )
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def get_events_for_aggregate(
        self, aggregate_type: str, aggregate_id: str
    ) -> list[EventOutbox]:
        """Every event recorded for one aggregate, oldest first."""
        statement = (
            select(EventOutbox)
            .where(
                EventOutbox.aggregate_type == aggregate_type,
                EventOutbox.aggregate_id == aggregate_id,
            )
            .order_by(EventOutbox.created_at.asc())
        )
        result = await self.session.execute(statement)
        return list(result.scalars().all())
