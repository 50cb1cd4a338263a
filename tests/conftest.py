"""Pytest fixtures for Tenderflow engine tests."""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import src.models  # noqa: F401  registers every table on Base.metadata
from src.clock import Clock
from src.database.base import Base
from src.engine import TenderEngine
from src.models.vendor import Vendor
from src.modules.bid.constants import REQUIRED_DOCUMENT_TYPES
from src.modules.storage.local import LocalDocumentStorage

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


class FrozenClock(Clock):
    """Clock that only moves when a test tells it to."""

    def __init__(self, current: datetime = T0):
        self.current = current

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def storage(tmp_path) -> LocalDocumentStorage:
    return LocalDocumentStorage(tmp_path / "uploads")


@pytest_asyncio.fixture
async def async_test_engine(tmp_path):
    # File-backed so concurrent sessions get their own connections
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'tenderflow.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(async_test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def async_test_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def tender_engine(session_factory, storage, clock) -> TenderEngine:
    return TenderEngine(session_factory, storage, clock=clock, apply_score_weights=False)


@pytest.fixture
def make_vendor(session_factory):
    async def _make(business_name: str = "Acme Builders", is_active: bool = True) -> uuid.UUID:
        async with session_factory() as session:
            vendor = Vendor(business_name=business_name, is_active=is_active)
            session.add(vendor)
            await session.commit()
            return vendor.id

    return _make


@pytest.fixture
def make_tender(tender_engine, clock):
    async def _make(deadline_in: timedelta = timedelta(days=7), **overrides) -> uuid.UUID:
        data = {
            "title": "Road resurfacing, ward 12",
            "category": "construction",
            "description": "Resurface 4km of arterial road",
            "budget": Decimal("250000"),
            "deadline": clock.now() + deadline_in,
        }
        data.update(overrides)
        result = await tender_engine.create_tender(**data)
        assert result.ok, result.error
        return result.value.id

    return _make


@pytest.fixture
def prepare_bid(tender_engine):
    """Upload every required document for a vendor and return the draft bid id."""

    async def _prepare(
        tender_id: uuid.UUID,
        vendor_id: uuid.UUID,
        bid_amount: Decimal | None = Decimal("180000"),
        document_types: tuple[str, ...] = REQUIRED_DOCUMENT_TYPES,
    ) -> uuid.UUID:
        saved = await tender_engine.create_or_update_bid(
            tender_id, vendor_id, bid_amount=bid_amount, proposal="Two crews, six weeks"
        )
        assert saved.ok, saved.error
        bid_id = saved.value.id
        for document_type in document_types:
            uploaded = await tender_engine.upload_document(
                bid_id,
                tender_id,
                vendor_id,
                document_type,
                f"{document_type}.pdf",
                f"%PDF {document_type}".encode(),
            )
            assert uploaded.ok, uploaded.error
        return bid_id

    return _prepare


@pytest.fixture
def submitted_bid(tender_engine, prepare_bid):
    async def _submit(tender_id: uuid.UUID, vendor_id: uuid.UUID, bid_amount=Decimal("180000")):
        bid_id = await prepare_bid(tender_id, vendor_id, bid_amount=bid_amount)
        result = await tender_engine.submit_bid(bid_id, tender_id, vendor_id, bid_amount)
        assert result.ok, result.error
        return result.value.id

    return _submit
