"""Integration tests for the bid lifecycle through TenderEngine (SQLite)."""

from __future__ import annotations

import asyncio
import uuid
from datetime import timedelta
from decimal import Decimal

import pytest

from src.models.enums import BidStatus
from src.modules.bid.constants import REQUIRED_DOCUMENT_TYPES


class TestDraft:
    @pytest.mark.asyncio
    async def test_first_save_creates_draft(self, tender_engine, make_vendor, make_tender):
        vendor_id = await make_vendor()
        tender_id = await make_tender()

        result = await tender_engine.create_or_update_bid(
            tender_id, vendor_id, bid_amount=Decimal("1200"), proposal="Draft v1"
        )

        assert result.ok
        assert result.value.status == BidStatus.DRAFT
        assert result.value.documents == []
        assert result.value.bid_amount == Decimal("1200")

    @pytest.mark.asyncio
    async def test_second_save_updates_same_bid(self, tender_engine, make_vendor, make_tender):
        vendor_id = await make_vendor()
        tender_id = await make_tender()

        first = await tender_engine.create_or_update_bid(tender_id, vendor_id, proposal="v1")
        second = await tender_engine.create_or_update_bid(
            tender_id, vendor_id, bid_amount=Decimal("900")
        )

        assert second.value.id == first.value.id
        assert second.value.proposal == "v1"
        assert second.value.bid_amount == Decimal("900")
        bids = await tender_engine.list_bids(tender_id)
        assert len(bids.value) == 1

    @pytest.mark.asyncio
    async def test_unknown_vendor_is_not_found(self, tender_engine, make_tender):
        tender_id = await make_tender()

        result = await tender_engine.create_or_update_bid(tender_id, uuid.uuid4())

        assert result.error.code == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_inactive_vendor_is_not_found(self, tender_engine, make_vendor, make_tender):
        vendor_id = await make_vendor(is_active=False)
        tender_id = await make_tender()

        result = await tender_engine.create_or_update_bid(tender_id, vendor_id)

        assert result.error.code == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_negative_amount_is_validation_error(
        self, tender_engine, make_vendor, make_tender
    ):
        vendor_id = await make_vendor()
        tender_id = await make_tender()

        result = await tender_engine.create_or_update_bid(
            tender_id, vendor_id, bid_amount=Decimal("-1")
        )

        assert result.error.code == "VALIDATION_ERROR"
        assert result.error.details[0].field == "bid_amount"


class TestUpload:
    @pytest.mark.asyncio
    async def test_second_upload_of_type_replaces_first(
        self, tender_engine, make_vendor, make_tender, storage
    ):
        vendor_id = await make_vendor()
        tender_id = await make_tender()

        first = await tender_engine.upload_document(
            None, tender_id, vendor_id, "technical_proposal", "tech.pdf", b"v1"
        )
        bid_id = first.value.id
        old_locator = first.value.documents[0].locator
        second = await tender_engine.upload_document(
            bid_id, tender_id, vendor_id, "technical_proposal", "tech-v2.pdf", b"v2"
        )

        assert second.ok
        documents = second.value.documents
        assert [d.document_type for d in documents] == ["technical_proposal"]
        assert documents[0].name == "tech-v2.pdf"
        assert documents[0].locator != old_locator
        assert storage.exists(documents[0].locator)

    @pytest.mark.asyncio
    async def test_fresh_upload_resets_draft_documents(
        self, tender_engine, make_vendor, make_tender
    ):
        vendor_id = await make_vendor()
        tender_id = await make_tender()
        first = await tender_engine.upload_document(
            "new", tender_id, vendor_id, "technical_proposal", "tech.pdf", b"tech"
        )

        fresh = await tender_engine.upload_document(
            "new", tender_id, vendor_id, "company_profile", "profile.pdf", b"profile"
        )

        assert fresh.value.id == first.value.id
        assert [d.document_type for d in fresh.value.documents] == ["company_profile"]

    @pytest.mark.asyncio
    async def test_explicit_bid_id_keeps_existing_documents(
        self, tender_engine, make_vendor, make_tender
    ):
        vendor_id = await make_vendor()
        tender_id = await make_tender()
        first = await tender_engine.upload_document(
            None, tender_id, vendor_id, "technical_proposal", "tech.pdf", b"tech"
        )

        second = await tender_engine.upload_document(
            str(first.value.id), tender_id, vendor_id, "company_profile", "profile.pdf", b"p"
        )

        assert sorted(d.document_type for d in second.value.documents) == [
            "company_profile",
            "technical_proposal",
        ]

    @pytest.mark.asyncio
    async def test_upload_to_another_vendors_bid_is_rejected(
        self, tender_engine, make_vendor, make_tender
    ):
        owner = await make_vendor("Owner Ltd")
        intruder = await make_vendor("Intruder Ltd")
        tender_id = await make_tender()
        first = await tender_engine.upload_document(
            None, tender_id, owner, "technical_proposal", "tech.pdf", b"tech"
        )

        result = await tender_engine.upload_document(
            first.value.id, tender_id, intruder, "company_profile", "p.pdf", b"p"
        )

        assert result.error.code == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("document_type", "file_name", "content"),
        [
            ("Technical Proposal", "t.pdf", b"x"),
            ("technical_proposal", "", b"x"),
            ("technical_proposal", "t.pdf", b""),
        ],
    )
    async def test_invalid_upload_is_validation_error(
        self, tender_engine, make_vendor, make_tender, document_type, file_name, content
    ):
        vendor_id = await make_vendor()
        tender_id = await make_tender()

        result = await tender_engine.upload_document(
            None, tender_id, vendor_id, document_type, file_name, content
        )

        assert result.error.code == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("file_name", ["payload.exe", "notes.txt", "archive.tar.gz", "README"])
    async def test_disallowed_file_type_is_rejected(
        self, tender_engine, make_vendor, make_tender, file_name
    ):
        vendor_id = await make_vendor()
        tender_id = await make_tender()

        result = await tender_engine.upload_document(
            None, tender_id, vendor_id, "technical_proposal", file_name, b"MZ"
        )

        assert result.error.code == "VALIDATION_ERROR"
        assert result.error.details[0].field == "file_name"
        assert (await tender_engine.list_bids(tender_id)).value == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("file_name", ["scan.JPG", "pricing.xlsx", "profile.docx"])
    async def test_allowed_file_types_are_accepted(
        self, tender_engine, make_vendor, make_tender, file_name
    ):
        vendor_id = await make_vendor()
        tender_id = await make_tender()

        result = await tender_engine.upload_document(
            None, tender_id, vendor_id, "company_profile", file_name, b"data"
        )

        assert result.ok
        assert result.value.documents[0].name == file_name

    @pytest.mark.asyncio
    async def test_open_document_returns_stored_bytes(
        self, tender_engine, make_vendor, make_tender
    ):
        vendor_id = await make_vendor()
        tender_id = await make_tender()
        uploaded = await tender_engine.upload_document(
            None, tender_id, vendor_id, "financial_proposal", "fin.pdf", b"%PDF figures"
        )

        result = await tender_engine.open_document(uploaded.value.id, "financial_proposal")

        assert result.value.content == b"%PDF figures"
        assert result.value.document.name == "fin.pdf"
        missing = await tender_engine.open_document(uploaded.value.id, "company_profile")
        assert missing.error.code == "NOT_FOUND"


class TestSubmit:
    @pytest.mark.asyncio
    async def test_submit_complete_bid(self, tender_engine, make_vendor, make_tender, prepare_bid, clock):
        vendor_id = await make_vendor()
        tender_id = await make_tender()
        bid_id = await prepare_bid(tender_id, vendor_id)

        result = await tender_engine.submit_bid(
            bid_id, tender_id, vendor_id, Decimal("175000"), "Final proposal"
        )

        assert result.ok
        assert result.value.status == BidStatus.SUBMITTED
        assert result.value.bid_amount == Decimal("175000")
        assert result.value.proposal == "Final proposal"
        assert result.value.submitted_at.replace(tzinfo=None) == clock.now().replace(tzinfo=None)
        count = await tender_engine.count_active_bids(tender_id)
        assert count.value == 1
        applied = await tender_engine.has_applied(tender_id, vendor_id)
        assert applied.value is True

    @pytest.mark.asyncio
    async def test_submit_without_all_documents_lists_missing_types(
        self, tender_engine, make_vendor, make_tender, prepare_bid
    ):
        vendor_id = await make_vendor()
        tender_id = await make_tender()
        bid_id = await prepare_bid(
            tender_id, vendor_id, document_types=("financial_proposal",)
        )

        result = await tender_engine.submit_bid(bid_id, tender_id, vendor_id, Decimal("100"))

        assert result.error.code == "INCOMPLETE_DOCUMENTS"
        assert [d.field for d in result.error.details] == [
            "technical_proposal",
            "company_profile",
        ]
        bid = await tender_engine.get_bid(bid_id)
        assert bid.value.status == BidStatus.DRAFT

    @pytest.mark.asyncio
    async def test_submit_requires_positive_amount(
        self, tender_engine, make_vendor, make_tender, prepare_bid
    ):
        vendor_id = await make_vendor()
        tender_id = await make_tender()
        bid_id = await prepare_bid(tender_id, vendor_id, bid_amount=None)

        result = await tender_engine.submit_bid(bid_id, tender_id, vendor_id)

        assert result.error.code == "VALIDATION_ERROR"
        assert result.error.details[0].field == "bid_amount"

    @pytest.mark.asyncio
    async def test_resubmission_is_already_submitted(
        self, tender_engine, make_vendor, make_tender, submitted_bid
    ):
        vendor_id = await make_vendor()
        tender_id = await make_tender()
        bid_id = await submitted_bid(tender_id, vendor_id)

        result = await tender_engine.submit_bid(bid_id, tender_id, vendor_id, Decimal("1"))

        assert result.error.code == "ALREADY_SUBMITTED"

    @pytest.mark.asyncio
    async def test_concurrent_submissions_have_exactly_one_success(
        self, tender_engine, make_vendor, make_tender, prepare_bid
    ):
        vendor_id = await make_vendor()
        tender_id = await make_tender()
        bid_id = await prepare_bid(tender_id, vendor_id)

        results = await asyncio.gather(
            tender_engine.submit_bid(bid_id, tender_id, vendor_id, Decimal("175000")),
            tender_engine.submit_bid(bid_id, tender_id, vendor_id, Decimal("176000")),
        )

        assert sorted(r.ok for r in results) == [False, True]
        loser = next(r for r in results if not r.ok)
        assert loser.error.code == "ALREADY_SUBMITTED"
        winner = next(r for r in results if r.ok)
        bid = (await tender_engine.get_bid(bid_id)).value
        assert bid.status == BidStatus.SUBMITTED
        assert bid.bid_amount == winner.value.bid_amount

    @pytest.mark.asyncio
    async def test_submit_unknown_bid_is_not_found(self, tender_engine, make_vendor, make_tender):
        vendor_id = await make_vendor()
        tender_id = await make_tender()

        result = await tender_engine.submit_bid(uuid.uuid4(), tender_id, vendor_id, Decimal("1"))

        assert result.error.code == "NOT_FOUND"


class TestFrozenAfterSubmission:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("bid_reference", [None, "new", "explicit"])
    async def test_upload_after_submission_is_rejected_and_documents_kept(
        self, tender_engine, make_vendor, make_tender, submitted_bid, bid_reference
    ):
        vendor_id = await make_vendor()
        tender_id = await make_tender()
        bid_id = await submitted_bid(tender_id, vendor_id)
        reference = bid_id if bid_reference == "explicit" else bid_reference

        result = await tender_engine.upload_document(
            reference, tender_id, vendor_id, "technical_proposal", "late.pdf", b"late"
        )

        assert result.error.code == "ALREADY_SUBMITTED"
        bid = await tender_engine.get_bid(bid_id)
        assert sorted(d.document_type for d in bid.value.documents) == sorted(
            REQUIRED_DOCUMENT_TYPES
        )
        assert "late.pdf" not in [d.name for d in bid.value.documents]

    @pytest.mark.asyncio
    async def test_update_after_submission_is_rejected(
        self, tender_engine, make_vendor, make_tender, submitted_bid
    ):
        vendor_id = await make_vendor()
        tender_id = await make_tender()
        await submitted_bid(tender_id, vendor_id)

        result = await tender_engine.create_or_update_bid(
            tender_id, vendor_id, bid_amount=Decimal("1")
        )

        assert result.error.code == "ALREADY_SUBMITTED"


class TestTenderGate:
    @pytest.mark.asyncio
    async def test_bid_changes_rejected_once_tender_closed(
        self, tender_engine, make_vendor, make_tender, prepare_bid
    ):
        vendor_id = await make_vendor()
        tender_id = await make_tender()
        bid_id = await prepare_bid(tender_id, vendor_id)
        closed = await tender_engine.close_tender(tender_id, reason="Withdrawn early")
        assert closed.ok

        submit = await tender_engine.submit_bid(bid_id, tender_id, vendor_id, Decimal("10"))
        upload = await tender_engine.upload_document(
            bid_id, tender_id, vendor_id, "company_profile", "p.pdf", b"p"
        )
        save = await tender_engine.create_or_update_bid(tender_id, vendor_id, proposal="x")

        assert submit.error.code == "TENDER_CLOSED"
        assert upload.error.code == "TENDER_CLOSED"
        assert save.error.code == "TENDER_CLOSED"

    @pytest.mark.asyncio
    async def test_one_bid_per_vendor_per_tender(
        self, tender_engine, make_vendor, make_tender
    ):
        first_vendor = await make_vendor("First")
        second_vendor = await make_vendor("Second")
        tender_id = await make_tender(deadline_in=timedelta(days=1))

        for vendor_id in (first_vendor, first_vendor, second_vendor):
            result = await tender_engine.upload_document(
                None, tender_id, vendor_id, "technical_proposal", "t.pdf", b"t"
            )
            assert result.ok

        bids = await tender_engine.list_bids(tender_id)
        assert sorted(b.vendor_id for b in bids.value) == sorted([first_vendor, second_vendor])
