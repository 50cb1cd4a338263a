"""Pydantic v2 schemas for bid operations."""

from __future__ import annotations

import os
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.config import settings
from src.models.enums import BidRecommendation, BidStatus
from src.modules.bid.document_set import DOCUMENT_TYPE_PATTERN

Score = Annotated[int, Field(ge=0, le=100, strict=True)]


class BidSave(BaseModel):
    bid_amount: Decimal | None = Field(None, ge=0)
    proposal: str | None = None


class DocumentUpload(BaseModel):
    document_type: str = Field(..., pattern=DOCUMENT_TYPE_PATTERN.pattern)
    file_name: str = Field(..., min_length=1, max_length=255)
    content: bytes = Field(..., min_length=1)

    @field_validator("file_name")
    @classmethod
    def _allowed_extension(cls, value: str) -> str:
        extension = os.path.splitext(value)[1].lower()
        allowed = [ext.lower() for ext in settings.allowed_document_extensions]
        if extension not in allowed:
            raise ValueError(
                f"File type '{extension or value}' is not allowed ({', '.join(allowed)})"
            )
        return value

    @field_validator("content")
    @classmethod
    def _within_size_limit(cls, value: bytes) -> bytes:
        if len(value) > settings.max_document_size_bytes:
            raise ValueError(
                f"Document exceeds the {settings.max_document_size_bytes} byte limit"
            )
        return value


class BidEvaluation(BaseModel):
    technical_score: Score | None = None
    financial_score: Score | None = None
    comments: str | None = None
    recommendation: BidRecommendation | None = None


class DocumentResponse(BaseModel):
    document_type: str
    name: str
    locator: str
    size: int | None = None
    uploaded_at: datetime | None = None


class BidResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    tender_id: uuid.UUID
    vendor_id: uuid.UUID
    bid_amount: Decimal
    proposal: str
    status: BidStatus
    documents: list[DocumentResponse] = []
    technical_score: int | None = None
    financial_score: int | None = None
    total_score: float | None = None
    evaluation_comments: str | None = None
    recommendation: BidRecommendation
    submitted_at: datetime | None = None
    evaluated_at: datetime | None = None
    awarded_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class DocumentContent(BaseModel):
    document: DocumentResponse
    content: bytes
