"""Pydantic v2 schemas for tender operations."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.models.enums import TenderStatus, TenderTransitionType
from src.modules.tender.constants import (
    DEFAULT_FINANCIAL_SCORE_WEIGHT,
    DEFAULT_TECH_SCORE_WEIGHT,
)


class TenderCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    category: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1)
    budget: Decimal = Field(..., gt=0)
    deadline: datetime
    location: str | None = Field(None, max_length=255)
    tech_score_weight: int = Field(DEFAULT_TECH_SCORE_WEIGHT, ge=0, le=100)
    financial_score_weight: int = Field(DEFAULT_FINANCIAL_SCORE_WEIGHT, ge=0, le=100)
    created_by: uuid.UUID | None = None

    @model_validator(mode="after")
    def _weights_sum_to_100(self) -> TenderCreate:
        if self.tech_score_weight + self.financial_score_weight != 100:
            raise ValueError("tech_score_weight and financial_score_weight must sum to 100")
        if self.deadline.tzinfo is None:
            raise ValueError("deadline must be timezone-aware")
        return self


class TenderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    category: str
    description: str
    location: str | None = None
    budget: Decimal
    deadline: datetime
    status: TenderStatus
    tech_score_weight: int
    financial_score_weight: int
    awarded_to: uuid.UUID | None = None
    awarded_bid_id: uuid.UUID | None = None
    awarded_amount: Decimal | None = None
    awarded_at: datetime | None = None
    closed_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None
    created_at: datetime
    updated_at: datetime


class TenderListResponse(BaseModel):
    items: list[TenderResponse]
    total: int


class TenderTransitionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    tender_id: uuid.UUID
    from_status: TenderStatus
    to_status: TenderStatus
    transition_type: TenderTransitionType
    triggered_by: uuid.UUID | None = None
    trigger_source: str
    reason: str | None = None
    created_at: datetime
