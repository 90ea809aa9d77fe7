"""Pydantic schemas for API request/response validation"""

import uuid
import datetime as dt
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _date_only(value):
    """Accept YYYY-MM-DD or a full ISO timestamp; timestamps keep their UTC calendar day"""
    if isinstance(value, str) and "T" in value:
        parsed = dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(dt.timezone.utc)
        return parsed.date()
    return value


class CardCreate(BaseModel):
    """Request body for POST /v1/cards"""

    alias: str = Field(..., min_length=1, max_length=50)
    brand: str = Field(..., min_length=1, max_length=30)
    total_limit_cents: int = Field(0, ge=0, description="Credit limit in cents")
    closing_day: int = Field(..., ge=1, le=31, description="Day of month the statement closes")
    due_day: int = Field(..., ge=1, le=31, description="Day of month payment is due")


class CardResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    alias: str
    brand: str
    total_limit_cents: int
    closing_day: int
    due_day: int


class ObligationGroupCreate(BaseModel):
    """Request body for POST /v1/cards/{card_id}/obligations"""

    description: str = Field(..., min_length=1, max_length=255)
    amount_cents: int = Field(..., gt=0, description="Total purchase amount in cents")
    date: dt.date
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    installments: int = Field(1, ge=1, le=120)
    installment_offset: int = Field(0, ge=0, description="Installments already due before this entry")
    invoice_month: Optional[int] = Field(None, ge=1, le=12)
    invoice_year: Optional[int] = Field(None, ge=2000, le=2100)
    finance_type: Optional[Literal["upfront", "installment", "subscription"]] = None
    kind: Literal["expense", "income"] = "expense"
    shared_with: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def normalize_date(cls, value):
        return _date_only(value)

    @field_validator("tags", mode="before")
    @classmethod
    def tags_default(cls, value):
        return [] if value is None else value

    @model_validator(mode="after")
    def check_plan(self):
        if self.installment_offset >= self.installments:
            raise ValueError("installment_offset must be smaller than installments")
        if (self.invoice_month is None) != (self.invoice_year is None):
            raise ValueError("invoice_month and invoice_year must be given together")
        return self


class ObligationUpdate(BaseModel):
    """Request body for PATCH /v1/obligations/{obligation_id}"""

    description: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    shared_with: Optional[str] = None
    amount_cents: Optional[int] = Field(None, gt=0)
    date: Optional[dt.date] = None
    apply_to_whole_group: bool = False

    @field_validator("date", mode="before")
    @classmethod
    def normalize_date(cls, value):
        return _date_only(value)

    @model_validator(mode="after")
    def check_not_empty(self):
        fields = ("description", "category", "tags", "shared_with", "amount_cents", "date")
        if all(getattr(self, name) is None for name in fields):
            raise ValueError("No fields to update")
        return self


class ObligationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    group_id: uuid.UUID
    invoice_id: uuid.UUID
    card_id: uuid.UUID
    description: str
    label: str
    amount_cents: int
    date: dt.date
    sequence_index: int
    sequence_count: int
    finance_type: str
    kind: str
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    shared_with: Optional[str] = None


class ObligationGroupResponse(BaseModel):
    """Response for obligation group create/read"""

    group_id: uuid.UUID
    total_cents: int
    obligations: List[ObligationResponse]


class DeleteResponse(BaseModel):
    """Response for DELETE /v1/obligations/{obligation_id}"""

    group_id: uuid.UUID
    deleted: int
    invoice_ids: List[uuid.UUID]


class InvoiceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    card_id: uuid.UUID
    year: int
    month: int
    total_amount_cents: int
    paid_amount_cents: int
    closing_date: dt.date
    due_date: dt.date
    status: str


class InvoiceDetailResponse(InvoiceResponse):
    """Response for GET /v1/invoices/{invoice_id}"""

    obligations: List[ObligationResponse]


class InvoiceAction(BaseModel):
    """Request body for PATCH /v1/invoices/{invoice_id}"""

    action: Literal["mark_paid", "reopen"]


class SummaryItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    scope: str
    total_items: int
    total_amount_cents: int
    invoice_date: Optional[dt.date] = None
    due_date: Optional[dt.date] = None
    closing_date: Optional[dt.date] = None
    paid_amount_cents: Optional[int] = None
    status: Optional[str] = None
    refreshed_at: dt.datetime


class InvoiceSummaryResponse(BaseModel):
    """Response for GET /v1/invoices/{invoice_id}/summary"""

    invoice_id: uuid.UUID
    summaries: List[SummaryItem]


class RefreshResponse(BaseModel):
    """Response for POST /v1/summaries/refresh"""

    invoices_refreshed: int
