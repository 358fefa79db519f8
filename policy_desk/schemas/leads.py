"""Pydantic schemas for leads and their follow-up history."""

from datetime import date, datetime
from uuid import UUID

from pydantic import Field, field_validator

from ..models import FollowUpOutcome, LeadPriority, LeadStatus
from .base import DeskBaseModel, FlexibleDate, Money, PartialUpdate


class LeadCreate(DeskBaseModel):
    customer_name: str = Field(..., min_length=1, max_length=255)
    customer_mobile: str | None = Field(default=None, max_length=20)
    customer_email: str | None = Field(default=None, max_length=255)
    product_type: str | None = Field(default=None, max_length=100)
    lead_source: str | None = Field(default=None, max_length=100)
    assigned_to: str | None = Field(default=None, max_length=255)
    remark: str | None = None
    status: LeadStatus = LeadStatus.NEW
    priority: LeadPriority = LeadPriority.MEDIUM
    follow_up_date: FlexibleDate = None
    next_follow_up_date: FlexibleDate = None
    estimated_value: Money = None

    @field_validator("customer_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class LeadUpdate(PartialUpdate):
    not_nullable = ("customer_name", "status", "priority", "follow_up_date")

    customer_name: str | None = Field(default=None, min_length=1, max_length=255)
    customer_mobile: str | None = Field(default=None, max_length=20)
    customer_email: str | None = Field(default=None, max_length=255)
    product_type: str | None = Field(default=None, max_length=100)
    lead_source: str | None = Field(default=None, max_length=100)
    assigned_to: str | None = Field(default=None, max_length=255)
    remark: str | None = None
    status: LeadStatus | None = None
    priority: LeadPriority | None = None
    follow_up_date: FlexibleDate = None
    next_follow_up_date: FlexibleDate = None
    estimated_value: Money = None


class LeadResponse(DeskBaseModel):
    id: UUID
    user_id: UUID
    customer_name: str
    customer_mobile: str | None = None
    customer_email: str | None = None
    product_type: str | None = None
    lead_source: str | None = None
    assigned_to: str | None = None
    remark: str | None = None
    status: LeadStatus
    priority: LeadPriority
    follow_up_date: date
    next_follow_up_date: date | None = None
    estimated_value: Money = None
    is_converted: bool
    converted_to_policy_id: UUID | None = None
    created_at: datetime
    updated_at: datetime | None = None


class LeadStatistics(DeskBaseModel):
    total: int
    new: int
    follow_up: int
    won: int
    lost: int
    conversion_rate: float


class LeadConvertRequest(DeskBaseModel):
    policy_id: UUID


class FollowUpRecordRequest(DeskBaseModel):
    status: FollowUpOutcome
    notes: str = Field(..., max_length=5000)
    next_follow_up_date: FlexibleDate = None
    lead_status: LeadStatus | None = None
    priority: LeadPriority | None = None


class FollowUpHistoryEntry(DeskBaseModel):
    id: UUID
    lead_id: UUID
    follow_up_date: date
    actual_follow_up_date: date
    status: FollowUpOutcome
    notes: str
    next_follow_up_date: date | None = None
    created_by: UUID
    created_by_name: str
    created_at: datetime
