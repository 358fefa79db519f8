"""Pydantic schemas for policies, deletion requests and the activity log."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import Field, field_validator

from ..models import ActivityAction, ClaimStatus, DeletionRequestStatus
from .base import DeskBaseModel, FlexibleDate, Money, PartialUpdate


# =============================================================================
# POLICY
# =============================================================================


class PolicyFields(DeskBaseModel):
    """Optional descriptive fields shared by create, update and response."""

    contact_no: str | None = Field(default=None, max_length=20)
    email_id: str | None = Field(default=None, max_length=255)
    address: str | None = None

    insurance_company: str | None = Field(default=None, max_length=255)
    policy_type: str | None = Field(default=None, max_length=100)
    product_type: str | None = Field(default=None, max_length=100)
    business_type: str | None = Field(default=None, max_length=100)
    member_of: str | None = Field(default=None, max_length=255)
    is_one_time_policy: bool = False

    start_date: FlexibleDate = None
    expiry_date: FlexibleDate = None

    premium_amount: Money = None
    coverage_amount: Money = None
    net_premium: Money = None
    od_premium: Money = None
    third_party_premium: Money = None
    gst: Money = None
    total_premium: Money = None
    idv: Money = None
    commission_percentage: Money = None
    commission_amount: Money = None
    ncb_percentage: Money = None

    registration_no: str | None = Field(default=None, max_length=50)
    engine_no: str | None = Field(default=None, max_length=100)
    chasis_no: str | None = Field(default=None, max_length=100)
    hp: str | None = Field(default=None, max_length=50)

    risk_location_address: str | None = None
    remark: str | None = None
    reference_from_name: str | None = Field(default=None, max_length=255)

    documents: list[dict[str, Any]] = Field(default_factory=list)
    documents_folder_link: str | None = None
    pdf_file_name: str | None = Field(default=None, max_length=255)


class PolicyCreate(PolicyFields):
    """Request to add a policy to the active book."""

    policyholder_name: str = Field(..., min_length=1, max_length=255)
    policy_number: str = Field(..., min_length=1, max_length=100)

    @field_validator("policyholder_name", "policy_number")
    @classmethod
    def strip_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class PolicyUpdate(PartialUpdate):
    """Partial update. Only fields present in the request are applied."""

    not_nullable = ("policyholder_name", "policy_number", "status", "is_one_time_policy", "documents")

    policyholder_name: str | None = Field(default=None, min_length=1, max_length=255)
    policy_number: str | None = Field(default=None, min_length=1, max_length=100)
    contact_no: str | None = Field(default=None, max_length=20)
    email_id: str | None = Field(default=None, max_length=255)
    address: str | None = None
    insurance_company: str | None = Field(default=None, max_length=255)
    policy_type: str | None = Field(default=None, max_length=100)
    product_type: str | None = Field(default=None, max_length=100)
    business_type: str | None = Field(default=None, max_length=100)
    member_of: str | None = Field(default=None, max_length=255)
    status: str | None = Field(default=None, min_length=1, max_length=20)
    is_one_time_policy: bool | None = None
    start_date: FlexibleDate = None
    expiry_date: FlexibleDate = None
    premium_amount: Money = None
    coverage_amount: Money = None
    net_premium: Money = None
    od_premium: Money = None
    third_party_premium: Money = None
    gst: Money = None
    total_premium: Money = None
    idv: Money = None
    commission_percentage: Money = None
    commission_amount: Money = None
    ncb_percentage: Money = None
    registration_no: str | None = Field(default=None, max_length=50)
    engine_no: str | None = Field(default=None, max_length=100)
    chasis_no: str | None = Field(default=None, max_length=100)
    hp: str | None = Field(default=None, max_length=50)
    risk_location_address: str | None = None
    remark: str | None = None
    reference_from_name: str | None = Field(default=None, max_length=255)
    documents: list[dict[str, Any]] | None = None
    documents_folder_link: str | None = None
    pdf_file_name: str | None = Field(default=None, max_length=255)


class PolicyResponse(PolicyFields):
    """A policy as returned to clients."""

    id: UUID
    user_id: UUID
    policyholder_name: str
    policy_number: str
    status: str
    claim_status: ClaimStatus
    has_claim_settled: bool
    settled_amount: Money = None
    settlement_date: date | None = None
    last_claim_date: date | None = None
    last_claim_amount: Money = None
    created_at: datetime
    updated_at: datetime | None = None


class DeletedPolicyResponse(PolicyFields):
    """A policy sitting in the trash."""

    id: UUID
    user_id: UUID
    original_policy_id: UUID
    policyholder_name: str
    policy_number: str
    status: str
    claim_status: ClaimStatus
    deleted_at: datetime
    deleted_by: UUID | None = None
    deleted_by_name: str | None = None


# =============================================================================
# RENEWALS
# =============================================================================


class LapsePolicyRequest(DeskBaseModel):
    reason: str | None = Field(default=None, max_length=2000)


class LapsedPolicyResponse(PolicyFields):
    """A policy that was marked as lapsed instead of renewed."""

    id: UUID
    user_id: UUID
    original_policy_id: UUID
    policyholder_name: str
    policy_number: str
    status: str
    claim_status: ClaimStatus
    lapsed_reason: str | None = None
    lapsed_at: datetime
    lapsed_by: UUID | None = None
    lapsed_by_name: str | None = None


class RenewalReminderResponse(DeskBaseModel):
    policy: PolicyResponse
    days_remaining: int
    alert_level: str
    message: str


# =============================================================================
# CLAIMS
# =============================================================================


class ClaimSettleRequest(DeskBaseModel):
    """Settlement as typed by the user; validated by the claims service."""

    settled_amount: str | int | Decimal | None = None
    settlement_date: FlexibleDate = None


# =============================================================================
# DELETION REQUESTS
# =============================================================================


class DeletionRequestCreate(DeskBaseModel):
    policy_id: UUID
    reason: str = Field(..., max_length=2000)
    password: str


class DeletionReviewRequest(DeskBaseModel):
    comments: str | None = Field(default=None, max_length=2000)
    policy_id: UUID | None = None


class DeletionRequestResponse(DeskBaseModel):
    id: UUID
    policy_id: UUID
    policy_number: str
    policyholder_name: str
    requested_by: UUID
    requested_by_name: str
    request_reason: str
    request_date: datetime
    status: DeletionRequestStatus
    reviewed_by: UUID | None = None
    reviewed_by_name: str | None = None
    review_date: datetime | None = None
    review_comments: str | None = None


# =============================================================================
# ACTIVITY LOG
# =============================================================================


class ActivityLogEntry(DeskBaseModel):
    id: UUID
    action: ActivityAction
    entity_type: str
    entity_id: UUID
    entity_number: str | None = None
    entity_name: str | None = None
    description: str
    performed_by: UUID
    performed_by_name: str
    old_data: dict[str, Any] | None = None
    new_data: dict[str, Any] | None = None
    created_at: datetime
