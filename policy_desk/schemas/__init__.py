"""Pydantic schemas for the Policy Desk API."""

from .base import (
    DeskBaseModel,
    ErrorDetail,
    ErrorResponse,
    FlexibleDate,
    Money,
    PaginatedResponse,
    PartialUpdate,
    parse_date,
    parse_money,
)
from .extraction import (
    AutoFillFileState,
    AutoFillSessionState,
    ExtractionResponse,
    PolicyFormData,
)
from .group_heads import GroupHeadCreate, GroupHeadResponse, GroupHeadUpdate
from .leads import (
    FollowUpHistoryEntry,
    FollowUpRecordRequest,
    LeadConvertRequest,
    LeadCreate,
    LeadResponse,
    LeadStatistics,
    LeadUpdate,
)
from .policies import (
    ActivityLogEntry,
    ClaimSettleRequest,
    DeletedPolicyResponse,
    DeletionRequestCreate,
    DeletionRequestResponse,
    DeletionReviewRequest,
    LapsedPolicyResponse,
    LapsePolicyRequest,
    PolicyCreate,
    PolicyResponse,
    PolicyUpdate,
    RenewalReminderResponse,
)
from .users import (
    AccountResponse,
    ActivateSubscriptionRequest,
    AppUserResponse,
    LockUserRequest,
    LoginRequest,
    RefreshRequest,
    SignupRequest,
    TeamMemberCreate,
    TeamMemberResponse,
    TeamMemberUpdate,
    TokenResponse,
)

__all__ = [
    # Base
    "DeskBaseModel",
    "ErrorDetail",
    "ErrorResponse",
    "FlexibleDate",
    "Money",
    "PaginatedResponse",
    "PartialUpdate",
    "parse_date",
    "parse_money",
    # Extraction
    "AutoFillFileState",
    "AutoFillSessionState",
    "ExtractionResponse",
    "PolicyFormData",
    # Group heads
    "GroupHeadCreate",
    "GroupHeadResponse",
    "GroupHeadUpdate",
    # Leads
    "FollowUpHistoryEntry",
    "FollowUpRecordRequest",
    "LeadConvertRequest",
    "LeadCreate",
    "LeadResponse",
    "LeadStatistics",
    "LeadUpdate",
    # Policies
    "ActivityLogEntry",
    "ClaimSettleRequest",
    "DeletedPolicyResponse",
    "DeletionRequestCreate",
    "DeletionRequestResponse",
    "DeletionReviewRequest",
    "LapsedPolicyResponse",
    "LapsePolicyRequest",
    "PolicyCreate",
    "PolicyResponse",
    "PolicyUpdate",
    "RenewalReminderResponse",
    # Users
    "AccountResponse",
    "ActivateSubscriptionRequest",
    "AppUserResponse",
    "LockUserRequest",
    "LoginRequest",
    "RefreshRequest",
    "SignupRequest",
    "TeamMemberCreate",
    "TeamMemberResponse",
    "TeamMemberUpdate",
    "TokenResponse",
]
