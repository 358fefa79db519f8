"""SQLAlchemy ORM models for Policy Desk."""

from .base import Base, TimestampMixin, UUIDMixin, utcnow
from .models import (
    # Enums
    ActivityAction,
    ClaimStatus,
    DeletionRequestStatus,
    FollowUpOutcome,
    LeadPriority,
    LeadStatus,
    SubscriptionStatus,
    UserRole,
    PAGES,
    TERMINAL_LEAD_STATUSES,
    # Accounts
    AppUser,
    TeamMember,
    # Policies
    DeletedPolicy,
    GroupHead,
    LapsedPolicy,
    Policy,
    PolicyDeletionRequest,
    # Audit
    ActivityLog,
    # Leads
    FollowUpHistory,
    Lead,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "utcnow",
    "ActivityAction",
    "ClaimStatus",
    "DeletionRequestStatus",
    "FollowUpOutcome",
    "LeadPriority",
    "LeadStatus",
    "SubscriptionStatus",
    "UserRole",
    "PAGES",
    "TERMINAL_LEAD_STATUSES",
    "AppUser",
    "TeamMember",
    "DeletedPolicy",
    "GroupHead",
    "LapsedPolicy",
    "Policy",
    "PolicyDeletionRequest",
    "ActivityLog",
    "FollowUpHistory",
    "Lead",
]
