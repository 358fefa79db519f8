"""SQLAlchemy ORM models for the agency back office.

Policies live in parallel tables: ``policies`` for the active book,
``deleted_policies`` for the trash and ``lapsed_policies`` for policies the
agency gave up on renewing. A policy exists in at most one of them.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum as PyEnum
from uuid import UUID

from sqlalchemy import (
    Boolean,
    Enum,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, JSONType, TimestampMixin, UUIDMixin, utcnow


# =============================================================================
# ENUMS
# =============================================================================


class UserRole(str, PyEnum):
    ADMIN = "admin"
    USER = "user"


class SubscriptionStatus(str, PyEnum):
    TRIAL = "trial"
    ACTIVE = "active"
    EXPIRED = "expired"


class ClaimStatus(str, PyEnum):
    NONE = "none"
    IN_PROGRESS = "in-progress"
    SETTLED = "settled"


class DeletionRequestStatus(str, PyEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ActivityAction(str, PyEnum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    RESTORE = "RESTORE"
    PERMANENT_DELETE = "PERMANENT_DELETE"
    MARK_LAPSED = "MARK_LAPSED"
    REACTIVATE = "REACTIVATE"


class LeadStatus(str, PyEnum):
    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    PROPOSAL_SENT = "proposal_sent"
    FOLLOW_UP = "follow_up"
    NEGOTIATION = "negotiation"
    WON = "won"
    LOST = "lost"
    CANCELED = "canceled"


TERMINAL_LEAD_STATUSES = frozenset({LeadStatus.WON, LeadStatus.LOST, LeadStatus.CANCELED})


class LeadPriority(str, PyEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class FollowUpOutcome(str, PyEnum):
    COMPLETED = "completed"
    MISSED = "missed"
    RESCHEDULED = "rescheduled"


# Route paths a team member can be granted
PAGES = (
    "/dashboard",
    "/policies",
    "/add-policy",
    "/deleted-policies",
    "/reminders",
    "/lapsed-policies",
    "/group-heads",
    "/claims",
    "/leads",
    "/follow-ups",
    "/activity-logs",
)


def _enum(enum_cls: type[PyEnum], name: str) -> Enum:
    return Enum(enum_cls, name=name, values_callable=lambda x: [e.value for e in x])


# =============================================================================
# ACCOUNTS
# =============================================================================


class AppUser(Base, UUIDMixin, TimestampMixin):
    """An agency account: owns policies and leads, pays the subscription."""

    __tablename__ = "app_users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    mobile_no: Mapped[str | None] = mapped_column(String(20))
    password_hash: Mapped[str | None] = mapped_column(String(255))
    auth_provider: Mapped[str] = mapped_column(String(50), default="password", nullable=False)
    auth_provider_id: Mapped[str | None] = mapped_column(String(255))
    role: Mapped[UserRole] = mapped_column(
        _enum(UserRole, "user_role"), default=UserRole.USER, nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Lock state
    is_locked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    locked_reason: Mapped[str | None] = mapped_column(Text)
    locked_by: Mapped[UUID | None]
    locked_at: Mapped[datetime | None]

    # Subscription
    subscription_status: Mapped[SubscriptionStatus] = mapped_column(
        _enum(SubscriptionStatus, "subscription_status"),
        default=SubscriptionStatus.TRIAL,
        nullable=False,
    )
    trial_start_date: Mapped[datetime | None]
    trial_end_date: Mapped[datetime | None]
    subscription_end_date: Mapped[datetime | None]
    last_login: Mapped[datetime | None]

    __table_args__ = (
        Index("idx_app_users_provider", "auth_provider", "auth_provider_id"),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class TeamMember(Base, UUIDMixin, TimestampMixin):
    """A login that works on behalf of an admin account, limited to some pages."""

    __tablename__ = "team_members"

    admin_user_id: Mapped[UUID] = mapped_column(
        ForeignKey("app_users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    mobile_no: Mapped[str | None] = mapped_column(String(20))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    page_access: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    last_login: Mapped[datetime | None]


# =============================================================================
# POLICIES
# =============================================================================


class PolicyFieldsMixin:
    """Columns shared by the active and the deleted policy tables."""

    policyholder_name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_no: Mapped[str | None] = mapped_column(String(20))
    email_id: Mapped[str | None] = mapped_column(String(255))
    address: Mapped[str | None] = mapped_column(Text)

    policy_number: Mapped[str] = mapped_column(String(100), nullable=False)
    insurance_company: Mapped[str | None] = mapped_column(String(255))
    policy_type: Mapped[str | None] = mapped_column(String(100))
    product_type: Mapped[str | None] = mapped_column(String(100))
    business_type: Mapped[str | None] = mapped_column(String(100))
    member_of: Mapped[str | None] = mapped_column(String(255))
    status: Mapped[str] = mapped_column(String(20), default="active", nullable=False)
    is_one_time_policy: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    start_date: Mapped[date | None]
    expiry_date: Mapped[date | None]

    # Money
    premium_amount: Mapped[Decimal | None]
    coverage_amount: Mapped[Decimal | None]
    net_premium: Mapped[Decimal | None]
    od_premium: Mapped[Decimal | None]
    third_party_premium: Mapped[Decimal | None]
    gst: Mapped[Decimal | None]
    total_premium: Mapped[Decimal | None]
    idv: Mapped[Decimal | None]
    commission_percentage: Mapped[Decimal | None] = mapped_column(Numeric(5, 2))
    commission_amount: Mapped[Decimal | None]
    ncb_percentage: Mapped[Decimal | None] = mapped_column(Numeric(5, 2))

    # Vehicle
    registration_no: Mapped[str | None] = mapped_column(String(50))
    engine_no: Mapped[str | None] = mapped_column(String(100))
    chasis_no: Mapped[str | None] = mapped_column(String(100))
    hp: Mapped[str | None] = mapped_column(String(50))

    risk_location_address: Mapped[str | None] = mapped_column(Text)
    remark: Mapped[str | None] = mapped_column(Text)
    reference_from_name: Mapped[str | None] = mapped_column(String(255))

    # Claim sub-state
    claim_status: Mapped[ClaimStatus] = mapped_column(
        _enum(ClaimStatus, "claim_status"), default=ClaimStatus.NONE, nullable=False
    )
    has_claim_settled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    settled_amount: Mapped[Decimal | None]
    settlement_date: Mapped[date | None]
    last_claim_date: Mapped[date | None]
    last_claim_amount: Mapped[Decimal | None]

    # Documents
    documents: Mapped[list[dict]] = mapped_column(JSONType, default=list, nullable=False)
    documents_folder_link: Mapped[str | None] = mapped_column(Text)
    pdf_file_name: Mapped[str | None] = mapped_column(String(255))


class Policy(Base, UUIDMixin, TimestampMixin, PolicyFieldsMixin):
    """A policy in the active book."""

    __tablename__ = "policies"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("app_users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    __table_args__ = (
        UniqueConstraint("user_id", "policy_number", name="uq_policies_user_policy_number"),
        Index("idx_policies_expiry", "user_id", "expiry_date"),
    )


class DeletedPolicy(Base, UUIDMixin, PolicyFieldsMixin):
    """A soft-deleted policy. Restoring moves it back under its original id."""

    __tablename__ = "deleted_policies"

    user_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    original_policy_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    original_created_at: Mapped[datetime | None]
    deleted_by: Mapped[UUID | None]
    deleted_by_name: Mapped[str | None] = mapped_column(String(255))
    deleted_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)


class LapsedPolicy(Base, UUIDMixin, PolicyFieldsMixin):
    """A policy that was not renewed. Reactivating moves it back under its original id."""

    __tablename__ = "lapsed_policies"

    user_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    original_policy_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    original_created_at: Mapped[datetime | None]
    lapsed_reason: Mapped[str | None] = mapped_column(Text)
    lapsed_by: Mapped[UUID | None]
    lapsed_by_name: Mapped[str | None] = mapped_column(String(255))
    lapsed_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)


class GroupHead(Base, UUIDMixin, TimestampMixin):
    """A primary customer whose family or company policies are tracked together.

    Policies join a group through ``member_of``, which holds the group head id.
    """

    __tablename__ = "group_heads"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("app_users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    group_head_name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_no: Mapped[str | None] = mapped_column(String(20))
    email_id: Mapped[str | None] = mapped_column(String(255))
    address: Mapped[str | None] = mapped_column(Text)
    relationship_type: Mapped[str] = mapped_column(String(50), default="Primary", nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)


class PolicyDeletionRequest(Base, UUIDMixin, TimestampMixin):
    """A request to erase a policy, decided once by an admin."""

    __tablename__ = "policy_deletion_requests"

    # No foreign key: the request outlives the policy it erased
    policy_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    user_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    policy_number: Mapped[str] = mapped_column(String(100), nullable=False)
    policyholder_name: Mapped[str] = mapped_column(String(255), nullable=False)

    requested_by: Mapped[UUID] = mapped_column(nullable=False)
    requested_by_name: Mapped[str] = mapped_column(String(255), nullable=False)
    request_reason: Mapped[str] = mapped_column(Text, nullable=False)
    request_date: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    status: Mapped[DeletionRequestStatus] = mapped_column(
        _enum(DeletionRequestStatus, "deletion_request_status"),
        default=DeletionRequestStatus.PENDING,
        nullable=False,
    )
    reviewed_by: Mapped[UUID | None]
    reviewed_by_name: Mapped[str | None] = mapped_column(String(255))
    review_date: Mapped[datetime | None]
    review_comments: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        Index("idx_deletion_requests_status", "status", "request_date"),
    )


# =============================================================================
# ACTIVITY LOG
# =============================================================================


class ActivityLog(Base, UUIDMixin):
    """Insert-only record of a mutation with before/after snapshots."""

    __tablename__ = "activity_logs"

    user_id: Mapped[UUID] = mapped_column(nullable=False)
    action: Mapped[ActivityAction] = mapped_column(
        _enum(ActivityAction, "activity_action"), nullable=False
    )
    entity_type: Mapped[str] = mapped_column(String(20), default="policy", nullable=False)
    entity_id: Mapped[UUID] = mapped_column(nullable=False)
    entity_number: Mapped[str | None] = mapped_column(String(100))
    entity_name: Mapped[str | None] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text, nullable=False)
    performed_by: Mapped[UUID] = mapped_column(nullable=False)
    performed_by_name: Mapped[str] = mapped_column(String(255), nullable=False)
    old_data: Mapped[dict | None] = mapped_column(JSONType)
    new_data: Mapped[dict | None] = mapped_column(JSONType)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    __table_args__ = (
        Index("idx_activity_user_time", "user_id", "created_at"),
        Index("idx_activity_entity", "entity_id", "created_at"),
    )


# =============================================================================
# LEADS
# =============================================================================


class Lead(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "leads"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("app_users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_mobile: Mapped[str | None] = mapped_column(String(20))
    customer_email: Mapped[str | None] = mapped_column(String(255))
    product_type: Mapped[str | None] = mapped_column(String(100))
    lead_source: Mapped[str | None] = mapped_column(String(100))
    assigned_to: Mapped[str | None] = mapped_column(String(255))
    remark: Mapped[str | None] = mapped_column(Text)

    status: Mapped[LeadStatus] = mapped_column(
        _enum(LeadStatus, "lead_status"), default=LeadStatus.NEW, nullable=False
    )
    priority: Mapped[LeadPriority] = mapped_column(
        _enum(LeadPriority, "lead_priority"), default=LeadPriority.MEDIUM, nullable=False
    )
    follow_up_date: Mapped[date] = mapped_column(nullable=False)
    next_follow_up_date: Mapped[date | None]
    estimated_value: Mapped[Decimal | None]

    is_converted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    converted_to_policy_id: Mapped[UUID | None]

    __table_args__ = (
        Index("idx_leads_follow_up", "user_id", "follow_up_date"),
        Index("idx_leads_status", "user_id", "status"),
    )


class FollowUpHistory(Base, UUIDMixin):
    """Append-only log of follow-up contacts on a lead."""

    __tablename__ = "lead_follow_up_history"

    lead_id: Mapped[UUID] = mapped_column(
        ForeignKey("leads.id", ondelete="CASCADE"), nullable=False, index=True
    )
    follow_up_date: Mapped[date] = mapped_column(nullable=False)
    actual_follow_up_date: Mapped[date] = mapped_column(nullable=False)
    status: Mapped[FollowUpOutcome] = mapped_column(
        _enum(FollowUpOutcome, "follow_up_outcome"), nullable=False
    )
    notes: Mapped[str] = mapped_column(Text, nullable=False)
    next_follow_up_date: Mapped[date | None]
    created_by: Mapped[UUID] = mapped_column(nullable=False)
    created_by_name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
