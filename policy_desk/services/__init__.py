"""Business logic services for Policy Desk."""

from .activity_log import ActivityLogService, Actor, snapshot
from .autofill import (
    AutoFillError,
    AutoFillFinishedError,
    AutoFillRegistry,
    AutoFillSession,
    AutoFillSessionNotFoundError,
    AutoFillValidationError,
    build_policy_from_form,
)
from .claims import ClaimAlreadySettledError, ClaimError, ClaimService, ClaimValidationError
from .deletion_workflow import (
    DeletionRequestNotFoundError,
    DeletionValidationError,
    DeletionWorkflow,
    DeletionWorkflowError,
    DuplicateDeletionRequestError,
    PasswordMismatchError,
    PermissionDeniedError,
    RequestAlreadyReviewedError,
)
from .extraction import (
    ExtractionClient,
    ExtractionEmptyResponseError,
    ExtractionError,
    ExtractionFileError,
    ExtractionHTTPError,
    ExtractionInvalidResponseError,
    ExtractionNetworkError,
    ExtractionNotConfiguredError,
    ExtractionResult,
    ExtractionTimeoutError,
    UploadedDocument,
)
from .followups import FollowUpBucket, FollowUpTracker, FollowUpValidationError, filter_leads
from .group_heads import (
    GroupHeadError,
    GroupHeadFieldError,
    GroupHeadNotFoundError,
    GroupHeadService,
    GroupHeadSummary,
)
from .leads import LeadError, LeadFieldError, LeadNotFoundError, LeadService
from .policies import (
    DuplicatePolicyNumberError,
    InvalidOperationError,
    PolicyError,
    PolicyNotFoundError,
    PolicyPermissionError,
    PolicyService,
)
from .renewals import (
    AlertLevel,
    ReminderScope,
    RenewalReminder,
    RenewalService,
    expiring_policies,
    reminder_message,
)
from .stores import LeadStore, PolicyStore
from .team_members import (
    TeamMemberEmailTakenError,
    TeamMemberError,
    TeamMemberNotFoundError,
    TeamMemberPermissionError,
    TeamMemberService,
)
from .users import (
    AccountError,
    AccountLockedError,
    AccountNotFoundError,
    AccountPermissionError,
    AccountService,
    EmailAlreadyRegisteredError,
    InvalidCredentialsError,
    LoginResult,
    SubscriptionExpiredError,
    can_access_system,
    days_remaining,
    evaluate_subscription_status,
)

__all__ = [
    # Activity
    "ActivityLogService",
    "Actor",
    "snapshot",
    # Policies
    "PolicyService",
    "PolicyError",
    "PolicyNotFoundError",
    "DuplicatePolicyNumberError",
    "PolicyPermissionError",
    "InvalidOperationError",
    # Renewals
    "RenewalService",
    "RenewalReminder",
    "ReminderScope",
    "AlertLevel",
    "expiring_policies",
    "reminder_message",
    # Group heads
    "GroupHeadService",
    "GroupHeadSummary",
    "GroupHeadError",
    "GroupHeadNotFoundError",
    "GroupHeadFieldError",
    # Stores
    "PolicyStore",
    "LeadStore",
    # Deletion workflow
    "DeletionWorkflow",
    "DeletionWorkflowError",
    "DeletionValidationError",
    "PasswordMismatchError",
    "DeletionRequestNotFoundError",
    "RequestAlreadyReviewedError",
    "DuplicateDeletionRequestError",
    "PermissionDeniedError",
    # Claims
    "ClaimService",
    "ClaimError",
    "ClaimValidationError",
    "ClaimAlreadySettledError",
    # Leads
    "LeadService",
    "LeadError",
    "LeadNotFoundError",
    "LeadFieldError",
    "FollowUpTracker",
    "FollowUpBucket",
    "FollowUpValidationError",
    "filter_leads",
    # Accounts
    "AccountService",
    "AccountError",
    "AccountNotFoundError",
    "AccountLockedError",
    "AccountPermissionError",
    "EmailAlreadyRegisteredError",
    "InvalidCredentialsError",
    "SubscriptionExpiredError",
    "LoginResult",
    "can_access_system",
    "days_remaining",
    "evaluate_subscription_status",
    "TeamMemberService",
    "TeamMemberError",
    "TeamMemberNotFoundError",
    "TeamMemberEmailTakenError",
    "TeamMemberPermissionError",
    # Extraction and auto-fill
    "ExtractionClient",
    "ExtractionResult",
    "UploadedDocument",
    "ExtractionError",
    "ExtractionNotConfiguredError",
    "ExtractionFileError",
    "ExtractionTimeoutError",
    "ExtractionNetworkError",
    "ExtractionHTTPError",
    "ExtractionInvalidResponseError",
    "ExtractionEmptyResponseError",
    "AutoFillSession",
    "AutoFillRegistry",
    "AutoFillError",
    "AutoFillValidationError",
    "AutoFillFinishedError",
    "AutoFillSessionNotFoundError",
    "build_policy_from_form",
]
