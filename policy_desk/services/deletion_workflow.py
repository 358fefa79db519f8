"""
Deletion Workflow: two-person approval before a policy is erased.

    pending ──approve──> approved   (policy erased, PERMANENT_DELETE logged)
       └─────reject───> rejected   (policy untouched)

A request leaves ``pending`` exactly once. The transition is a conditional
UPDATE on ``status = 'pending'``, so a concurrent second review matches no
row and fails instead of overwriting the first decision.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.security import verify_password
from ..models import DeletionRequestStatus, PolicyDeletionRequest
from .activity_log import Actor
from .policies import PolicyService

logger = logging.getLogger(__name__)


# =============================================================================
# EXCEPTIONS
# =============================================================================


class DeletionWorkflowError(Exception):
    """Base exception for deletion workflow operations."""
    pass


class DeletionValidationError(DeletionWorkflowError):
    """Request is incomplete; raised before anything is written."""
    pass


class PasswordMismatchError(DeletionValidationError):
    """Requester's password confirmation did not match."""
    pass


class DeletionRequestNotFoundError(DeletionWorkflowError):
    pass


class RequestAlreadyReviewedError(DeletionWorkflowError):
    """Request already left the pending state."""
    pass


class DuplicateDeletionRequestError(DeletionWorkflowError):
    """Policy already has a pending request."""
    pass


class PermissionDeniedError(DeletionWorkflowError):
    pass


# =============================================================================
# WORKFLOW
# =============================================================================


class DeletionWorkflow:
    def __init__(
        self,
        session: AsyncSession,
        password_verifier: Callable[[str, str | None], bool] = verify_password,
    ):
        self._session = session
        self._verify_password = password_verifier
        self._policies = PolicyService(session)

    async def request_deletion(
        self,
        policy_id: UUID,
        reason: str,
        password: str,
        requester: Actor,
        password_hash: str | None,
    ) -> PolicyDeletionRequest:
        """
        Open a pending request for an active policy.

        ``password_hash`` is the requester's stored hash; the confirmation is
        checked locally before any statement is issued. The policy itself is
        not touched.
        """
        reason = (reason or "").strip()
        if not reason:
            raise DeletionValidationError("Please provide a reason for deletion")
        if not password:
            raise DeletionValidationError("Please enter your password to confirm")
        if not self._verify_password(password, password_hash):
            raise PasswordMismatchError("Incorrect password")

        policy = await self._policies.get_policy(policy_id, requester.owner_id)

        if await self.has_pending_request(policy.id):
            raise DuplicateDeletionRequestError(
                f"A deletion request for policy {policy.policy_number} is already pending"
            )

        request = PolicyDeletionRequest(
            policy_id=policy.id,
            user_id=policy.user_id,
            policy_number=policy.policy_number,
            policyholder_name=policy.policyholder_name,
            requested_by=requester.account_id,
            requested_by_name=requester.name,
            request_reason=reason,
            status=DeletionRequestStatus.PENDING,
        )
        self._session.add(request)
        await self._session.flush()

        logger.info(
            f"Deletion request {request.id} opened for policy {policy.id} by {requester.account_id}"
        )
        return request

    async def approve(
        self,
        request_id: UUID,
        reviewer: Actor,
        comments: str | None = None,
        policy_id: UUID | None = None,
    ) -> PolicyDeletionRequest:
        """Approve a pending request and erase its policy."""
        request = await self._get_for_review(request_id, reviewer)
        if policy_id is not None and policy_id != request.policy_id:
            raise DeletionValidationError("Policy does not match the deletion request")

        await self._transition(request, DeletionRequestStatus.APPROVED, reviewer, comments)

        erased = await self._policies.erase_policy(
            request.policy_id,
            request.user_id,
            reviewer,
            f"Permanently deleted policy {request.policy_number} "
            f"(approved request from {request.requested_by_name})",
        )
        if erased is None:
            logger.warning(
                f"Deletion request {request.id} approved but policy {request.policy_id} was already gone"
            )

        logger.info(f"Deletion request {request.id} approved by {reviewer.account_id}")
        return request

    async def reject(
        self,
        request_id: UUID,
        reviewer: Actor,
        comments: str | None = None,
    ) -> PolicyDeletionRequest:
        """Reject a pending request. The policy stays where it is."""
        request = await self._get_for_review(request_id, reviewer)
        await self._transition(request, DeletionRequestStatus.REJECTED, reviewer, comments)
        logger.info(f"Deletion request {request.id} rejected by {reviewer.account_id}")
        return request

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def get_request(self, request_id: UUID) -> PolicyDeletionRequest:
        request = await self._session.get(PolicyDeletionRequest, request_id)
        if not request:
            raise DeletionRequestNotFoundError(f"Deletion request {request_id} not found")
        return request

    async def list_requests(
        self,
        status: DeletionRequestStatus | None = None,
        requested_by: UUID | None = None,
        owner_id: UUID | None = None,
    ) -> Sequence[PolicyDeletionRequest]:
        query = select(PolicyDeletionRequest)
        if status is not None:
            query = query.where(PolicyDeletionRequest.status == status)
        if requested_by is not None:
            query = query.where(PolicyDeletionRequest.requested_by == requested_by)
        if owner_id is not None:
            query = query.where(PolicyDeletionRequest.user_id == owner_id)
        result = await self._session.execute(
            query.order_by(PolicyDeletionRequest.request_date.desc())
        )
        return result.scalars().all()

    async def list_pending(self) -> Sequence[PolicyDeletionRequest]:
        return await self.list_requests(status=DeletionRequestStatus.PENDING)

    async def has_pending_request(self, policy_id: UUID) -> bool:
        result = await self._session.execute(
            select(PolicyDeletionRequest.id)
            .where(
                PolicyDeletionRequest.policy_id == policy_id,
                PolicyDeletionRequest.status == DeletionRequestStatus.PENDING,
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    # =========================================================================
    # INTERNALS
    # =========================================================================

    async def _get_for_review(
        self,
        request_id: UUID,
        reviewer: Actor,
    ) -> PolicyDeletionRequest:
        if not reviewer.is_admin:
            raise PermissionDeniedError("Only admins can review deletion requests")
        request = await self.get_request(request_id)
        if request.requested_by == reviewer.account_id:
            raise PermissionDeniedError("A deletion request must be reviewed by someone else")
        return request

    async def _transition(
        self,
        request: PolicyDeletionRequest,
        new_status: DeletionRequestStatus,
        reviewer: Actor,
        comments: str | None,
    ) -> None:
        result = await self._session.execute(
            update(PolicyDeletionRequest)
            .where(
                PolicyDeletionRequest.id == request.id,
                PolicyDeletionRequest.status == DeletionRequestStatus.PENDING,
            )
            .values(
                status=new_status,
                reviewed_by=reviewer.account_id,
                reviewed_by_name=reviewer.name,
                review_date=datetime.now(timezone.utc),
                review_comments=comments,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise RequestAlreadyReviewedError(
                f"Deletion request {request.id} has already been reviewed"
            )
        await self._session.refresh(request)

