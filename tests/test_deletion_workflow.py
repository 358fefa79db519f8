"""
Tests for the two-person deletion approval workflow.

These tests verify:
1. A request needs a reason and the requester's password, checked before any write
2. Approval erases the policy and logs PERMANENT_DELETE
3. A request leaves pending exactly once
4. Rejection leaves the policy untouched
5. Only an admin other than the requester can review
"""

import asyncio

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from policy_desk.models import (
    ActivityAction,
    ActivityLog,
    AppUser,
    DeletedPolicy,
    DeletionRequestStatus,
    Policy,
    PolicyDeletionRequest,
)
from policy_desk.schemas import PolicyCreate
from policy_desk.services.activity_log import Actor
from policy_desk.services.deletion_workflow import (
    DeletionValidationError,
    DeletionWorkflow,
    DuplicateDeletionRequestError,
    PasswordMismatchError,
    PermissionDeniedError,
    RequestAlreadyReviewedError,
)
from policy_desk.services.policies import PolicyNotFoundError, PolicyService

from factories import ADMIN_PASSWORD, AGENT_PASSWORD


# =============================================================================
# FIXTURES
# =============================================================================


async def count(session: AsyncSession, model) -> int:
    await session.flush()
    return (await session.execute(select(func.count()).select_from(model))).scalar_one()


@pytest.fixture
def workflow(session: AsyncSession) -> DeletionWorkflow:
    return DeletionWorkflow(session)


@pytest.fixture
async def pending_request(
    workflow: DeletionWorkflow,
    agent: AppUser,
    agent_actor: Actor,
    agent_policy: Policy,
) -> PolicyDeletionRequest:
    return await workflow.request_deletion(
        agent_policy.id,
        "Customer cancelled before start",
        AGENT_PASSWORD,
        agent_actor,
        agent.password_hash,
    )


# =============================================================================
# REQUEST
# =============================================================================


class TestRequestDeletion:
    """Tests for opening a deletion request."""

    async def test_request_is_pending_and_policy_untouched(
        self,
        session: AsyncSession,
        pending_request: PolicyDeletionRequest,
        agent_policy: Policy,
        agent_actor: Actor,
    ):
        assert DeletionRequestStatus(pending_request.status) == DeletionRequestStatus.PENDING
        assert pending_request.policy_number == agent_policy.policy_number
        assert pending_request.requested_by == agent_actor.account_id
        assert pending_request.requested_by_name == agent_actor.name
        assert await count(session, Policy) == 1

    async def test_wrong_password_writes_nothing(
        self,
        session: AsyncSession,
        workflow: DeletionWorkflow,
        agent: AppUser,
        agent_actor: Actor,
        agent_policy: Policy,
    ):
        with pytest.raises(PasswordMismatchError):
            await workflow.request_deletion(
                agent_policy.id, "Duplicate entry", "not-my-password", agent_actor, agent.password_hash
            )
        assert await count(session, PolicyDeletionRequest) == 0

    async def test_password_is_checked_before_any_query(self, agent_actor: Actor, agent_policy: Policy):
        """The confirmation should fail without the session being used."""

        class UnusableSession:
            def __getattr__(self, name):
                raise AssertionError(f"session.{name} used before password check")

        workflow = DeletionWorkflow(UnusableSession(), password_verifier=lambda plain, hashed: False)

        with pytest.raises(PasswordMismatchError):
            await workflow.request_deletion(agent_policy.id, "Reason", "pw", agent_actor, "hash")

    @pytest.mark.parametrize("reason, password", [("", "pw"), ("   ", "pw"), ("Reason", "")])
    async def test_reason_and_password_required(
        self,
        workflow: DeletionWorkflow,
        agent: AppUser,
        agent_actor: Actor,
        agent_policy: Policy,
        reason: str,
        password: str,
    ):
        with pytest.raises(DeletionValidationError):
            await workflow.request_deletion(
                agent_policy.id, reason, password, agent_actor, agent.password_hash
            )

    async def test_unknown_policy(self, workflow: DeletionWorkflow, agent: AppUser, agent_actor: Actor):
        with pytest.raises(PolicyNotFoundError):
            await workflow.request_deletion(
                agent.id, "Reason", AGENT_PASSWORD, agent_actor, agent.password_hash
            )

    async def test_second_pending_request_is_refused(
        self,
        workflow: DeletionWorkflow,
        pending_request: PolicyDeletionRequest,
        agent: AppUser,
        agent_actor: Actor,
        agent_policy: Policy,
    ):
        with pytest.raises(DuplicateDeletionRequestError):
            await workflow.request_deletion(
                agent_policy.id, "Again", AGENT_PASSWORD, agent_actor, agent.password_hash
            )


# =============================================================================
# REVIEW
# =============================================================================


class TestApprove:
    """Tests for approving a request."""

    async def test_approve_erases_policy_and_logs(
        self,
        session: AsyncSession,
        workflow: DeletionWorkflow,
        pending_request: PolicyDeletionRequest,
        admin_actor: Actor,
        agent_actor: Actor,
        agent_policy: Policy,
    ):
        policy_id = agent_policy.id

        request = await workflow.approve(pending_request.id, admin_actor, comments="Verified with client")

        assert DeletionRequestStatus(request.status) == DeletionRequestStatus.APPROVED
        assert request.reviewed_by == admin_actor.account_id
        assert request.reviewed_by_name == admin_actor.name
        assert request.review_comments == "Verified with client"
        assert request.review_date is not None
        assert await count(session, Policy) == 0
        assert await count(session, DeletedPolicy) == 0

        entry = (
            await session.execute(
                select(ActivityLog).where(ActivityLog.action == ActivityAction.PERMANENT_DELETE)
            )
        ).scalar_one()
        assert entry.entity_id == policy_id
        assert entry.user_id == agent_actor.owner_id
        assert entry.performed_by == admin_actor.account_id
        assert entry.old_data["policy_number"] == "POL-001"

    async def test_approve_erases_trashed_copy(
        self,
        session: AsyncSession,
        workflow: DeletionWorkflow,
        pending_request: PolicyDeletionRequest,
        admin_actor: Actor,
        agent_actor: Actor,
        agent_policy: Policy,
    ):
        """A policy moved to the trash after the request is still erased."""
        await PolicyService(session).soft_delete_policy(agent_policy.id, agent_actor)

        await workflow.approve(pending_request.id, admin_actor)

        assert await count(session, DeletedPolicy) == 0

    async def test_approve_when_policy_already_gone(
        self,
        session: AsyncSession,
        workflow: DeletionWorkflow,
        pending_request: PolicyDeletionRequest,
        admin_actor: Actor,
        agent_policy: Policy,
    ):
        await session.delete(agent_policy)
        await session.flush()

        request = await workflow.approve(pending_request.id, admin_actor)

        assert DeletionRequestStatus(request.status) == DeletionRequestStatus.APPROVED
        assert await count(session, ActivityLog) == 0

    async def test_policy_mismatch_is_refused(
        self,
        session: AsyncSession,
        workflow: DeletionWorkflow,
        pending_request: PolicyDeletionRequest,
        admin_actor: Actor,
        agent: AppUser,
    ):
        with pytest.raises(DeletionValidationError):
            await workflow.approve(pending_request.id, admin_actor, policy_id=agent.id)
        assert await count(session, Policy) == 1

    async def test_approve_happens_once(
        self,
        workflow: DeletionWorkflow,
        pending_request: PolicyDeletionRequest,
        admin_actor: Actor,
        reviewer_actor: Actor,
    ):
        await workflow.approve(pending_request.id, admin_actor)

        with pytest.raises(RequestAlreadyReviewedError):
            await workflow.approve(pending_request.id, reviewer_actor)
        with pytest.raises(RequestAlreadyReviewedError):
            await workflow.reject(pending_request.id, reviewer_actor)

    async def test_concurrent_reviews_apply_once(
        self,
        session_factory,
        pending_request: PolicyDeletionRequest,
        session: AsyncSession,
        admin_actor: Actor,
        reviewer_actor: Actor,
    ):
        """Two reviewers racing on one request: exactly one succeeds."""
        await session.commit()

        async def review(actor: Actor, approve: bool):
            async with session_factory() as s:
                workflow = DeletionWorkflow(s)
                try:
                    if approve:
                        await workflow.approve(pending_request.id, actor)
                    else:
                        await workflow.reject(pending_request.id, actor)
                    await s.commit()
                    return "ok"
                except RequestAlreadyReviewedError:
                    await s.rollback()
                    return "already"

        outcomes = await asyncio.gather(
            review(admin_actor, True),
            review(reviewer_actor, False),
        )

        assert sorted(outcomes) == ["already", "ok"]


class TestReject:
    """Tests for rejecting a request."""

    async def test_reject_leaves_policy(
        self,
        session: AsyncSession,
        workflow: DeletionWorkflow,
        pending_request: PolicyDeletionRequest,
        admin_actor: Actor,
    ):
        request = await workflow.reject(pending_request.id, admin_actor, comments="Policy is active")

        assert DeletionRequestStatus(request.status) == DeletionRequestStatus.REJECTED
        assert request.review_comments == "Policy is active"
        assert await count(session, Policy) == 1
        assert not await workflow.has_pending_request(pending_request.policy_id)


class TestReviewPermissions:
    """Tests for who may review."""

    async def test_non_admin_cannot_review(
        self,
        workflow: DeletionWorkflow,
        pending_request: PolicyDeletionRequest,
        agent_actor: Actor,
    ):
        with pytest.raises(PermissionDeniedError):
            await workflow.approve(pending_request.id, agent_actor)
        with pytest.raises(PermissionDeniedError):
            await workflow.reject(pending_request.id, agent_actor)

    async def test_requester_cannot_review_own_request(
        self,
        session: AsyncSession,
        workflow: DeletionWorkflow,
        admin: AppUser,
        admin_actor: Actor,
        reviewer_actor: Actor,
    ):
        policy = await PolicyService(session).create_policy(
            PolicyCreate(policyholder_name="Own Book", policy_number="ADM-1"),
            admin_actor,
        )
        request = await workflow.request_deletion(
            policy.id, "Test entry", ADMIN_PASSWORD, admin_actor, admin.password_hash
        )

        with pytest.raises(PermissionDeniedError):
            await workflow.approve(request.id, admin_actor)

        approved = await workflow.approve(request.id, reviewer_actor)
        assert DeletionRequestStatus(approved.status) == DeletionRequestStatus.APPROVED


class TestListing:
    """Tests for request queries."""

    async def test_pending_and_owner_filters(
        self,
        workflow: DeletionWorkflow,
        pending_request: PolicyDeletionRequest,
        agent: AppUser,
        admin: AppUser,
    ):
        assert [r.id for r in await workflow.list_pending()] == [pending_request.id]
        assert [r.id for r in await workflow.list_requests(owner_id=agent.id)] == [pending_request.id]
        assert list(await workflow.list_requests(owner_id=admin.id)) == []
        assert list(await workflow.list_requests(status=DeletionRequestStatus.APPROVED)) == []
