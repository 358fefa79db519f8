"""
Policy Gateway: the active book, the trash, and moves between them.

- Policy numbers are unique per owner, compared case-insensitively
- A policy lives in exactly one of ``policies`` / ``deleted_policies`` /
  ``lapsed_policies``
- Every mutation writes an activity entry in the same transaction
"""

import logging
from datetime import datetime, timezone
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import ActivityAction, DeletedPolicy, LapsedPolicy, Policy
from ..models.models import PolicyFieldsMixin
from ..schemas import PolicyCreate
from .activity_log import ActivityLogService, Actor, snapshot

logger = logging.getLogger(__name__)

# Columns carried between the active, deleted and lapsed tables
POLICY_FIELDS = tuple(PolicyFieldsMixin.__annotations__)


# =============================================================================
# EXCEPTIONS
# =============================================================================


class PolicyError(Exception):
    """Base exception for policy operations."""
    pass


class PolicyNotFoundError(PolicyError):
    """Policy does not exist in the requested store."""
    pass


class DuplicatePolicyNumberError(PolicyError):
    """Another policy of the same owner already uses this number."""
    pass


class PolicyPermissionError(PolicyError):
    """Actor may not perform this operation."""
    pass


class InvalidOperationError(PolicyError):
    """Operation not allowed in current state."""
    pass


def copy_policy_fields(source: Any) -> dict[str, Any]:
    return {name: getattr(source, name) for name in POLICY_FIELDS}


# =============================================================================
# POLICY SERVICE
# =============================================================================


class PolicyService:
    def __init__(self, session: AsyncSession):
        self._session = session
        self._activity = ActivityLogService(session)

    # =========================================================================
    # READ
    # =========================================================================

    async def list_policies(self, owner_id: UUID) -> Sequence[Policy]:
        result = await self._session.execute(
            select(Policy)
            .where(Policy.user_id == owner_id)
            .order_by(Policy.created_at.desc())
        )
        return result.scalars().all()

    async def get_policy(self, policy_id: UUID, owner_id: UUID | None = None) -> Policy:
        """Fetch an active policy. ``owner_id=None`` skips the ownership check."""
        query = select(Policy).where(Policy.id == policy_id)
        if owner_id is not None:
            query = query.where(Policy.user_id == owner_id)
        policy = (await self._session.execute(query)).scalar_one_or_none()
        if not policy:
            raise PolicyNotFoundError(f"Policy {policy_id} not found")
        return policy

    async def find_by_number(
        self,
        owner_id: UUID,
        policy_number: str,
        exclude_id: UUID | None = None,
    ) -> Policy | None:
        query = select(Policy).where(
            Policy.user_id == owner_id,
            func.lower(Policy.policy_number) == policy_number.strip().lower(),
        )
        if exclude_id is not None:
            query = query.where(Policy.id != exclude_id)
        result = await self._session.execute(query.limit(1))
        return result.scalar_one_or_none()

    async def ensure_number_free(
        self,
        owner_id: UUID,
        policy_number: str,
        exclude_id: UUID | None = None,
    ) -> None:
        if await self.find_by_number(owner_id, policy_number, exclude_id):
            raise DuplicatePolicyNumberError(
                f"Policy number {policy_number} already exists"
            )

    # =========================================================================
    # CREATE / UPDATE
    # =========================================================================

    async def create_policy(self, data: PolicyCreate, actor: Actor) -> Policy:
        """Add a policy to the actor's book and log CREATE."""
        await self.ensure_number_free(actor.owner_id, data.policy_number)

        policy = Policy(user_id=actor.owner_id, **data.model_dump())
        self._session.add(policy)
        try:
            await self._session.flush()
        except IntegrityError:
            raise DuplicatePolicyNumberError(
                f"Policy number {data.policy_number} already exists"
            )

        self._activity.record(
            actor,
            ActivityAction.CREATE,
            policy.id,
            f"Created policy {policy.policy_number} for {policy.policyholder_name}",
            entity_number=policy.policy_number,
            entity_name=policy.policyholder_name,
            new_data=snapshot(policy),
        )
        logger.info(f"Policy {policy.id} created by {actor.account_id}")
        return policy

    async def update_policy(
        self,
        policy_id: UUID,
        changes: dict[str, Any],
        actor: Actor,
    ) -> Policy:
        """Apply ``changes`` in place and log UPDATE with both snapshots."""
        policy = await self.get_policy(policy_id, actor.owner_id)
        old_data = snapshot(policy)

        new_number = changes.get("policy_number")
        if new_number and new_number.strip().lower() != policy.policy_number.lower():
            await self.ensure_number_free(actor.owner_id, new_number, exclude_id=policy.id)

        for key, value in changes.items():
            if key not in POLICY_FIELDS:
                raise InvalidOperationError(f"Field {key} cannot be updated")
            setattr(policy, key, value)
        await self._session.flush()

        self._activity.record(
            actor,
            ActivityAction.UPDATE,
            policy.id,
            f"Updated policy {policy.policy_number}",
            entity_number=policy.policy_number,
            entity_name=policy.policyholder_name,
            old_data=old_data,
            new_data=snapshot(policy),
        )
        return policy

    # =========================================================================
    # TRASH
    # =========================================================================

    async def soft_delete_policy(self, policy_id: UUID, actor: Actor) -> DeletedPolicy:
        """Move a policy from the active book into the trash."""
        policy = await self.get_policy(policy_id, actor.owner_id)
        old_data = snapshot(policy)

        deleted = DeletedPolicy(
            user_id=policy.user_id,
            original_policy_id=policy.id,
            original_created_at=policy.created_at,
            deleted_by=actor.account_id,
            deleted_by_name=actor.name,
            deleted_at=datetime.now(timezone.utc),
            **copy_policy_fields(policy),
        )
        self._session.add(deleted)
        await self._session.delete(policy)
        await self._session.flush()

        self._activity.record(
            actor,
            ActivityAction.DELETE,
            policy_id,
            f"Moved policy {deleted.policy_number} to deleted policies",
            entity_number=deleted.policy_number,
            entity_name=deleted.policyholder_name,
            old_data=old_data,
        )
        logger.info(f"Policy {policy_id} soft-deleted by {actor.account_id}")
        return deleted

    async def list_deleted_policies(self, owner_id: UUID | None) -> Sequence[DeletedPolicy]:
        query = select(DeletedPolicy)
        if owner_id is not None:
            query = query.where(DeletedPolicy.user_id == owner_id)
        result = await self._session.execute(query.order_by(DeletedPolicy.deleted_at.desc()))
        return result.scalars().all()

    async def get_deleted_policy(
        self,
        deleted_id: UUID,
        owner_id: UUID | None = None,
    ) -> DeletedPolicy:
        query = select(DeletedPolicy).where(DeletedPolicy.id == deleted_id)
        if owner_id is not None:
            query = query.where(DeletedPolicy.user_id == owner_id)
        deleted = (await self._session.execute(query)).scalar_one_or_none()
        if not deleted:
            raise PolicyNotFoundError(f"Deleted policy {deleted_id} not found")
        return deleted

    async def restore_policy(self, deleted_id: UUID, actor: Actor) -> Policy:
        """Move a trashed policy back into the active book under its original id."""
        deleted = await self.get_deleted_policy(deleted_id, actor.owner_id)
        await self.ensure_number_free(deleted.user_id, deleted.policy_number)

        policy = Policy(
            id=deleted.original_policy_id,
            user_id=deleted.user_id,
            created_at=deleted.original_created_at or datetime.now(timezone.utc),
            **copy_policy_fields(deleted),
        )
        await self._session.delete(deleted)
        self._session.add(policy)
        await self._session.flush()

        self._activity.record(
            actor,
            ActivityAction.RESTORE,
            policy.id,
            f"Restored policy {policy.policy_number}",
            entity_number=policy.policy_number,
            entity_name=policy.policyholder_name,
            new_data=snapshot(policy),
        )
        logger.info(f"Policy {policy.id} restored by {actor.account_id}")
        return policy

    async def permanently_delete_policy(self, deleted_id: UUID, actor: Actor) -> None:
        """Erase a trashed policy. Admin only."""
        if not actor.is_admin:
            raise PolicyPermissionError("Only admins can permanently delete policies")

        deleted = await self.get_deleted_policy(deleted_id)
        self._activity.record(
            actor,
            ActivityAction.PERMANENT_DELETE,
            deleted.original_policy_id,
            f"Permanently deleted policy {deleted.policy_number}",
            owner_id=deleted.user_id,
            entity_number=deleted.policy_number,
            entity_name=deleted.policyholder_name,
            old_data=snapshot(deleted),
        )
        await self._session.delete(deleted)
        await self._session.flush()
        logger.info(f"Deleted policy {deleted_id} erased by {actor.account_id}")

    async def erase_policy(
        self,
        policy_id: UUID,
        owner_id: UUID,
        actor: Actor,
        description: str,
    ) -> dict[str, Any] | None:
        """Remove a policy from whichever store holds it and log PERMANENT_DELETE.

        Returns the erased snapshot, or None when neither store had it.
        """
        target: Policy | DeletedPolicy | LapsedPolicy | None = (
            await self._session.execute(
                select(Policy).where(Policy.id == policy_id, Policy.user_id == owner_id)
            )
        ).scalar_one_or_none()
        for model in (DeletedPolicy, LapsedPolicy):
            if target is not None:
                break
            target = (
                await self._session.execute(
                    select(model).where(
                        model.original_policy_id == policy_id,
                        model.user_id == owner_id,
                    )
                )
            ).scalar_one_or_none()
        if target is None:
            return None

        old_data = snapshot(target)
        self._activity.record(
            actor,
            ActivityAction.PERMANENT_DELETE,
            policy_id,
            description,
            owner_id=owner_id,
            entity_number=target.policy_number,
            entity_name=target.policyholder_name,
            old_data=old_data,
        )
        await self._session.delete(target)
        await self._session.flush()
        return old_data
