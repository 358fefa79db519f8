"""
Stores: per-request views over one owner's policies and leads.

A store is bound to a session and an actor. Collections are loaded on first
use and cached on the store; every mutation goes through the store, which
delegates to the gateway service and then drops the caches the mutation
affected. A mutation that raises leaves every cache as it was.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ..models import (
    ActivityLog,
    DeletedPolicy,
    FollowUpHistory,
    FollowUpOutcome,
    LapsedPolicy,
    Lead,
    LeadPriority,
    LeadStatus,
    Policy,
)
from ..schemas import LeadCreate, PolicyCreate
from .activity_log import ActivityLogService, Actor
from .claims import ClaimService
from .followups import FollowUpBucket, FollowUpTracker, filter_leads
from .leads import LeadService, LeadStatistics
from .policies import DuplicatePolicyNumberError, PolicyNotFoundError, PolicyService
from .renewals import RenewalReminder, RenewalService, ReminderScope, expiring_policies

logger = logging.getLogger(__name__)


# =============================================================================
# POLICY STORE
# =============================================================================


class PolicyStore:
    def __init__(self, session: AsyncSession, actor: Actor):
        self._actor = actor
        self._policies = PolicyService(session)
        self._claims = ClaimService(session)
        self._renewals = RenewalService(session)
        self._activity = ActivityLogService(session)
        self._active: list[Policy] | None = None
        self._deleted: list[DeletedPolicy] | None = None
        self._lapsed: list[LapsedPolicy] | None = None
        self._activity_cache: list[ActivityLog] | None = None

    @property
    def actor(self) -> Actor:
        return self._actor

    @property
    def owner_id(self) -> UUID:
        return self._actor.owner_id

    def invalidate(
        self,
        *,
        active: bool = True,
        deleted: bool = False,
        lapsed: bool = False,
    ) -> None:
        """Drop cached collections. Activity is always dropped."""
        if active:
            self._active = None
        if deleted:
            self._deleted = None
        if lapsed:
            self._lapsed = None
        self._activity_cache = None

    # =========================================================================
    # READ
    # =========================================================================

    async def policies(self) -> list[Policy]:
        if self._active is None:
            self._active = list(await self._policies.list_policies(self.owner_id))
        return self._active

    async def deleted_policies(self) -> list[DeletedPolicy]:
        if self._deleted is None:
            self._deleted = list(await self._policies.list_deleted_policies(self.owner_id))
        return self._deleted

    async def lapsed_policies(self) -> list[LapsedPolicy]:
        if self._lapsed is None:
            self._lapsed = list(await self._renewals.list_lapsed_policies(self.owner_id))
        return self._lapsed

    async def renewal_reminders(
        self,
        today: date | None = None,
        window_days: int = 30,
        scope: ReminderScope = ReminderScope.ALL,
        group_head_id: UUID | None = None,
    ) -> list[RenewalReminder]:
        return expiring_policies(
            await self.policies(),
            today or date.today(),
            window_days,
            scope,
            group_head_id,
        )

    async def activity(self) -> list[ActivityLog]:
        if self._activity_cache is None:
            entries, _ = await self._activity.list_activity_logs(self.owner_id)
            self._activity_cache = list(entries)
        return self._activity_cache

    async def get(self, policy_id: UUID) -> Policy:
        for policy in await self.policies():
            if policy.id == policy_id:
                return policy
        raise PolicyNotFoundError(f"Policy {policy_id} not found")

    async def policy_activity(self, policy_id: UUID) -> Sequence[ActivityLog]:
        return await self._activity.list_entity_activity(policy_id, self.owner_id)

    async def _check_number(self, policy_number: str, exclude_id: UUID | None = None) -> None:
        wanted = policy_number.strip().lower()
        for policy in await self.policies():
            if policy.id != exclude_id and policy.policy_number.lower() == wanted:
                raise DuplicatePolicyNumberError(f"Policy number {policy_number} already exists")

    # =========================================================================
    # WRITE
    # =========================================================================

    async def add(self, data: PolicyCreate) -> Policy:
        await self._check_number(data.policy_number)
        policy = await self._policies.create_policy(data, self._actor)
        self.invalidate()
        return policy

    async def update(self, policy_id: UUID, changes: dict[str, Any]) -> Policy:
        if changes.get("policy_number"):
            await self._check_number(changes["policy_number"], exclude_id=policy_id)
        policy = await self._policies.update_policy(policy_id, changes, self._actor)
        self.invalidate()
        return policy

    async def soft_delete(self, policy_id: UUID) -> DeletedPolicy:
        deleted = await self._policies.soft_delete_policy(policy_id, self._actor)
        self.invalidate(deleted=True)
        return deleted

    async def restore(self, deleted_id: UUID) -> Policy:
        policy = await self._policies.restore_policy(deleted_id, self._actor)
        self.invalidate(deleted=True)
        return policy

    async def permanently_delete(self, deleted_id: UUID) -> None:
        await self._policies.permanently_delete_policy(deleted_id, self._actor)
        self.invalidate(active=False, deleted=True)

    async def mark_lapsed(self, policy_id: UUID, reason: str | None = None) -> LapsedPolicy:
        lapsed = await self._renewals.mark_policy_as_lapsed(policy_id, self._actor, reason)
        self.invalidate(lapsed=True)
        return lapsed

    async def reactivate(self, lapsed_id: UUID) -> Policy:
        policy = await self._renewals.reactivate_policy(lapsed_id, self._actor)
        self.invalidate(lapsed=True)
        return policy

    async def remove_lapsed(self, lapsed_id: UUID) -> None:
        await self._renewals.remove_lapsed_policy(lapsed_id, self._actor)
        self.invalidate(active=False, lapsed=True)

    async def mark_claim_in_progress(self, policy_id: UUID) -> Policy:
        policy = await self._claims.mark_claim_in_progress(policy_id, self._actor)
        self.invalidate()
        return policy

    async def settle_claim(
        self,
        policy_id: UUID,
        amount: str | int | Decimal | None,
        settlement_date: date | None,
    ) -> Policy:
        policy = await self._claims.settle_claim(policy_id, amount, settlement_date, self._actor)
        self.invalidate()
        return policy


# =============================================================================
# LEAD STORE
# =============================================================================


class LeadStore:
    def __init__(self, session: AsyncSession, actor: Actor):
        self._actor = actor
        self._leads = LeadService(session)
        self._tracker = FollowUpTracker(session)
        self._cache: list[Lead] | None = None

    @property
    def actor(self) -> Actor:
        return self._actor

    @property
    def owner_id(self) -> UUID:
        return self._actor.owner_id

    def invalidate(self) -> None:
        self._cache = None

    async def leads(self) -> list[Lead]:
        if self._cache is None:
            self._cache = list(await self._leads.list_leads(self.owner_id))
        return self._cache

    async def get(self, lead_id: UUID) -> Lead:
        return await self._leads.get_lead(lead_id, self.owner_id)

    async def by_status(self, status: LeadStatus) -> list[Lead]:
        status = LeadStatus(status)
        leads = [lead for lead in await self.leads() if LeadStatus(lead.status) == status]
        return sorted(leads, key=lambda lead: lead.follow_up_date)

    async def upcoming(self, days: int = 7, today: date | None = None) -> Sequence[Lead]:
        return await self._leads.get_upcoming_follow_ups(self.owner_id, days, today)

    async def bucket(
        self,
        bucket: FollowUpBucket,
        today: date | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> list[Lead]:
        return filter_leads(await self.leads(), bucket, today or date.today(), start, end)

    async def statistics(self) -> LeadStatistics:
        return await self._leads.lead_statistics(self.owner_id)

    async def history(self, lead_id: UUID) -> Sequence[FollowUpHistory]:
        return await self._tracker.follow_up_history(lead_id, self.owner_id)

    async def add(self, data: LeadCreate) -> Lead:
        lead = await self._leads.create_lead(data, self._actor)
        self.invalidate()
        return lead

    async def update(self, lead_id: UUID, changes: dict[str, Any]) -> Lead:
        lead = await self._leads.update_lead(lead_id, changes, self._actor)
        self.invalidate()
        return lead

    async def delete(self, lead_id: UUID) -> None:
        await self._leads.delete_lead(lead_id, self._actor)
        self.invalidate()

    async def convert(self, lead_id: UUID, policy_id: UUID) -> Lead:
        lead = await self._leads.convert_lead_to_policy(lead_id, policy_id, self._actor)
        self.invalidate()
        return lead

    async def record_follow_up(
        self,
        lead_id: UUID,
        status: FollowUpOutcome,
        notes: str,
        next_follow_up_date: date | None = None,
        lead_status: LeadStatus | None = None,
        priority: LeadPriority | None = None,
    ) -> FollowUpHistory:
        entry = await self._tracker.record_follow_up(
            lead_id,
            status,
            notes,
            self._actor,
            next_follow_up_date=next_follow_up_date,
            lead_status=lead_status,
            priority=priority,
        )
        self.invalidate()
        return entry
