"""
Renewals: expiring-policy reminders and the lapsed-policy store.

A policy the agency will not renew is marked as lapsed: it moves out of the
active book into ``lapsed_policies`` and can be reactivated later under its
original id, the same way the trash works.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Iterable, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import ActivityAction, LapsedPolicy, Policy
from .activity_log import ActivityLogService, Actor, snapshot
from .policies import (
    PolicyNotFoundError,
    PolicyPermissionError,
    PolicyService,
    copy_policy_fields,
)

logger = logging.getLogger(__name__)


# =============================================================================
# REMINDERS
# =============================================================================


class AlertLevel(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    NORMAL = "normal"


class ReminderScope(str, Enum):
    """Which policies a reminder list covers."""
    ALL = "all"
    INDIVIDUAL = "individual"
    GROUP = "group"


def alert_level(days_remaining: int) -> AlertLevel:
    if days_remaining <= 7:
        return AlertLevel.CRITICAL
    if days_remaining <= 14:
        return AlertLevel.WARNING
    return AlertLevel.NORMAL


def reminder_message(policy: Policy, days_remaining: int, agency_name: str) -> str:
    """Renewal reminder text for the policyholder, ready to paste into a chat."""
    expiry = policy.expiry_date.strftime("%d %b %Y") if policy.expiry_date else "N/A"
    premium = policy.premium_amount or 0
    day_word = "day" if days_remaining == 1 else "days"
    return (
        "*Policy Renewal Reminder*\n"
        "\n"
        f"Dear {policy.policyholder_name},\n"
        "\n"
        f"Your {policy.policy_type or policy.product_type or ''} insurance policy is expiring soon!\n"
        "\n"
        "*Policy Details:*\n"
        f"- Policy Number: {policy.policy_number}\n"
        f"- Insurance Company: {policy.insurance_company or 'N/A'}\n"
        f"- Expiry Date: {expiry}\n"
        f"- Premium Amount: ₹{premium:,}\n"
        f"- Days Remaining: {days_remaining} {day_word}\n"
        "\n"
        "Please renew your policy before it expires to avoid any coverage gaps.\n"
        "\n"
        f"For assistance, contact us at {agency_name}.\n"
        "\n"
        "Thank you!"
    )


@dataclass(frozen=True)
class RenewalReminder:
    policy: Policy
    days_remaining: int

    @property
    def alert_level(self) -> AlertLevel:
        return alert_level(self.days_remaining)


def expiring_policies(
    policies: Iterable[Policy],
    today: date,
    window_days: int = 30,
    scope: ReminderScope = ReminderScope.ALL,
    group_head_id: UUID | None = None,
) -> list[RenewalReminder]:
    """Renewable policies expiring after ``today`` and before ``today + window_days``.

    One-time policies are never renewed, so they are left out. Soonest first.
    """
    scope = ReminderScope(scope)
    horizon = today + timedelta(days=window_days)
    reminders = []
    for policy in policies:
        if policy.is_one_time_policy or policy.expiry_date is None:
            continue
        if not today < policy.expiry_date < horizon:
            continue
        in_group = bool(policy.member_of)
        if scope == ReminderScope.INDIVIDUAL and in_group:
            continue
        if scope == ReminderScope.GROUP and not in_group:
            continue
        if group_head_id is not None and policy.member_of != str(group_head_id):
            continue
        reminders.append(RenewalReminder(policy, (policy.expiry_date - today).days))
    return sorted(reminders, key=lambda r: (r.days_remaining, r.policy.policy_number))


# =============================================================================
# LAPSED POLICIES
# =============================================================================


class RenewalService:
    def __init__(self, session: AsyncSession):
        self._session = session
        self._policies = PolicyService(session)
        self._activity = ActivityLogService(session)

    async def mark_policy_as_lapsed(
        self,
        policy_id: UUID,
        actor: Actor,
        reason: str | None = None,
    ) -> LapsedPolicy:
        """Move an active policy into the lapsed store and log MARK_LAPSED."""
        policy = await self._policies.get_policy(policy_id, actor.owner_id)
        old_data = snapshot(policy)
        reason = (reason or "").strip() or None

        lapsed = LapsedPolicy(
            user_id=policy.user_id,
            original_policy_id=policy.id,
            original_created_at=policy.created_at,
            lapsed_reason=reason,
            lapsed_by=actor.account_id,
            lapsed_by_name=actor.name,
            lapsed_at=datetime.now(timezone.utc),
            **copy_policy_fields(policy),
        )
        self._session.add(lapsed)
        await self._session.delete(policy)
        await self._session.flush()

        self._activity.record(
            actor,
            ActivityAction.MARK_LAPSED,
            policy_id,
            f"Marked policy {lapsed.policy_number} as lapsed"
            + (f": {reason}" if reason else ""),
            entity_number=lapsed.policy_number,
            entity_name=lapsed.policyholder_name,
            old_data=old_data,
        )
        logger.info(f"Policy {policy_id} marked as lapsed by {actor.account_id}")
        return lapsed

    async def list_lapsed_policies(self, owner_id: UUID) -> Sequence[LapsedPolicy]:
        result = await self._session.execute(
            select(LapsedPolicy)
            .where(LapsedPolicy.user_id == owner_id)
            .order_by(LapsedPolicy.lapsed_at.desc())
        )
        return result.scalars().all()

    async def get_lapsed_policy(
        self,
        lapsed_id: UUID,
        owner_id: UUID | None = None,
    ) -> LapsedPolicy:
        query = select(LapsedPolicy).where(LapsedPolicy.id == lapsed_id)
        if owner_id is not None:
            query = query.where(LapsedPolicy.user_id == owner_id)
        lapsed = (await self._session.execute(query)).scalar_one_or_none()
        if not lapsed:
            raise PolicyNotFoundError(f"Lapsed policy {lapsed_id} not found")
        return lapsed

    async def reactivate_policy(self, lapsed_id: UUID, actor: Actor) -> Policy:
        """Move a lapsed policy back into the active book under its original id."""
        lapsed = await self.get_lapsed_policy(lapsed_id, actor.owner_id)
        await self._policies.ensure_number_free(lapsed.user_id, lapsed.policy_number)

        policy = Policy(
            id=lapsed.original_policy_id,
            user_id=lapsed.user_id,
            created_at=lapsed.original_created_at or datetime.now(timezone.utc),
            **copy_policy_fields(lapsed),
        )
        await self._session.delete(lapsed)
        self._session.add(policy)
        await self._session.flush()

        self._activity.record(
            actor,
            ActivityAction.REACTIVATE,
            policy.id,
            f"Reactivated lapsed policy {policy.policy_number}",
            entity_number=policy.policy_number,
            entity_name=policy.policyholder_name,
            new_data=snapshot(policy),
        )
        logger.info(f"Lapsed policy {policy.id} reactivated by {actor.account_id}")
        return policy

    async def remove_lapsed_policy(self, lapsed_id: UUID, actor: Actor) -> None:
        """Erase a lapsed policy for good. Admin only."""
        if not actor.is_admin:
            raise PolicyPermissionError("Only admins can remove lapsed policies")

        lapsed = await self.get_lapsed_policy(lapsed_id, actor.owner_id)
        self._activity.record(
            actor,
            ActivityAction.PERMANENT_DELETE,
            lapsed.original_policy_id,
            f"Removed lapsed policy {lapsed.policy_number}",
            entity_number=lapsed.policy_number,
            entity_name=lapsed.policyholder_name,
            old_data=snapshot(lapsed),
        )
        await self._session.delete(lapsed)
        await self._session.flush()
        logger.info(f"Lapsed policy {lapsed_id} removed by {actor.account_id}")
