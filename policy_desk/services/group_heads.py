"""
Group Heads: primary customers whose family or company policies are tracked together.

A policy belongs to a group when its ``member_of`` holds the group head id.
Totals are computed from the active book on every read, so they never drift
from the policies they summarize. Deleting a group head detaches its policies.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import GroupHead, Policy
from ..schemas import GroupHeadCreate

logger = logging.getLogger(__name__)

GROUP_HEAD_FIELDS = (
    "group_head_name",
    "contact_no",
    "email_id",
    "address",
    "relationship_type",
    "notes",
)


class GroupHeadError(Exception):
    """Base exception for group head operations."""
    pass


class GroupHeadNotFoundError(GroupHeadError):
    pass


class GroupHeadFieldError(GroupHeadError):
    pass


def policy_premium(policy: Policy) -> Decimal:
    """Premium a policy adds to its group: total, else net, else the premium amount."""
    return policy.total_premium or policy.net_premium or policy.premium_amount or Decimal("0")


@dataclass
class GroupHeadSummary:
    """A group head plus the roll-up of its policies."""

    group_head: GroupHead
    total_policies: int = 0
    total_premium_amount: Decimal = Decimal("0")


def summarize(group_head: GroupHead, policies: Sequence[Policy]) -> GroupHeadSummary:
    return GroupHeadSummary(
        group_head=group_head,
        total_policies=len(policies),
        total_premium_amount=sum((policy_premium(p) for p in policies), Decimal("0")),
    )


class GroupHeadService:
    def __init__(self, session: AsyncSession):
        self._session = session

    async def list_group_heads(self, owner_id: UUID) -> list[GroupHeadSummary]:
        """Every group head of the owner, by name, with policy totals."""
        result = await self._session.execute(
            select(GroupHead)
            .where(GroupHead.user_id == owner_id)
            .order_by(GroupHead.group_head_name)
        )
        heads = result.scalars().all()

        members: dict[str, list[Policy]] = {}
        if heads:
            policies = await self._session.execute(
                select(Policy).where(
                    Policy.user_id == owner_id,
                    Policy.member_of.in_([str(head.id) for head in heads]),
                )
            )
            for policy in policies.scalars():
                members.setdefault(policy.member_of, []).append(policy)
        return [summarize(head, members.get(str(head.id), [])) for head in heads]

    async def get_group_head(self, group_head_id: UUID, owner_id: UUID) -> GroupHead:
        result = await self._session.execute(
            select(GroupHead).where(
                GroupHead.id == group_head_id,
                GroupHead.user_id == owner_id,
            )
        )
        head = result.scalar_one_or_none()
        if not head:
            raise GroupHeadNotFoundError(f"Group head {group_head_id} not found")
        return head

    async def get_summary(self, group_head_id: UUID, owner_id: UUID) -> GroupHeadSummary:
        head = await self.get_group_head(group_head_id, owner_id)
        return summarize(head, await self.group_policies(group_head_id, owner_id))

    async def group_policies(self, group_head_id: UUID, owner_id: UUID) -> Sequence[Policy]:
        """Active policies in the group, newest first."""
        await self.get_group_head(group_head_id, owner_id)
        result = await self._session.execute(
            select(Policy)
            .where(Policy.user_id == owner_id, Policy.member_of == str(group_head_id))
            .order_by(Policy.created_at.desc())
        )
        return result.scalars().all()

    async def create_group_head(self, data: GroupHeadCreate, owner_id: UUID) -> GroupHeadSummary:
        head = GroupHead(user_id=owner_id, **data.model_dump())
        self._session.add(head)
        await self._session.flush()
        logger.info(f"Group head {head.id} created for {owner_id}")
        return summarize(head, [])

    async def update_group_head(
        self,
        group_head_id: UUID,
        changes: dict[str, Any],
        owner_id: UUID,
    ) -> GroupHeadSummary:
        head = await self.get_group_head(group_head_id, owner_id)
        for key, value in changes.items():
            if key not in GROUP_HEAD_FIELDS:
                raise GroupHeadFieldError(f"Field {key} cannot be updated")
            setattr(head, key, value)
        await self._session.flush()
        return await self.get_summary(group_head_id, owner_id)

    async def delete_group_head(self, group_head_id: UUID, owner_id: UUID) -> int:
        """Delete a group head and detach its policies. Returns how many were detached."""
        head = await self.get_group_head(group_head_id, owner_id)
        result = await self._session.execute(
            update(Policy)
            .where(Policy.user_id == owner_id, Policy.member_of == str(group_head_id))
            .values(member_of=None)
            .execution_options(synchronize_session="fetch")
        )
        await self._session.delete(head)
        await self._session.flush()
        logger.info(
            f"Group head {group_head_id} deleted; {result.rowcount} policies detached"
        )
        return result.rowcount
