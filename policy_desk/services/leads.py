"""
Lead Gateway: the sales funnel.

Lead status is a flat enumeration; any status may follow any other.
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import (
    TERMINAL_LEAD_STATUSES,
    ActivityAction,
    FollowUpHistory,
    Lead,
    LeadStatus,
)
from ..schemas import LeadCreate
from .activity_log import ActivityLogService, Actor, snapshot
from .policies import PolicyService

logger = logging.getLogger(__name__)


class LeadError(Exception):
    """Base exception for lead operations."""
    pass


class LeadNotFoundError(LeadError):
    pass


class LeadFieldError(LeadError):
    """Unknown or read-only field in an update."""
    pass


UPDATABLE_FIELDS = frozenset({
    "customer_name",
    "customer_mobile",
    "customer_email",
    "product_type",
    "lead_source",
    "assigned_to",
    "remark",
    "status",
    "priority",
    "follow_up_date",
    "next_follow_up_date",
    "estimated_value",
})


@dataclass
class LeadStatistics:
    total: int = 0
    new: int = 0
    follow_up: int = 0
    won: int = 0
    lost: int = 0

    @property
    def conversion_rate(self) -> float:
        if not self.total:
            return 0.0
        return round(self.won / self.total * 100, 2)


class LeadService:
    def __init__(self, session: AsyncSession):
        self._session = session
        self._activity = ActivityLogService(session)

    async def list_leads(self, owner_id: UUID) -> Sequence[Lead]:
        result = await self._session.execute(
            select(Lead).where(Lead.user_id == owner_id).order_by(Lead.created_at.desc())
        )
        return result.scalars().all()

    async def get_lead(self, lead_id: UUID, owner_id: UUID) -> Lead:
        result = await self._session.execute(
            select(Lead).where(Lead.id == lead_id, Lead.user_id == owner_id)
        )
        lead = result.scalar_one_or_none()
        if not lead:
            raise LeadNotFoundError(f"Lead {lead_id} not found")
        return lead

    async def get_upcoming_follow_ups(
        self,
        owner_id: UUID,
        days: int = 7,
        today: date | None = None,
    ) -> Sequence[Lead]:
        """Open leads due between today and ``days`` from now, soonest first."""
        today = today or date.today()
        result = await self._session.execute(
            select(Lead)
            .where(
                Lead.user_id == owner_id,
                Lead.follow_up_date >= today,
                Lead.follow_up_date <= today + timedelta(days=days),
                Lead.status.notin_(list(TERMINAL_LEAD_STATUSES)),
            )
            .order_by(Lead.follow_up_date.asc())
        )
        return result.scalars().all()

    async def create_lead(
        self,
        data: LeadCreate,
        actor: Actor,
        today: date | None = None,
    ) -> Lead:
        values = data.model_dump()
        if values["follow_up_date"] is None:
            values["follow_up_date"] = today or date.today()

        lead = Lead(user_id=actor.owner_id, **values)
        self._session.add(lead)
        await self._session.flush()

        self._activity.record(
            actor,
            ActivityAction.CREATE,
            lead.id,
            f"Created lead for {lead.customer_name}",
            entity_type="lead",
            entity_name=lead.customer_name,
            new_data=snapshot(lead),
        )
        return lead

    async def update_lead(
        self,
        lead_id: UUID,
        changes: dict[str, Any],
        actor: Actor,
        description: str | None = None,
    ) -> Lead:
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise LeadFieldError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
        lead = await self.get_lead(lead_id, actor.owner_id)
        return await self._apply_changes(lead, changes, actor, description)

    async def _apply_changes(
        self,
        lead: Lead,
        changes: dict[str, Any],
        actor: Actor,
        description: str | None = None,
    ) -> Lead:
        old_data = snapshot(lead)
        for key, value in changes.items():
            setattr(lead, key, value)
        await self._session.flush()

        self._activity.record(
            actor,
            ActivityAction.UPDATE,
            lead.id,
            description or f"Updated lead {lead.customer_name}",
            entity_type="lead",
            entity_name=lead.customer_name,
            old_data=old_data,
            new_data=snapshot(lead),
        )
        return lead

    async def delete_lead(self, lead_id: UUID, actor: Actor) -> None:
        lead = await self.get_lead(lead_id, actor.owner_id)
        self._activity.record(
            actor,
            ActivityAction.DELETE,
            lead.id,
            f"Deleted lead {lead.customer_name}",
            entity_type="lead",
            entity_name=lead.customer_name,
            old_data=snapshot(lead),
        )
        await self._session.execute(
            delete(FollowUpHistory).where(FollowUpHistory.lead_id == lead.id)
        )
        await self._session.delete(lead)
        await self._session.flush()

    async def convert_lead_to_policy(
        self,
        lead_id: UUID,
        policy_id: UUID,
        actor: Actor,
    ) -> Lead:
        """Mark a lead won and link it to the policy it became."""
        await PolicyService(self._session).get_policy(policy_id, actor.owner_id)
        lead = await self.get_lead(lead_id, actor.owner_id)
        lead = await self._apply_changes(
            lead,
            {
                "status": LeadStatus.WON,
                "is_converted": True,
                "converted_to_policy_id": policy_id,
            },
            actor,
            description="Converted lead to policy",
        )
        logger.info(f"Lead {lead_id} converted to policy {policy_id}")
        return lead

    async def lead_statistics(self, owner_id: UUID) -> LeadStatistics:
        result = await self._session.execute(
            select(Lead.status, func.count())
            .where(Lead.user_id == owner_id)
            .group_by(Lead.status)
        )
        counts = {LeadStatus(status): count for status, count in result.all()}

        return LeadStatistics(
            total=sum(counts.values()),
            new=counts.get(LeadStatus.NEW, 0),
            follow_up=counts.get(LeadStatus.FOLLOW_UP, 0),
            won=counts.get(LeadStatus.WON, 0),
            lost=counts.get(LeadStatus.LOST, 0) + counts.get(LeadStatus.CANCELED, 0),
        )
