"""
Follow-up Tracker: date buckets over leads, and the contact history.

Bucketing is a pure function of the lead list and today's date. History
rows are only ever inserted; recording a follow-up never edits or removes
an earlier entry.
"""

import logging
from datetime import date, timedelta
from enum import Enum
from typing import Iterable, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import (
    TERMINAL_LEAD_STATUSES,
    FollowUpHistory,
    FollowUpOutcome,
    Lead,
    LeadPriority,
    LeadStatus,
)
from .activity_log import Actor
from .leads import LeadService

logger = logging.getLogger(__name__)


class FollowUpBucket(str, Enum):
    TODAY = "today"
    TOMORROW = "tomorrow"
    THIS_WEEK = "this_week"
    OVERDUE = "overdue"
    CUSTOM = "custom"


class FollowUpValidationError(Exception):
    """Follow-up input is incomplete; raised before anything is written."""
    pass


def filter_leads(
    leads: Iterable[Lead],
    bucket: FollowUpBucket,
    today: date,
    start: date | None = None,
    end: date | None = None,
) -> list[Lead]:
    """Select the leads in ``bucket`` and sort them by follow-up date.

    ``this_week`` spans today through today + 7 days. ``overdue`` never
    includes won, lost or canceled leads. ``custom`` applies ``start`` and
    ``end`` inclusively and returns everything when either is missing.
    """
    bucket = FollowUpBucket(bucket)

    if bucket == FollowUpBucket.TODAY:
        selected = [lead for lead in leads if lead.follow_up_date == today]
    elif bucket == FollowUpBucket.TOMORROW:
        tomorrow = today + timedelta(days=1)
        selected = [lead for lead in leads if lead.follow_up_date == tomorrow]
    elif bucket == FollowUpBucket.THIS_WEEK:
        week_end = today + timedelta(days=7)
        selected = [lead for lead in leads if today <= lead.follow_up_date <= week_end]
    elif bucket == FollowUpBucket.OVERDUE:
        selected = [
            lead for lead in leads
            if lead.follow_up_date < today
            and LeadStatus(lead.status) not in TERMINAL_LEAD_STATUSES
        ]
    elif start is None or end is None:
        selected = list(leads)
    else:
        selected = [lead for lead in leads if start <= lead.follow_up_date <= end]

    return sorted(selected, key=lambda lead: lead.follow_up_date)


class FollowUpTracker:
    def __init__(self, session: AsyncSession):
        self._session = session
        self._leads = LeadService(session)

    async def bucket(
        self,
        owner_id: UUID,
        bucket: FollowUpBucket,
        today: date | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> list[Lead]:
        leads = await self._leads.list_leads(owner_id)
        return filter_leads(leads, bucket, today or date.today(), start, end)

    async def record_follow_up(
        self,
        lead_id: UUID,
        status: FollowUpOutcome,
        notes: str,
        actor: Actor,
        next_follow_up_date: date | None = None,
        lead_status: LeadStatus | None = None,
        priority: LeadPriority | None = None,
        today: date | None = None,
    ) -> FollowUpHistory:
        """
        Append a history entry for a contact attempt.

        Unless the outcome is ``missed``, a supplied next date becomes the
        lead's new follow-up date. Nothing is rescheduled automatically.
        """
        notes = (notes or "").strip()
        if not notes:
            raise FollowUpValidationError("Notes are required to record a follow-up")
        status = FollowUpOutcome(status)

        lead = await self._leads.get_lead(lead_id, actor.owner_id)
        entry = FollowUpHistory(
            lead_id=lead.id,
            follow_up_date=lead.follow_up_date,
            actual_follow_up_date=today or date.today(),
            status=status,
            notes=notes,
            next_follow_up_date=next_follow_up_date,
            created_by=actor.account_id,
            created_by_name=actor.name,
        )
        self._session.add(entry)

        changes = {}
        if next_follow_up_date and status != FollowUpOutcome.MISSED:
            changes["follow_up_date"] = next_follow_up_date
            changes["next_follow_up_date"] = next_follow_up_date
        if lead_status is not None:
            changes["status"] = lead_status
        if priority is not None:
            changes["priority"] = priority
        if changes:
            await self._leads.update_lead(
                lead.id,
                changes,
                actor,
                description=f"Follow-up {status.value} for {lead.customer_name}",
            )

        await self._session.flush()
        logger.info(f"Follow-up {status.value} recorded on lead {lead.id}")
        return entry

    async def follow_up_history(self, lead_id: UUID, owner_id: UUID) -> Sequence[FollowUpHistory]:
        """Entries for a lead, newest first."""
        lead = await self._leads.get_lead(lead_id, owner_id)
        result = await self._session.execute(
            select(FollowUpHistory)
            .where(FollowUpHistory.lead_id == lead.id)
            .order_by(FollowUpHistory.created_at.desc())
        )
        return result.scalars().all()
