"""
Activity Log: insert-only record of every policy and lead mutation.

Entries are written in the same transaction as the change they describe,
so a rolled-back mutation never leaves a log row behind.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import func, inspect as sa_inspect, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import ActivityAction, ActivityLog


@dataclass(frozen=True)
class Actor:
    """Who is performing an operation, and whose data it touches.

    ``owner_id`` is the account that owns the data. For a team member it is
    the admin they work for; for everyone else it is their own id.
    """
    account_id: UUID
    name: str
    owner_id: UUID
    is_admin: bool = False
    kind: str = "user"
    page_access: tuple[str, ...] | None = field(default=None, compare=False)


def _jsonable(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    return value


def snapshot(obj: Any) -> dict[str, Any]:
    """JSON-safe dict of every mapped column on ``obj``."""
    mapper = sa_inspect(obj).mapper
    return {
        attr.key: _jsonable(getattr(obj, attr.key))
        for attr in mapper.column_attrs
    }


class ActivityLogService:
    def __init__(self, session: AsyncSession):
        self._session = session

    def record(
        self,
        actor: Actor,
        action: ActivityAction,
        entity_id: UUID,
        description: str,
        *,
        owner_id: UUID | None = None,
        entity_type: str = "policy",
        entity_number: str | None = None,
        entity_name: str | None = None,
        old_data: dict[str, Any] | None = None,
        new_data: dict[str, Any] | None = None,
    ) -> ActivityLog:
        """Stage a log entry in the current transaction."""
        entry = ActivityLog(
            user_id=owner_id or actor.owner_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            entity_number=entity_number,
            entity_name=entity_name,
            description=description,
            performed_by=actor.account_id,
            performed_by_name=actor.name,
            old_data=old_data,
            new_data=new_data,
        )
        self._session.add(entry)
        return entry

    async def list_activity_logs(
        self,
        owner_id: UUID | None,
        limit: int = 100,
        offset: int = 0,
        performed_by: UUID | None = None,
        action: ActivityAction | None = None,
    ) -> tuple[Sequence[ActivityLog], int]:
        """Newest-first page of log entries plus the total match count.

        ``owner_id=None`` reads across all accounts (admin view).
        """
        # Entries staged earlier in this transaction must be visible
        await self._session.flush()
        query = select(ActivityLog)
        if owner_id is not None:
            query = query.where(ActivityLog.user_id == owner_id)
        if performed_by is not None:
            query = query.where(ActivityLog.performed_by == performed_by)
        if action is not None:
            query = query.where(ActivityLog.action == action)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self._session.execute(count_query)).scalar_one()

        query = query.order_by(ActivityLog.created_at.desc()).offset(offset).limit(limit)
        result = await self._session.execute(query)
        return result.scalars().all(), total

    async def list_entity_activity(
        self,
        entity_id: UUID,
        owner_id: UUID | None = None,
    ) -> Sequence[ActivityLog]:
        await self._session.flush()
        query = select(ActivityLog).where(ActivityLog.entity_id == entity_id)
        if owner_id is not None:
            query = query.where(ActivityLog.user_id == owner_id)
        result = await self._session.execute(query.order_by(ActivityLog.created_at.desc()))
        return result.scalars().all()
