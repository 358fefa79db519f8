"""Team Members: logins that work on an admin's book with limited pages."""

import logging
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.security import hash_password
from ..models import AppUser, TeamMember
from .activity_log import Actor

logger = logging.getLogger(__name__)


class TeamMemberError(Exception):
    """Base exception for team member operations."""
    pass


class TeamMemberNotFoundError(TeamMemberError):
    pass


class TeamMemberEmailTakenError(TeamMemberError):
    pass


class TeamMemberPermissionError(TeamMemberError):
    pass


class TeamMemberService:
    def __init__(self, session: AsyncSession):
        self._session = session

    @staticmethod
    def _require_owner(actor: Actor) -> None:
        if actor.kind != "user":
            raise TeamMemberPermissionError("Team members cannot manage the team")

    async def _email_taken(self, email: str) -> bool:
        email = email.strip().lower()
        for model in (TeamMember, AppUser):
            result = await self._session.execute(
                select(model.id).where(func.lower(model.email) == email).limit(1)
            )
            if result.scalar_one_or_none() is not None:
                return True
        return False

    async def list_team_members(self, admin_user_id: UUID) -> Sequence[TeamMember]:
        result = await self._session.execute(
            select(TeamMember)
            .where(TeamMember.admin_user_id == admin_user_id)
            .order_by(TeamMember.created_at.desc())
        )
        return result.scalars().all()

    async def get_team_member(self, member_id: UUID, admin_user_id: UUID) -> TeamMember:
        result = await self._session.execute(
            select(TeamMember).where(
                TeamMember.id == member_id,
                TeamMember.admin_user_id == admin_user_id,
            )
        )
        member = result.scalar_one_or_none()
        if not member:
            raise TeamMemberNotFoundError(f"Team member {member_id} not found")
        return member

    async def create_team_member(
        self,
        actor: Actor,
        email: str,
        password: str,
        full_name: str,
        page_access: list[str],
        mobile_no: str | None = None,
    ) -> TeamMember:
        self._require_owner(actor)
        if await self._email_taken(email):
            raise TeamMemberEmailTakenError(f"{email} is already registered")

        member = TeamMember(
            admin_user_id=actor.owner_id,
            email=email.strip().lower(),
            password_hash=hash_password(password),
            full_name=full_name.strip(),
            mobile_no=mobile_no,
            page_access=list(page_access),
        )
        self._session.add(member)
        await self._session.flush()
        logger.info(f"Team member {member.id} added to {actor.owner_id}")
        return member

    async def update_team_member(
        self,
        member_id: UUID,
        changes: dict[str, Any],
        actor: Actor,
    ) -> TeamMember:
        self._require_owner(actor)
        member = await self.get_team_member(member_id, actor.owner_id)
        for key in ("full_name", "mobile_no", "is_active", "page_access"):
            if key in changes:
                value = changes[key]
                # JSON columns only notice reassignment, not in-place edits
                setattr(member, key, list(value) if key == "page_access" else value)
        await self._session.flush()
        return member

    async def delete_team_member(self, member_id: UUID, actor: Actor) -> None:
        self._require_owner(actor)
        member = await self.get_team_member(member_id, actor.owner_id)
        await self._session.delete(member)
        await self._session.flush()
        logger.info(f"Team member {member_id} removed from {actor.owner_id}")
