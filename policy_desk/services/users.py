"""
Account Service: signup, login, lock state and subscription status.

Subscription lifecycle:

    trial ──(trial_end_date passes)──────────> expired
    active ─(subscription_end_date passes)───> expired
    any ────(activate_subscription)──────────> active

Admin accounts never expire and are never refused.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Sequence
from uuid import UUID

import httpx
from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Settings, get_settings
from ..core.security import hash_password, verify_password
from ..models import AppUser, SubscriptionStatus, TeamMember, UserRole
from .activity_log import Actor

logger = logging.getLogger(__name__)


# =============================================================================
# EXCEPTIONS
# =============================================================================


class AccountError(Exception):
    """Base exception for account operations."""
    pass


class AccountNotFoundError(AccountError):
    pass


class EmailAlreadyRegisteredError(AccountError):
    pass


class InvalidCredentialsError(AccountError):
    pass


class AccountLockedError(AccountError):
    def __init__(self, reason: str | None):
        self.reason = reason or "Contact your administrator"
        super().__init__(f"Account locked: {self.reason}")


class SubscriptionExpiredError(AccountError):
    pass


class AccountPermissionError(AccountError):
    pass


# =============================================================================
# SUBSCRIPTION RULES
# =============================================================================


def _aware(value: datetime | None) -> datetime | None:
    # sqlite hands back naive timestamps
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def evaluate_subscription_status(user: AppUser, now: datetime) -> SubscriptionStatus:
    """The status ``user`` should have at ``now``."""
    status = SubscriptionStatus(user.subscription_status)
    if user.role == UserRole.ADMIN:
        return status

    trial_end = _aware(user.trial_end_date)
    subscription_end = _aware(user.subscription_end_date)
    if status == SubscriptionStatus.TRIAL and trial_end and now > trial_end:
        return SubscriptionStatus.EXPIRED
    if status == SubscriptionStatus.ACTIVE and subscription_end and now > subscription_end:
        return SubscriptionStatus.EXPIRED
    return status


def days_remaining(user: AppUser, now: datetime) -> int:
    """Whole days left on the trial or subscription, rounded up, never negative."""
    status = SubscriptionStatus(user.subscription_status)
    if status == SubscriptionStatus.TRIAL:
        end = _aware(user.trial_end_date)
    elif status == SubscriptionStatus.ACTIVE:
        end = _aware(user.subscription_end_date)
    else:
        return 0
    if end is None:
        return 0
    return max(0, math.ceil((end - now).total_seconds() / 86400))


def can_access_system(user: AppUser) -> bool:
    if user.role == UserRole.ADMIN:
        return True
    if user.is_locked:
        return False
    return SubscriptionStatus(user.subscription_status) in (
        SubscriptionStatus.TRIAL,
        SubscriptionStatus.ACTIVE,
    )


@dataclass
class LoginResult:
    """Outcome of a successful login: exactly one of user / team_member is set."""
    effective_user: AppUser
    user: AppUser | None = None
    team_member: TeamMember | None = None

    @property
    def kind(self) -> str:
        return "team_member" if self.team_member else "user"

    @property
    def account_id(self) -> UUID:
        return self.team_member.id if self.team_member else self.effective_user.id


# =============================================================================
# ACCOUNT SERVICE
# =============================================================================


class AccountService:
    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._session = session
        self._settings = settings or get_settings()
        self._http_client = http_client

    async def get_user(self, user_id: UUID) -> AppUser:
        user = await self._session.get(AppUser, user_id)
        if not user:
            raise AccountNotFoundError(f"User {user_id} not found")
        return user

    async def get_user_by_email(self, email: str) -> AppUser | None:
        result = await self._session.execute(
            select(AppUser).where(func.lower(AppUser.email) == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def list_users(self) -> Sequence[AppUser]:
        result = await self._session.execute(select(AppUser).order_by(AppUser.created_at.desc()))
        return result.scalars().all()

    # =========================================================================
    # SIGNUP / LOGIN
    # =========================================================================

    async def signup(
        self,
        email: str,
        password: str,
        display_name: str,
        role: UserRole = UserRole.USER,
        mobile_no: str | None = None,
        now: datetime | None = None,
    ) -> AppUser:
        """Create an account. Admins start active; everyone else gets a trial."""
        now = now or datetime.now(timezone.utc)
        if await self.get_user_by_email(email) or await self._team_member_by_email(email):
            raise EmailAlreadyRegisteredError(f"{email} is already registered")

        role = UserRole(role)
        user = AppUser(
            email=email.strip().lower(),
            display_name=display_name.strip(),
            mobile_no=mobile_no,
            password_hash=hash_password(password),
            role=role,
        )
        if role == UserRole.ADMIN:
            user.subscription_status = SubscriptionStatus.ACTIVE
        else:
            user.subscription_status = SubscriptionStatus.TRIAL
            user.trial_start_date = now
            user.trial_end_date = now + timedelta(days=self._settings.trial_days)

        self._session.add(user)
        await self._session.flush()
        logger.info(f"Account {user.id} created with role {role.value}")

        await self._relay_signup(user)
        return user

    async def login(self, email: str, password: str, now: datetime | None = None) -> LoginResult:
        """Team members are checked first, then agency accounts."""
        now = now or datetime.now(timezone.utc)

        member = await self._team_member_by_email(email)
        if member is not None:
            if not member.is_active or not verify_password(password, member.password_hash):
                logger.warning(f"Rejected team member login for {email}")
                raise InvalidCredentialsError("Invalid email or password")
            admin = await self.get_user(member.admin_user_id)
            if admin.is_locked:
                raise AccountLockedError(admin.locked_reason)
            member.last_login = now
            await self._session.flush()
            return LoginResult(effective_user=admin, team_member=member)

        user = await self.get_user_by_email(email)
        if user is None or not user.is_active or not verify_password(password, user.password_hash):
            logger.warning(f"Rejected login for {email}")
            raise InvalidCredentialsError("Invalid email or password")
        if user.is_locked:
            raise AccountLockedError(user.locked_reason)

        await self.refresh_subscription_status(user, now)
        user.last_login = now
        await self._session.flush()
        return LoginResult(effective_user=user, user=user)

    async def _team_member_by_email(self, email: str) -> TeamMember | None:
        result = await self._session.execute(
            select(TeamMember).where(func.lower(TeamMember.email) == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def _relay_signup(self, user: AppUser) -> None:
        """Report a new account to the configured signup workflow, if any."""
        url = self._settings.signup_webhook_url
        if not url:
            return
        payload = {
            "userId": str(user.id),
            "email": user.email,
            "displayName": user.display_name,
            "role": UserRole(user.role).value,
            "mobileNo": user.mobile_no,
            "createdAt": datetime.now(timezone.utc).isoformat(),
        }
        try:
            if self._http_client is not None:
                response = await self._http_client.post(url, json=payload, timeout=10)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(url, json=payload, timeout=10)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Signup relay failed for {user.id}: {e}")

    # =========================================================================
    # SUBSCRIPTION
    # =========================================================================

    async def refresh_subscription_status(
        self,
        user: AppUser,
        now: datetime | None = None,
    ) -> SubscriptionStatus:
        """Persist an expiry if the trial or subscription has run out."""
        now = now or datetime.now(timezone.utc)
        status = evaluate_subscription_status(user, now)
        if status != user.subscription_status:
            user.subscription_status = status
            await self._session.flush()
            logger.info(f"Subscription for {user.id} is now {status.value}")
        return status

    async def activate_subscription(
        self,
        user_id: UUID,
        months: int,
        now: datetime | None = None,
    ) -> AppUser:
        now = now or datetime.now(timezone.utc)
        user = await self.get_user(user_id)
        user.subscription_status = SubscriptionStatus.ACTIVE
        user.subscription_end_date = now + timedelta(days=30 * months)
        await self._session.flush()
        logger.info(f"Subscription for {user.id} activated for {months} months")
        return user

    async def expire_overdue_subscriptions(self, now: datetime | None = None) -> int:
        """Bulk-expire trials and subscriptions whose end date has passed."""
        now = now or datetime.now(timezone.utc)
        result = await self._session.execute(
            update(AppUser)
            .where(
                AppUser.role != UserRole.ADMIN,
                or_(
                    (AppUser.subscription_status == SubscriptionStatus.TRIAL)
                    & (AppUser.trial_end_date < now),
                    (AppUser.subscription_status == SubscriptionStatus.ACTIVE)
                    & (AppUser.subscription_end_date < now),
                ),
            )
            .values(subscription_status=SubscriptionStatus.EXPIRED)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    # =========================================================================
    # LOCKING
    # =========================================================================

    async def lock_user(self, user_id: UUID, reason: str, admin: Actor) -> AppUser:
        if not admin.is_admin:
            raise AccountPermissionError("Only admins can lock accounts")
        user = await self.get_user(user_id)
        if user.id == admin.account_id:
            raise AccountPermissionError("You cannot lock your own account")
        user.is_locked = True
        user.locked_reason = reason.strip()
        user.locked_by = admin.account_id
        user.locked_at = datetime.now(timezone.utc)
        await self._session.flush()
        logger.info(f"Account {user.id} locked by {admin.account_id}")
        return user

    async def unlock_user(self, user_id: UUID, admin: Actor) -> AppUser:
        if not admin.is_admin:
            raise AccountPermissionError("Only admins can unlock accounts")
        user = await self.get_user(user_id)
        user.is_locked = False
        user.locked_reason = None
        user.locked_by = None
        user.locked_at = None
        await self._session.flush()
        logger.info(f"Account {user.id} unlocked by {admin.account_id}")
        return user
