"""FastAPI dependencies for authentication, authorization, and context."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Annotated, Callable
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import PAGES, AppUser, SubscriptionStatus, TeamMember, UserRole
from ..services.activity_log import Actor
from ..services.users import AccountService, can_access_system
from .config import get_settings
from .database import get_session
from .security import FirebaseTokenPayload, decode_firebase_token, decode_token

logger = logging.getLogger(__name__)
settings = get_settings()

# Security scheme
bearer_scheme = HTTPBearer(auto_error=False)


async def get_or_create_firebase_user(
    session: AsyncSession,
    firebase_payload: FirebaseTokenPayload,
) -> AppUser:
    """Get or create an agency account from a Firebase token payload."""
    result = await session.execute(
        select(AppUser).where(
            AppUser.auth_provider == "firebase",
            AppUser.auth_provider_id == firebase_payload.uid,
        )
    )
    user = result.scalar_one_or_none()

    if user:
        if firebase_payload.name and user.display_name != firebase_payload.name:
            user.display_name = firebase_payload.name
            await session.flush()
        return user

    user_email = firebase_payload.email or f"{firebase_payload.uid}@firebase.local"
    user_name = firebase_payload.name or user_email
    now = datetime.now(timezone.utc)

    logger.info(f"Creating new Firebase account: email={user_email}, uid={firebase_payload.uid}")

    user = AppUser(
        email=user_email.lower(),
        display_name=user_name,
        auth_provider="firebase",
        auth_provider_id=firebase_payload.uid,
        role=UserRole.USER,
        subscription_status=SubscriptionStatus.TRIAL,
        trial_start_date=now,
        trial_end_date=now + timedelta(days=settings.trial_days),
    )
    session.add(user)
    await session.flush()
    return user


class CurrentActor:
    """The authenticated caller.

    ``effective_user`` owns the data being worked on: the caller's own
    account, or for a team member the admin they work for.
    """

    def __init__(self, effective_user: AppUser, team_member: TeamMember | None = None):
        self.effective_user = effective_user
        self.team_member = team_member

    @property
    def kind(self) -> str:
        return "team_member" if self.team_member else "user"

    @property
    def account_id(self) -> UUID:
        return self.team_member.id if self.team_member else self.effective_user.id

    @property
    def name(self) -> str:
        if self.team_member:
            return self.team_member.full_name
        return self.effective_user.display_name

    @property
    def is_admin(self) -> bool:
        return self.team_member is None and self.effective_user.role == UserRole.ADMIN

    @property
    def page_access(self) -> list[str] | None:
        if self.team_member is None:
            return None
        return list(self.team_member.page_access or [])

    def can_view(self, page: str) -> bool:
        access = self.page_access
        return access is None or page in access

    @property
    def actor(self) -> Actor:
        access = self.page_access
        return Actor(
            account_id=self.account_id,
            name=self.name,
            owner_id=self.effective_user.id,
            is_admin=self.is_admin,
            kind=self.kind,
            page_access=tuple(access) if access is not None else None,
        )


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CurrentActor:
    """Dependency to get the current authenticated caller.

    Validates a Firebase ID token when Firebase is configured, then falls
    back to the service's own access tokens.
    """
    if not credentials:
        raise _unauthorized("Not authenticated")

    token = credentials.credentials

    if settings.firebase_enabled:
        firebase_payload = decode_firebase_token(token)
        if firebase_payload:
            user = await get_or_create_firebase_user(session, firebase_payload)
            if not user.is_active:
                raise _unauthorized("Account is disabled")
            return CurrentActor(user)

    payload = decode_token(token)
    if not payload:
        raise _unauthorized("Invalid or expired token")

    if payload.type != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
        )

    if payload.kind == "team_member":
        member = await session.get(TeamMember, UUID(payload.sub))
        if not member or not member.is_active:
            raise _unauthorized("Team member not found")
        admin = await session.get(AppUser, member.admin_user_id)
        if not admin:
            raise _unauthorized("Team owner not found")
        return CurrentActor(admin, team_member=member)

    user = await session.get(AppUser, UUID(payload.sub))
    if not user or not user.is_active:
        raise _unauthorized("User not found")
    return CurrentActor(user)


async def require_active_account(
    current: Annotated[CurrentActor, Depends(get_current_user)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CurrentActor:
    """Refuse locked accounts and lapsed subscriptions."""
    user = current.effective_user
    await AccountService(session).refresh_subscription_status(user)

    if user.is_locked and user.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_423_LOCKED,
            detail=f"Account locked: {user.locked_reason or 'Contact your administrator'}",
        )
    if not can_access_system(user):
        raise HTTPException(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            detail="Your subscription has expired. Please renew to continue.",
        )
    return current


def require_admin(
    current: Annotated[CurrentActor, Depends(get_current_user)],
) -> CurrentActor:
    """Require an admin account. Team members never qualify."""
    if not current.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return current


def require_page_access(page: str) -> Callable:
    """Dependency factory: active account plus, for team members, access to ``page``.

    Usage:
        @router.get("/leads")
        async def list_leads(current: Annotated[CurrentActor, Depends(require_page_access("/leads"))]):
            ...
    """
    if page not in PAGES:
        raise ValueError(f"Unknown page: {page}")

    async def check_page(
        current: Annotated[CurrentActor, Depends(require_active_account)],
    ) -> CurrentActor:
        if not current.can_view(page):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"You do not have access to {page}",
            )
        return current

    return check_page


# Type aliases for cleaner dependency injection
CurrentActorDep = Annotated[CurrentActor, Depends(get_current_user)]
ActiveAccountDep = Annotated[CurrentActor, Depends(require_active_account)]
AdminDep = Annotated[CurrentActor, Depends(require_admin)]
SessionDep = Annotated[AsyncSession, Depends(get_session)]
