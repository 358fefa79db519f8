"""Authentication API routes: signup, login, token refresh and the caller's account."""

from datetime import datetime, timezone
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from ..core import CurrentActorDep, SessionDep
from ..core.security import create_access_token, create_refresh_token, decode_token
from ..models import AppUser, TeamMember, UserRole
from ..schemas import (
    AccountResponse,
    LoginRequest,
    RefreshRequest,
    SignupRequest,
    TokenResponse,
)
from ..services.users import (
    AccountLockedError,
    AccountService,
    EmailAlreadyRegisteredError,
    InvalidCredentialsError,
    can_access_system,
    days_remaining,
)

router = APIRouter(prefix="/auth", tags=["authentication"])


def get_account_service(session: SessionDep) -> AccountService:
    return AccountService(session)


AccountServiceDep = Annotated[AccountService, Depends(get_account_service)]


def _tokens(account_id: UUID, kind: str, effective_user_id: UUID) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(account_id, kind, effective_user_id),
        refresh_token=create_refresh_token(account_id, kind, effective_user_id),
        account_kind=kind,
        effective_user_id=effective_user_id,
    )


# =============================================================================
# ENDPOINTS
# =============================================================================


@router.post(
    "/signup",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an agency account",
)
async def signup(request: SignupRequest, accounts: AccountServiceDep):
    """Admins start active; everyone else starts a trial."""
    try:
        user = await accounts.signup(
            email=request.email,
            password=request.password,
            display_name=request.display_name,
            role=UserRole(request.role),
            mobile_no=request.mobile_no,
        )
    except EmailAlreadyRegisteredError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return _tokens(user.id, "user", user.id)


@router.post("/login", response_model=TokenResponse, summary="Log in with email and password")
async def login(request: LoginRequest, accounts: AccountServiceDep):
    try:
        result = await accounts.login(request.email, request.password)
    except InvalidCredentialsError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
    except AccountLockedError as e:
        raise HTTPException(status_code=status.HTTP_423_LOCKED, detail=str(e))
    return _tokens(result.account_id, result.kind, result.effective_user.id)


@router.post("/refresh", response_model=TokenResponse, summary="Exchange a refresh token")
async def refresh(request: RefreshRequest, session: SessionDep):
    payload = decode_token(request.refresh_token)
    if not payload or payload.type != "refresh":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
        )

    model = TeamMember if payload.kind == "team_member" else AppUser
    account = await session.get(model, UUID(payload.sub))
    if not account or not account.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account not found",
        )
    return _tokens(account.id, payload.kind, UUID(payload.eff))


@router.get("/me", response_model=AccountResponse, summary="The caller's account")
async def me(current: CurrentActorDep, accounts: AccountServiceDep):
    """Works for expired and locked accounts so the client can show why."""
    user = current.effective_user
    now = datetime.now(timezone.utc)
    await accounts.refresh_subscription_status(user, now)

    email = current.team_member.email if current.team_member else user.email
    return AccountResponse(
        id=current.account_id,
        account_kind=current.kind,
        effective_user_id=user.id,
        email=email,
        display_name=current.name,
        role=user.role if current.team_member is None else UserRole.USER,
        is_locked=user.is_locked,
        subscription_status=user.subscription_status,
        days_remaining=days_remaining(user, now),
        can_access_system=can_access_system(user),
        page_access=current.page_access,
    )
