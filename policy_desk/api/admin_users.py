"""Admin routes over agency accounts: list, lock, unlock, activate."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from ..core import AdminDep, SessionDep
from ..schemas import ActivateSubscriptionRequest, AppUserResponse, LockUserRequest
from ..services.users import AccountNotFoundError, AccountPermissionError, AccountService

router = APIRouter(prefix="/admin/users", tags=["admin"])


def get_account_service(session: SessionDep) -> AccountService:
    return AccountService(session)


AccountServiceDep = Annotated[AccountService, Depends(get_account_service)]


def _account_error(e: Exception) -> HTTPException:
    if isinstance(e, AccountNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))


@router.get("", response_model=list[AppUserResponse], summary="List all accounts")
async def list_users(current: AdminDep, accounts: AccountServiceDep):
    users = await accounts.list_users()
    for user in users:
        await accounts.refresh_subscription_status(user)
    return users


@router.post("/{user_id}/lock", response_model=AppUserResponse, summary="Lock an account")
async def lock_user(
    user_id: UUID,
    request: LockUserRequest,
    current: AdminDep,
    accounts: AccountServiceDep,
):
    try:
        return await accounts.lock_user(user_id, request.reason, current.actor)
    except (AccountNotFoundError, AccountPermissionError) as e:
        raise _account_error(e)


@router.post("/{user_id}/unlock", response_model=AppUserResponse, summary="Unlock an account")
async def unlock_user(user_id: UUID, current: AdminDep, accounts: AccountServiceDep):
    try:
        return await accounts.unlock_user(user_id, current.actor)
    except (AccountNotFoundError, AccountPermissionError) as e:
        raise _account_error(e)


@router.post(
    "/{user_id}/activate",
    response_model=AppUserResponse,
    summary="Activate a paid subscription",
)
async def activate_subscription(
    user_id: UUID,
    request: ActivateSubscriptionRequest,
    current: AdminDep,
    accounts: AccountServiceDep,
):
    try:
        return await accounts.activate_subscription(user_id, request.months)
    except AccountNotFoundError as e:
        raise _account_error(e)
