"""
Renewal API Routes: expiring-policy reminders and lapsed policies.

- GET /renewals/reminders: policies expiring soon, with alert level and message
- POST /renewals/{policy_id}/lapse: move an active policy to the lapsed store
- GET /renewals/lapsed, POST /renewals/lapsed/{id}/reactivate,
  DELETE /renewals/lapsed/{id} (admin)
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..core import SessionDep, get_settings, require_page_access
from ..core.dependencies import CurrentActor
from ..schemas import (
    LapsedPolicyResponse,
    LapsePolicyRequest,
    PolicyResponse,
    RenewalReminderResponse,
)
from ..services.policies import (
    DuplicatePolicyNumberError,
    PolicyNotFoundError,
    PolicyPermissionError,
)
from ..services.renewals import ReminderScope, reminder_message
from ..services.stores import PolicyStore

router = APIRouter(prefix="/renewals", tags=["renewals"])

RemindersPage = Annotated[CurrentActor, Depends(require_page_access("/reminders"))]
LapsedPage = Annotated[CurrentActor, Depends(require_page_access("/lapsed-policies"))]


def get_reminder_store(session: SessionDep, current: RemindersPage) -> PolicyStore:
    return PolicyStore(session, current.actor)


def get_lapsed_store(session: SessionDep, current: LapsedPage) -> PolicyStore:
    return PolicyStore(session, current.actor)


ReminderStoreDep = Annotated[PolicyStore, Depends(get_reminder_store)]
LapsedStoreDep = Annotated[PolicyStore, Depends(get_lapsed_store)]


def _not_found(e: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


# =============================================================================
# REMINDERS
# =============================================================================


@router.get(
    "/reminders",
    response_model=list[RenewalReminderResponse],
    summary="Renewable policies expiring soon, soonest first",
)
async def renewal_reminders(
    store: ReminderStoreDep,
    days: int | None = Query(default=None, ge=1, le=365),
    scope: ReminderScope = ReminderScope.ALL,
    group_head_id: UUID | None = Query(default=None, alias="groupHeadId"),
):
    settings = get_settings()
    reminders = await store.renewal_reminders(
        window_days=days or settings.renewal_window_days,
        scope=scope,
        group_head_id=group_head_id,
    )
    return [
        RenewalReminderResponse(
            policy=PolicyResponse.model_validate(r.policy),
            days_remaining=r.days_remaining,
            alert_level=r.alert_level.value,
            message=reminder_message(r.policy, r.days_remaining, settings.app_name),
        )
        for r in reminders
    ]


@router.post(
    "/{policy_id}/lapse",
    response_model=LapsedPolicyResponse,
    summary="Mark a policy as lapsed",
)
async def mark_policy_as_lapsed(
    policy_id: UUID,
    request: LapsePolicyRequest,
    store: ReminderStoreDep,
):
    try:
        return await store.mark_lapsed(policy_id, request.reason)
    except PolicyNotFoundError as e:
        raise _not_found(e)


# =============================================================================
# LAPSED POLICIES
# =============================================================================


@router.get("/lapsed", response_model=list[LapsedPolicyResponse], summary="List lapsed policies")
async def list_lapsed_policies(store: LapsedStoreDep):
    return await store.lapsed_policies()


@router.post(
    "/lapsed/{lapsed_id}/reactivate",
    response_model=PolicyResponse,
    summary="Move a lapsed policy back into the active book",
)
async def reactivate_policy(lapsed_id: UUID, store: LapsedStoreDep):
    try:
        return await store.reactivate(lapsed_id)
    except PolicyNotFoundError as e:
        raise _not_found(e)
    except DuplicatePolicyNumberError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.delete(
    "/lapsed/{lapsed_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a lapsed policy for good (admin)",
)
async def remove_lapsed_policy(lapsed_id: UUID, store: LapsedStoreDep):
    try:
        await store.remove_lapsed(lapsed_id)
    except PolicyPermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except PolicyNotFoundError as e:
        raise _not_found(e)
