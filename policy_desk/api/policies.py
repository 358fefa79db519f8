"""
Policy API Routes: the active book, the trash, and claims.

- GET/POST /policies, GET/PATCH/DELETE /policies/{id}
- GET /policies/deleted, POST /policies/deleted/{id}/restore,
  DELETE /policies/deleted/{id} (admin)
- GET /policies/{id}/activity
- POST /policies/{id}/claim/in-progress, POST /policies/{id}/claim/settle

DELETE on an active policy moves it to the trash; erasing for good goes
through the deletion-request workflow or the admin trash action.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from ..core import SessionDep, require_page_access
from ..core.dependencies import CurrentActor
from ..schemas import (
    ActivityLogEntry,
    ClaimSettleRequest,
    DeletedPolicyResponse,
    PolicyCreate,
    PolicyResponse,
    PolicyUpdate,
)
from ..services.claims import ClaimAlreadySettledError, ClaimValidationError
from ..services.policies import (
    DuplicatePolicyNumberError,
    InvalidOperationError,
    PolicyNotFoundError,
    PolicyPermissionError,
)
from ..services.stores import PolicyStore

router = APIRouter(prefix="/policies", tags=["policies"])

PoliciesPage = Annotated[CurrentActor, Depends(require_page_access("/policies"))]
TrashPage = Annotated[CurrentActor, Depends(require_page_access("/deleted-policies"))]
ClaimsPage = Annotated[CurrentActor, Depends(require_page_access("/claims"))]


def get_policy_store(session: SessionDep, current: PoliciesPage) -> PolicyStore:
    return PolicyStore(session, current.actor)


def get_trash_store(session: SessionDep, current: TrashPage) -> PolicyStore:
    return PolicyStore(session, current.actor)


def get_claims_store(session: SessionDep, current: ClaimsPage) -> PolicyStore:
    return PolicyStore(session, current.actor)


PolicyStoreDep = Annotated[PolicyStore, Depends(get_policy_store)]
TrashStoreDep = Annotated[PolicyStore, Depends(get_trash_store)]
ClaimsStoreDep = Annotated[PolicyStore, Depends(get_claims_store)]


def _not_found(e: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


def _conflict(e: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


# =============================================================================
# ACTIVE POLICIES
# =============================================================================


@router.get("", response_model=list[PolicyResponse], summary="List active policies")
async def list_policies(store: PolicyStoreDep):
    return await store.policies()


@router.post(
    "",
    response_model=PolicyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a policy",
)
async def create_policy(request: PolicyCreate, store: PolicyStoreDep):
    try:
        return await store.add(request)
    except DuplicatePolicyNumberError as e:
        raise _conflict(e)


# Declared before /{policy_id} so "deleted" is not parsed as an id
@router.get("/deleted", response_model=list[DeletedPolicyResponse], summary="List deleted policies")
async def list_deleted_policies(store: TrashStoreDep):
    return await store.deleted_policies()


@router.post(
    "/deleted/{deleted_id}/restore",
    response_model=PolicyResponse,
    summary="Restore a deleted policy",
)
async def restore_policy(deleted_id: UUID, store: TrashStoreDep):
    try:
        return await store.restore(deleted_id)
    except PolicyNotFoundError as e:
        raise _not_found(e)
    except DuplicatePolicyNumberError as e:
        raise _conflict(e)


@router.delete(
    "/deleted/{deleted_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Permanently delete a policy from the trash (admin)",
)
async def permanently_delete_policy(deleted_id: UUID, store: TrashStoreDep):
    try:
        await store.permanently_delete(deleted_id)
    except PolicyPermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except PolicyNotFoundError as e:
        raise _not_found(e)


@router.get("/{policy_id}", response_model=PolicyResponse, summary="Get a policy")
async def get_policy(policy_id: UUID, store: PolicyStoreDep):
    try:
        return await store.get(policy_id)
    except PolicyNotFoundError as e:
        raise _not_found(e)


@router.patch("/{policy_id}", response_model=PolicyResponse, summary="Update a policy")
async def update_policy(policy_id: UUID, request: PolicyUpdate, store: PolicyStoreDep):
    """Only fields present in the body are changed."""
    try:
        return await store.update(policy_id, request.model_dump(exclude_unset=True))
    except PolicyNotFoundError as e:
        raise _not_found(e)
    except DuplicatePolicyNumberError as e:
        raise _conflict(e)
    except InvalidOperationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete(
    "/{policy_id}",
    response_model=DeletedPolicyResponse,
    summary="Move a policy to the trash",
)
async def soft_delete_policy(policy_id: UUID, store: PolicyStoreDep):
    try:
        return await store.soft_delete(policy_id)
    except PolicyNotFoundError as e:
        raise _not_found(e)


@router.get(
    "/{policy_id}/activity",
    response_model=list[ActivityLogEntry],
    summary="Activity history of one policy, newest first",
)
async def policy_activity(policy_id: UUID, store: PolicyStoreDep):
    return await store.policy_activity(policy_id)


# =============================================================================
# CLAIMS
# =============================================================================


@router.post(
    "/{policy_id}/claim/in-progress",
    response_model=PolicyResponse,
    summary="Open a claim on a policy",
)
async def mark_claim_in_progress(policy_id: UUID, store: ClaimsStoreDep):
    try:
        return await store.mark_claim_in_progress(policy_id)
    except PolicyNotFoundError as e:
        raise _not_found(e)
    except ClaimAlreadySettledError as e:
        raise _conflict(e)


@router.post(
    "/{policy_id}/claim/settle",
    response_model=PolicyResponse,
    summary="Settle the claim on a policy",
)
async def settle_claim(policy_id: UUID, request: ClaimSettleRequest, store: ClaimsStoreDep):
    try:
        return await store.settle_claim(policy_id, request.settled_amount, request.settlement_date)
    except ClaimValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except PolicyNotFoundError as e:
        raise _not_found(e)
    except ClaimAlreadySettledError as e:
        raise _conflict(e)
