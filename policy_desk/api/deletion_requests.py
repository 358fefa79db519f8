"""Deletion request routes: ask for a policy to be erased, and review those asks."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..core import AdminDep, SessionDep, require_page_access
from ..core.dependencies import CurrentActor
from ..models import DeletionRequestStatus
from ..schemas import DeletionRequestCreate, DeletionRequestResponse, DeletionReviewRequest
from ..services.deletion_workflow import (
    DeletionRequestNotFoundError,
    DeletionValidationError,
    DeletionWorkflow,
    DuplicateDeletionRequestError,
    PermissionDeniedError,
    RequestAlreadyReviewedError,
)
from ..services.policies import PolicyNotFoundError

router = APIRouter(prefix="/deletion-requests", tags=["deletion-requests"])

PoliciesPage = Annotated[CurrentActor, Depends(require_page_access("/policies"))]


def get_deletion_workflow(session: SessionDep) -> DeletionWorkflow:
    return DeletionWorkflow(session)


DeletionWorkflowDep = Annotated[DeletionWorkflow, Depends(get_deletion_workflow)]


def _review_error(e: Exception) -> HTTPException:
    if isinstance(e, DeletionRequestNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, PermissionDeniedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    if isinstance(e, RequestAlreadyReviewedError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post(
    "",
    response_model=DeletionRequestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request permanent deletion of a policy",
    description="""
    Opens a pending request; the policy stays in the active book until an
    admin other than the requester approves it. The requester confirms
    with their own password.
    """,
)
async def request_deletion(
    request: DeletionRequestCreate,
    current: PoliciesPage,
    workflow: DeletionWorkflowDep,
):
    account = current.team_member or current.effective_user
    try:
        return await workflow.request_deletion(
            policy_id=request.policy_id,
            reason=request.reason,
            password=request.password,
            requester=current.actor,
            password_hash=account.password_hash,
        )
    except DeletionValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except PolicyNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except DuplicateDeletionRequestError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.get("", response_model=list[DeletionRequestResponse], summary="List deletion requests")
async def list_requests(
    current: PoliciesPage,
    workflow: DeletionWorkflowDep,
    status_filter: DeletionRequestStatus | None = Query(default=None, alias="status"),
):
    """Admins see every request; others see the requests on their own book."""
    owner_id = None if current.is_admin else current.effective_user.id
    return await workflow.list_requests(status=status_filter, owner_id=owner_id)


@router.get(
    "/pending",
    response_model=list[DeletionRequestResponse],
    summary="Pending requests awaiting review (admin)",
)
async def list_pending(current: AdminDep, workflow: DeletionWorkflowDep):
    return await workflow.list_pending()


@router.post(
    "/{request_id}/approve",
    response_model=DeletionRequestResponse,
    summary="Approve a request and erase the policy (admin)",
)
async def approve_request(
    request_id: UUID,
    review: DeletionReviewRequest,
    current: AdminDep,
    workflow: DeletionWorkflowDep,
):
    try:
        return await workflow.approve(
            request_id,
            current.actor,
            comments=review.comments,
            policy_id=review.policy_id,
        )
    except (
        DeletionRequestNotFoundError,
        PermissionDeniedError,
        RequestAlreadyReviewedError,
        DeletionValidationError,
    ) as e:
        raise _review_error(e)


@router.post(
    "/{request_id}/reject",
    response_model=DeletionRequestResponse,
    summary="Reject a request; the policy is kept (admin)",
)
async def reject_request(
    request_id: UUID,
    review: DeletionReviewRequest,
    current: AdminDep,
    workflow: DeletionWorkflowDep,
):
    try:
        return await workflow.reject(request_id, current.actor, comments=review.comments)
    except (
        DeletionRequestNotFoundError,
        PermissionDeniedError,
        RequestAlreadyReviewedError,
    ) as e:
        raise _review_error(e)
