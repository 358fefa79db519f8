"""
Group Head API Routes: family and company groups of policies.

- GET/POST /group-heads, GET/PATCH/DELETE /group-heads/{id}
- GET /group-heads/{id}/policies

A policy joins a group by setting ``memberOf`` to the group head id.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from ..core import SessionDep, require_page_access
from ..core.dependencies import CurrentActor
from ..schemas import GroupHeadCreate, GroupHeadResponse, GroupHeadUpdate, PolicyResponse
from ..services.group_heads import (
    GroupHeadFieldError,
    GroupHeadNotFoundError,
    GroupHeadService,
    GroupHeadSummary,
)

router = APIRouter(prefix="/group-heads", tags=["group-heads"])

GroupHeadsPage = Annotated[CurrentActor, Depends(require_page_access("/group-heads"))]


def get_group_head_service(session: SessionDep) -> GroupHeadService:
    return GroupHeadService(session)


GroupHeadServiceDep = Annotated[GroupHeadService, Depends(get_group_head_service)]


def _respond(summary: GroupHeadSummary) -> GroupHeadResponse:
    return GroupHeadResponse.model_validate(summary.group_head).model_copy(
        update={
            "total_policies": summary.total_policies,
            "total_premium_amount": summary.total_premium_amount,
        }
    )


def _not_found(e: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("", response_model=list[GroupHeadResponse], summary="List group heads by name")
async def list_group_heads(current: GroupHeadsPage, service: GroupHeadServiceDep):
    return [_respond(s) for s in await service.list_group_heads(current.actor.owner_id)]


@router.post(
    "",
    response_model=GroupHeadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a group head",
)
async def create_group_head(
    request: GroupHeadCreate,
    current: GroupHeadsPage,
    service: GroupHeadServiceDep,
):
    return _respond(await service.create_group_head(request, current.actor.owner_id))


@router.get("/{group_head_id}", response_model=GroupHeadResponse, summary="Get a group head")
async def get_group_head(
    group_head_id: UUID,
    current: GroupHeadsPage,
    service: GroupHeadServiceDep,
):
    try:
        return _respond(await service.get_summary(group_head_id, current.actor.owner_id))
    except GroupHeadNotFoundError as e:
        raise _not_found(e)


@router.patch("/{group_head_id}", response_model=GroupHeadResponse, summary="Update a group head")
async def update_group_head(
    group_head_id: UUID,
    request: GroupHeadUpdate,
    current: GroupHeadsPage,
    service: GroupHeadServiceDep,
):
    try:
        summary = await service.update_group_head(
            group_head_id,
            request.model_dump(exclude_unset=True),
            current.actor.owner_id,
        )
    except GroupHeadNotFoundError as e:
        raise _not_found(e)
    except GroupHeadFieldError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _respond(summary)


@router.delete(
    "/{group_head_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a group head and detach its policies",
)
async def delete_group_head(
    group_head_id: UUID,
    current: GroupHeadsPage,
    service: GroupHeadServiceDep,
):
    try:
        await service.delete_group_head(group_head_id, current.actor.owner_id)
    except GroupHeadNotFoundError as e:
        raise _not_found(e)


@router.get(
    "/{group_head_id}/policies",
    response_model=list[PolicyResponse],
    summary="Active policies in the group, newest first",
)
async def group_policies(
    group_head_id: UUID,
    current: GroupHeadsPage,
    service: GroupHeadServiceDep,
):
    try:
        return await service.group_policies(group_head_id, current.actor.owner_id)
    except GroupHeadNotFoundError as e:
        raise _not_found(e)
