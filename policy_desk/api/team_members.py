"""Team member routes: an account owner manages the logins that work on their book."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from ..core import ActiveAccountDep, SessionDep
from ..schemas import TeamMemberCreate, TeamMemberResponse, TeamMemberUpdate
from ..services.team_members import (
    TeamMemberEmailTakenError,
    TeamMemberNotFoundError,
    TeamMemberPermissionError,
    TeamMemberService,
)

router = APIRouter(prefix="/team-members", tags=["team-members"])


def get_team_member_service(session: SessionDep) -> TeamMemberService:
    return TeamMemberService(session)


TeamMemberServiceDep = Annotated[TeamMemberService, Depends(get_team_member_service)]


def _require_owner(current: ActiveAccountDep) -> None:
    if current.team_member is not None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Team members cannot manage the team",
        )


@router.get("", response_model=list[TeamMemberResponse], summary="List team members")
async def list_team_members(current: ActiveAccountDep, team: TeamMemberServiceDep):
    _require_owner(current)
    return await team.list_team_members(current.effective_user.id)


@router.post(
    "",
    response_model=TeamMemberResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a team member",
)
async def create_team_member(
    request: TeamMemberCreate,
    current: ActiveAccountDep,
    team: TeamMemberServiceDep,
):
    try:
        return await team.create_team_member(
            current.actor,
            email=request.email,
            password=request.password,
            full_name=request.full_name,
            page_access=request.page_access,
            mobile_no=request.mobile_no,
        )
    except TeamMemberPermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except TeamMemberEmailTakenError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.get("/{member_id}", response_model=TeamMemberResponse, summary="Get a team member")
async def get_team_member(member_id: UUID, current: ActiveAccountDep, team: TeamMemberServiceDep):
    _require_owner(current)
    try:
        return await team.get_team_member(member_id, current.effective_user.id)
    except TeamMemberNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.patch("/{member_id}", response_model=TeamMemberResponse, summary="Update a team member")
async def update_team_member(
    member_id: UUID,
    request: TeamMemberUpdate,
    current: ActiveAccountDep,
    team: TeamMemberServiceDep,
):
    try:
        return await team.update_team_member(
            member_id,
            request.model_dump(exclude_unset=True),
            current.actor,
        )
    except TeamMemberPermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except TeamMemberNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.delete(
    "/{member_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a team member",
)
async def delete_team_member(member_id: UUID, current: ActiveAccountDep, team: TeamMemberServiceDep):
    try:
        await team.delete_team_member(member_id, current.actor)
    except TeamMemberPermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except TeamMemberNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
