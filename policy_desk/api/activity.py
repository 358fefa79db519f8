"""Activity log routes (read-only)."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from ..core import SessionDep, require_page_access
from ..core.dependencies import CurrentActor
from ..models import ActivityAction
from ..schemas import ActivityLogEntry, PaginatedResponse
from ..services.activity_log import ActivityLogService

router = APIRouter(prefix="/activity-logs", tags=["activity"])

ActivityPage = Annotated[CurrentActor, Depends(require_page_access("/activity-logs"))]


def get_activity_service(session: SessionDep) -> ActivityLogService:
    return ActivityLogService(session)


ActivityServiceDep = Annotated[ActivityLogService, Depends(get_activity_service)]


@router.get(
    "",
    response_model=PaginatedResponse,
    summary="List activity entries, newest first",
    description="""
    Admins may pass ``all_accounts=true`` to read across every account.
    Everyone else sees the entries of their own book.
    """,
)
async def list_activity_logs(
    current: ActivityPage,
    activity: ActivityServiceDep,
    page: int = Query(default=1, ge=1, description="Page number"),
    page_size: int = Query(default=100, ge=1, le=500, description="Items per page"),
    performed_by: UUID | None = Query(default=None),
    action: ActivityAction | None = Query(default=None),
    all_accounts: bool = Query(default=False),
):
    owner_id = None if all_accounts and current.is_admin else current.effective_user.id
    entries, total = await activity.list_activity_logs(
        owner_id,
        limit=page_size,
        offset=(page - 1) * page_size,
        performed_by=performed_by,
        action=action,
    )
    return PaginatedResponse.create(
        items=[ActivityLogEntry.model_validate(e).model_dump(by_alias=True, mode="json") for e in entries],
        total=total,
        page=page,
        page_size=page_size,
    )
