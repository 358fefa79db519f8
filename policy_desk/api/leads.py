"""Lead API Routes: the sales funnel, follow-up buckets and contact history."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..core import SessionDep, require_page_access
from ..core.dependencies import CurrentActor
from ..models import LeadStatus
from ..schemas import (
    FollowUpHistoryEntry,
    FollowUpRecordRequest,
    LeadConvertRequest,
    LeadCreate,
    LeadResponse,
    LeadStatistics,
    LeadUpdate,
)
from ..services.followups import FollowUpBucket, FollowUpValidationError
from ..services.leads import LeadFieldError, LeadNotFoundError
from ..services.policies import PolicyNotFoundError
from ..services.stores import LeadStore

router = APIRouter(prefix="/leads", tags=["leads"])

LeadsPage = Annotated[CurrentActor, Depends(require_page_access("/leads"))]
FollowUpsPage = Annotated[CurrentActor, Depends(require_page_access("/follow-ups"))]


def get_lead_store(session: SessionDep, current: LeadsPage) -> LeadStore:
    return LeadStore(session, current.actor)


def get_follow_up_store(session: SessionDep, current: FollowUpsPage) -> LeadStore:
    return LeadStore(session, current.actor)


LeadStoreDep = Annotated[LeadStore, Depends(get_lead_store)]
FollowUpStoreDep = Annotated[LeadStore, Depends(get_follow_up_store)]


def _not_found(e: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


# =============================================================================
# COLLECTION VIEWS
# =============================================================================


@router.get("", response_model=list[LeadResponse], summary="List leads")
async def list_leads(
    store: LeadStoreDep,
    status_filter: LeadStatus | None = Query(default=None, alias="status"),
):
    if status_filter is not None:
        return await store.by_status(status_filter)
    return await store.leads()


@router.get("/statistics", response_model=LeadStatistics, summary="Funnel counts")
async def lead_statistics(store: LeadStoreDep):
    stats = await store.statistics()
    return LeadStatistics(
        total=stats.total,
        new=stats.new,
        follow_up=stats.follow_up,
        won=stats.won,
        lost=stats.lost,
        conversion_rate=stats.conversion_rate,
    )


@router.get(
    "/upcoming",
    response_model=list[LeadResponse],
    summary="Open leads due in the next few days",
)
async def upcoming_follow_ups(
    store: LeadStoreDep,
    days: int = Query(default=7, ge=0, le=365),
):
    return await store.upcoming(days)


@router.get(
    "/follow-ups",
    response_model=list[LeadResponse],
    summary="Leads in a follow-up date bucket",
    description="""
    Buckets: today, tomorrow, this_week, overdue, custom.
    Overdue never includes won, lost or canceled leads.
    Custom uses the inclusive ``start`` and ``end`` dates.
    """,
)
async def follow_up_bucket(
    store: FollowUpStoreDep,
    bucket: FollowUpBucket = Query(default=FollowUpBucket.TODAY),
    start: date | None = Query(default=None),
    end: date | None = Query(default=None),
):
    return await store.bucket(bucket, start=start, end=end)


# =============================================================================
# SINGLE LEAD
# =============================================================================


@router.post(
    "",
    response_model=LeadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a lead",
)
async def create_lead(request: LeadCreate, store: LeadStoreDep):
    return await store.add(request)


@router.get("/{lead_id}", response_model=LeadResponse, summary="Get a lead")
async def get_lead(lead_id: UUID, store: LeadStoreDep):
    try:
        return await store.get(lead_id)
    except LeadNotFoundError as e:
        raise _not_found(e)


@router.patch("/{lead_id}", response_model=LeadResponse, summary="Update a lead")
async def update_lead(lead_id: UUID, request: LeadUpdate, store: LeadStoreDep):
    try:
        return await store.update(lead_id, request.model_dump(exclude_unset=True))
    except LeadNotFoundError as e:
        raise _not_found(e)
    except LeadFieldError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{lead_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a lead")
async def delete_lead(lead_id: UUID, store: LeadStoreDep):
    try:
        await store.delete(lead_id)
    except LeadNotFoundError as e:
        raise _not_found(e)


@router.post(
    "/{lead_id}/convert",
    response_model=LeadResponse,
    summary="Mark a lead won and link the policy it became",
)
async def convert_lead(lead_id: UUID, request: LeadConvertRequest, store: LeadStoreDep):
    try:
        return await store.convert(lead_id, request.policy_id)
    except (LeadNotFoundError, PolicyNotFoundError) as e:
        raise _not_found(e)


# =============================================================================
# FOLLOW-UP HISTORY
# =============================================================================


@router.get(
    "/{lead_id}/follow-ups",
    response_model=list[FollowUpHistoryEntry],
    summary="Contact history, newest first",
)
async def follow_up_history(lead_id: UUID, store: FollowUpStoreDep):
    try:
        return await store.history(lead_id)
    except LeadNotFoundError as e:
        raise _not_found(e)


@router.post(
    "/{lead_id}/follow-ups",
    response_model=FollowUpHistoryEntry,
    status_code=status.HTTP_201_CREATED,
    summary="Record a follow-up",
)
async def record_follow_up(
    lead_id: UUID,
    request: FollowUpRecordRequest,
    store: FollowUpStoreDep,
):
    try:
        return await store.record_follow_up(
            lead_id,
            request.status,
            request.notes,
            next_follow_up_date=request.next_follow_up_date,
            lead_status=request.lead_status,
            priority=request.priority,
        )
    except FollowUpValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except LeadNotFoundError as e:
        raise _not_found(e)
