"""API routes for Policy Desk."""

from fastapi import APIRouter

from .activity import router as activity_router
from .admin_users import router as admin_users_router
from .auth import router as auth_router
from .deletion_requests import router as deletion_requests_router
from .extraction import router as extraction_router
from .group_heads import router as group_heads_router
from .leads import router as leads_router
from .policies import router as policies_router
from .renewals import router as renewals_router
from .team_members import router as team_members_router

# Main API router
api_router = APIRouter()

# Auth routes (signup, login, refresh, me)
api_router.include_router(auth_router)

# Agency data
api_router.include_router(policies_router)
api_router.include_router(deletion_requests_router)
api_router.include_router(renewals_router)
api_router.include_router(group_heads_router)
api_router.include_router(leads_router)
api_router.include_router(activity_router)
api_router.include_router(extraction_router)

# Account management
api_router.include_router(team_members_router)
api_router.include_router(admin_users_router)

__all__ = ["api_router"]
