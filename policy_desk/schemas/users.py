"""Pydantic schemas for accounts, authentication and team members."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import EmailStr, Field, field_validator

from ..models import PAGES, SubscriptionStatus, UserRole
from .base import DeskBaseModel


# =============================================================================
# AUTH
# =============================================================================


class SignupRequest(DeskBaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72)
    display_name: str = Field(..., min_length=1, max_length=255)
    mobile_no: str | None = Field(default=None, max_length=20)
    role: UserRole = UserRole.USER


class LoginRequest(DeskBaseModel):
    email: EmailStr
    password: str


class RefreshRequest(DeskBaseModel):
    refresh_token: str


class TokenResponse(DeskBaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    account_kind: Literal["user", "team_member"]
    effective_user_id: UUID


class AccountResponse(DeskBaseModel):
    """The caller's own account, with subscription state resolved."""

    id: UUID
    account_kind: Literal["user", "team_member"]
    effective_user_id: UUID
    email: str
    display_name: str
    role: UserRole
    is_locked: bool
    subscription_status: SubscriptionStatus
    days_remaining: int
    can_access_system: bool
    page_access: list[str] | None = None


# =============================================================================
# ADMIN: USERS
# =============================================================================


class AppUserResponse(DeskBaseModel):
    id: UUID
    email: str
    display_name: str
    mobile_no: str | None = None
    role: UserRole
    is_active: bool
    is_locked: bool
    locked_reason: str | None = None
    locked_at: datetime | None = None
    subscription_status: SubscriptionStatus
    trial_end_date: datetime | None = None
    subscription_end_date: datetime | None = None
    last_login: datetime | None = None
    created_at: datetime


class LockUserRequest(DeskBaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)


class ActivateSubscriptionRequest(DeskBaseModel):
    months: int = Field(default=12, ge=1, le=60)


# =============================================================================
# TEAM MEMBERS
# =============================================================================


def _check_pages(pages: list[str] | None) -> list[str] | None:
    if pages is None:
        return None
    unknown = [p for p in pages if p not in PAGES]
    if unknown:
        raise ValueError(f"Unknown pages: {', '.join(unknown)}")
    # Keep first occurrence order
    return list(dict.fromkeys(pages))


class TeamMemberCreate(DeskBaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72)
    full_name: str = Field(..., min_length=1, max_length=255)
    mobile_no: str | None = Field(default=None, max_length=20)
    page_access: list[str] = Field(default_factory=list)

    @field_validator("page_access")
    @classmethod
    def validate_pages(cls, v: list[str] | None) -> list[str] | None:
        return _check_pages(v)


class TeamMemberUpdate(DeskBaseModel):
    full_name: str | None = Field(default=None, min_length=1, max_length=255)
    mobile_no: str | None = None
    is_active: bool | None = None
    page_access: list[str] | None = None

    @field_validator("page_access")
    @classmethod
    def validate_pages(cls, v: list[str] | None) -> list[str] | None:
        return _check_pages(v)


class TeamMemberResponse(DeskBaseModel):
    id: UUID
    admin_user_id: UUID
    email: str
    full_name: str
    mobile_no: str | None = None
    is_active: bool
    page_access: list[str]
    last_login: datetime | None = None
    created_at: datetime
