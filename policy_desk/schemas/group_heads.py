"""Pydantic schemas for group heads."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import Field, field_validator

from .base import DeskBaseModel, PartialUpdate


class GroupHeadCreate(DeskBaseModel):
    group_head_name: str = Field(..., min_length=1, max_length=255)
    contact_no: str | None = Field(default=None, max_length=20)
    email_id: str | None = Field(default=None, max_length=255)
    address: str | None = None
    relationship_type: str = Field(default="Primary", min_length=1, max_length=50)
    notes: str | None = None

    @field_validator("group_head_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class GroupHeadUpdate(PartialUpdate):
    not_nullable = ("group_head_name", "relationship_type")

    group_head_name: str | None = Field(default=None, min_length=1, max_length=255)
    contact_no: str | None = Field(default=None, max_length=20)
    email_id: str | None = Field(default=None, max_length=255)
    address: str | None = None
    relationship_type: str | None = Field(default=None, min_length=1, max_length=50)
    notes: str | None = None


class GroupHeadResponse(DeskBaseModel):
    """A group head with the roll-up of the policies that name it in ``memberOf``."""

    id: UUID
    user_id: UUID
    group_head_name: str
    contact_no: str | None = None
    email_id: str | None = None
    address: str | None = None
    relationship_type: str
    notes: str | None = None
    total_policies: int = 0
    total_premium_amount: Decimal = Decimal("0")
    created_at: datetime
    updated_at: datetime | None = None
