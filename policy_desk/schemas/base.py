"""Base schemas and common types for the Policy Desk API.

The wire format is camelCase JSON; attributes stay snake_case. Money and
dates arrive as whatever the user typed and are converted here, once.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Annotated, Any, ClassVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


# =============================================================================
# EDGE CONVERSIONS
# =============================================================================


_CURRENCY_TOKENS = ("₹", "Rs.", "Rs", "INR", ",", " ")

_DATE_FORMATS = (
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%d.%m.%Y",
    "%d %b %Y",
    "%d %B %Y",
    "%d-%b-%Y",
    "%d-%B-%Y",
    "%Y/%m/%d",
)


def parse_money(value: Any) -> Decimal | None:
    """Parse a user-entered amount such as "₹1,23,456.50" into a Decimal.

    Blank input is None. Anything else that is not a number raises ValueError.
    """
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError("Invalid amount")
    if isinstance(value, (int, float)):
        return Decimal(str(value))

    text = str(value).strip()
    for token in _CURRENCY_TOKENS:
        text = text.replace(token, "")
    if not text:
        return None
    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return amount


def parse_date(value: Any) -> date | None:
    """Parse ISO strings, timestamps and common Indian day-first formats."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Unrecognised date: {value!r}")


Money = Annotated[Decimal | None, BeforeValidator(parse_money)]
FlexibleDate = Annotated[date | None, BeforeValidator(parse_date)]


# =============================================================================
# BASE SCHEMAS
# =============================================================================


class DeskBaseModel(BaseModel):
    """Base model with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,  # Enable ORM mode
        populate_by_name=True,
        use_enum_values=True,
        alias_generator=to_camel,
    )


class PartialUpdate(DeskBaseModel):
    """Base for PATCH bodies: absent fields are left alone.

    Fields named in ``not_nullable`` back NOT NULL columns, so an explicit
    null for them is a validation error rather than a cleared value.
    """

    not_nullable: ClassVar[tuple[str, ...]] = ()

    @model_validator(mode="after")
    def reject_null_for_required_columns(self):
        cleared = [
            to_camel(name)
            for name in self.not_nullable
            if name in self.model_fields_set and getattr(self, name) is None
        ]
        if cleared:
            raise ValueError(f"Cannot be null: {', '.join(cleared)}")
        return self


class TimestampMixin(BaseModel):
    """Mixin for created/updated timestamps."""

    created_at: datetime
    updated_at: datetime | None = None


# =============================================================================
# PAGINATION
# =============================================================================


class PaginatedResponse(DeskBaseModel):
    """Wrapper for paginated responses."""

    items: list[Any]
    total: int
    page: int
    page_size: int
    total_pages: int

    @classmethod
    def create(
        cls,
        items: list[Any],
        total: int,
        page: int,
        page_size: int,
    ) -> "PaginatedResponse":
        return cls(
            items=items,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=(total + page_size - 1) // page_size,
        )


# =============================================================================
# ERROR RESPONSES
# =============================================================================


class ErrorDetail(DeskBaseModel):
    """Detailed error information."""

    field: str | None = None
    message: str
    code: str


class ErrorResponse(DeskBaseModel):
    """Standard error response format."""

    error: str
    message: str
    details: list[ErrorDetail] = Field(default_factory=list)
    request_id: str | None = None
