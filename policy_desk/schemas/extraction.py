"""Schemas for PDF extraction and the auto-fill form."""

from uuid import UUID

from pydantic import Field

from .base import DeskBaseModel


class PolicyFormData(DeskBaseModel):
    """The add-policy form as the user sees it: every field is text."""

    policyholder_name: str = ""
    contact_no: str = ""
    email_id: str = ""
    policy_number: str = ""
    insurance_company: str = ""
    product_type: str = ""
    policy_type: str = ""
    start_date: str = ""
    expiry_date: str = ""
    premium_amount: str = ""
    total_premium: str = ""
    net_premium: str = ""
    gst: str = ""
    idv: str = ""
    ncb_percentage: str = ""
    commission_percentage: str = ""
    commission_amount: str = ""
    registration_no: str = ""
    engine_no: str = ""
    chasis_no: str = ""
    hp: str = ""
    risk_location_address: str = ""
    reference_from_name: str = ""
    remark: str = ""
    pdf_file_name: str = ""

    def has_data(self) -> bool:
        """True when anything besides the file name was filled in."""
        return any(
            value.strip()
            for name, value in self.model_dump().items()
            if name != "pdf_file_name"
        )


class ExtractionResponse(DeskBaseModel):
    form: PolicyFormData
    has_data: bool
    warning: str | None = None


class AutoFillFileState(DeskBaseModel):
    file_name: str
    size: int


class AutoFillSessionState(DeskBaseModel):
    """Where a multi-file auto-fill session stands."""

    id: UUID
    files: list[AutoFillFileState]
    rejected: list[str] = Field(default_factory=list)
    current_index: int
    processed_count: int
    saved_policy_ids: list[UUID] = Field(default_factory=list)
    finished: bool
    form: PolicyFormData
    error: str | None = None
    warning: str | None = None
