"""
Auto-fill: turn uploaded policy PDFs into saved policies, one at a time.

A session holds up to ``extraction_max_files`` documents. Only the current
document is ever being extracted; the next one starts after the user saves
(or skips) the current form. An extraction failure leaves a blank form for
manual entry and never retries.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Awaitable, Callable
from uuid import UUID, uuid4

from pydantic import ValidationError

from ..schemas import (
    AutoFillFileState,
    AutoFillSessionState,
    PolicyCreate,
    PolicyFormData,
    parse_date,
    parse_money,
)
from .extraction import ExtractionClient, ExtractionError, UploadedDocument

logger = logging.getLogger(__name__)

SavePolicy = Callable[[PolicyCreate], Awaitable[Any]]


class AutoFillError(Exception):
    """Base exception for auto-fill operations."""
    pass


class AutoFillValidationError(AutoFillError):
    pass


class AutoFillFinishedError(AutoFillError):
    """Every document in the session has been handled."""
    pass


class AutoFillSessionNotFoundError(AutoFillError):
    pass


# =============================================================================
# FORM -> POLICY
# =============================================================================


def _one_year_after(start: date) -> date:
    try:
        return start.replace(year=start.year + 1)
    except ValueError:
        # 29 February
        return start.replace(year=start.year + 1, day=28)


def build_policy_from_form(form: PolicyFormData, now: datetime | None = None) -> PolicyCreate:
    """
    Validate a reviewed form and fill in submit defaults.

    - policy number: ``GEN-<epoch millis>`` when blank
    - start date: today; expiry date: start + 1 year
    - premium: total premium, else the premium amount
    """
    now = now or datetime.now(timezone.utc)
    missing = [
        label
        for label, value in (
            ("Policyholder name", form.policyholder_name),
            ("Product type", form.product_type),
        )
        if not value.strip()
    ]
    if missing:
        raise AutoFillValidationError(f"Required: {', '.join(missing)}")

    try:
        start = parse_date(form.start_date) or now.date()
        expiry = parse_date(form.expiry_date) or _one_year_after(start)
        total_premium = parse_money(form.total_premium)
        premium = total_premium or parse_money(form.premium_amount)
        money = {
            name: parse_money(getattr(form, name))
            for name in (
                "net_premium",
                "gst",
                "idv",
                "ncb_percentage",
                "commission_percentage",
                "commission_amount",
            )
        }
    except ValueError as e:
        raise AutoFillValidationError(str(e))

    def text(value: str) -> str | None:
        return value.strip() or None

    try:
        return PolicyCreate(
            policyholder_name=form.policyholder_name.strip(),
            policy_number=form.policy_number.strip() or f"GEN-{int(now.timestamp() * 1000)}",
            contact_no=text(form.contact_no),
            email_id=text(form.email_id),
            insurance_company=text(form.insurance_company),
            product_type=form.product_type.strip(),
            policy_type=text(form.policy_type),
            start_date=start,
            expiry_date=expiry,
            premium_amount=premium,
            total_premium=total_premium,
            registration_no=text(form.registration_no),
            engine_no=text(form.engine_no),
            chasis_no=text(form.chasis_no),
            hp=text(form.hp),
            risk_location_address=text(form.risk_location_address),
            reference_from_name=text(form.reference_from_name),
            remark=text(form.remark),
            pdf_file_name=text(form.pdf_file_name),
            **money,
        )
    except ValidationError as e:
        raise AutoFillValidationError(_describe(e))


def _describe(error: ValidationError) -> str:
    """One entry per invalid field."""
    return "; ".join(
        f"{'.'.join(str(part) for part in item['loc'])}: {item['msg']}"
        for item in error.errors()
    )


# =============================================================================
# SESSION
# =============================================================================


@dataclass
class AutoFillSession:
    """Sequential multi-file auto-fill for one user."""

    extractor: ExtractionClient
    documents: list[UploadedDocument]
    id: UUID = field(default_factory=uuid4)
    rejected: list[str] = field(default_factory=list)
    current_index: int = 0
    processed_count: int = 0
    saved_policy_ids: list[UUID] = field(default_factory=list)
    finished: bool = False
    form: PolicyFormData = field(default_factory=PolicyFormData)
    error: str | None = None
    warning: str | None = None
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @property
    def current_document(self) -> UploadedDocument | None:
        if self.finished or self.current_index >= len(self.documents):
            return None
        return self.documents[self.current_index]

    @property
    def remaining(self) -> int:
        if self.finished:
            return 0
        return len(self.documents) - self.current_index

    async def start(self) -> None:
        """Drop invalid files, enforce the cap, and extract the first file."""
        async with self._lock:
            if not self.documents:
                raise AutoFillValidationError("Select at least one PDF file")
            cap = self.extractor.max_files
            if len(self.documents) > cap:
                raise AutoFillValidationError(f"Maximum {cap} files allowed at once")

            valid = []
            for document in self.documents:
                try:
                    self.extractor.validate_document(document)
                except ExtractionError as e:
                    self.rejected.append(e.user_message)
                    continue
                valid.append(document)
            if not valid:
                raise AutoFillValidationError("No valid PDF files selected")

            self.documents = valid
            logger.info(f"Auto-fill session {self.id} started with {len(valid)} file(s)")
            await self._process_current()

    async def save(self, form: PolicyFormData, save_policy: SavePolicy) -> Any:
        """Persist the reviewed form, then move on to the next file.

        If saving fails the session is left exactly as it was.
        """
        async with self._lock:
            if self.current_document is None:
                raise AutoFillFinishedError("All files have been processed")
            document = self.current_document
            if not form.pdf_file_name:
                form = form.model_copy(update={"pdf_file_name": document.file_name})

            policy = await save_policy(build_policy_from_form(form))

            self.saved_policy_ids.append(policy.id)
            self.processed_count += 1
            logger.info(
                f"Auto-fill session {self.id}: saved file {self.current_index + 1} of {len(self.documents)}"
            )
            await self._advance()
            return policy

    async def skip(self) -> None:
        """Leave the current file unsaved and move on."""
        async with self._lock:
            if self.current_document is None:
                raise AutoFillFinishedError("All files have been processed")
            await self._advance()

    async def _advance(self) -> None:
        self.documents[self.current_index].release()
        self.form = PolicyFormData()
        self.error = None
        self.warning = None
        if self.current_index + 1 < len(self.documents):
            self.current_index += 1
            await self._process_current()
        else:
            self.finished = True
            logger.info(f"Auto-fill session {self.id} finished: {self.processed_count} saved")

    async def _process_current(self) -> None:
        document = self.documents[self.current_index]
        self.form = PolicyFormData(pdf_file_name=document.file_name)
        self.error = None
        self.warning = None
        try:
            result = await self.extractor.extract(document)
        except ExtractionError as e:
            logger.warning(f"Auto-fill extraction failed for {document.file_name}: {e.detail}")
            self.error = e.user_message
            return
        self.form = result.form
        self.warning = result.warning

    def state(self) -> AutoFillSessionState:
        return AutoFillSessionState(
            id=self.id,
            files=[
                AutoFillFileState(file_name=d.file_name, size=d.size) for d in self.documents
            ],
            rejected=list(self.rejected),
            current_index=self.current_index,
            processed_count=self.processed_count,
            saved_policy_ids=list(self.saved_policy_ids),
            finished=self.finished,
            form=self.form,
            error=self.error,
            warning=self.warning,
        )


class AutoFillRegistry:
    """In-process sessions, one per account. Starting a new one replaces the old."""

    def __init__(self):
        self._sessions: dict[UUID, AutoFillSession] = {}
        self._owners: dict[UUID, UUID] = {}

    def add(self, account_id: UUID, session: AutoFillSession) -> None:
        for session_id, owner in list(self._owners.items()):
            if owner == account_id:
                self.discard(session_id, account_id)
        self._sessions[session.id] = session
        self._owners[session.id] = account_id

    def get(self, session_id: UUID, account_id: UUID) -> AutoFillSession:
        if self._owners.get(session_id) != account_id:
            raise AutoFillSessionNotFoundError(f"Auto-fill session {session_id} not found")
        return self._sessions[session_id]

    def discard(self, session_id: UUID, account_id: UUID) -> None:
        if self._owners.get(session_id) == account_id:
            self._owners.pop(session_id, None)
            self._sessions.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._sessions)
