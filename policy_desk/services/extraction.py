"""
Extraction Client: send a policy PDF to the extraction webhook.

One POST per document, bounded by the configured timeout and never
retried. Every failure is raised as an ``ExtractionError`` subclass with a
``user_message`` the caller can show next to the empty form.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import httpx

from ..core.config import Settings, get_settings
from ..schemas import PolicyFormData
from .field_aliases import map_extracted_fields, unwrap_payload

logger = logging.getLogger(__name__)


# =============================================================================
# EXCEPTIONS
# =============================================================================


class ExtractionError(Exception):
    """Base exception for extraction failures."""

    user_message = "Failed to extract data from PDF. Please try again or fill the form manually."

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.user_message
        super().__init__(self.detail)


class ExtractionNotConfiguredError(ExtractionError):
    user_message = "PDF extraction is not configured. Please fill the form manually."


class ExtractionFileError(ExtractionError):
    """Document rejected before upload."""

    def __init__(self, detail: str):
        super().__init__(detail)
        self.user_message = detail


class ExtractionTimeoutError(ExtractionError):
    user_message = "Request timeout - AI analysis took too long. Please try again."


class ExtractionNetworkError(ExtractionError):
    user_message = "Network error - Please check your internet connection and try again."


class ExtractionHTTPError(ExtractionError):
    def __init__(self, status_code: int, reason: str = "", body: str = ""):
        self.status_code = status_code
        self.user_message = f"HTTP error {status_code}: {reason or 'Unknown error'}"
        super().__init__(f"HTTP error! status: {status_code} - {body[:200]}")


class ExtractionInvalidResponseError(ExtractionError):
    """Response was not JSON, or held no usable object."""

    user_message = "Invalid response format from extraction service"


class ExtractionEmptyResponseError(ExtractionError):
    user_message = "Empty response from webhook"


# =============================================================================
# DATA TRANSFER OBJECTS
# =============================================================================


@dataclass
class UploadedDocument:
    """A file as received from the client."""
    file_name: str
    content: bytes
    content_type: str | None = "application/pdf"
    size: int = field(init=False)

    def __post_init__(self):
        self.size = len(self.content)

    def release(self) -> None:
        """Drop the file bytes once the document has been handled; ``size`` is kept."""
        self.content = b""


@dataclass
class ExtractionResult:
    form: PolicyFormData
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def has_data(self) -> bool:
        return self.form.has_data()

    @property
    def warning(self) -> str | None:
        if self.has_data:
            return None
        return "AI could not extract meaningful data from the PDF. Please fill the form manually."


# =============================================================================
# CLIENT
# =============================================================================


class ExtractionClient:
    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self._settings = settings or get_settings()
        self._client = client

    @property
    def max_files(self) -> int:
        return self._settings.extraction_max_files

    def validate_document(self, document: UploadedDocument) -> None:
        """Reject anything that is not a PDF within the size limit."""
        is_pdf = (document.content_type or "").lower() == "application/pdf" or (
            document.file_name.lower().endswith(".pdf")
        )
        if not is_pdf:
            raise ExtractionFileError(f"{document.file_name}: only PDF files are supported")
        if document.size == 0:
            raise ExtractionFileError(f"{document.file_name}: file is empty")
        limit = self._settings.extraction_max_file_size
        if document.size > limit:
            raise ExtractionFileError(
                f"{document.file_name}: file is too large. Maximum size is {limit // (1024 * 1024)}MB"
            )

    async def extract(self, document: UploadedDocument) -> ExtractionResult:
        """Upload one document and map the response onto form data."""
        url = self._settings.extraction_webhook_url
        if not url:
            raise ExtractionNotConfiguredError()
        self.validate_document(document)

        logger.info(f"Extracting {document.file_name} ({document.size} bytes)")
        response = await self._post(url, document)

        if response.status_code >= 400:
            raise ExtractionHTTPError(response.status_code, response.reason_phrase, response.text)

        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            raise ExtractionInvalidResponseError(
                f"Expected JSON response but got: {content_type or 'no content type'}"
            )

        text = response.text
        if not text.strip():
            raise ExtractionEmptyResponseError()
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ExtractionInvalidResponseError(f"Invalid JSON response from webhook: {e}")

        payload = unwrap_payload(data)
        if payload is None:
            raise ExtractionInvalidResponseError("No valid data found in extraction response")

        result = ExtractionResult(
            form=map_extracted_fields(payload, file_name=document.file_name),
            raw=payload,
        )
        if not result.has_data:
            logger.warning(f"No meaningful data extracted from {document.file_name}")
        else:
            logger.info(f"Extraction finished for {document.file_name}")
        return result

    async def _post(self, url: str, document: UploadedDocument) -> httpx.Response:
        files = {
            "pdf": (document.file_name, document.content, document.content_type or "application/pdf"),
        }
        data = {
            "fileName": document.file_name,
            "fileSize": str(document.size),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        timeout = self._settings.extraction_timeout_seconds
        try:
            if self._client is not None:
                return await self._client.post(url, files=files, data=data, timeout=timeout)
            async with httpx.AsyncClient(timeout=timeout) as client:
                return await client.post(url, files=files, data=data)
        except httpx.TimeoutException as e:
            logger.warning(f"Extraction timed out for {document.file_name}: {e}")
            raise ExtractionTimeoutError(str(e) or None)
        except httpx.RequestError as e:
            logger.warning(f"Extraction request failed for {document.file_name}: {e}")
            raise ExtractionNetworkError(str(e) or None)
