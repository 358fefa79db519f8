"""
Tests for the extraction webhook client.

These tests verify:
1. A successful response is unwrapped and mapped onto the form
2. Each failure mode surfaces as its own error with a user message
3. Documents are validated before any request is made
4. Exactly one request is made per document
"""

import json

import httpx
import pytest

from policy_desk.core.config import Settings
from policy_desk.services.extraction import (
    ExtractionClient,
    ExtractionEmptyResponseError,
    ExtractionFileError,
    ExtractionHTTPError,
    ExtractionInvalidResponseError,
    ExtractionNetworkError,
    ExtractionNotConfiguredError,
    ExtractionTimeoutError,
    UploadedDocument,
)

WEBHOOK_URL = "http://extract.test/webhook/policy"


# =============================================================================
# FIXTURES
# =============================================================================


def pdf(name: str = "policy.pdf", content: bytes = b"%PDF-1.4 test") -> UploadedDocument:
    return UploadedDocument(file_name=name, content=content, content_type="application/pdf")


def json_response(payload, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code,
        content=json.dumps(payload).encode(),
        headers={"content-type": "application/json"},
    )


class Recorder:
    """MockTransport handler that remembers the requests it served."""

    def __init__(self, respond):
        self.respond = respond
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.respond(request)


def make_client(respond, **settings) -> tuple[ExtractionClient, Recorder]:
    recorder = Recorder(respond)
    http = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
    config = Settings(extraction_webhook_url=WEBHOOK_URL, **settings)
    return ExtractionClient(config, client=http), recorder


# =============================================================================
# SUCCESS
# =============================================================================


class TestExtractSuccess:
    """Tests for well-formed webhook responses."""

    async def test_wrapped_output_is_mapped(self):
        """An n8n-style ``[{"output": ...}]`` body should fill the form."""
        client, recorder = make_client(
            lambda request: json_response(
                [{"output": {"customer_name": "Kiran Rao", "policy_no": "P-77", "type": "Car"}}]
            )
        )

        result = await client.extract(pdf())

        assert result.has_data
        assert result.warning is None
        assert result.form.policyholder_name == "Kiran Rao"
        assert result.form.policy_number == "P-77"
        assert result.form.product_type == "FOUR WHEELER"
        assert result.form.pdf_file_name == "policy.pdf"
        assert len(recorder.requests) == 1

    async def test_request_is_multipart_with_metadata(self):
        client, recorder = make_client(lambda request: json_response({"data": {"name": "A"}}))

        await client.extract(pdf("renewal.pdf"))

        request = recorder.requests[0]
        assert request.method == "POST"
        assert str(request.url) == WEBHOOK_URL
        assert request.headers["content-type"].startswith("multipart/form-data")
        body = request.content
        assert b'name="pdf"; filename="renewal.pdf"' in body
        assert b'name="fileName"' in body
        assert b'name="fileSize"' in body
        assert b'name="timestamp"' in body

    async def test_no_meaningful_data_warns(self):
        """An object with nothing usable should come back empty with a warning."""
        client, _ = make_client(lambda request: json_response({"output": {"unrelated": "x"}}))

        result = await client.extract(pdf())

        assert not result.has_data
        assert "fill the form manually" in result.warning


# =============================================================================
# FAILURES
# =============================================================================


class TestExtractFailures:
    """Tests for every way the webhook can let us down."""

    async def test_not_configured(self):
        client = ExtractionClient(Settings(extraction_webhook_url=None))
        with pytest.raises(ExtractionNotConfiguredError):
            await client.extract(pdf())

    async def test_timeout(self):
        def respond(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client, recorder = make_client(respond)
        with pytest.raises(ExtractionTimeoutError) as exc:
            await client.extract(pdf())
        assert exc.value.user_message == "Request timeout - AI analysis took too long. Please try again."
        assert len(recorder.requests) == 1

    async def test_network_error(self):
        def respond(request):
            raise httpx.ConnectError("connection refused", request=request)

        client, _ = make_client(respond)
        with pytest.raises(ExtractionNetworkError) as exc:
            await client.extract(pdf())
        assert "Network error" in exc.value.user_message

    async def test_http_error_status(self):
        client, recorder = make_client(lambda request: httpx.Response(500, text="boom"))
        with pytest.raises(ExtractionHTTPError) as exc:
            await client.extract(pdf())
        assert exc.value.status_code == 500
        assert exc.value.user_message == "HTTP error 500: Internal Server Error"
        assert len(recorder.requests) == 1

    async def test_non_json_content_type(self):
        client, _ = make_client(
            lambda request: httpx.Response(200, text="<html></html>", headers={"content-type": "text/html"})
        )
        with pytest.raises(ExtractionInvalidResponseError) as exc:
            await client.extract(pdf())
        assert "text/html" in exc.value.detail

    async def test_empty_body(self):
        client, _ = make_client(
            lambda request: httpx.Response(200, content=b"  ", headers={"content-type": "application/json"})
        )
        with pytest.raises(ExtractionEmptyResponseError) as exc:
            await client.extract(pdf())
        assert exc.value.user_message == "Empty response from webhook"

    async def test_invalid_json(self):
        client, _ = make_client(
            lambda request: httpx.Response(200, content=b"{not json", headers={"content-type": "application/json"})
        )
        with pytest.raises(ExtractionInvalidResponseError) as exc:
            await client.extract(pdf())
        assert "Invalid JSON" in exc.value.detail

    async def test_no_object_in_response(self):
        client, _ = make_client(lambda request: json_response([]))
        with pytest.raises(ExtractionInvalidResponseError) as exc:
            await client.extract(pdf())
        assert "No valid data" in exc.value.detail


# =============================================================================
# VALIDATION
# =============================================================================


class TestDocumentValidation:
    """Tests for checks made before anything is uploaded."""

    async def test_non_pdf_is_rejected_without_request(self):
        client, recorder = make_client(lambda request: json_response({}))
        document = UploadedDocument(file_name="notes.txt", content=b"hi", content_type="text/plain")

        with pytest.raises(ExtractionFileError) as exc:
            await client.extract(document)

        assert "only PDF files" in exc.value.user_message
        assert recorder.requests == []

    async def test_pdf_extension_is_enough(self):
        client, _ = make_client(lambda request: json_response({"name": "A"}))
        document = UploadedDocument(file_name="scan.PDF", content=b"%PDF", content_type="application/octet-stream")

        result = await client.extract(document)
        assert result.form.policyholder_name == "A"

    async def test_empty_file_is_rejected(self):
        client, recorder = make_client(lambda request: json_response({}))
        with pytest.raises(ExtractionFileError):
            await client.extract(pdf(content=b""))
        assert recorder.requests == []

    async def test_oversized_file_is_rejected(self):
        client, recorder = make_client(
            lambda request: json_response({}),
            extraction_max_file_size=1024 * 1024,
        )
        with pytest.raises(ExtractionFileError) as exc:
            await client.extract(pdf(content=b"x" * (1024 * 1024 + 1)))
        assert "Maximum size is 1MB" in exc.value.user_message
        assert recorder.requests == []
