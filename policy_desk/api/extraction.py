"""
Extraction API Routes: PDF auto-fill for the add-policy form.

- POST /extraction/extract: one PDF in, form data out
- POST /extraction/sessions: start a multi-file session; only the first
  file is extracted straight away
- POST /extraction/sessions/{id}/save: save the reviewed form as a policy,
  then the next file is extracted
- POST /extraction/sessions/{id}/skip, GET and DELETE /extraction/sessions/{id}
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status
from pydantic import BaseModel

from ..core import SessionDep, require_page_access
from ..core.dependencies import CurrentActor
from ..schemas import (
    AutoFillSessionState,
    ExtractionResponse,
    PolicyCreate,
    PolicyFormData,
    PolicyResponse,
)
from ..services.autofill import (
    AutoFillFinishedError,
    AutoFillRegistry,
    AutoFillSession,
    AutoFillSessionNotFoundError,
    AutoFillValidationError,
)
from ..services.extraction import (
    ExtractionClient,
    ExtractionError,
    ExtractionFileError,
    ExtractionNotConfiguredError,
    ExtractionTimeoutError,
    UploadedDocument,
)
from ..services.policies import DuplicatePolicyNumberError
from ..services.stores import PolicyStore

router = APIRouter(prefix="/extraction", tags=["extraction"])

AddPolicyPage = Annotated[CurrentActor, Depends(require_page_access("/add-policy"))]


# =============================================================================
# REQUEST/RESPONSE SCHEMAS
# =============================================================================


class AutoFillSaveResponse(BaseModel):
    """The saved policy and where the session stands afterwards."""
    policy: PolicyResponse
    session: AutoFillSessionState


# =============================================================================
# DEPENDENCIES
# =============================================================================


def get_extraction_client() -> ExtractionClient:
    return ExtractionClient()


def get_autofill_registry(request: Request) -> AutoFillRegistry:
    return request.app.state.autofill_registry


ExtractionClientDep = Annotated[ExtractionClient, Depends(get_extraction_client)]
AutoFillRegistryDep = Annotated[AutoFillRegistry, Depends(get_autofill_registry)]


async def _read_upload(upload: UploadFile) -> UploadedDocument:
    return UploadedDocument(
        file_name=upload.filename or "document.pdf",
        content=await upload.read(),
        content_type=upload.content_type,
    )


def _extraction_error(e: ExtractionError) -> HTTPException:
    if isinstance(e, ExtractionFileError):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(e, ExtractionNotConfiguredError):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif isinstance(e, ExtractionTimeoutError):
        code = status.HTTP_504_GATEWAY_TIMEOUT
    else:
        code = status.HTTP_502_BAD_GATEWAY
    return HTTPException(status_code=code, detail=e.user_message)


def _get_session(registry: AutoFillRegistry, session_id: UUID, current: CurrentActor) -> AutoFillSession:
    try:
        return registry.get(session_id, current.account_id)
    except AutoFillSessionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


# =============================================================================
# ENDPOINTS
# =============================================================================


@router.post(
    "/extract",
    response_model=ExtractionResponse,
    summary="Extract policy fields from one PDF",
)
async def extract(
    current: AddPolicyPage,
    extractor: ExtractionClientDep,
    file: UploadFile = File(...),
):
    document = await _read_upload(file)
    try:
        result = await extractor.extract(document)
    except ExtractionError as e:
        raise _extraction_error(e)
    return ExtractionResponse(form=result.form, has_data=result.has_data, warning=result.warning)


@router.post(
    "/sessions",
    response_model=AutoFillSessionState,
    status_code=status.HTTP_201_CREATED,
    summary="Start a multi-file auto-fill session",
    description="""
    Files that are not PDFs, are empty or are too large are listed under
    ``rejected``. Only the first remaining file is extracted now; each
    later file is extracted after the previous one is saved or skipped.
    Starting a new session replaces the caller's previous one.
    """,
)
async def create_session(
    current: AddPolicyPage,
    extractor: ExtractionClientDep,
    registry: AutoFillRegistryDep,
    files: list[UploadFile] = File(...),
):
    documents = [await _read_upload(upload) for upload in files]
    autofill = AutoFillSession(extractor=extractor, documents=documents)
    try:
        await autofill.start()
    except AutoFillValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    registry.add(current.account_id, autofill)
    return autofill.state()


@router.get("/sessions/{session_id}", response_model=AutoFillSessionState, summary="Session state")
async def get_session_state(session_id: UUID, current: AddPolicyPage, registry: AutoFillRegistryDep):
    return _get_session(registry, session_id, current).state()


@router.post(
    "/sessions/{session_id}/save",
    response_model=AutoFillSaveResponse,
    summary="Save the current form and move to the next file",
)
async def save_current(
    session_id: UUID,
    form: PolicyFormData,
    current: AddPolicyPage,
    registry: AutoFillRegistryDep,
    session: SessionDep,
):
    autofill = _get_session(registry, session_id, current)
    store = PolicyStore(session, current.actor)

    async def save_policy(data: PolicyCreate):
        policy = await store.add(data)
        # The policy is committed before the session moves to the next file
        await session.commit()
        return policy

    try:
        policy = await autofill.save(form, save_policy)
    except AutoFillValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except (AutoFillFinishedError, DuplicatePolicyNumberError) as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return AutoFillSaveResponse(
        policy=PolicyResponse.model_validate(policy),
        session=autofill.state(),
    )


@router.post(
    "/sessions/{session_id}/skip",
    response_model=AutoFillSessionState,
    summary="Skip the current file",
)
async def skip_current(session_id: UUID, current: AddPolicyPage, registry: AutoFillRegistryDep):
    autofill = _get_session(registry, session_id, current)
    try:
        await autofill.skip()
    except AutoFillFinishedError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return autofill.state()


@router.delete(
    "/sessions/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Discard a session",
)
async def discard_session(session_id: UUID, current: AddPolicyPage, registry: AutoFillRegistryDep):
    _get_session(registry, session_id, current)
    registry.discard(session_id, current.account_id)
