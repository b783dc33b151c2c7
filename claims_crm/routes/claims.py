"""
Claim lifecycle endpoints: claims, surveyor assignment, survey reports,
notes and document metadata.
"""

from typing import Any, Dict, Optional

import structlog
from fastapi import APIRouter, Request, Response
from pydantic import ValidationError as SchemaError
from starlette.concurrency import run_in_threadpool

from claims_crm.config import settings
from claims_crm.errors import AppError, ValidationError
from claims_crm.models.claims import (
    ClaimCreate, ClaimCreatedResponse, ClaimDetailResponse, ClaimListResponse, ClaimResponse,
    ClaimStatus, ClaimStatusUpdate, DocumentCreate, NoteCreate, SurveyorAssignment,
    SurveyResponse, SurveyUpsert, SurveyView,
)
from claims_crm.services import assignments, surveys
from claims_crm.services import claims as claims_service

log = structlog.get_logger()
router = APIRouter(prefix="/api/claims", tags=["claims"])


@router.get("", response_model=ClaimListResponse)
def list_claims(status: Optional[str] = None):
    """Latest 50 claims, optionally filtered by status (``all`` disables the filter)"""
    if status and status != "all" and status not in {s.value for s in ClaimStatus}:
        raise ValidationError(f"Unknown claim status '{status}'")
    return {"claims": claims_service.list_claims(status)}


@router.post("", response_model=ClaimCreatedResponse)
def create_claim(body: ClaimCreate):
    """
    File a new claim against a policy.

    The claim always starts as ``pending`` and receives a ``CLM-YYMMDD-###``
    number. A database failure fails the request; nothing is fabricated.
    """
    try:
        log.info("claims.create_start", policy_id=body.policy_id)
        claim = claims_service.create_claim(body)
        log.info("claims.create_complete", claim_id=claim["id"])
        return {"success": True, "claim": claim, "message": "Claim created successfully"}
    except AppError:
        raise
    except Exception as e:
        log.error("claims.create_failed", error=str(e))
        raise


@router.get("/{claim_id}", response_model=ClaimDetailResponse)
def get_claim(claim_id: int):
    """Claim with its policy, holder and vehicle plus documents, notes, survey and payment lists"""
    return claims_service.get_claim_detail(claim_id)


@router.put("/{claim_id}", response_model=ClaimResponse)
def update_claim_status(claim_id: int, body: ClaimStatusUpdate):
    try:
        log.info("claims.status_start", claim_id=claim_id, status=body.status.value)
        claim = claims_service.update_claim_status(claim_id, body.status, body.approved_amount)
        return {"success": True, "claim": claim}
    except AppError:
        raise
    except Exception as e:
        log.error("claims.status_failed", claim_id=claim_id, error=str(e))
        raise


# =========================
# SURVEYOR ASSIGNMENT
# =========================
@router.get("/{claim_id}/assign-surveyor")
def get_assignment(claim_id: int) -> Dict[str, Any]:
    return assignments.get_assignment(claim_id)


@router.post("/{claim_id}/assign-surveyor")
def assign_surveyor(claim_id: int, body: SurveyorAssignment) -> Dict[str, Any]:
    """Replace whatever surveyor the claim had with ``surveyorId``"""
    try:
        log.info("assignments.assign_start", claim_id=claim_id, surveyor_id=body.surveyor_id)
        assignment = assignments.assign_surveyor(claim_id, body.surveyor_id)
        return {"success": True, "assignment": assignment}
    except AppError:
        raise
    except Exception as e:
        log.error("assignments.assign_failed", claim_id=claim_id, error=str(e))
        raise


@router.delete("/{claim_id}/assign-surveyor")
def remove_assignment(claim_id: int) -> Dict[str, Any]:
    assignments.remove_assignment(claim_id)
    return {"success": True}


# =========================
# SURVEY
# =========================
@router.get("/{claim_id}/survey", response_model=SurveyView)
def get_survey(claim_id: int):
    return surveys.get_survey(claim_id)


@router.post("/{claim_id}/survey", response_model=SurveyResponse)
def save_survey(claim_id: int, body: SurveyUpsert):
    """
    Create or update the claim's survey.

    A ``completed`` survey moves the claim to ``surveyed``; both writes
    commit together or not at all.
    """
    try:
        log.info("surveys.save_start", claim_id=claim_id, status=body.status.value)
        survey = surveys.upsert_survey(claim_id, body)
        return {"success": True, "survey": survey}
    except AppError:
        raise
    except Exception as e:
        log.error("surveys.save_failed", claim_id=claim_id, error=str(e))
        raise


@router.delete("/{claim_id}/survey")
def delete_survey(claim_id: int) -> Dict[str, Any]:
    surveys.delete_survey(claim_id)
    return {"success": True}


# =========================
# NOTES
# =========================
@router.post("/{claim_id}/notes")
def add_note(claim_id: int, body: NoteCreate) -> Dict[str, Any]:
    note = claims_service.add_note(claim_id, body)
    log.info("claims.note_added", claim_id=claim_id, note_id=note["id"])
    return {"success": True, "note": note}


# =========================
# DOCUMENTS
# =========================
async def _document_from_form(claim_id: int, request: Request) -> DocumentCreate:
    form = await request.form()
    upload = form.get("file")
    if upload is None or isinstance(upload, str):
        raise ValidationError("No file provided")

    size = len(await upload.read())
    if size > settings.MAX_UPLOAD_MB * 1024 * 1024:
        raise ValidationError(f"File exceeds the {settings.MAX_UPLOAD_MB} MB upload limit")

    file_name = upload.filename or "upload"
    return DocumentCreate(
        document_type=form.get("documentType") or None,
        file_name=file_name,
        file_path=claims_service.upload_path(claim_id, file_name),
        file_size=size,
        mime_type=upload.content_type,
    )


async def _document_from_json(request: Request) -> DocumentCreate:
    try:
        body = await request.json()
    except ValueError:
        raise ValidationError("Invalid request format. Expected multipart/form-data or valid JSON")
    try:
        return DocumentCreate.model_validate(body)
    except SchemaError as e:
        details = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise ValidationError("Validation failed", details=details)


@router.post("/{claim_id}/documents")
async def add_document(claim_id: int, request: Request) -> Dict[str, Any]:
    """
    Record document metadata for a claim.

    Accepts a multipart upload (``file``, ``documentType``) or a JSON body
    (``documentType``, ``fileName``, ``filePath``). Uploaded bytes are
    measured and discarded.
    """
    if request.headers.get("content-type", "").startswith("multipart/form-data"):
        payload = await _document_from_form(claim_id, request)
    else:
        payload = await _document_from_json(request)

    log.info("documents.add_start", claim_id=claim_id, file_name=payload.file_name, file_size=payload.file_size)
    document = await run_in_threadpool(claims_service.add_document, claim_id, payload)
    return {"success": True, "document": document}


@router.get("/{claim_id}/documents")
def list_documents(claim_id: int) -> Dict[str, Any]:
    return {"success": True, "documents": claims_service.list_documents(claim_id)}


def _placeholder_response(doc: Dict[str, Any]) -> Response:
    # header values must stay latin-1 safe
    file_name = doc["file_name"].encode("ascii", "ignore").decode("ascii").replace('"', "") or "document"
    return Response(
        content=claims_service.placeholder_content(doc),
        media_type="text/plain",
        headers={
            "Content-Disposition": f'attachment; filename="{file_name}"',
            "X-Content-Source": "placeholder",
        },
    )


@router.get("/{claim_id}/documents/{document_id}")
def get_document(claim_id: int, document_id: int) -> Response:
    return _placeholder_response(claims_service.get_document(claim_id, document_id))


@router.get("/{claim_id}/documents/{document_id}/download")
def download_document(claim_id: int, document_id: int) -> Response:
    """Placeholder text standing in for the file; bytes are never stored"""
    return _placeholder_response(claims_service.get_document(claim_id, document_id))


@router.delete("/{claim_id}/documents/{document_id}")
def delete_document(claim_id: int, document_id: int) -> Dict[str, Any]:
    claims_service.delete_document(claim_id, document_id)
    log.info("documents.deleted", claim_id=claim_id, document_id=document_id)
    return {"success": True}
