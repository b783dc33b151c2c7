"""
Claim lifecycle: creation, listing, the detail aggregate, status changes,
notes and document metadata.

Claim-scoped writes that touch more than one row start with ``lock_claim()``,
a conditional UPDATE that takes the claim's row lock for the rest of the
transaction and doubles as the existence check.
"""

import time
from datetime import date
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy.engine import Connection

from claims_crm.db.database import execute, execute_one, transaction
from claims_crm.db.numbering import next_claim_number, with_number_retry
from claims_crm.errors import NotFoundError, ValidationError
from claims_crm.models.claims import ClaimCreate, ClaimStatus, DocumentCreate, NoteCreate

log = structlog.get_logger()

CLAIM_LIST_LIMIT = 50


def lock_claim(claim_id: int, conn: Connection) -> Dict[str, Any]:
    """Touch the claim row so concurrent writers on the same claim serialize."""
    row = execute_one(
        "UPDATE claims SET updated_at = CURRENT_TIMESTAMP WHERE id = :id RETURNING id, status",
        {"id": claim_id},
        conn,
    )
    if not row:
        raise NotFoundError("Claim not found")
    return row


def create_claim(data: ClaimCreate) -> Dict[str, Any]:
    policy = execute_one("SELECT id FROM policies WHERE id = :id", {"id": data.policy_id})
    if not policy:
        raise ValidationError("Policy not found", details=[f"policyId: no policy with id {data.policy_id}"])

    params = {
        "policy_id": data.policy_id,
        "incident_date": data.incident_date.isoformat(),
        "report_date": (data.report_date or date.today()).isoformat(),
        "incident_location": data.incident_location,
        "incident_description": data.incident_description,
        "damage_description": data.damage_description,
        "estimated_amount": data.estimated_amount,
    }

    def _insert():
        with transaction() as conn:
            claim_number = next_claim_number(conn)
            return execute_one(
                """
                INSERT INTO claims (
                    claim_number, policy_id, incident_date, report_date,
                    incident_location, incident_description, damage_description,
                    estimated_amount, status
                ) VALUES (
                    :claim_number, :policy_id, :incident_date, :report_date,
                    :incident_location, :incident_description, :damage_description,
                    :estimated_amount, 'pending'
                ) RETURNING *
                """,
                {**params, "claim_number": claim_number},
                conn,
            )

    claim = with_number_retry(_insert, "claim")
    log.info("claims.created", claim_id=claim["id"], claim_number=claim["claim_number"])
    return claim


def list_claims(status: Optional[str] = None) -> List[Dict[str, Any]]:
    query = """
        SELECT c.id, c.claim_number, c.policy_id, p.policy_number,
               ph.name AS claimant,
               c.incident_date, c.report_date, c.estimated_amount,
               c.approved_amount, c.status, c.created_at
        FROM claims c
        LEFT JOIN policies p ON c.policy_id = p.id
        LEFT JOIN policy_holders ph ON p.policy_holder_id = ph.id
    """
    params: Dict[str, Any] = {"limit": CLAIM_LIST_LIMIT}
    if status and status != "all":
        query += " WHERE c.status = :status"
        params["status"] = status
    query += " ORDER BY c.created_at DESC, c.id DESC LIMIT :limit"
    return execute(query, params)


def get_claim_detail(claim_id: int) -> Dict[str, Any]:
    claim = execute_one(
        """
        SELECT c.*, p.policy_number, p.policy_type,
               ph.id AS policy_holder_id, ph.name AS policy_holder_name,
               ph.email AS policy_holder_email, ph.phone AS policy_holder_phone,
               v.make, v.model, v.registration
        FROM claims c
        LEFT JOIN policies p ON c.policy_id = p.id
        LEFT JOIN policy_holders ph ON p.policy_holder_id = ph.id
        LEFT JOIN vehicles v ON p.vehicle_id = v.id
        WHERE c.id = :id
        """,
        {"id": claim_id},
    )
    if not claim:
        raise NotFoundError("Claim not found")

    params = {"id": claim_id}
    documents = execute(
        "SELECT * FROM documents WHERE claim_id = :id ORDER BY upload_date DESC, id DESC", params
    )
    notes = execute(
        "SELECT * FROM claim_notes WHERE claim_id = :id ORDER BY created_at DESC, id DESC", params
    )
    survey = execute(
        """
        SELECT cs.*, s.name AS surveyor_name
        FROM claim_surveys cs
        LEFT JOIN surveyors s ON cs.surveyor_id = s.id
        WHERE cs.claim_id = :id
        """,
        params,
    )
    payment = execute("SELECT * FROM payments WHERE claim_id = :id ORDER BY id", params)

    return {
        "claim": claim,
        "documents": documents,
        "notes": notes,
        "survey": survey,
        "payment": payment,
    }


def update_claim_status(claim_id: int, status: ClaimStatus, approved_amount: Optional[float] = None) -> Dict[str, Any]:
    claim = execute_one(
        """
        UPDATE claims
        SET status = :status,
            approved_amount = :approved_amount,
            updated_at = CURRENT_TIMESTAMP
        WHERE id = :id
        RETURNING *
        """,
        {"id": claim_id, "status": status.value, "approved_amount": approved_amount},
    )
    if not claim:
        raise NotFoundError("Claim not found")
    log.info("claims.status_changed", claim_id=claim_id, status=status.value)
    return claim


# =========================
# NOTES
# =========================
def add_note(claim_id: int, note: NoteCreate) -> Dict[str, Any]:
    with transaction() as conn:
        lock_claim(claim_id, conn)
        return execute_one(
            """
            INSERT INTO claim_notes (claim_id, note_text, created_by)
            VALUES (:claim_id, :note_text, :created_by)
            RETURNING *
            """,
            {"claim_id": claim_id, "note_text": note.note_text, "created_by": note.created_by},
            conn,
        )


# =========================
# DOCUMENTS
# =========================
def upload_path(claim_id: int, file_name: str) -> str:
    """Synthetic storage path; no bytes are written anywhere."""
    return f"/uploads/{claim_id}/{int(time.time() * 1000)}-{file_name}"


def add_document(claim_id: int, doc: DocumentCreate) -> Dict[str, Any]:
    with transaction() as conn:
        lock_claim(claim_id, conn)
        return execute_one(
            """
            INSERT INTO documents (claim_id, document_type, file_name, file_path, file_size, mime_type)
            VALUES (:claim_id, :document_type, :file_name, :file_path, :file_size, :mime_type)
            RETURNING *
            """,
            {
                "claim_id": claim_id,
                "document_type": doc.document_type,
                "file_name": doc.file_name,
                "file_path": doc.file_path or upload_path(claim_id, doc.file_name),
                "file_size": doc.file_size,
                "mime_type": doc.mime_type,
            },
            conn,
        )


def list_documents(claim_id: int) -> List[Dict[str, Any]]:
    if not execute_one("SELECT id FROM claims WHERE id = :id", {"id": claim_id}):
        raise NotFoundError("Claim not found")
    return execute(
        "SELECT * FROM documents WHERE claim_id = :id ORDER BY upload_date DESC, id DESC",
        {"id": claim_id},
    )


def get_document(claim_id: int, document_id: int) -> Dict[str, Any]:
    doc = execute_one(
        "SELECT * FROM documents WHERE id = :doc_id AND claim_id = :claim_id",
        {"doc_id": document_id, "claim_id": claim_id},
    )
    if not doc:
        raise NotFoundError("Document not found")
    return doc


def delete_document(claim_id: int, document_id: int) -> Dict[str, Any]:
    doc = execute_one(
        "DELETE FROM documents WHERE id = :doc_id AND claim_id = :claim_id RETURNING id",
        {"doc_id": document_id, "claim_id": claim_id},
    )
    if not doc:
        raise NotFoundError("Document not found")
    return doc


def placeholder_content(doc: Dict[str, Any]) -> str:
    return (
        f"This is a placeholder for document: {doc['file_name']}\n"
        f"Type: {doc.get('document_type') or 'Unknown'}\n"
        f"Path: {doc['file_path']}\n"
        f"Size: {doc.get('file_size') or 0} bytes\n"
        f"ID: {doc['id']}\n"
        "\n"
        "Document bytes are not stored by this service.\n"
    )
