from typing import Any, Dict

import structlog

from claims_crm.db.database import execute, execute_one, transaction
from claims_crm.errors import NotFoundError
from claims_crm.services.claims import lock_claim

log = structlog.get_logger()


def assign_surveyor(claim_id: int, surveyor_id: int) -> Dict[str, Any]:
    """
    Replace the claim's surveyor assignment.

    Runs in one transaction holding the claim row lock, so a claim never ends
    up with zero or two assignments when callers race or a statement fails.
    """
    with transaction() as conn:
        lock_claim(claim_id, conn)

        surveyor = execute_one("SELECT id FROM surveyors WHERE id = :id", {"id": surveyor_id}, conn)
        if not surveyor:
            raise NotFoundError("Surveyor not found")

        execute("DELETE FROM claim_surveyors WHERE claim_id = :claim_id", {"claim_id": claim_id}, conn)
        assignment = execute_one(
            """
            INSERT INTO claim_surveyors (claim_id, surveyor_id)
            VALUES (:claim_id, :surveyor_id)
            RETURNING *
            """,
            {"claim_id": claim_id, "surveyor_id": surveyor_id},
            conn,
        )

    log.info("assignments.surveyor_assigned", claim_id=claim_id, surveyor_id=surveyor_id)
    return assignment


def get_assignment(claim_id: int) -> Dict[str, Any]:
    assignment = execute_one(
        """
        SELECT cs.*, s.name AS surveyor_name, s.email AS surveyor_email, s.phone AS surveyor_phone
        FROM claim_surveyors cs
        JOIN surveyors s ON cs.surveyor_id = s.id
        WHERE cs.claim_id = :claim_id
        ORDER BY cs.assigned_at DESC, cs.id DESC
        LIMIT 1
        """,
        {"claim_id": claim_id},
    )
    if not assignment:
        return {"assigned": False}
    return {"assigned": True, "assignment": assignment}


def remove_assignment(claim_id: int) -> Dict[str, Any]:
    removed = execute_one(
        "DELETE FROM claim_surveyors WHERE claim_id = :claim_id RETURNING id, surveyor_id",
        {"claim_id": claim_id},
    )
    if not removed:
        raise NotFoundError("No assignment found")
    log.info("assignments.surveyor_removed", claim_id=claim_id, surveyor_id=removed["surveyor_id"])
    return removed
