from typing import Any, Dict, List

import structlog

from claims_crm.db.database import execute, execute_one, transaction
from claims_crm.errors import NotFoundError, ValidationError
from claims_crm.models.directory import SurveyorCreate, SurveyorUpdate

log = structlog.get_logger()


def _params(data: SurveyorCreate) -> Dict[str, Any]:
    return {
        "name": data.name,
        "email": data.email,
        "phone": data.phone,
        "specialization": data.specialization,
        "license_number": data.license_number,
        "years_experience": data.years_experience,
        "address": data.address,
        "notes": data.notes,
    }


def list_surveyors() -> List[Dict[str, Any]]:
    return execute(
        """
        SELECT s.*,
               (SELECT COUNT(*) FROM claim_surveyors cs WHERE cs.surveyor_id = s.id) AS assigned_claims
        FROM surveyors s
        ORDER BY s.name ASC, s.id ASC
        """
    )


def create_surveyor(data: SurveyorCreate) -> Dict[str, Any]:
    surveyor = execute_one(
        """
        INSERT INTO surveyors (name, email, phone, specialization, license_number, years_experience, address, notes)
        VALUES (:name, :email, :phone, :specialization, :license_number, :years_experience, :address, :notes)
        RETURNING *
        """,
        _params(data),
    )
    log.info("surveyors.created", surveyor_id=surveyor["id"])
    return surveyor


def get_surveyor(surveyor_id: int) -> Dict[str, Any]:
    surveyor = execute_one("SELECT * FROM surveyors WHERE id = :id", {"id": surveyor_id})
    if not surveyor:
        raise NotFoundError("Surveyor not found")
    claims = execute(
        """
        SELECT c.id, c.claim_number, c.status, c.incident_date, c.estimated_amount, cs.assigned_at
        FROM claims c
        JOIN claim_surveyors cs ON c.id = cs.claim_id
        WHERE cs.surveyor_id = :id
        ORDER BY cs.assigned_at DESC, c.id DESC
        """,
        {"id": surveyor_id},
    )
    return {"surveyor": surveyor, "claims": claims}


def update_surveyor(surveyor_id: int, data: SurveyorUpdate) -> Dict[str, Any]:
    surveyor = execute_one(
        """
        UPDATE surveyors
        SET name = :name, email = :email, phone = :phone, specialization = :specialization,
            license_number = :license_number, years_experience = :years_experience,
            address = :address, notes = :notes, updated_at = CURRENT_TIMESTAMP
        WHERE id = :id
        RETURNING *
        """,
        {**_params(data), "id": surveyor_id},
    )
    if not surveyor:
        raise NotFoundError("Surveyor not found")
    return surveyor


def delete_surveyor(surveyor_id: int):
    """
    Hard delete, refused while the surveyor still holds claim assignments.

    Survey reports the surveyor wrote stay on their claims with the author
    cleared, in the same transaction as the delete.
    """
    with transaction() as conn:
        row = execute_one(
            "SELECT COUNT(*) AS total FROM claim_surveyors WHERE surveyor_id = :id", {"id": surveyor_id}, conn
        )
        if row["total"] > 0:
            raise ValidationError("Cannot delete surveyor with assigned claims", details={"assignedClaims": row["total"]})

        orphaned = execute(
            "UPDATE claim_surveys SET surveyor_id = NULL, updated_at = CURRENT_TIMESTAMP "
            "WHERE surveyor_id = :id RETURNING id",
            {"id": surveyor_id},
            conn,
        )
        removed = execute_one("DELETE FROM surveyors WHERE id = :id RETURNING id", {"id": surveyor_id}, conn)
        if not removed:
            raise NotFoundError("Surveyor not found")

    log.info("surveyors.deleted", surveyor_id=surveyor_id, surveys_detached=len(orphaned))
