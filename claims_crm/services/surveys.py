from typing import Any, Dict, Optional

import structlog
from sqlalchemy.engine import Connection

from claims_crm.db.database import execute_one, transaction
from claims_crm.errors import NotFoundError, ValidationError
from claims_crm.models.claims import ClaimStatus, SurveyStatus, SurveyUpsert
from claims_crm.services.claims import lock_claim

log = structlog.get_logger()


def _present(survey: Dict[str, Any]) -> Dict[str, Any]:
    """Expose storage columns under the names the survey form uses."""
    return {
        **survey,
        "survey_location": survey.get("location"),
        "survey_report": survey.get("report"),
        "survey_amount": survey.get("amount"),
    }


def mark_claim_surveyed(claim_id: int, conn: Connection):
    execute_one(
        "UPDATE claims SET status = :status, updated_at = CURRENT_TIMESTAMP WHERE id = :id RETURNING id",
        {"id": claim_id, "status": ClaimStatus.SURVEYED.value},
        conn,
    )


def upsert_survey(claim_id: int, data: SurveyUpsert) -> Dict[str, Any]:
    """
    Create or replace the claim's survey report.

    UNIQUE(claim_id) is the conflict target, and completing the survey moves
    the claim to ``surveyed`` inside the same transaction.
    """
    with transaction() as conn:
        lock_claim(claim_id, conn)

        surveyor = execute_one("SELECT id FROM surveyors WHERE id = :id", {"id": data.surveyor_id}, conn)
        if not surveyor:
            raise ValidationError("Surveyor not found", details=[f"surveyorId: no surveyor with id {data.surveyor_id}"])

        survey = execute_one(
            """
            INSERT INTO claim_surveys (claim_id, surveyor_id, survey_date, location, report, amount, status)
            VALUES (:claim_id, :surveyor_id, :survey_date, :location, :report, :amount, :status)
            ON CONFLICT (claim_id) DO UPDATE SET
                surveyor_id = excluded.surveyor_id,
                survey_date = excluded.survey_date,
                location = excluded.location,
                report = excluded.report,
                amount = excluded.amount,
                status = excluded.status,
                updated_at = CURRENT_TIMESTAMP
            RETURNING *
            """,
            {
                "claim_id": claim_id,
                "surveyor_id": data.surveyor_id,
                "survey_date": data.survey_date.isoformat(),
                "location": data.survey_location,
                "report": data.survey_report,
                "amount": data.survey_amount,
                "status": data.status.value,
            },
            conn,
        )

        if data.status == SurveyStatus.COMPLETED:
            mark_claim_surveyed(claim_id, conn)

    log.info("surveys.saved", claim_id=claim_id, survey_id=survey["id"], status=data.status.value)
    return _present(survey)


def _assigned_surveyor(claim_id: int) -> Optional[Dict[str, Any]]:
    assignment = execute_one(
        """
        SELECT cs.surveyor_id, s.name AS surveyor_name,
               COALESCE(s.specialization, 'General') AS surveyor_specialization
        FROM claim_surveyors cs
        JOIN surveyors s ON cs.surveyor_id = s.id
        WHERE cs.claim_id = :claim_id
        """,
        {"claim_id": claim_id},
    )
    if not assignment:
        return None
    return {
        "id": assignment["surveyor_id"],
        "name": assignment["surveyor_name"],
        "specialization": assignment["surveyor_specialization"],
    }


def get_survey(claim_id: int) -> Dict[str, Any]:
    survey = execute_one(
        """
        SELECT cs.*, s.name AS surveyor_name,
               COALESCE(s.specialization, 'General') AS surveyor_specialization
        FROM claim_surveys cs
        LEFT JOIN surveyors s ON cs.surveyor_id = s.id
        WHERE cs.claim_id = :claim_id
        """,
        {"claim_id": claim_id},
    )
    if survey and survey["surveyor_id"] is not None:
        return {
            "survey": _present(survey),
            "assignedSurveyor": {
                "id": survey["surveyor_id"],
                "name": survey["surveyor_name"],
                "specialization": survey["surveyor_specialization"],
            },
        }

    # No report yet, or its author was deleted; fall back to whoever is assigned
    return {
        "survey": _present(survey) if survey else None,
        "assignedSurveyor": _assigned_surveyor(claim_id),
    }


def delete_survey(claim_id: int):
    removed = execute_one("DELETE FROM claim_surveys WHERE claim_id = :claim_id RETURNING id", {"claim_id": claim_id})
    if not removed:
        raise NotFoundError("Survey not found")
    log.info("surveys.deleted", claim_id=claim_id, survey_id=removed["id"])
