"""
Renewal lifecycle: the due list, assignment, status changes with their
audit trail, and follow-up activities.
"""

from datetime import date, timedelta
from typing import Any, Dict, List, Optional

import structlog

from claims_crm.config import settings
from claims_crm.db.database import execute, execute_one, transaction
from claims_crm.errors import ConflictError, NotFoundError, ValidationError
from claims_crm.models.renewals import (
    CONTACT_ACTIVITY_TYPES, TERMINAL_STATUSES,
    RenewalActivityCreate, RenewalCreate, RenewalStatus,
)

log = structlog.get_logger()

_RENEWAL_SELECT = """
    SELECT r.*, p.policy_number, p.end_date, p.policy_type, p.status AS policy_status,
           ph.name AS policy_holder_name, ph.email AS policy_holder_email,
           ph.phone AS policy_holder_phone, u.full_name AS assigned_to_name
    FROM policy_renewals r
    JOIN policies p ON r.policy_id = p.id
    JOIN policy_holders ph ON p.policy_holder_id = ph.id
    LEFT JOIN users u ON r.assigned_to = u.id
"""


def list_renewals_due(days: Optional[int] = None, status: Optional[RenewalStatus] = None,
                      today: Optional[date] = None) -> List[Dict[str, Any]]:
    """Renewals falling due within the window, overdue ones included."""
    days = settings.RENEWAL_WINDOW_DAYS if days is None else days
    cutoff = (today or date.today()) + timedelta(days=days)

    query = _RENEWAL_SELECT + " WHERE r.renewal_date <= :cutoff"
    params: Dict[str, Any] = {"cutoff": cutoff.isoformat()}
    if status:
        query += " AND r.status = :status"
        params["status"] = status.value
    query += " ORDER BY r.renewal_date ASC, r.id ASC"
    return execute(query, params)


def get_renewal(renewal_id: int) -> Dict[str, Any]:
    renewal = execute_one(_RENEWAL_SELECT + " WHERE r.id = :id", {"id": renewal_id})
    if not renewal:
        raise NotFoundError("Renewal not found")
    return {
        "renewal": renewal,
        "activities": list_activities(renewal_id),
        "history": execute(
            "SELECT * FROM renewal_status_history WHERE renewal_id = :id ORDER BY changed_at DESC, id DESC",
            {"id": renewal_id},
        ),
    }


def _require_user(user_id: int, conn=None):
    if not execute_one("SELECT id FROM users WHERE id = :id", {"id": user_id}, conn):
        raise ValidationError("User not found", details=[f"assigned_to: no user with id {user_id}"])


def create_renewal(data: RenewalCreate) -> Dict[str, Any]:
    with transaction() as conn:
        policy = execute_one(
            "SELECT id, premium_amount FROM policies WHERE id = :id", {"id": data.policy_id}, conn
        )
        if not policy:
            raise ValidationError("Policy not found", details=[f"policy_id: no policy with id {data.policy_id}"])
        if data.assigned_to is not None:
            _require_user(data.assigned_to, conn)

        original_premium = data.original_premium
        if original_premium is None:
            original_premium = policy["premium_amount"]

        renewal = execute_one(
            f"""
            INSERT INTO policy_renewals (
                policy_id, renewal_date, status, assigned_to, assigned_at,
                renewal_premium, original_premium, renewal_notes
            ) VALUES (
                :policy_id, :renewal_date, 'pending', :assigned_to,
                {"CURRENT_TIMESTAMP" if data.assigned_to is not None else "NULL"},
                :renewal_premium, :original_premium, :renewal_notes
            ) RETURNING *
            """,
            {
                "policy_id": data.policy_id,
                "renewal_date": data.renewal_date.isoformat(),
                "assigned_to": data.assigned_to,
                "renewal_premium": data.renewal_premium,
                "original_premium": original_premium,
                "renewal_notes": data.renewal_notes,
            },
            conn,
        )

    log.info("renewals.created", renewal_id=renewal["id"], policy_id=data.policy_id)
    return renewal


def assign_renewal(renewal_id: int, user_id: int) -> Dict[str, Any]:
    with transaction() as conn:
        _require_user(user_id, conn)
        renewal = execute_one(
            """
            UPDATE policy_renewals
            SET assigned_to = :user_id, assigned_at = CURRENT_TIMESTAMP, updated_at = CURRENT_TIMESTAMP
            WHERE id = :id
            RETURNING *
            """,
            {"id": renewal_id, "user_id": user_id},
            conn,
        )
        if not renewal:
            raise NotFoundError("Renewal not found")

    log.info("renewals.assigned", renewal_id=renewal_id, user_id=user_id)
    return renewal


def change_renewal_status(renewal_id: int, new_status: RenewalStatus,
                          changed_by: Optional[str] = None) -> Dict[str, Any]:
    """
    Move a renewal to ``new_status`` and append one history row.

    The update only applies if the status read at the start of the
    transaction is still current; a concurrent change raises ConflictError.
    """
    with transaction() as conn:
        current = execute_one(
            "SELECT status, conversion_status FROM policy_renewals WHERE id = :id", {"id": renewal_id}, conn
        )
        if not current:
            raise NotFoundError("Renewal not found")
        old_status = current["status"]

        conversion_status = current["conversion_status"]
        if new_status in TERMINAL_STATUSES:
            conversion_status = new_status.value

        renewal = execute_one(
            """
            UPDATE policy_renewals
            SET status = :new_status, conversion_status = :conversion_status, updated_at = CURRENT_TIMESTAMP
            WHERE id = :id AND status = :old_status
            RETURNING *
            """,
            {
                "id": renewal_id,
                "new_status": new_status.value,
                "old_status": old_status,
                "conversion_status": conversion_status,
            },
            conn,
        )
        if not renewal:
            raise ConflictError("Renewal status changed concurrently, reload and retry")

        history = execute_one(
            """
            INSERT INTO renewal_status_history (renewal_id, old_status, new_status, changed_by)
            VALUES (:renewal_id, :old_status, :new_status, :changed_by)
            RETURNING *
            """,
            {
                "renewal_id": renewal_id,
                "old_status": old_status,
                "new_status": new_status.value,
                "changed_by": changed_by,
            },
            conn,
        )

    log.info("renewals.status_changed", renewal_id=renewal_id, old_status=old_status,
             new_status=new_status.value, changed_by=changed_by)
    return {"renewal": renewal, "history": history}


def log_activity(renewal_id: int, activity: RenewalActivityCreate) -> Dict[str, Any]:
    is_contact = activity.activity_type.lower() in CONTACT_ACTIVITY_TYPES
    with transaction() as conn:
        if is_contact:
            touched = execute_one(
                """
                UPDATE policy_renewals
                SET contact_count = contact_count + 1, last_contact_date = :today,
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = :id
                RETURNING id
                """,
                {"id": renewal_id, "today": date.today().isoformat()},
                conn,
            )
        else:
            touched = execute_one("SELECT id FROM policy_renewals WHERE id = :id", {"id": renewal_id}, conn)
        if not touched:
            raise NotFoundError("Renewal not found")

        row = execute_one(
            """
            INSERT INTO renewal_activities (renewal_id, activity_type, subject, description, next_follow_up_date)
            VALUES (:renewal_id, :activity_type, :subject, :description, :next_follow_up_date)
            RETURNING *
            """,
            {
                "renewal_id": renewal_id,
                "activity_type": activity.activity_type,
                "subject": activity.subject,
                "description": activity.description,
                "next_follow_up_date": (
                    activity.next_follow_up_date.isoformat() if activity.next_follow_up_date else None
                ),
            },
            conn,
        )

    log.info("renewals.activity_logged", renewal_id=renewal_id, activity_type=activity.activity_type)
    return row


def list_activities(renewal_id: int) -> List[Dict[str, Any]]:
    if not execute_one("SELECT id FROM policy_renewals WHERE id = :id", {"id": renewal_id}):
        raise NotFoundError("Renewal not found")
    return execute(
        "SELECT * FROM renewal_activities WHERE renewal_id = :id ORDER BY activity_date DESC, id DESC",
        {"id": renewal_id},
    )
