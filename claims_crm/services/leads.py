"""
Sales leads and the lead sources they come from.
"""

import math
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy.engine import Connection

from claims_crm.db.database import coerce_bools, contains_pattern, execute, execute_one, transaction
from claims_crm.db.numbering import next_lead_number, with_number_retry
from claims_crm.errors import ConflictError, NotFoundError, ValidationError
from claims_crm.models.leads import LeadCreate, LeadSourceCreate, LeadStatus, LeadUpdate
from claims_crm.product_catalog import validate_product

log = structlog.get_logger()

MAX_PAGE_SIZE = 100

DEFAULT_LEAD_SOURCES = [
    ("Website", "Leads from company website"),
    ("Social Media", "Leads from social media platforms"),
    ("Referral", "Leads from customer referrals"),
    ("Cold Calling", "Leads from cold calling campaigns"),
    ("Email Marketing", "Leads from email campaigns"),
    ("Trade Shows", "Leads from trade shows and events"),
    ("Online Ads", "Leads from online advertising"),
    ("Walk-in", "Walk-in customers"),
]

_LEAD_SELECT = """
    SELECT l.*, ls.name AS source_name, u.full_name AS assigned_user_name
    FROM leads l
    LEFT JOIN lead_sources ls ON l.source_id = ls.id
    LEFT JOIN users u ON l.assigned_to = u.id
"""


def _check_references(source_id: Optional[int], assigned_to: Optional[int], conn: Optional[Connection] = None):
    errors = []
    if source_id is not None and not execute_one(
        "SELECT id FROM lead_sources WHERE id = :id", {"id": source_id}, conn
    ):
        errors.append("Invalid source_id. Lead source does not exist.")
    if assigned_to is not None and not execute_one(
        "SELECT id FROM users WHERE id = :id", {"id": assigned_to}, conn
    ):
        errors.append("Invalid assigned_to. User does not exist.")
    if errors:
        raise ValidationError("Validation failed", details=errors)


def _check_email_free(email: Optional[str], exclude_id: Optional[int] = None, conn: Optional[Connection] = None):
    if not email:
        return
    existing = execute_one(
        "SELECT id FROM leads WHERE LOWER(email) = LOWER(:email) AND id != :exclude_id",
        {"email": email, "exclude_id": exclude_id or 0},
        conn,
    )
    if existing:
        raise ConflictError("Email already exists")


def list_leads(page: int = 1, limit: int = 10, status: Optional[LeadStatus] = None,
               assigned_to: Optional[int] = None, source_id: Optional[int] = None,
               search: Optional[str] = None) -> Dict[str, Any]:
    limit = min(limit, MAX_PAGE_SIZE)

    conditions = []
    params: Dict[str, Any] = {}
    if status:
        conditions.append("l.status = :status")
        params["status"] = status.value
    if assigned_to is not None:
        conditions.append("l.assigned_to = :assigned_to")
        params["assigned_to"] = assigned_to
    if source_id is not None:
        conditions.append("l.source_id = :source_id")
        params["source_id"] = source_id
    if search:
        conditions.append(
            "(LOWER(l.first_name) LIKE LOWER(:search) ESCAPE '\\' OR LOWER(l.last_name) LIKE LOWER(:search) ESCAPE '\\'"
            " OR LOWER(l.company_name) LIKE LOWER(:search) ESCAPE '\\' OR LOWER(l.email) LIKE LOWER(:search) ESCAPE '\\'"
            " OR LOWER(l.lead_number) LIKE LOWER(:search) ESCAPE '\\')"
        )
        params["search"] = contains_pattern(search)
    where = (" WHERE " + " AND ".join(conditions)) if conditions else ""

    total = execute_one("SELECT COUNT(*) AS total FROM leads l" + where, params)["total"]
    rows = execute(
        _LEAD_SELECT + where + " ORDER BY l.created_at DESC, l.id DESC LIMIT :limit OFFSET :offset",
        {**params, "limit": limit, "offset": (page - 1) * limit},
    )
    total_pages = math.ceil(total / limit) if total else 0
    return {
        "data": rows,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": total_pages,
            "hasNext": page < total_pages,
            "hasPrev": page > 1,
        },
    }


def create_lead(data: LeadCreate) -> Dict[str, Any]:
    _check_email_free(data.email)
    _check_references(data.source_id, data.assigned_to)

    params = data.model_dump(mode="json")

    def _insert():
        with transaction() as conn:
            return execute_one(
                f"""
                INSERT INTO leads (
                    lead_number, source_id, first_name, last_name, email, phone,
                    company_name, industry, lead_value, status, priority,
                    product_category, product_subtype, assigned_to, assigned_at,
                    expected_close_date, notes
                ) VALUES (
                    :lead_number, :source_id, :first_name, :last_name, :email, :phone,
                    :company_name, :industry, :lead_value, :status, :priority,
                    :product_category, :product_subtype, :assigned_to,
                    {"CURRENT_TIMESTAMP" if data.assigned_to is not None else "NULL"},
                    :expected_close_date, :notes
                ) RETURNING *
                """,
                {**params, "lead_number": next_lead_number(conn)},
                conn,
            )

    lead = with_number_retry(_insert, "lead")
    log.info("leads.created", lead_id=lead["id"], lead_number=lead["lead_number"])
    return lead


def get_lead(lead_id: int) -> Dict[str, Any]:
    lead = execute_one(_LEAD_SELECT + " WHERE l.id = :id", {"id": lead_id})
    if not lead:
        raise NotFoundError("Lead not found")
    return lead


def update_lead(lead_id: int, data: LeadUpdate) -> Dict[str, Any]:
    changes = data.model_dump(mode="json", exclude_unset=True)
    if not changes:
        raise ValidationError("No fields to update")
    cleared = [field for field in ("first_name", "last_name", "status", "priority") if field in changes and changes[field] is None]
    if cleared:
        raise ValidationError("Validation failed", details=[f"{field} cannot be empty" for field in cleared])

    with transaction() as conn:
        current = execute_one(
            "SELECT id, product_category, product_subtype, assigned_to FROM leads WHERE id = :id",
            {"id": lead_id},
            conn,
        )
        if not current:
            raise NotFoundError("Lead not found")

        if "product_category" in changes or "product_subtype" in changes:
            error = validate_product(
                changes.get("product_category", current["product_category"]),
                changes.get("product_subtype", current["product_subtype"]),
            )
            if error:
                raise ValidationError("Validation failed", details=[error])
        if "email" in changes:
            _check_email_free(changes["email"], exclude_id=lead_id, conn=conn)
        _check_references(changes.get("source_id"), changes.get("assigned_to"), conn)

        # keys come from LeadUpdate's fields, never from raw input
        assignments = [f"{column} = :{column}" for column in changes]
        if "assigned_to" in changes and changes["assigned_to"] != current["assigned_to"]:
            assignments.append("assigned_at = CURRENT_TIMESTAMP")
        assignments.append("updated_at = CURRENT_TIMESTAMP")

        execute(
            f"UPDATE leads SET {', '.join(assignments)} WHERE id = :id",
            {**changes, "id": lead_id},
            conn,
        )
        lead = execute_one(_LEAD_SELECT + " WHERE l.id = :id", {"id": lead_id}, conn)

    log.info("leads.updated", lead_id=lead_id, fields=sorted(changes))
    return lead


def delete_lead(lead_id: int):
    removed = execute_one("DELETE FROM leads WHERE id = :id RETURNING id", {"id": lead_id})
    if not removed:
        raise NotFoundError("Lead not found")
    log.info("leads.deleted", lead_id=lead_id)


# =========================
# LEAD SOURCES
# =========================
def list_lead_sources() -> List[Dict[str, Any]]:
    with transaction() as conn:
        if execute_one("SELECT COUNT(*) AS total FROM lead_sources", conn=conn)["total"] == 0:
            for name, description in DEFAULT_LEAD_SOURCES:
                execute(
                    "INSERT INTO lead_sources (name, description) VALUES (:name, :description)",
                    {"name": name, "description": description},
                    conn,
                )
            log.info("lead_sources.seeded", count=len(DEFAULT_LEAD_SOURCES))
        rows = execute("SELECT * FROM lead_sources WHERE is_active = :active ORDER BY name", {"active": True}, conn)
        return [coerce_bools(row, "is_active") for row in rows]


def create_lead_source(data: LeadSourceCreate) -> Dict[str, Any]:
    if execute_one("SELECT id FROM lead_sources WHERE LOWER(name) = LOWER(:name)", {"name": data.name}):
        raise ConflictError("Lead source name already exists")
    source = execute_one(
        """
        INSERT INTO lead_sources (name, description, is_active)
        VALUES (:name, :description, :is_active)
        RETURNING *
        """,
        data.model_dump(),
    )
    log.info("lead_sources.created", source_id=source["id"])
    return coerce_bools(source, "is_active")
