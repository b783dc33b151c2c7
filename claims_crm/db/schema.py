"""
Relational schema for the claims CRM.

Every table is declared here once and created by ``init_schema()`` at startup.
Route handlers never issue DDL.
"""

import structlog
from sqlalchemy import (
    Boolean, Column, Date, DateTime, ForeignKey, Integer, MetaData, Numeric,
    String, Table, Text, UniqueConstraint, func,
)

from claims_crm.db.database import database, execute, execute_one

log = structlog.get_logger()

SCHEMA_VERSION = 1

metadata = MetaData()


def _timestamps():
    return [
        Column("created_at", DateTime(timezone=True), server_default=func.now(), nullable=False),
        Column("updated_at", DateTime(timezone=True), server_default=func.now(), nullable=False),
    ]


schema_version = Table(
    "schema_version", metadata,
    Column("version", Integer, primary_key=True),
    Column("applied_at", DateTime(timezone=True), server_default=func.now(), nullable=False),
)

# =========================
# PARTIES & POLICIES
# =========================
policy_holders = Table(
    "policy_holders", metadata,
    Column("id", Integer, primary_key=True),
    Column("name", Text, nullable=False),
    Column("email", Text),
    Column("phone", Text),
    Column("address", Text),
    Column("id_number", Text),
    Column("notes", Text),
    *_timestamps(),
)

vehicles = Table(
    "vehicles", metadata,
    Column("id", Integer, primary_key=True),
    Column("registration", Text, nullable=False),
    Column("make", Text, nullable=False),
    Column("model", Text, nullable=False),
    Column("year", Integer),
    Column("color", Text),
    Column("chassis_number", Text),
    Column("engine_number", Text),
    Column("policy_holder_id", Integer, ForeignKey("policy_holders.id")),
    *_timestamps(),
)

policies = Table(
    "policies", metadata,
    Column("id", Integer, primary_key=True),
    Column("policy_number", String(32), nullable=False, unique=True),
    Column("policy_holder_id", Integer, ForeignKey("policy_holders.id"), nullable=False),
    Column("vehicle_id", Integer, ForeignKey("vehicles.id")),
    Column("policy_type", Text, nullable=False),
    Column("start_date", Date, nullable=False),
    Column("end_date", Date, nullable=False),
    Column("premium_amount", Numeric(12, 2), nullable=False),
    Column("coverage_amount", Numeric(14, 2), nullable=False),
    Column("status", String(20), nullable=False, server_default="active"),
    *_timestamps(),
)

# =========================
# CLAIMS
# =========================
claims = Table(
    "claims", metadata,
    Column("id", Integer, primary_key=True),
    Column("claim_number", String(32), nullable=False, unique=True),
    Column("policy_id", Integer, ForeignKey("policies.id"), nullable=False),
    Column("incident_date", Date, nullable=False),
    Column("report_date", Date, nullable=False),
    Column("incident_location", Text),
    Column("incident_description", Text),
    Column("damage_description", Text),
    Column("estimated_amount", Numeric(12, 2)),
    Column("approved_amount", Numeric(12, 2)),
    Column("status", String(20), nullable=False, server_default="pending"),
    *_timestamps(),
)

surveyors = Table(
    "surveyors", metadata,
    Column("id", Integer, primary_key=True),
    Column("name", Text, nullable=False),
    Column("email", Text, nullable=False),
    Column("phone", Text, nullable=False),
    Column("specialization", Text, nullable=False),
    Column("license_number", Text, nullable=False),
    Column("years_experience", Integer, nullable=False),
    Column("address", Text, nullable=False),
    Column("notes", Text),
    *_timestamps(),
)

claim_surveyors = Table(
    "claim_surveyors", metadata,
    Column("id", Integer, primary_key=True),
    Column("claim_id", Integer, ForeignKey("claims.id"), nullable=False, index=True),
    Column("surveyor_id", Integer, ForeignKey("surveyors.id"), nullable=False, index=True),
    Column("assigned_at", DateTime(timezone=True), server_default=func.now(), nullable=False),
    UniqueConstraint("claim_id", "surveyor_id"),
)

claim_surveys = Table(
    "claim_surveys", metadata,
    Column("id", Integer, primary_key=True),
    Column("claim_id", Integer, ForeignKey("claims.id"), nullable=False, unique=True),
    # null once the authoring surveyor is deleted; the report itself is kept
    Column("surveyor_id", Integer, ForeignKey("surveyors.id", ondelete="SET NULL"), nullable=True),
    Column("survey_date", Date, nullable=False),
    Column("location", Text),
    Column("report", Text),
    Column("amount", Numeric(12, 2)),
    Column("status", String(20), nullable=False, server_default="pending"),
    *_timestamps(),
)

documents = Table(
    "documents", metadata,
    Column("id", Integer, primary_key=True),
    Column("claim_id", Integer, ForeignKey("claims.id"), nullable=False, index=True),
    Column("document_type", Text),
    Column("file_name", Text, nullable=False),
    Column("file_path", Text, nullable=False),
    Column("file_size", Integer),
    Column("mime_type", Text),
    Column("upload_date", DateTime(timezone=True), server_default=func.now(), nullable=False),
)

claim_notes = Table(
    "claim_notes", metadata,
    Column("id", Integer, primary_key=True),
    Column("claim_id", Integer, ForeignKey("claims.id"), nullable=False, index=True),
    Column("note_text", Text, nullable=False),
    Column("created_by", Text),
    Column("created_at", DateTime(timezone=True), server_default=func.now(), nullable=False),
)

payments = Table(
    "payments", metadata,
    Column("id", Integer, primary_key=True),
    Column("claim_id", Integer, ForeignKey("claims.id"), nullable=False, index=True),
    Column("payment_amount", Numeric(12, 2), nullable=False),
    Column("payment_date", Date),
    Column("payment_method", Text),
    Column("status", String(20), nullable=False, server_default="pending"),
    Column("created_at", DateTime(timezone=True), server_default=func.now(), nullable=False),
)

premium_payments = Table(
    "premium_payments", metadata,
    Column("id", Integer, primary_key=True),
    Column("policy_holder_id", Integer, ForeignKey("policy_holders.id"), nullable=False, index=True),
    Column("policy_id", Integer, ForeignKey("policies.id")),
    Column("amount_paid", Numeric(12, 2), nullable=False),
    Column("payment_date", Date, nullable=False),
    Column("payment_method", Text),
    Column("payment_status", String(20), nullable=False, server_default="completed"),
    Column("created_at", DateTime(timezone=True), server_default=func.now(), nullable=False),
)

customer_interactions = Table(
    "customer_interactions", metadata,
    Column("id", Integer, primary_key=True),
    Column("policy_holder_id", Integer, ForeignKey("policy_holders.id"), nullable=False, index=True),
    Column("interaction_type", String(30), nullable=False),
    Column("subject", Text),
    Column("interaction_summary", Text),
    Column("agent_id", Integer, ForeignKey("users.id")),
    Column("follow_up_required", Boolean, nullable=False, server_default="0"),
    Column("resolution_status", String(20), nullable=False, server_default="open"),
    Column("interaction_date", DateTime(timezone=True), server_default=func.now(), nullable=False),
)

# =========================
# USERS, ROLES, SETTINGS
# =========================
users = Table(
    "users", metadata,
    Column("id", Integer, primary_key=True),
    Column("full_name", String(100), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("role", String(50), nullable=False, server_default="user"),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    *_timestamps(),
)

roles = Table(
    "roles", metadata,
    Column("id", Integer, primary_key=True),
    Column("name", Text, nullable=False, unique=True),
    Column("description", Text, nullable=False),
    *_timestamps(),
)

permissions = Table(
    "permissions", metadata,
    Column("id", Integer, primary_key=True),
    Column("name", Text, nullable=False, unique=True),
    Column("description", Text, nullable=False),
    Column("category", Text, nullable=False),
)

role_permissions = Table(
    "role_permissions", metadata,
    Column("role_id", Integer, ForeignKey("roles.id"), primary_key=True),
    Column("permission_id", Integer, ForeignKey("permissions.id"), primary_key=True),
)

app_settings = Table(
    "settings", metadata,
    Column("id", Integer, primary_key=True),
    Column("company_name", Text, nullable=False),
    Column("contact_email", Text),
    Column("contact_phone", Text),
    Column("dark_mode", Boolean, nullable=False, server_default="0"),
    Column("email_notifications", Boolean, nullable=False, server_default="1"),
    Column("updated_at", DateTime(timezone=True), server_default=func.now(), nullable=False),
)

# =========================
# LEADS
# =========================
lead_sources = Table(
    "lead_sources", metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String(100), nullable=False, unique=True),
    Column("description", Text),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    *_timestamps(),
)

leads = Table(
    "leads", metadata,
    Column("id", Integer, primary_key=True),
    Column("lead_number", String(16), nullable=False, unique=True),
    Column("source_id", Integer, ForeignKey("lead_sources.id")),
    Column("first_name", Text, nullable=False),
    Column("last_name", Text, nullable=False),
    Column("email", Text, index=True),
    Column("phone", Text),
    Column("company_name", Text),
    Column("industry", Text),
    Column("lead_value", Numeric(14, 2)),
    Column("status", String(20), nullable=False, server_default="new"),
    Column("priority", String(10), nullable=False, server_default="medium"),
    Column("product_category", String(40)),
    Column("product_subtype", String(60)),
    Column("assigned_to", Integer, ForeignKey("users.id")),
    Column("assigned_at", DateTime(timezone=True)),
    Column("expected_close_date", Date),
    Column("notes", Text),
    *_timestamps(),
)

# =========================
# RENEWALS
# =========================
policy_renewals = Table(
    "policy_renewals", metadata,
    Column("id", Integer, primary_key=True),
    Column("policy_id", Integer, ForeignKey("policies.id"), nullable=False, index=True),
    Column("renewal_date", Date, nullable=False),
    Column("status", String(20), nullable=False, server_default="pending"),
    Column("assigned_to", Integer, ForeignKey("users.id")),
    Column("assigned_at", DateTime(timezone=True)),
    Column("renewal_premium", Numeric(12, 2)),
    Column("original_premium", Numeric(12, 2)),
    Column("contact_count", Integer, nullable=False, server_default="0"),
    Column("last_contact_date", Date),
    Column("renewal_notes", Text),
    Column("conversion_status", String(20), nullable=False, server_default="pending"),
    *_timestamps(),
)

renewal_activities = Table(
    "renewal_activities", metadata,
    Column("id", Integer, primary_key=True),
    Column("renewal_id", Integer, ForeignKey("policy_renewals.id"), nullable=False, index=True),
    Column("activity_type", String(40), nullable=False),
    Column("subject", Text),
    Column("description", Text),
    Column("next_follow_up_date", Date),
    Column("activity_date", DateTime(timezone=True), server_default=func.now(), nullable=False),
)

renewal_status_history = Table(
    "renewal_status_history", metadata,
    Column("id", Integer, primary_key=True),
    Column("renewal_id", Integer, ForeignKey("policy_renewals.id"), nullable=False, index=True),
    Column("old_status", String(20)),
    Column("new_status", String(20), nullable=False),
    Column("changed_by", Text),
    Column("changed_at", DateTime(timezone=True), server_default=func.now(), nullable=False),
)


def init_schema():
    """Create missing tables and record the schema version."""
    engine = database.connect()
    metadata.create_all(engine)
    row = execute_one("SELECT MAX(version) AS version FROM schema_version")
    current = row["version"] if row else None
    if current is None or current < SCHEMA_VERSION:
        execute("INSERT INTO schema_version (version) VALUES (:version)", {"version": SCHEMA_VERSION})
        log.info("db.schema_applied", version=SCHEMA_VERSION, previous=current)
    return SCHEMA_VERSION


