"""Roles with their permission sets, and the application settings singleton."""

from typing import Any, Dict, List

import structlog
from sqlalchemy.engine import Connection

from claims_crm.config import settings
from claims_crm.db.database import coerce_bools, execute, execute_one, transaction
from claims_crm.errors import NotFoundError, ValidationError
from claims_crm.models.users import RoleUpdate, SettingsUpdate

log = structlog.get_logger()

# (name, description, category)
DEFAULT_PERMISSIONS = [
    ("view_claims", "View claims", "claims"),
    ("create_claims", "Create new claims", "claims"),
    ("edit_claims", "Edit existing claims", "claims"),
    ("delete_claims", "Delete claims", "claims"),
    ("approve_claims", "Approve claims", "claims"),
    ("reject_claims", "Reject claims", "claims"),
    ("view_policies", "View policies", "policies"),
    ("create_policies", "Create new policies", "policies"),
    ("edit_policies", "Edit existing policies", "policies"),
    ("delete_policies", "Delete policies", "policies"),
    ("view_users", "View users", "users"),
    ("create_users", "Create new users", "users"),
    ("edit_users", "Edit existing users", "users"),
    ("delete_users", "Delete users", "users"),
    ("view_reports", "View reports", "reports"),
    ("export_reports", "Export reports", "reports"),
    ("manage_settings", "Manage system settings", "system"),
]

DEFAULT_ROLES = {
    "admin": (
        "Administrator with full access to all features",
        [name for name, _, _ in DEFAULT_PERMISSIONS],
    ),
    "claims_manager": (
        "Manages claims and can approve or reject them",
        [
            "view_claims", "create_claims", "edit_claims", "approve_claims", "reject_claims",
            "view_policies", "view_users", "view_reports", "export_reports",
        ],
    ),
    "claims_adjuster": (
        "Processes claims but cannot approve or reject them",
        ["view_claims", "create_claims", "edit_claims", "view_policies", "view_reports"],
    ),
}

_SETTINGS_COLUMNS = "company_name, contact_email, contact_phone, dark_mode, email_notifications, updated_at"


# =========================
# ROLES
# =========================
def _seed_roles(conn: Connection):
    if execute_one("SELECT COUNT(*) AS total FROM roles", conn=conn)["total"] > 0:
        return

    permission_ids = {}
    for name, description, category in DEFAULT_PERMISSIONS:
        row = execute_one(
            "INSERT INTO permissions (name, description, category) VALUES (:name, :description, :category) RETURNING id",
            {"name": name, "description": description, "category": category},
            conn,
        )
        permission_ids[name] = row["id"]

    for role_name, (description, granted) in DEFAULT_ROLES.items():
        role = execute_one(
            "INSERT INTO roles (name, description) VALUES (:name, :description) RETURNING id",
            {"name": role_name, "description": description},
            conn,
        )
        for permission in granted:
            execute(
                "INSERT INTO role_permissions (role_id, permission_id) VALUES (:role_id, :permission_id)",
                {"role_id": role["id"], "permission_id": permission_ids[permission]},
                conn,
            )
    log.info("roles.seeded", roles=len(DEFAULT_ROLES), permissions=len(DEFAULT_PERMISSIONS))


def list_roles() -> List[Dict[str, Any]]:
    with transaction() as conn:
        _seed_roles(conn)
        roles = execute("SELECT id, name, description FROM roles ORDER BY name", conn=conn)
        for role in roles:
            role["permissions"] = execute(
                """
                SELECT p.id, p.name, p.description, p.category
                FROM permissions p
                JOIN role_permissions rp ON p.id = rp.permission_id
                WHERE rp.role_id = :role_id
                ORDER BY p.category, p.name
                """,
                {"role_id": role["id"]},
                conn,
            )
            role["permission_count"] = len(role["permissions"])
    return roles


def list_permissions() -> List[Dict[str, Any]]:
    with transaction() as conn:
        _seed_roles(conn)
        return execute("SELECT * FROM permissions ORDER BY category, name", conn=conn)


def update_role(data: RoleUpdate) -> Dict[str, Any]:
    """Update a role and replace its permission set in one transaction."""
    with transaction() as conn:
        role = execute_one(
            """
            UPDATE roles
            SET name = COALESCE(:name, name),
                description = COALESCE(:description, description),
                updated_at = CURRENT_TIMESTAMP
            WHERE id = :id
            RETURNING id, name, description
            """,
            {"id": data.id, "name": data.name, "description": data.description},
            conn,
        )
        if not role:
            raise NotFoundError("Role not found")

        wanted = sorted(set(data.permissions))
        if wanted:
            known = {
                row["id"] for row in execute("SELECT id FROM permissions", conn=conn)
            }
            unknown = [pid for pid in wanted if pid not in known]
            if unknown:
                raise ValidationError("Unknown permission ids", details=unknown)

        execute("DELETE FROM role_permissions WHERE role_id = :role_id", {"role_id": data.id}, conn)
        for permission_id in wanted:
            execute(
                "INSERT INTO role_permissions (role_id, permission_id) VALUES (:role_id, :permission_id)",
                {"role_id": data.id, "permission_id": permission_id},
                conn,
            )

    log.info("roles.updated", role_id=data.id, permissions=len(wanted))
    return {**role, "permission_ids": wanted}


# =========================
# SETTINGS
# =========================
def _present_settings(row: Dict[str, Any]) -> Dict[str, Any]:
    row = coerce_bools(row, "dark_mode", "email_notifications")
    return {
        "companyName": row["company_name"],
        "contactEmail": row["contact_email"],
        "contactPhone": row["contact_phone"],
        "darkMode": row["dark_mode"],
        "emailNotifications": row["email_notifications"],
        "updatedAt": row["updated_at"],
    }


def _current_settings(conn: Connection) -> Dict[str, Any]:
    row = execute_one(f"SELECT {_SETTINGS_COLUMNS} FROM settings ORDER BY id LIMIT 1", conn=conn)
    if row:
        return row
    log.info("settings.seeded", company_name=settings.COMPANY_NAME)
    return execute_one(
        f"""
        INSERT INTO settings (company_name, contact_email, contact_phone, dark_mode, email_notifications)
        VALUES (:company_name, :contact_email, :contact_phone, :dark_mode, :email_notifications)
        RETURNING {_SETTINGS_COLUMNS}
        """,
        {
            "company_name": settings.COMPANY_NAME,
            "contact_email": settings.CONTACT_EMAIL,
            "contact_phone": settings.CONTACT_PHONE,
            "dark_mode": False,
            "email_notifications": True,
        },
        conn,
    )


def get_settings() -> Dict[str, Any]:
    with transaction() as conn:
        return _present_settings(_current_settings(conn))


def update_settings(data: SettingsUpdate) -> Dict[str, Any]:
    changes = {key: value for key, value in data.model_dump(exclude_unset=True).items() if value is not None}
    with transaction() as conn:
        current = _current_settings(conn)
        if not changes:
            return _present_settings(current)
        assignments = ", ".join(f"{column} = :{column}" for column in changes)
        row = execute_one(
            f"""
            UPDATE settings SET {assignments}, updated_at = CURRENT_TIMESTAMP
            WHERE id = (SELECT MIN(id) FROM settings)
            RETURNING {_SETTINGS_COLUMNS}
            """,
            changes,
            conn,
        )
    log.info("settings.updated", fields=sorted(changes))
    return _present_settings(row)
