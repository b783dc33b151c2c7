from typing import Any, Dict, List

import structlog

from claims_crm.db.database import coerce_bools, execute, execute_one, transaction
from claims_crm.errors import ConflictError, NotFoundError, ValidationError
from claims_crm.models.users import UserCreate, UserUpdate

log = structlog.get_logger()

_USER_COLUMNS = "id, full_name, email, role, is_active, created_at, updated_at"


def _email_taken(email: str, exclude_id: int = 0, conn=None) -> bool:
    return execute_one(
        "SELECT id FROM users WHERE LOWER(email) = LOWER(:email) AND id != :exclude_id",
        {"email": email, "exclude_id": exclude_id},
        conn,
    ) is not None


def list_users() -> List[Dict[str, Any]]:
    rows = execute(
        f"SELECT {_USER_COLUMNS} FROM users WHERE is_active = :active ORDER BY full_name ASC, id ASC",
        {"active": True},
    )
    return [coerce_bools(row, "is_active") for row in rows]


def create_user(data: UserCreate) -> Dict[str, Any]:
    if _email_taken(data.email):
        raise ConflictError("User with this email already exists")
    user = execute_one(
        f"""
        INSERT INTO users (full_name, email, role, is_active)
        VALUES (:full_name, :email, :role, :is_active)
        RETURNING {_USER_COLUMNS}
        """,
        data.model_dump(),
    )
    log.info("users.created", user_id=user["id"], role=user["role"])
    return coerce_bools(user, "is_active")


def get_user(user_id: int) -> Dict[str, Any]:
    user = execute_one(f"SELECT {_USER_COLUMNS} FROM users WHERE id = :id", {"id": user_id})
    if not user:
        raise NotFoundError("User not found")
    return coerce_bools(user, "is_active")


def update_user(user_id: int, data: UserUpdate) -> Dict[str, Any]:
    changes = data.model_dump(exclude_unset=True)
    cleared = [field for field, value in changes.items() if value is None]
    if cleared:
        raise ValidationError("Validation failed", details=[f"{field} cannot be empty" for field in cleared])
    if not changes:
        raise ValidationError("No fields to update")

    with transaction() as conn:
        if "email" in changes and _email_taken(changes["email"], user_id, conn):
            raise ConflictError("User with this email already exists")

        assignments = ", ".join(f"{column} = :{column}" for column in changes)
        user = execute_one(
            f"""
            UPDATE users SET {assignments}, updated_at = CURRENT_TIMESTAMP
            WHERE id = :id
            RETURNING {_USER_COLUMNS}
            """,
            {**changes, "id": user_id},
            conn,
        )
        if not user:
            raise NotFoundError("User not found")

    log.info("users.updated", user_id=user_id, fields=sorted(changes))
    return coerce_bools(user, "is_active")


def delete_user(user_id: int):
    removed = execute_one("DELETE FROM users WHERE id = :id RETURNING id", {"id": user_id})
    if not removed:
        raise NotFoundError("User not found")
    log.info("users.deleted", user_id=user_id)
