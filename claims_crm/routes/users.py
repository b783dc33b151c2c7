from typing import Any, Dict

from fastapi import APIRouter

from claims_crm.models.users import RoleUpdate, SettingsUpdate, UserCreate, UserUpdate
from claims_crm.services import admin
from claims_crm.services import users as users_service

router = APIRouter(prefix="/api", tags=["users"])


@router.get("/users")
def list_users() -> Dict[str, Any]:
    """Active users"""
    users = users_service.list_users()
    return {"users": users, "count": len(users)}


@router.post("/users", status_code=201)
def create_user(body: UserCreate) -> Dict[str, Any]:
    return {"user": users_service.create_user(body)}


@router.get("/users/{user_id}")
def get_user(user_id: int) -> Dict[str, Any]:
    return {"user": users_service.get_user(user_id)}


@router.put("/users/{user_id}")
def update_user(user_id: int, body: UserUpdate) -> Dict[str, Any]:
    return {"user": users_service.update_user(user_id, body)}


@router.delete("/users/{user_id}")
def delete_user(user_id: int) -> Dict[str, Any]:
    users_service.delete_user(user_id)
    return {"success": True}


@router.get("/roles")
def list_roles() -> Dict[str, Any]:
    """Roles with their permissions; defaults are seeded on first read"""
    return {"roles": admin.list_roles()}


@router.put("/roles")
def update_role(body: RoleUpdate) -> Dict[str, Any]:
    """Rename or redescribe a role and replace its permission set in one step"""
    return {"success": True, "role": admin.update_role(body)}


@router.get("/permissions")
def list_permissions() -> Dict[str, Any]:
    return {"permissions": admin.list_permissions()}


@router.get("/settings")
def get_settings() -> Dict[str, Any]:
    return {"settings": admin.get_settings()}


@router.put("/settings")
def update_settings(body: SettingsUpdate) -> Dict[str, Any]:
    return {"success": True, "settings": admin.update_settings(body)}
