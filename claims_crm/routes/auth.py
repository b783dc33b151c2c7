from typing import Any, Dict

import structlog
from fastapi import APIRouter, HTTPException, Request, Response

from claims_crm.config import settings
from claims_crm.models.users import LoginRequest
from claims_crm.services.auth import authenticate, issue_token, session_user

log = structlog.get_logger()
router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login")
def login(body: LoginRequest, response: Response) -> Dict[str, Any]:
    """Check credentials against the credential store and set the session cookie"""
    user = authenticate(body.username, body.password)
    if not user:
        log.warning("auth.login_failed", username=body.username)
        raise HTTPException(status_code=401, detail="Invalid username or password")

    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=issue_token(user),
        max_age=settings.SESSION_TTL_HOURS * 3600,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
        path="/",
    )
    log.info("auth.login", username=user["username"], role=user["role"])
    return {"success": True, "user": user}


@router.get("/session")
def get_session(request: Request) -> Dict[str, Any]:
    return {"user": session_user(request)}


@router.post("/logout")
def logout(response: Response) -> Dict[str, Any]:
    response.delete_cookie(settings.SESSION_COOKIE_NAME, path="/")
    return {"success": True}
