"""
Renewal endpoints: the rolling due list, assignment, status changes with
history, and the follow-up activity trail.
"""

from typing import Any, Dict, Optional

import structlog
from fastapi import APIRouter, Query, Request

from claims_crm.errors import AppError
from claims_crm.models.renewals import (
    RenewalActivityCreate, RenewalAssign, RenewalCreate, RenewalDetailResponse, RenewalListResponse,
    RenewalResponse, RenewalStatus, RenewalStatusChange, RenewalStatusResponse,
)
from claims_crm.services import renewals as renewals_service
from claims_crm.services.auth import session_user

log = structlog.get_logger()
router = APIRouter(prefix="/api/renewals", tags=["renewals"])


@router.get("", response_model=RenewalListResponse)
def list_renewals(
    days: Optional[int] = Query(None, ge=0, le=3650, description="Window size; defaults to RENEWAL_WINDOW_DAYS"),
    status: Optional[RenewalStatus] = None,
):
    """Renewals due on or before today + ``days``, overdue ones included, soonest first"""
    try:
        log.info("renewals.fetch_start", days=days, status=status.value if status else None)
        renewals = renewals_service.list_renewals_due(days, status)
        log.info("renewals.fetch_complete", count=len(renewals))
        return {"renewals": renewals}
    except Exception as e:
        log.error("renewals.fetch_failed", error=str(e))
        raise


@router.post("", status_code=201, response_model=RenewalResponse)
def create_renewal(body: RenewalCreate):
    renewal = renewals_service.create_renewal(body)
    return {"success": True, "renewal": renewal}


@router.get("/{renewal_id}", response_model=RenewalDetailResponse)
def get_renewal(renewal_id: int):
    return renewals_service.get_renewal(renewal_id)


@router.put("/{renewal_id}/assign", response_model=RenewalResponse)
def assign_renewal(renewal_id: int, body: RenewalAssign):
    renewal = renewals_service.assign_renewal(renewal_id, body.assigned_to)
    return {"success": True, "renewal": renewal}


@router.put("/{renewal_id}/status", response_model=RenewalStatusResponse)
def change_status(renewal_id: int, body: RenewalStatusChange, request: Request):
    """
    Change the renewal status and append one history row.

    ``changed_by`` is the logged-in user when the request carries a valid
    session cookie, otherwise null.
    """
    user = session_user(request)
    changed_by = (user.get("name") or user.get("username")) if user else None
    try:
        log.info("renewals.status_start", renewal_id=renewal_id, status=body.status.value)
        result = renewals_service.change_renewal_status(renewal_id, body.status, changed_by)
        return {"success": True, **result}
    except AppError:
        raise
    except Exception as e:
        log.error("renewals.status_failed", renewal_id=renewal_id, error=str(e))
        raise


@router.get("/{renewal_id}/activities")
def list_activities(renewal_id: int) -> Dict[str, Any]:
    return {"activities": renewals_service.list_activities(renewal_id)}


@router.post("/{renewal_id}/activities")
def add_activity(renewal_id: int, body: RenewalActivityCreate) -> Dict[str, Any]:
    activity = renewals_service.log_activity(renewal_id, body)
    return {"success": True, "activity": activity}
