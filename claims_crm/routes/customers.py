from typing import Any, Dict

import structlog
from fastapi import APIRouter

from claims_crm.errors import AppError
from claims_crm.models.customers import InteractionCreate
from claims_crm.services import customers as customers_service

log = structlog.get_logger()
router = APIRouter(prefix="/api/customers", tags=["customers"])


@router.get("/{holder_id}/dashboard")
def get_dashboard(holder_id: int) -> Dict[str, Any]:
    """Policies, claims, payments, interactions and risk factors for one policy holder"""
    try:
        log.info("customers.dashboard_start", policy_holder_id=holder_id)
        return customers_service.get_dashboard(holder_id)
    except AppError:
        raise
    except Exception as e:
        log.error("customers.dashboard_failed", policy_holder_id=holder_id, error=str(e))
        raise


@router.post("/{holder_id}/interactions", status_code=201)
def log_interaction(holder_id: int, body: InteractionCreate) -> Dict[str, Any]:
    interaction = customers_service.log_interaction(holder_id, body)
    return {"success": True, "interaction": interaction}
