from typing import Any, Dict, Optional

import structlog
from fastapi import APIRouter, Query

from claims_crm.models.leads import LeadCreate, LeadSourceCreate, LeadStatus, LeadUpdate
from claims_crm.services import leads as leads_service

log = structlog.get_logger()
router = APIRouter(prefix="/api", tags=["leads"])


@router.get("/leads")
def list_leads(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, description="Clamped to 100"),
    status: Optional[LeadStatus] = None,
    assigned_to: Optional[int] = None,
    source_id: Optional[int] = None,
    search: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Paginated leads, newest first.

    Returns ``data`` plus a ``pagination`` block with page, limit, total,
    totalPages, hasNext and hasPrev.
    """
    return leads_service.list_leads(page, limit, status, assigned_to, source_id, search)


@router.post("/leads", status_code=201)
def create_lead(body: LeadCreate) -> Dict[str, Any]:
    """Create a lead; product category and subtype must come from the product catalog"""
    log.info("leads.create_start", source_id=body.source_id, product_category=body.product_category)
    lead = leads_service.create_lead(body)
    return {"success": True, "data": lead, "message": "Lead created successfully"}


@router.get("/leads/{lead_id}")
def get_lead(lead_id: int) -> Dict[str, Any]:
    return {"data": leads_service.get_lead(lead_id)}


@router.put("/leads/{lead_id}")
def update_lead(lead_id: int, body: LeadUpdate) -> Dict[str, Any]:
    """Partial update: only the fields present in the body change"""
    return {"success": True, "data": leads_service.update_lead(lead_id, body)}


@router.delete("/leads/{lead_id}")
def delete_lead(lead_id: int) -> Dict[str, Any]:
    leads_service.delete_lead(lead_id)
    return {"success": True, "message": "Lead deleted successfully"}


@router.get("/lead-sources")
def list_lead_sources() -> Dict[str, Any]:
    """Active lead sources; the default set is created on first read"""
    sources = leads_service.list_lead_sources()
    return {"data": sources, "count": len(sources)}


@router.post("/lead-sources", status_code=201)
def create_lead_source(body: LeadSourceCreate) -> Dict[str, Any]:
    return {"success": True, "data": leads_service.create_lead_source(body)}
