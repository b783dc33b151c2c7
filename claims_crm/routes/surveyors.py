from typing import Any, Dict

from fastapi import APIRouter

from claims_crm.models.directory import SurveyorCreate, SurveyorUpdate
from claims_crm.services import surveyors as surveyors_service

router = APIRouter(prefix="/api/surveyors", tags=["surveyors"])


@router.get("")
def list_surveyors() -> Dict[str, Any]:
    return {"surveyors": surveyors_service.list_surveyors()}


@router.post("", status_code=201)
def create_surveyor(body: SurveyorCreate) -> Dict[str, Any]:
    return {"surveyor": surveyors_service.create_surveyor(body)}


@router.get("/{surveyor_id}")
def get_surveyor(surveyor_id: int) -> Dict[str, Any]:
    """Surveyor profile with the claims currently assigned to them"""
    return surveyors_service.get_surveyor(surveyor_id)


@router.put("/{surveyor_id}")
def update_surveyor(surveyor_id: int, body: SurveyorUpdate) -> Dict[str, Any]:
    return {"surveyor": surveyors_service.update_surveyor(surveyor_id, body)}


@router.delete("/{surveyor_id}")
def delete_surveyor(surveyor_id: int) -> Dict[str, Any]:
    """Refused with 400 while the surveyor still has assigned claims"""
    surveyors_service.delete_surveyor(surveyor_id)
    return {"success": True}
