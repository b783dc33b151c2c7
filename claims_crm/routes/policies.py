from typing import Any, Dict

from fastapi import APIRouter

from claims_crm.models.directory import PolicyCreate, PolicyHolderCreate, VehicleCreate
from claims_crm.services import policies as policies_service

router = APIRouter(prefix="/api", tags=["policies"])


@router.get("/policies")
def list_policies() -> Dict[str, Any]:
    return {"policies": policies_service.list_policies()}


@router.get("/policies/search")
def search_policies(query: str = "") -> Dict[str, Any]:
    """Up to 10 policy numbers matching ``query``, for the claim form's picker"""
    return {"policies": policies_service.search_policies(query.strip())}


@router.post("/policies", status_code=201)
def create_policy(body: PolicyCreate) -> Dict[str, Any]:
    return {"policy": policies_service.create_policy(body)}


@router.get("/policies/{policy_id}")
def get_policy(policy_id: int) -> Dict[str, Any]:
    return {"policy": policies_service.get_policy(policy_id)}


@router.get("/policy-holders")
def list_policy_holders() -> Dict[str, Any]:
    return {"policyHolders": policies_service.list_policy_holders()}


@router.post("/policy-holders", status_code=201)
def create_policy_holder(body: PolicyHolderCreate) -> Dict[str, Any]:
    return {"policyHolder": policies_service.create_policy_holder(body)}


@router.get("/policy-holders/{holder_id}")
def get_policy_holder(holder_id: int) -> Dict[str, Any]:
    return policies_service.get_policy_holder(holder_id)


@router.get("/vehicles")
def list_vehicles() -> Dict[str, Any]:
    return {"vehicles": policies_service.list_vehicles()}


@router.post("/vehicles", status_code=201)
def create_vehicle(body: VehicleCreate) -> Dict[str, Any]:
    return {"vehicle": policies_service.create_vehicle(body)}


@router.get("/vehicles/{vehicle_id}")
def get_vehicle(vehicle_id: int) -> Dict[str, Any]:
    return {"vehicle": policies_service.get_vehicle(vehicle_id)}
