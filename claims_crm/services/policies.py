"""Policy holders, vehicles and policies."""

from typing import Any, Dict, List

import structlog

from claims_crm.db.database import contains_pattern, execute, execute_one, transaction
from claims_crm.db.numbering import next_policy_number, with_number_retry
from claims_crm.errors import NotFoundError, ValidationError
from claims_crm.models.directory import PolicyCreate, PolicyHolderCreate, VehicleCreate

log = structlog.get_logger()

POLICY_SEARCH_LIMIT = 10


# =========================
# POLICY HOLDERS
# =========================
def list_policy_holders() -> List[Dict[str, Any]]:
    return execute("SELECT * FROM policy_holders ORDER BY name ASC, id ASC")


def create_policy_holder(data: PolicyHolderCreate) -> Dict[str, Any]:
    holder = execute_one(
        """
        INSERT INTO policy_holders (name, email, phone, address, id_number, notes)
        VALUES (:name, :email, :phone, :address, :id_number, :notes)
        RETURNING *
        """,
        data.model_dump(),
    )
    log.info("policy_holders.created", policy_holder_id=holder["id"])
    return holder


def get_policy_holder(holder_id: int) -> Dict[str, Any]:
    holder = execute_one("SELECT * FROM policy_holders WHERE id = :id", {"id": holder_id})
    if not holder:
        raise NotFoundError("Policy holder not found")
    params = {"id": holder_id}
    return {
        "policyHolder": holder,
        "policies": execute(
            "SELECT * FROM policies WHERE policy_holder_id = :id ORDER BY start_date DESC, id DESC", params
        ),
        "vehicles": execute("SELECT * FROM vehicles WHERE policy_holder_id = :id ORDER BY id", params),
    }


# =========================
# VEHICLES
# =========================
def list_vehicles() -> List[Dict[str, Any]]:
    return execute(
        """
        SELECT v.*, ph.name AS policy_holder_name
        FROM vehicles v
        LEFT JOIN policy_holders ph ON v.policy_holder_id = ph.id
        ORDER BY v.make ASC, v.model ASC, v.id ASC
        """
    )


def create_vehicle(data: VehicleCreate) -> Dict[str, Any]:
    if data.policy_holder_id is not None:
        if not execute_one("SELECT id FROM policy_holders WHERE id = :id", {"id": data.policy_holder_id}):
            raise ValidationError("Policy holder not found",
                                  details=[f"policyHolderId: no policy holder with id {data.policy_holder_id}"])

    vehicle = execute_one(
        """
        INSERT INTO vehicles (registration, make, model, year, color, chassis_number, engine_number, policy_holder_id)
        VALUES (:registration, :make, :model, :year, :color, :chassis_number, :engine_number, :policy_holder_id)
        RETURNING *
        """,
        data.model_dump(),
    )
    log.info("vehicles.created", vehicle_id=vehicle["id"])
    return vehicle


def get_vehicle(vehicle_id: int) -> Dict[str, Any]:
    vehicle = execute_one(
        """
        SELECT v.*, ph.name AS policy_holder_name
        FROM vehicles v
        LEFT JOIN policy_holders ph ON v.policy_holder_id = ph.id
        WHERE v.id = :id
        """,
        {"id": vehicle_id},
    )
    if not vehicle:
        raise NotFoundError("Vehicle not found")
    return vehicle


# =========================
# POLICIES
# =========================
_POLICY_SELECT = """
    SELECT p.*, ph.name AS policy_holder_name,
           v.registration, v.make, v.model
    FROM policies p
    LEFT JOIN policy_holders ph ON p.policy_holder_id = ph.id
    LEFT JOIN vehicles v ON p.vehicle_id = v.id
"""


def list_policies() -> List[Dict[str, Any]]:
    return execute(_POLICY_SELECT + " ORDER BY p.created_at DESC, p.id DESC")


def get_policy(policy_id: int) -> Dict[str, Any]:
    policy = execute_one(_POLICY_SELECT + " WHERE p.id = :id", {"id": policy_id})
    if not policy:
        raise NotFoundError("Policy not found")
    return policy


def search_policies(query: str = "") -> List[Dict[str, Any]]:
    """Policy numbers containing ``query``, case-insensitive."""
    if not query:
        return execute(
            "SELECT id, policy_number FROM policies ORDER BY policy_number LIMIT :limit",
            {"limit": POLICY_SEARCH_LIMIT},
        )
    return execute(
        """
        SELECT id, policy_number FROM policies
        WHERE LOWER(policy_number) LIKE LOWER(:pattern) ESCAPE '\\'
        ORDER BY policy_number
        LIMIT :limit
        """,
        {"pattern": contains_pattern(query), "limit": POLICY_SEARCH_LIMIT},
    )


def create_policy(data: PolicyCreate) -> Dict[str, Any]:
    if not execute_one("SELECT id FROM policy_holders WHERE id = :id", {"id": data.policy_holder_id}):
        raise ValidationError("Policy holder not found",
                              details=[f"policyHolderId: no policy holder with id {data.policy_holder_id}"])
    if data.vehicle_id is not None:
        if not execute_one("SELECT id FROM vehicles WHERE id = :id", {"id": data.vehicle_id}):
            raise ValidationError("Vehicle not found", details=[f"vehicleId: no vehicle with id {data.vehicle_id}"])

    params = {
        "policy_holder_id": data.policy_holder_id,
        "vehicle_id": data.vehicle_id,
        "policy_type": data.policy_type,
        "start_date": data.start_date.isoformat(),
        "end_date": data.end_date.isoformat(),
        "premium_amount": data.premium_amount,
        "coverage_amount": data.coverage_amount,
        "status": data.status,
    }
    insert = """
        INSERT INTO policies (
            policy_number, policy_holder_id, vehicle_id, policy_type,
            start_date, end_date, premium_amount, coverage_amount, status
        ) VALUES (
            :policy_number, :policy_holder_id, :vehicle_id, :policy_type,
            :start_date, :end_date, :premium_amount, :coverage_amount, :status
        ) RETURNING *
    """

    if data.policy_number:
        # caller-chosen numbers are not retried; a duplicate surfaces as 409
        policy = execute_one(insert, {**params, "policy_number": data.policy_number})
    else:
        def _insert():
            with transaction() as conn:
                return execute_one(insert, {**params, "policy_number": next_policy_number(conn)}, conn)

        policy = with_number_retry(_insert, "policy")

    log.info("policies.created", policy_id=policy["id"], policy_number=policy["policy_number"])
    return policy
