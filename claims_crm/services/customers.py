"""
Customer view of a policy holder: the dashboard aggregate and the
interaction log.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

import structlog

from claims_crm.db.database import coerce_bools, execute, execute_one, transaction
from claims_crm.errors import NotFoundError, ValidationError
from claims_crm.models.customers import InteractionCreate

log = structlog.get_logger()

RECENT_ACTIVITY_LIMIT = 15
RECENT_CLAIMS_LIMIT = 5
RECENT_INTERACTIONS_LIMIT = 5


def _require_holder(holder_id: int, conn=None) -> Dict[str, Any]:
    holder = execute_one("SELECT * FROM policy_holders WHERE id = :id", {"id": holder_id}, conn)
    if not holder:
        raise NotFoundError("Customer not found")
    return holder


def _sort_key(value: Any) -> str:
    # sqlite hands back text, postgres hands back date/datetime
    if isinstance(value, (date, datetime)):
        return value.isoformat(sep=" ") if isinstance(value, datetime) else value.isoformat()
    return str(value or "")


def _years_since(value: Any, today: date) -> int:
    if not value:
        return 0
    if isinstance(value, datetime):
        since = value.date()
    elif isinstance(value, date):
        since = value
    else:
        since = date.fromisoformat(str(value)[:10])
    return max((today - since).days // 365, 0)


def _recent_activity(holder_id: int) -> List[Dict[str, Any]]:
    params = {"id": holder_id}
    events = []

    for p in execute(
        """
        SELECT p.id, p.policy_number, p.policy_type, p.created_at, v.make, v.model
        FROM policies p
        LEFT JOIN vehicles v ON p.vehicle_id = v.id
        WHERE p.policy_holder_id = :id
        """,
        params,
    ):
        description = f"New {p['policy_type']} policy"
        if p["make"]:
            description += f" for {p['make']} {p['model']}"
        events.append({
            "activity_type": "Policy Created",
            "activity_date": p["created_at"],
            "title": f"Policy {p['policy_number']} created",
            "description": description,
            "related_entity_type": "policy",
            "related_entity_id": p["id"],
        })

    for c in execute(
        """
        SELECT c.id, c.claim_number, c.incident_date, c.created_at
        FROM claims c
        JOIN policies p ON c.policy_id = p.id
        WHERE p.policy_holder_id = :id
        """,
        params,
    ):
        events.append({
            "activity_type": "Claim Filed",
            "activity_date": c["created_at"],
            "title": f"Claim {c['claim_number']} filed",
            "description": f"Claim for incident on {_sort_key(c['incident_date'])}",
            "related_entity_type": "claim",
            "related_entity_id": c["id"],
        })

    for pp in execute(
        "SELECT id, amount_paid, payment_date, payment_method FROM premium_payments WHERE policy_holder_id = :id",
        params,
    ):
        events.append({
            "activity_type": "Payment Made",
            "activity_date": pp["payment_date"],
            "title": f"Premium payment of ₹{pp['amount_paid']}",
            "description": f"Payment via {pp['payment_method'] or 'unknown method'}",
            "related_entity_type": "payment",
            "related_entity_id": pp["id"],
        })

    events.sort(key=lambda e: _sort_key(e["activity_date"]), reverse=True)
    return events[:RECENT_ACTIVITY_LIMIT]


def get_dashboard(holder_id: int, today: Optional[date] = None) -> Dict[str, Any]:
    """Everything the customer page shows for one policy holder."""
    today = today or date.today()
    holder = _require_holder(holder_id)
    params = {"id": holder_id}

    counts = execute_one(
        """
        SELECT
            (SELECT COUNT(*) FROM policies WHERE policy_holder_id = :id) AS total_policies,
            (SELECT COUNT(*) FROM vehicles WHERE policy_holder_id = :id) AS total_vehicles,
            (SELECT COUNT(*) FROM claims c JOIN policies p ON c.policy_id = p.id
              WHERE p.policy_holder_id = :id) AS total_claims,
            (SELECT COUNT(*) FROM claims c JOIN policies p ON c.policy_id = p.id
              WHERE p.policy_holder_id = :id AND c.status = 'approved') AS approved_claims,
            (SELECT COUNT(*) FROM claims c JOIN policies p ON c.policy_id = p.id
              WHERE p.policy_holder_id = :id AND c.status = 'pending') AS pending_claims,
            (SELECT MAX(interaction_date) FROM customer_interactions
              WHERE policy_holder_id = :id) AS last_interaction_date
        """,
        params,
    )

    active_policies = execute(
        """
        SELECT p.*, v.make, v.model, v.registration, v.year
        FROM policies p
        LEFT JOIN vehicles v ON p.vehicle_id = v.id
        WHERE p.policy_holder_id = :id AND (p.status = 'active' OR p.status IS NULL)
        ORDER BY p.start_date DESC, p.id DESC
        """,
        params,
    )
    recent_claims = execute(
        """
        SELECT c.*, p.policy_number, v.make, v.model
        FROM claims c
        JOIN policies p ON c.policy_id = p.id
        LEFT JOIN vehicles v ON p.vehicle_id = v.id
        WHERE p.policy_holder_id = :id
        ORDER BY c.created_at DESC, c.id DESC
        LIMIT :limit
        """,
        {**params, "limit": RECENT_CLAIMS_LIMIT},
    )
    payment_summary = execute_one(
        """
        SELECT COUNT(*) AS total_payments,
               COALESCE(SUM(amount_paid), 0) AS total_amount_paid,
               MAX(payment_date) AS last_payment_date,
               COUNT(CASE WHEN payment_status = 'failed' THEN 1 END) AS failed_payments
        FROM premium_payments
        WHERE policy_holder_id = :id
        """,
        params,
    )
    interactions = [
        coerce_bools(row, "follow_up_required")
        for row in execute(
            """
            SELECT ci.*, u.full_name AS agent_name
            FROM customer_interactions ci
            LEFT JOIN users u ON ci.agent_id = u.id
            WHERE ci.policy_holder_id = :id
            ORDER BY ci.interaction_date DESC, ci.id DESC
            LIMIT :limit
            """,
            {**params, "limit": RECENT_INTERACTIONS_LIMIT},
        )
    ]

    total_policies = counts["total_policies"]
    claim_frequency = counts["approved_claims"] / total_policies if total_policies else 0
    lifetime_paid = float(payment_summary["total_amount_paid"] or 0)

    log.info("customers.dashboard", policy_holder_id=holder_id, policies=total_policies,
             claims=counts["total_claims"])
    return {
        "customer": {**holder, "last_interaction_date": counts["last_interaction_date"]},
        "recentActivity": _recent_activity(holder_id),
        "activePolicies": active_policies,
        "recentClaims": recent_claims,
        "paymentSummary": payment_summary,
        "recentInteractions": interactions,
        "riskFactors": {
            "claimFrequency": claim_frequency,
            "paymentHistory": payment_summary["failed_payments"],
            "customerTenure": _years_since(holder["created_at"], today),
        },
        "summary": {
            "totalPolicies": total_policies,
            "totalClaims": counts["total_claims"],
            "approvedClaims": counts["approved_claims"],
            "pendingClaims": counts["pending_claims"],
            "lifetimePremiumPaid": lifetime_paid,
            "totalVehicles": counts["total_vehicles"],
        },
    }


def log_interaction(holder_id: int, data: InteractionCreate) -> Dict[str, Any]:
    with transaction() as conn:
        _require_holder(holder_id, conn)
        if data.agent_id is not None:
            if not execute_one("SELECT id FROM users WHERE id = :id", {"id": data.agent_id}, conn):
                raise ValidationError("Agent not found", details=[f"agentId: no user with id {data.agent_id}"])

        interaction = execute_one(
            """
            INSERT INTO customer_interactions (
                policy_holder_id, interaction_type, subject, interaction_summary,
                agent_id, follow_up_required, resolution_status
            ) VALUES (
                :holder_id, :interaction_type, :subject, :summary,
                :agent_id, :follow_up_required, 'open'
            ) RETURNING *
            """,
            {
                "holder_id": holder_id,
                "interaction_type": data.interaction_type.value,
                "subject": data.subject,
                "summary": data.summary,
                "agent_id": data.agent_id,
                "follow_up_required": data.follow_up_required,
            },
            conn,
        )

    log.info("customers.interaction_logged", policy_holder_id=holder_id, interaction_id=interaction["id"],
             interaction_type=data.interaction_type.value)
    return coerce_bools(interaction, "follow_up_required")
