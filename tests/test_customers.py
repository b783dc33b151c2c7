from datetime import date, timedelta

from claims_crm.db.database import execute
from claims_crm.services.customers import get_dashboard


def _pay(holder_id, policy_id, amount, paid_on, status="completed"):
    execute(
        "INSERT INTO premium_payments (policy_holder_id, policy_id, amount_paid, payment_date, payment_method, payment_status) "
        "VALUES (:holder, :policy, :amount, :paid_on, 'upi', :status)",
        {"holder": holder_id, "policy": policy_id, "amount": amount, "paid_on": paid_on, "status": status},
    )


def test_dashboard_aggregates_holder(client, holder, policy, claim):
    client.put(f"/api/claims/{claim['id']}", json={"status": "approved", "approvedAmount": 40000})
    client.post("/api/claims", json={"policyId": policy["id"], "incidentDate": "2025-02-01"})
    _pay(holder["id"], policy["id"], 12000, "2024-06-01")
    _pay(holder["id"], policy["id"], 12000, "2025-06-01", status="failed")

    response = client.get(f"/api/customers/{holder['id']}/dashboard")
    assert response.status_code == 200
    body = response.json()

    assert body["customer"]["name"] == "Rahul Sharma"
    assert body["summary"] == {
        "totalPolicies": 1,
        "totalClaims": 2,
        "approvedClaims": 1,
        "pendingClaims": 1,
        "lifetimePremiumPaid": 24000.0,
        "totalVehicles": 1,
    }
    assert body["paymentSummary"]["total_payments"] == 2
    assert body["paymentSummary"]["failed_payments"] == 1
    assert body["riskFactors"]["claimFrequency"] == 1
    assert body["riskFactors"]["paymentHistory"] == 1

    assert [p["id"] for p in body["activePolicies"]] == [policy["id"]]
    assert body["activePolicies"][0]["make"] == "Maruti"
    assert len(body["recentClaims"]) == 2
    assert body["recentClaims"][0]["policy_number"] == policy["policy_number"]

    kinds = [a["activity_type"] for a in body["recentActivity"]]
    assert sorted(kinds) == ["Claim Filed", "Claim Filed", "Payment Made", "Payment Made", "Policy Created"]
    payments = [a for a in body["recentActivity"] if a["activity_type"] == "Payment Made"]
    assert payments[0]["title"].startswith("Premium payment of")
    assert payments[0]["description"] == "Payment via upi"


def test_dashboard_for_holder_without_history(client, holder):
    body = client.get(f"/api/customers/{holder['id']}/dashboard").json()
    assert body["summary"]["totalPolicies"] == 0
    assert body["summary"]["lifetimePremiumPaid"] == 0
    assert body["riskFactors"] == {"claimFrequency": 0, "paymentHistory": 0, "customerTenure": 0}
    assert body["recentActivity"] == []
    assert body["recentInteractions"] == []


def test_customer_tenure_counts_whole_years(holder):
    later = date.today() + timedelta(days=3 * 365 + 10)
    assert get_dashboard(holder["id"], today=later)["riskFactors"]["customerTenure"] == 3


def test_dashboard_unknown_holder(client, db):
    response = client.get("/api/customers/999/dashboard")
    assert response.status_code == 404
    assert response.json() == {"error": "Customer not found", "code": "not_found"}


def test_log_interaction(client, holder, user):
    response = client.post(f"/api/customers/{holder['id']}/interactions", json={
        "interactionType": "call",
        "subject": "Renewal query",
        "summary": "Asked about no-claim bonus",
        "followUpRequired": True,
        "agentId": user["id"],
    })
    assert response.status_code == 201
    interaction = response.json()["interaction"]
    assert interaction["resolution_status"] == "open"
    assert interaction["follow_up_required"] is True
    assert interaction["interaction_summary"] == "Asked about no-claim bonus"

    body = client.get(f"/api/customers/{holder['id']}/dashboard").json()
    assert [i["agent_name"] for i in body["recentInteractions"]] == ["Asha Rao"]
    assert body["customer"]["last_interaction_date"] is not None


def test_log_interaction_validation(client, holder):
    url = f"/api/customers/{holder['id']}/interactions"
    assert client.post(url, json={"interactionType": "carrier pigeon", "subject": "x"}).status_code == 400
    assert client.post(url, json={"interactionType": "call"}).status_code == 400
    assert client.post(url, json={"interactionType": "call", "subject": "x", "agentId": 999}).status_code == 400

    missing = client.post("/api/customers/999/interactions", json={"interactionType": "call", "subject": "x"})
    assert missing.status_code == 404
    assert execute("SELECT id FROM customer_interactions") == []
