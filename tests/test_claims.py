import re
from datetime import date

from claims_crm.db.database import execute_one

CLAIM_NUMBER = re.compile(r"^CLM-\d{6}-\d{3}$")


def test_create_claim_end_to_end(client, policy):
    """Create a claim then read back the detail aggregate"""
    assert policy["id"] == 1
    payload = {
        "policyId": 1,
        "incidentDate": "2025-01-01",
        "reportDate": "2025-01-02",
        "incidentLocation": "Pune",
        "incidentDescription": "rear-end collision on highway",
        "damageDescription": "bumper dented, taillight broken",
        "estimatedAmount": 45000,
    }

    response = client.post("/api/claims", json=payload)
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    claim = body["claim"]
    assert claim["status"] == "pending"
    assert CLAIM_NUMBER.match(claim["claim_number"])

    detail = client.get(f"/api/claims/{claim['id']}")
    assert detail.status_code == 200
    data = detail.json()
    assert data["claim"]["id"] == claim["id"]
    assert data["claim"]["claim_number"] == claim["claim_number"]
    assert data["claim"]["incident_location"] == "Pune"
    assert data["claim"]["policy_number"] == policy["policy_number"]
    assert data["claim"]["policy_holder_name"] == "Rahul Sharma"
    assert data["documents"] == []
    assert data["notes"] == []
    assert data["survey"] == []
    assert data["payment"] == []


def test_rapid_creations_get_distinct_numbers(client, policy):
    """Claims created back to back never share a number"""
    numbers = []
    for _ in range(5):
        response = client.post("/api/claims", json={"policyId": policy["id"], "incidentDate": "2025-01-01"})
        assert response.status_code == 200
        numbers.append(response.json()["claim"]["claim_number"])

    assert len(set(numbers)) == 5
    assert all(CLAIM_NUMBER.match(n) for n in numbers)
    assert [n[-3:] for n in numbers] == ["001", "002", "003", "004", "005"]


def test_report_date_defaults_to_today(client, policy):
    response = client.post("/api/claims", json={"policyId": policy["id"], "incidentDate": "2025-01-01"})
    assert response.json()["claim"]["report_date"] == date.today().isoformat()


def test_create_claim_requires_fields(client, policy):
    response = client.post("/api/claims", json={"incidentLocation": "Pune"})
    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "validation"
    assert "policyId: Field required" in body["details"]
    assert "incidentDate: Field required" in body["details"]


def test_create_claim_unknown_policy(client, db):
    response = client.post("/api/claims", json={"policyId": 42, "incidentDate": "2025-01-01"})
    assert response.status_code == 400
    assert response.json()["code"] == "validation"
    assert execute_one("SELECT COUNT(*) AS total FROM claims")["total"] == 0


def test_list_claims_filters_by_status(client, claim):
    client.put(f"/api/claims/{claim['id']}", json={"status": "approved", "approvedAmount": 40000})
    client.post("/api/claims", json={"policyId": claim["policy_id"], "incidentDate": "2025-02-01"})

    all_claims = client.get("/api/claims").json()["claims"]
    assert len(all_claims) == 2
    assert all_claims[0]["claimant"] == "Rahul Sharma"

    approved = client.get("/api/claims", params={"status": "approved"}).json()["claims"]
    assert [c["id"] for c in approved] == [claim["id"]]

    assert len(client.get("/api/claims", params={"status": "all"}).json()["claims"]) == 2
    assert client.get("/api/claims", params={"status": "lost"}).status_code == 400


def test_update_status(client, claim):
    response = client.put(f"/api/claims/{claim['id']}", json={"status": "approved", "approvedAmount": 40000})
    assert response.status_code == 200
    updated = response.json()["claim"]
    assert updated["status"] == "approved"
    assert updated["approved_amount"] == 40000


def test_update_status_rejects_unknown_value(client, claim):
    response = client.put(f"/api/claims/{claim['id']}", json={"status": "paid"})
    assert response.status_code == 400
    assert response.json()["code"] == "validation"
    assert client.get(f"/api/claims/{claim['id']}").json()["claim"]["status"] == "pending"


def test_update_status_unknown_claim(client, db):
    response = client.put("/api/claims/999", json={"status": "approved"})
    assert response.status_code == 404
    assert response.json() == {"error": "Claim not found", "code": "not_found"}


def test_claim_detail_not_found(client, db):
    assert client.get("/api/claims/999").status_code == 404


def test_add_note(client, claim):
    response = client.post(f"/api/claims/{claim['id']}/notes", json={"noteText": "Called the garage", "createdBy": "asha"})
    assert response.status_code == 200
    note = response.json()["note"]
    assert note["note_text"] == "Called the garage"

    notes = client.get(f"/api/claims/{claim['id']}").json()["notes"]
    assert [n["id"] for n in notes] == [note["id"]]


def test_add_note_validation_and_missing_claim(client, claim):
    assert client.post(f"/api/claims/{claim['id']}/notes", json={"noteText": "   "}).status_code == 400
    assert client.post("/api/claims/999/notes", json={"noteText": "hello"}).status_code == 404


def test_openapi_documents_envelopes(client, db):
    schemas = client.get("/openapi.json").json()["components"]["schemas"]
    for name in ("ClaimDetailResponse", "ClaimCreatedResponse", "SurveyView", "RenewalStatusResponse"):
        assert name in schemas
    assert "status" in schemas["ClaimRecord"]["required"]


def test_detail_keeps_undeclared_columns(client, claim):
    """Columns beyond the declared record fields still reach the client"""
    data = client.get(f"/api/claims/{claim['id']}").json()["claim"]
    assert data["incident_date"] == "2025-01-01"
    assert data["policy_holder_name"] == "Rahul Sharma"
    assert data["estimated_amount"] == 45000
