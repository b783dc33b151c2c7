SURVEYOR = {
    "name": "Kiran Desai",
    "email": "kiran@surveys.example.com",
    "phone": "+91 98200 22222",
    "specialization": "Property",
    "licenseNumber": "IRDA-55421",
    "yearsExperience": 12,
    "address": "Nashik",
}


def test_create_and_list(client, db):
    response = client.post("/api/surveyors", json=SURVEYOR)
    assert response.status_code == 201
    created = response.json()["surveyor"]
    assert created["license_number"] == "IRDA-55421"

    surveyors = client.get("/api/surveyors").json()["surveyors"]
    assert [s["name"] for s in surveyors] == ["Kiran Desai"]
    assert surveyors[0]["assigned_claims"] == 0


def test_create_requires_every_field(client, db):
    payload = {k: v for k, v in SURVEYOR.items() if k != "licenseNumber"}
    response = client.post("/api/surveyors", json=payload)
    assert response.status_code == 400
    assert "licenseNumber: Field required" in response.json()["details"]


def test_get_includes_assigned_claims(client, claim, surveyor):
    client.post(f"/api/claims/{claim['id']}/assign-surveyor", json={"surveyorId": surveyor["id"]})
    body = client.get(f"/api/surveyors/{surveyor['id']}").json()
    assert body["surveyor"]["name"] == "Anil Kapoor"
    assert [c["claim_number"] for c in body["claims"]] == [claim["claim_number"]]


def test_update(client, surveyor):
    response = client.put(f"/api/surveyors/{surveyor['id']}", json={**SURVEYOR, "notes": "Prefers mornings"})
    assert response.status_code == 200
    assert response.json()["surveyor"]["notes"] == "Prefers mornings"
    assert client.put("/api/surveyors/999", json=SURVEYOR).status_code == 404


def test_delete_blocked_while_assigned(client, claim, surveyor):
    client.post(f"/api/claims/{claim['id']}/assign-surveyor", json={"surveyorId": surveyor["id"]})

    response = client.delete(f"/api/surveyors/{surveyor['id']}")
    assert response.status_code == 400
    assert response.json()["error"] == "Cannot delete surveyor with assigned claims"
    assert client.get(f"/api/surveyors/{surveyor['id']}").status_code == 200


def test_delete_unassigned(client, surveyor):
    assert client.delete(f"/api/surveyors/{surveyor['id']}").json() == {"success": True}
    assert client.get(f"/api/surveyors/{surveyor['id']}").status_code == 404
    assert client.delete(f"/api/surveyors/{surveyor['id']}").status_code == 404


def test_delete_after_reassignment_keeps_their_survey(client, claim, surveyor, other_surveyor):
    """A surveyor with a written report but no assignment can still be deleted"""
    url = f"/api/claims/{claim['id']}"
    client.post(f"{url}/assign-surveyor", json={"surveyorId": surveyor["id"]})
    client.post(f"{url}/survey", json={
        "surveyorId": surveyor["id"], "surveyDate": "2025-01-03", "surveyReport": "Bumper replacement", "status": "completed",
    })
    client.post(f"{url}/assign-surveyor", json={"surveyorId": other_surveyor["id"]})

    response = client.delete(f"/api/surveyors/{surveyor['id']}")
    assert response.status_code == 200
    assert response.json() == {"success": True}

    body = client.get(f"{url}/survey").json()
    assert body["survey"]["survey_report"] == "Bumper replacement"
    assert body["survey"]["surveyor_id"] is None
    assert body["assignedSurveyor"]["name"] == "Meera Iyer"

    detail = client.get(url).json()
    assert detail["claim"]["status"] == "surveyed"
    assert detail["survey"][0]["surveyor_name"] is None
