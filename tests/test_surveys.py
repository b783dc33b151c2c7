from sqlalchemy.exc import OperationalError

from claims_crm.db.database import execute
from claims_crm.services import surveys


def _survey_payload(surveyor_id, **overrides):
    payload = {
        "surveyorId": surveyor_id,
        "surveyDate": "2025-01-05",
        "surveyLocation": "Hadapsar, Pune",
        "surveyReport": "Rear bumper and left taillight need replacement",
        "surveyAmount": 38000,
    }
    payload.update(overrides)
    return payload


def test_completed_survey_marks_claim_surveyed(client, claim, surveyor):
    response = client.post(f"/api/claims/{claim['id']}/survey", json=_survey_payload(surveyor["id"], status="completed"))
    assert response.status_code == 200
    survey = response.json()["survey"]
    assert survey["status"] == "completed"
    assert survey["survey_location"] == "Hadapsar, Pune"
    assert survey["survey_amount"] == 38000

    assert client.get(f"/api/claims/{claim['id']}").json()["claim"]["status"] == "surveyed"


def test_pending_survey_leaves_claim_status(client, claim, surveyor):
    client.post(f"/api/claims/{claim['id']}/survey", json=_survey_payload(surveyor["id"]))
    assert client.get(f"/api/claims/{claim['id']}").json()["claim"]["status"] == "pending"


def test_second_submission_updates_the_same_row(client, claim, surveyor, other_surveyor):
    url = f"/api/claims/{claim['id']}/survey"
    first = client.post(url, json=_survey_payload(surveyor["id"])).json()["survey"]
    second = client.post(url, json=_survey_payload(other_surveyor["id"], status="in_progress", surveyAmount=41000)).json()["survey"]

    assert second["id"] == first["id"]
    rows = execute("SELECT surveyor_id, amount, status FROM claim_surveys WHERE claim_id = :id", {"id": claim["id"]})
    assert rows == [{"surveyor_id": other_surveyor["id"], "amount": 41000, "status": "in_progress"}]


def test_failed_claim_update_rolls_back_survey(client, claim, surveyor, monkeypatch):
    """If the claim status write fails the survey must not be saved either"""
    def fail(claim_id, conn):
        raise OperationalError("UPDATE claims", {}, Exception("database is locked"))

    monkeypatch.setattr(surveys, "mark_claim_surveyed", fail)

    response = client.post(f"/api/claims/{claim['id']}/survey", json=_survey_payload(surveyor["id"], status="completed"))
    assert response.status_code == 500
    assert response.json() == {"error": "Database operation failed", "code": "upstream_failure"}

    assert client.get(f"/api/claims/{claim['id']}/survey").json() == {"survey": None, "assignedSurveyor": None}
    assert client.get(f"/api/claims/{claim['id']}").json()["claim"]["status"] == "pending"


def test_survey_validation(client, claim, surveyor):
    url = f"/api/claims/{claim['id']}/survey"
    assert client.post(url, json={"surveyorId": surveyor["id"]}).status_code == 400
    assert client.post(url, json=_survey_payload(surveyor["id"], status="done")).status_code == 400

    unknown = client.post(url, json=_survey_payload(999))
    assert unknown.status_code == 400
    assert unknown.json()["error"] == "Surveyor not found"

    assert client.post("/api/claims/999/survey", json=_survey_payload(surveyor["id"])).status_code == 404


def test_get_survey_falls_back_to_assignment(client, claim, surveyor):
    client.post(f"/api/claims/{claim['id']}/assign-surveyor", json={"surveyorId": surveyor["id"]})

    body = client.get(f"/api/claims/{claim['id']}/survey").json()
    assert body["survey"] is None
    assert body["assignedSurveyor"] == {"id": surveyor["id"], "name": "Anil Kapoor", "specialization": "Motor"}


def test_survey_appears_in_claim_detail(client, claim, surveyor):
    client.post(f"/api/claims/{claim['id']}/survey", json=_survey_payload(surveyor["id"]))
    detail = client.get(f"/api/claims/{claim['id']}").json()
    assert len(detail["survey"]) == 1
    assert detail["survey"][0]["surveyor_name"] == "Anil Kapoor"


def test_delete_survey(client, claim, surveyor):
    url = f"/api/claims/{claim['id']}/survey"
    assert client.delete(url).status_code == 404
    client.post(url, json=_survey_payload(surveyor["id"]))
    assert client.delete(url).json() == {"success": True}
    assert client.get(url).json()["survey"] is None
