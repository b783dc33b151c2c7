import re


def _policy_payload(holder_id, **overrides):
    payload = {
        "policyHolderId": holder_id,
        "policyType": "third_party",
        "startDate": "2025-01-01",
        "endDate": "2025-12-31",
        "premiumAmount": 4500,
        "coverageAmount": 100000,
    }
    payload.update(overrides)
    return payload


def test_create_policy_generates_number(client, holder):
    response = client.post("/api/policies", json=_policy_payload(holder["id"]))
    assert response.status_code == 201
    policy = response.json()["policy"]
    assert re.match(r"^POL-\d{4}-\d{4}$", policy["policy_number"])
    assert policy["status"] == "active"

    fetched = client.get(f"/api/policies/{policy['id']}").json()["policy"]
    assert fetched["policy_holder_name"] == "Rahul Sharma"


def test_explicit_policy_number_must_be_unique(client, holder):
    payload = _policy_payload(holder["id"], policyNumber="POL-2023-003")
    assert client.post("/api/policies", json=payload).status_code == 201
    response = client.post("/api/policies", json=payload)
    assert response.status_code == 409
    assert response.json()["code"] == "conflict"


def test_create_policy_validation(client, holder):
    assert client.post("/api/policies", json=_policy_payload(999)).status_code == 400
    assert client.post("/api/policies", json=_policy_payload(holder["id"], vehicleId=999)).status_code == 400
    assert client.post("/api/policies", json=_policy_payload(holder["id"], endDate="2024-12-31")).status_code == 400


def test_search(client, holder):
    for number in ("POL-2023-001", "POL-2023-002", "POL-2024-001"):
        client.post("/api/policies", json=_policy_payload(holder["id"], policyNumber=number))

    found = client.get("/api/policies/search", params={"query": "pol-2023"}).json()["policies"]
    assert [p["policy_number"] for p in found] == ["POL-2023-001", "POL-2023-002"]
    assert len(client.get("/api/policies/search").json()["policies"]) == 3
    assert client.get("/api/policies/search", params={"query": "nothing"}).json()["policies"] == []


def test_policy_holders_and_vehicles(client, policy, holder):
    holders = client.get("/api/policy-holders").json()["policyHolders"]
    assert [h["name"] for h in holders] == ["Rahul Sharma"]

    detail = client.get(f"/api/policy-holders/{holder['id']}").json()
    assert [p["id"] for p in detail["policies"]] == [policy["id"]]
    assert [v["registration"] for v in detail["vehicles"]] == ["MH12AB1234"]

    vehicles = client.get("/api/vehicles").json()["vehicles"]
    assert vehicles[0]["policy_holder_name"] == "Rahul Sharma"
    assert client.get(f"/api/vehicles/{vehicles[0]['id']}").status_code == 200
    assert client.get("/api/vehicles/999").status_code == 404
    assert client.get("/api/policy-holders/999").status_code == 404


def test_create_holder_and_vehicle(client, db):
    response = client.post("/api/policy-holders", json={"name": "Suresh Reddy", "idNumber": "ABCDE1234F"})
    assert response.status_code == 201
    holder = response.json()["policyHolder"]
    assert holder["id_number"] == "ABCDE1234F"

    vehicle = client.post("/api/vehicles", json={
        "registration": "KA01MN4321", "make": "Hyundai", "model": "Creta", "policyHolderId": holder["id"],
    })
    assert vehicle.status_code == 201
    assert client.post("/api/vehicles", json={
        "registration": "KA01MN4321", "make": "Hyundai", "model": "Creta", "policyHolderId": 999,
    }).status_code == 400


def test_search_treats_wildcards_literally(client, holder):
    for number in ("POL-2024-001", "POL_2024_002"):
        client.post("/api/policies", json=_policy_payload(holder["id"], policyNumber=number))

    found = client.get("/api/policies/search", params={"query": "pol_"}).json()["policies"]
    assert [p["policy_number"] for p in found] == ["POL_2024_002"]
    assert client.get("/api/policies/search", params={"query": "%"}).json()["policies"] == []
