def test_users_crud(client, db):
    response = client.post("/api/users", json={"fullName": "Vikram Singh", "email": "vikram@example.com", "role": "claims_adjuster"})
    assert response.status_code == 201
    user = response.json()["user"]
    assert user["is_active"] is True

    assert client.post("/api/users", json={"fullName": "V S", "email": "VIKRAM@example.com"}).status_code == 409
    assert client.post("/api/users", json={"email": "no-name@example.com"}).status_code == 400

    updated = client.put(f"/api/users/{user['id']}", json={"role": "claims_manager"}).json()["user"]
    assert updated["role"] == "claims_manager"
    assert updated["full_name"] == "Vikram Singh"

    assert [u["email"] for u in client.get("/api/users").json()["users"]] == ["vikram@example.com"]
    client.put(f"/api/users/{user['id']}", json={"isActive": False})
    assert client.get("/api/users").json()["users"] == []

    assert client.delete(f"/api/users/{user['id']}").json() == {"success": True}
    assert client.get(f"/api/users/{user['id']}").status_code == 404


def test_update_user_conflicts(client, user):
    other = client.post("/api/users", json={"fullName": "Neha Gupta", "email": "neha@example.com"}).json()["user"]
    response = client.put(f"/api/users/{other['id']}", json={"email": user["email"]})
    assert response.status_code == 409
    assert client.put("/api/users/999", json={"role": "admin"}).status_code == 404


def test_roles_seeded_on_first_read(client, db):
    roles = {r["name"]: r for r in client.get("/api/roles").json()["roles"]}
    assert set(roles) == {"admin", "claims_manager", "claims_adjuster"}
    assert roles["admin"]["permission_count"] == 17
    assert {p["name"] for p in roles["claims_adjuster"]["permissions"]} == {
        "view_claims", "create_claims", "edit_claims", "view_policies", "view_reports",
    }
    assert len(client.get("/api/roles").json()["roles"]) == 3


def test_update_role_replaces_permissions(client, db):
    roles = {r["name"]: r for r in client.get("/api/roles").json()["roles"]}
    permissions = {p["name"]: p["id"] for p in client.get("/api/permissions").json()["permissions"]}
    adjuster = roles["claims_adjuster"]

    response = client.put("/api/roles", json={
        "id": adjuster["id"],
        "description": "Field adjuster",
        "permissions": [permissions["view_claims"], permissions["approve_claims"]],
    })
    assert response.status_code == 200

    roles = {r["name"]: r for r in client.get("/api/roles").json()["roles"]}
    assert roles["claims_adjuster"]["description"] == "Field adjuster"
    assert {p["name"] for p in roles["claims_adjuster"]["permissions"]} == {"view_claims", "approve_claims"}


def test_update_role_with_unknown_permission_changes_nothing(client, db):
    adjuster = next(r for r in client.get("/api/roles").json()["roles"] if r["name"] == "claims_adjuster")
    response = client.put("/api/roles", json={"id": adjuster["id"], "description": "changed", "permissions": [9999]})
    assert response.status_code == 400

    after = next(r for r in client.get("/api/roles").json()["roles"] if r["name"] == "claims_adjuster")
    assert after["description"] == adjuster["description"]
    assert after["permission_count"] == 5
    assert client.put("/api/roles", json={"id": 999, "permissions": []}).status_code == 404


def test_settings_singleton(client, db):
    settings = client.get("/api/settings").json()["settings"]
    assert settings["companyName"] == "HIB Insurance"
    assert settings["darkMode"] is False
    assert settings["emailNotifications"] is True

    updated = client.put("/api/settings", json={"darkMode": True, "contactPhone": "+91 20 5555 0000"}).json()["settings"]
    assert updated["darkMode"] is True
    assert updated["contactPhone"] == "+91 20 5555 0000"
    assert updated["companyName"] == "HIB Insurance"

    assert client.get("/api/settings").json()["settings"]["darkMode"] is True
