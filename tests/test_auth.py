"""
Tests for admin authentication and the error envelope on protected routes.
"""


def test_login_returns_token(client):
    response = client.post("/api/admin/auth/login", json={"username": "admin", "password": "admin-password"})
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["user"]["username"] == "admin"
    assert body["data"]["token"].count(".") == 2


def test_login_with_wrong_password(client):
    response = client.post("/api/admin/auth/login", json={"username": "admin", "password": "nope"})
    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Invalid credentials"}


def test_protected_route_requires_token(client):
    response = client.get("/api/admin/machines/")
    assert response.status_code == 401
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Access denied. No token provided."


def test_invalid_token_is_rejected(client):
    response = client.get("/api/admin/machines/", headers={"Authorization": "Bearer not.a.token"})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid or expired token"


def test_profile_and_verify(client, auth_headers):
    profile = client.get("/api/admin/auth/profile", headers=auth_headers)
    assert profile.status_code == 200
    assert profile.json()["data"]["email"] == "admin@example.com"
    assert profile.json()["data"]["last_login"] is not None

    verify = client.post("/api/admin/auth/verify-token", headers=auth_headers)
    assert verify.json()["data"]["user"]["username"] == "admin"


def test_change_password(client, auth_headers):
    wrong = client.put(
        "/api/admin/auth/change-password",
        json={"current_password": "wrong", "new_password": "another-secret"},
        headers=auth_headers,
    )
    assert wrong.status_code == 400
    assert wrong.json()["message"] == "Current password is incorrect"

    changed = client.put(
        "/api/admin/auth/change-password",
        json={"current_password": "admin-password", "new_password": "another-secret"},
        headers=auth_headers,
    )
    assert changed.status_code == 200
    relogin = client.post("/api/admin/auth/login", json={"username": "admin", "password": "another-secret"})
    assert relogin.status_code == 200


def test_health_endpoints(client, auth_headers):
    assert client.get("/api/customer/health").json()["success"] is True
    assert client.get("/api/admin/health").json()["data"] == {"status": "ok"}
