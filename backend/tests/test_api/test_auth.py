"""Tests for authentication: the token subject owns routines."""

import pytest
from fastapi.testclient import TestClient

from app.core.security import create_access_token, decode_token


@pytest.mark.parametrize(
    "path,kwargs",
    [
        ("/api/auth/login", {"data": {"username": "admin", "password": "admin"}}),
        ("/api/auth/login/json", {"json": {"username": "admin", "password": "admin"}}),
    ],
)
def test_login_issues_token_for_user(client: TestClient, path: str, kwargs: dict):
    response = client.post(path, **kwargs)

    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert decode_token(body["access_token"]).user_id == "admin"


@pytest.mark.parametrize("username,password", [("nobody", "admin"), ("admin", "wrong")])
def test_bad_credentials(client: TestClient, username: str, password: str):
    response = client.post(
        "/api/auth/login/json", json={"username": username, "password": password}
    )

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTHENTICATION_ERROR"


def test_me_and_verify_report_token_user(client: TestClient, other_user_headers: dict):
    me = client.get("/api/auth/me", headers=other_user_headers).json()
    verify = client.post("/api/auth/verify", headers=other_user_headers).json()

    assert me == {"user_id": "user-2", "authenticated": True}
    assert verify == {"valid": True, "user_id": "user-2"}


@pytest.mark.parametrize(
    "headers",
    [
        {},
        {"Authorization": "Bearer not-a-jwt"},
        {"Authorization": f"Bearer {create_access_token(data={'scope': 'routines'})}"},
    ],
    ids=["missing", "malformed", "no-subject"],
)
def test_routine_routes_reject_unusable_tokens(client: TestClient, headers: dict):
    response = client.get("/api/routines", headers=headers)

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTHENTICATION_ERROR"
