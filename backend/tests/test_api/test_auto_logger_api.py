"""Tests for the auto-logger control endpoints."""

from datetime import datetime
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from app.services.routines import AutoLogResult, ProcessedKeys, get_current_time_info
from app.services.routines.background_tasks import routine_auto_logger


@pytest.fixture
def owned_logger(mocker):
    """Assign the process-wide auto-logger to the test user."""
    mocker.patch.object(routine_auto_logger, "user_id", "user-1")
    mocker.patch.object(routine_auto_logger, "enabled", True)
    return routine_auto_logger


class TestAutoLoggerEndpoints:
    def test_requires_auth(self, client: TestClient):
        assert client.get("/api/auto-logger/status").status_code == 401

    def test_status(self, client: TestClient, auth_headers: dict, owned_logger):
        response = client.get("/api/auto-logger/status", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["user_id"] == "user-1"
        assert data["enabled"] is True
        assert data["active"] is False

    def test_other_user_forbidden(self, client: TestClient, other_user_headers: dict, owned_logger):
        response = client.get("/api/auto-logger/status", headers=other_user_headers)
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "AUTHORIZATION_ERROR"

    def test_check(self, client: TestClient, auth_headers: dict, owned_logger, mocker):
        mocker.patch.object(
            owned_logger,
            "check_routines",
            new=AsyncMock(
                return_value=AutoLogResult(success=True, summary={"auto_logs_created": 2})
            ),
        )

        response = client.post("/api/auto-logger/check", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"success": True, "summary": {"auto_logs_created": 2}}

    def test_check_skipped(self, client: TestClient, auth_headers: dict, owned_logger, mocker):
        mocker.patch.object(owned_logger, "check_routines", new=AsyncMock(return_value=None))

        data = client.post("/api/auto-logger/check", headers=auth_headers).json()

        assert data["success"] is False
        assert data["skipped"] is True
        assert data["status"]["user_id"] == "user-1"

    def test_start(self, client: TestClient, auth_headers: dict, owned_logger, mocker):
        update = mocker.patch.object(owned_logger, "update", new=AsyncMock())

        response = client.post("/api/auto-logger/start", headers=auth_headers)

        assert response.status_code == 200
        update.assert_awaited_once_with(enabled=True, user_id="user-1")

    def test_stop(self, client: TestClient, auth_headers: dict, owned_logger, mocker):
        update = mocker.patch.object(owned_logger, "update", new=AsyncMock())

        response = client.post("/api/auto-logger/stop", headers=auth_headers)

        assert response.status_code == 200
        update.assert_awaited_once_with(enabled=False)

    def test_clear(self, client: TestClient, auth_headers: dict, owned_logger, mocker):
        mocker.patch.object(owned_logger, "_processed", ProcessedKeys())
        owned_logger._processed.mark_processed(
            ["v1"], get_current_time_info(datetime(2024, 1, 3, 7, 30))
        )

        response = client.post(
            "/api/auto-logger/clear", headers=auth_headers, params={"scope": "today"}
        )

        assert response.json() == {"status": "cleared", "scope": "today"}
        assert owned_logger.processed_today == set()
        assert owned_logger._processed.this_minute

    def test_clear_rejects_unknown_scope(self, client: TestClient, auth_headers: dict, owned_logger):
        response = client.post(
            "/api/auto-logger/clear", headers=auth_headers, params={"scope": "week"}
        )
        assert response.status_code == 422
