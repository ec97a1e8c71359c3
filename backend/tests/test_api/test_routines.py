"""Tests for routine endpoints."""

from fastapi.testclient import TestClient

from app.models import VariableLog


class TestRoutineCrud:
    """Routine create/read/update/delete."""

    def test_requires_auth(self, client: TestClient):
        response = client.get("/api/routines")
        assert response.status_code == 401

    def test_list_routines(self, client: TestClient, auth_headers: dict, morning_routine):
        response = client.get("/api/routines", headers=auth_headers)
        assert response.status_code == 200
        routines = response.json()["routines"]
        assert len(routines) == 1
        assert routines[0]["routine_name"] == "Morning"
        assert [v["variable_name"] for v in routines[0]["variables"]] == ["Creatine", "Water"]

    def test_list_is_per_user(self, client: TestClient, other_user_headers: dict, morning_routine):
        response = client.get("/api/routines", headers=other_user_headers)
        assert response.json() == {"routines": []}

    def test_create_routine(self, client: TestClient, auth_headers: dict, variables):
        response = client.post(
            "/api/routines",
            headers=auth_headers,
            json={
                "routine_name": "Evening",
                "weekdays": [1, 2, 3],
                "variables": [
                    {
                        "variable_id": variables["meditation"].id,
                        "default_value": 10,
                        "default_unit": "min",
                        "times": [{"time": "21:00", "name": "Bedtime"}],
                    }
                ],
            },
        )
        assert response.status_code == 201
        data = response.json()
        assert data["weekdays"] == [1, 2, 3]
        assert data["is_active"] is True
        variable = data["variables"][0]
        assert variable["default_value"] == "10"
        assert variable["weekdays"] == [1, 2, 3]
        assert variable["times"] == [{"time": "21:00", "name": "Bedtime"}]

    def test_create_with_bad_weekday(self, client: TestClient, auth_headers: dict):
        response = client.post(
            "/api/routines",
            headers=auth_headers,
            json={"routine_name": "Bad", "weekdays": [0]},
        )
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_create_with_unknown_variable(self, client: TestClient, auth_headers: dict, test_db):
        response = client.post(
            "/api/routines",
            headers=auth_headers,
            json={
                "routine_name": "Bad",
                "weekdays": [1],
                "variables": [{"variable_id": 999, "times": [{"time": "07:00"}]}],
            },
        )
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_get_routine(self, client: TestClient, auth_headers: dict, morning_routine):
        response = client.get(f"/api/routines/{morning_routine.id}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["notes"] == "Morning stack"

    def test_get_other_users_routine(
        self, client: TestClient, other_user_headers: dict, morning_routine
    ):
        response = client.get(f"/api/routines/{morning_routine.id}", headers=other_user_headers)
        assert response.status_code == 404

    def test_pause_routine(self, client: TestClient, auth_headers: dict, morning_routine):
        response = client.patch(
            f"/api/routines/{morning_routine.id}/active",
            headers=auth_headers,
            json={"is_active": False},
        )
        assert response.status_code == 200
        assert response.json()["is_active"] is False

        bindings = client.get("/api/routines/bindings", headers=auth_headers).json()
        assert bindings == {"bindings": []}

    def test_delete_routine(self, client: TestClient, auth_headers: dict, morning_routine):
        response = client.delete(f"/api/routines/{morning_routine.id}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == {"status": "deleted", "id": morning_routine.id}

        response = client.get(f"/api/routines/{morning_routine.id}", headers=auth_headers)
        assert response.status_code == 404


class TestBindings:
    def test_bindings(self, client: TestClient, auth_headers: dict, morning_routine):
        response = client.get("/api/routines/bindings", headers=auth_headers)
        assert response.status_code == 200
        bindings = response.json()["bindings"]
        assert [b["variable_slug"] for b in bindings] == ["creatine", "water"]
        assert bindings[1]["weekdays"] == [1, 2, 3, 4, 5]
        assert bindings[1]["times"] == [
            {"time": "07:30", "name": None},
            {"time": "12:00:00", "name": "Lunch"},
        ]


class TestCreateAutoLogs:
    """The endpoint the auto-logger calls."""

    def test_creates_logs_for_date(self, client: TestClient, auth_headers: dict, morning_routine):
        response = client.post(
            "/api/routines/create-auto-logs",
            headers=auth_headers,
            json={"targetDate": "2024-01-03", "userId": "user-1"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["summary"] == {
            "total_routines_processed": 3,
            "auto_logs_created": 3,
            "skipped": 0,
            "errors": 0,
        }
        assert data["message"] == "Successfully created 3 auto-logs"
        assert len(data["details"]) == 3

    def test_repeat_call_skips(self, client: TestClient, auth_headers: dict, morning_routine):
        body = {"targetDate": "2024-01-03"}
        client.post("/api/routines/create-auto-logs", headers=auth_headers, json=body)

        data = client.post(
            "/api/routines/create-auto-logs", headers=auth_headers, json=body
        ).json()

        assert data["summary"]["auto_logs_created"] == 0
        assert data["summary"]["skipped"] == 3
        assert data["message"] == "Successfully created 0 auto-logs, skipped 3"

    def test_other_user_forbidden(self, client: TestClient, auth_headers: dict, morning_routine):
        response = client.post(
            "/api/routines/create-auto-logs",
            headers=auth_headers,
            json={"targetDate": "2024-01-03", "userId": "user-2"},
        )
        assert response.status_code == 403

    def test_failure_returns_500(self, client: TestClient, auth_headers: dict, mocker):
        mocker.patch(
            "app.api.routes.routines.AutoLogService.create_routine_auto_logs",
            side_effect=RuntimeError("database is locked"),
        )

        response = client.post(
            "/api/routines/create-auto-logs",
            headers=auth_headers,
            json={"targetDate": "2024-01-03"},
        )

        assert response.status_code == 500
        assert response.json() == {
            "error": "Failed to create auto-logs",
            "details": "database is locked",
        }


class TestPlannedLogs:
    """Planned logs and batch logging."""

    def test_planned_logs(self, client: TestClient, auth_headers: dict, morning_routine):
        # Friday and Saturday
        response = client.get(
            "/api/routines/planned",
            headers=auth_headers,
            params={"start": "2024-01-05", "end": "2024-01-06"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 3
        assert {log["date"] for log in data["logs"]} == {"2024-01-05"}

    def test_planned_logs_grouped(self, client: TestClient, auth_headers: dict, morning_routine):
        response = client.get(
            "/api/routines/planned",
            headers=auth_headers,
            params={"start": "2024-01-01", "end": "2024-01-07", "group_by": "date"},
        )
        data = response.json()
        assert data["group_by"] == "date"
        assert data["total"] == 15
        assert sorted(data["groups"]) == [
            "2024-01-01", "2024-01-02", "2024-01-03", "2024-01-04", "2024-01-05",
        ]

    def test_planned_logs_bad_range(self, client: TestClient, auth_headers: dict):
        response = client.get(
            "/api/routines/planned",
            headers=auth_headers,
            params={"start": "2024-01-07", "end": "2024-01-01"},
        )
        assert response.status_code == 422

    def test_batch_log(self, client: TestClient, auth_headers: dict, test_db, variables):
        log = {
            "variable_id": variables["creatine"].id,
            "variable_name": "Creatine",
            "routine_id": 1,
            "routine_name": "Morning",
            "date": "2024-01-03",
            "time_of_day": "07:30",
            "default_value": "5",
            "default_unit": "g",
        }

        response = client.post("/api/routines/batch-log", headers=auth_headers, json={"logs": [log]})
        assert response.status_code == 200
        assert response.json()["created"] == 1

        response = client.post("/api/routines/batch-log", headers=auth_headers, json={"logs": [log]})
        assert response.json()["skipped"] == 1
        assert test_db.query(VariableLog).count() == 1
