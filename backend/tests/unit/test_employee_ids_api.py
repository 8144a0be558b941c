from __future__ import annotations

from datetime import date
from unittest.mock import patch

from staffid.models.employee_id import (
    CreateEmployeeResponse,
    DirectoryEntry,
    GenerationResult,
    IdStatus,
    SyncResult,
)
from staffid.services.directory_service import IdConflictError


def test_list_placeholders(client):
    response = client.get("/api/v1/employee-id-formats/placeholders")
    assert response.status_code == 200
    placeholders = [p["placeholder"] for p in response.json()]
    assert "{YYYY}" in placeholders
    assert "{###}" in placeholders


def test_validate_valid_format(client):
    response = client.post("/api/v1/employee-id-formats/validate", json={"format": "EMP-{DEPT}-{###}"})
    assert response.status_code == 200
    data = response.json()
    assert data["valid"] is True
    assert data["errors"] == []
    assert data["preview"] == "EMP-HR-001"
    assert data["examples"][:2] == ["EMP-HR-001", "EMP-HR-002"]
    assert len(data["examples"]) == 5


def test_validate_invalid_format(client):
    response = client.post("/api/v1/employee-id-formats/validate", json={"format": "EMP{FOO}"})
    assert response.status_code == 200
    data = response.json()
    assert data["valid"] is False
    assert "Unknown placeholder: {FOO}" in data["errors"]
    assert data["preview"] is None


def test_parse_employee_id(client):
    response = client.post(
        "/api/v1/employee-id-formats/parse",
        json={"format": "EMP{YYYY}-{###}", "employeeId": "EMP2024-042"},
    )
    assert response.status_code == 200
    assert response.json() == {"matches": True, "parts": {"year": 2024, "sequence": 42}}


def test_organization_endpoints_require_directory(client):
    response = client.get("/api/v1/organizations/org1/employee-ids/format")
    assert response.status_code == 503


def test_get_format(directory_client):
    response = directory_client.get("/api/v1/organizations/org1/employee-ids/format")
    assert response.status_code == 200
    data = response.json()
    assert data["format"] == "EMP{YYYY}-{###}"
    assert data["isDefault"] is False
    assert data["preview"] == f"EMP{date.today().year}-001"


def test_preview_next_id(directory_client, mock_directory):
    year = date.today().year
    mock_directory.get_existing_ids.return_value = {f"EMP{year}-001", f"EMP{year}-002"}

    response = directory_client.get("/api/v1/organizations/org1/employee-ids/next")
    assert response.status_code == 200
    data = response.json()
    assert data["employeeId"] == f"EMP{year}-003"
    assert data["strategy"] == "sequence"
    assert data["conflict"] is None


def test_preview_next_id_directory_failure(directory_client, mock_directory):
    mock_directory.get_existing_ids.side_effect = RuntimeError("cosmos down")

    response = directory_client.get("/api/v1/organizations/org1/employee-ids/next")
    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to retrieve employee directory"


def test_create_employee_schedules_sync(directory_client, mock_directory):
    mock_directory.create_employee.return_value = CreateEmployeeResponse(
        employee=DirectoryEntry(id="u9", employee_id="EMP2024-003", name="Grace Hopper"),
        generation=GenerationResult(employee_id="EMP2024-003", strategy="sequence"),
    )

    with patch("staffid.api.v1.endpoints.organizations.sync_scheduler") as scheduler:
        response = directory_client.post(
            "/api/v1/organizations/org1/employees",
            json={"name": "Grace Hopper", "employeeType": "Full-time"},
        )

    assert response.status_code == 201
    data = response.json()
    assert data["employee"]["employeeId"] == "EMP2024-003"
    assert data["generation"]["strategy"] == "sequence"
    request = mock_directory.create_employee.await_args.args[1]
    assert request.employee_type == "Full-time"
    scheduler.schedule.assert_called_once_with("org1")


def test_create_employee_conflict(directory_client, mock_directory):
    mock_directory.create_employee.side_effect = IdConflictError("Could not reserve an employee ID after 3 attempts")

    with patch("staffid.api.v1.endpoints.organizations.sync_scheduler") as scheduler:
        response = directory_client.post("/api/v1/organizations/org1/employees", json={"name": "Grace Hopper"})

    assert response.status_code == 409
    scheduler.schedule.assert_not_called()


def test_create_employee_requires_name(directory_client):
    response = directory_client.post("/api/v1/organizations/org1/employees", json={"email": "x@example.com"})
    assert response.status_code == 422


def test_run_sync(directory_client, mock_directory):
    mock_directory.sync_organization.return_value = SyncResult(fixed=1, errors=["Alan Turing (legacy-17): boom"])

    response = directory_client.post("/api/v1/organizations/org1/employee-ids/sync")
    assert response.status_code == 200
    assert response.json() == {"fixed": 1, "errors": ["Alan Turing (legacy-17): boom"]}
    mock_directory.sync_organization.assert_awaited_once_with("org1", dry_run=False)


def test_run_sync_dry_run(directory_client, mock_directory):
    mock_directory.sync_organization.return_value = SyncResult(fixed=2)

    response = directory_client.post("/api/v1/organizations/org1/employee-ids/sync?dryRun=true")
    assert response.status_code == 200
    assert response.json()["fixed"] == 2
    mock_directory.sync_organization.assert_awaited_once_with("org1", dry_run=True)


def test_run_sync_failure(directory_client, mock_directory):
    mock_directory.sync_organization.side_effect = RuntimeError("cosmos down")

    response = directory_client.post("/api/v1/organizations/org1/employee-ids/sync")
    assert response.status_code == 500


def test_sync_state_defaults_to_idle(client):
    response = client.get("/api/v1/organizations/never-synced/employee-ids/sync")
    assert response.status_code == 200
    assert response.json()["state"] == "idle"


def test_get_status(directory_client, mock_directory):
    mock_directory.get_id_status.return_value = IdStatus(total_employees=4, mismatches=2, status="has_mismatches")

    response = directory_client.get("/api/v1/organizations/org1/employee-ids/status")
    assert response.status_code == 200
    assert response.json() == {"totalEmployees": 4, "mismatches": 2, "status": "has_mismatches"}
