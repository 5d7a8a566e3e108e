"""
Tests for leave, balance and leave type endpoints
"""
from fastapi import status

from leave_engine.models.leave import LeaveStatus
from leave_engine.tests.conftest import YEAR, auth_headers


def _submit(client, employee, leave_type, start="2026-03-02", end="2026-03-06", **extra):
    payload = {"leave_type_id": leave_type.id, "start_date": start, "end_date": end}
    payload.update(extra)
    return client.post("/api/v1/leaves", json=payload, headers=auth_headers(employee))


def test_submit_and_approve_flow(client, reportee_employee, manager_employee, annual_leave, reportee_balance):
    response = _submit(client, reportee_employee, annual_leave, reason="Holiday")
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["status"] == "PENDING"
    assert data["days_count"] == 5.0

    pending = client.get("/api/v1/leaves/pending", headers=auth_headers(manager_employee))
    assert pending.status_code == status.HTTP_200_OK
    assert [item["id"] for item in pending.json()["items"]] == [data["id"]]

    response = client.post(
        f"/api/v1/leaves/{data['id']}/approve",
        json={"comment": "Enjoy"},
        headers=auth_headers(manager_employee),
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == LeaveStatus.APPROVED.value

    balances = client.get(f"/api/v1/balances/me?year={YEAR}", headers=auth_headers(reportee_employee))
    assert balances.status_code == status.HTTP_200_OK
    item = balances.json()["items"][0]
    assert item["used_days"] == 5.0
    assert item["remaining_days"] == 15.0
    assert item["pending_days"] == 0.0


def test_pending_days_show_in_balance(client, reportee_employee, annual_leave, reportee_balance):
    _submit(client, reportee_employee, annual_leave, start="2026-03-02", end="2026-03-03")

    item = client.get(f"/api/v1/balances/me?year={YEAR}", headers=auth_headers(reportee_employee)).json()["items"][0]
    assert item["pending_days"] == 2.0
    assert item["available_days"] == 18.0
    assert item["remaining_days"] == 20.0


def test_invalid_range_error_shape(client, reportee_employee, annual_leave, reportee_balance):
    response = _submit(client, reportee_employee, annual_leave, start="2026-03-06", end="2026-03-02")
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    body = response.json()
    assert body["error"] is True
    assert body["error_code"] == "INVALID_RANGE"
    assert body["retryable"] is False


def test_overlap_returns_conflict(client, reportee_employee, annual_leave, reportee_balance):
    first = _submit(client, reportee_employee, annual_leave).json()
    response = _submit(client, reportee_employee, annual_leave, start="2026-03-04", end="2026-03-10")
    assert response.status_code == status.HTTP_409_CONFLICT
    body = response.json()
    assert body["error_code"] == "OVERLAPPING_REQUEST"
    assert body["entity_id"] == first["id"]
    assert body["current_status"] == "PENDING"


def test_insufficient_balance_carries_stage(client, reportee_employee, annual_leave, make_balance):
    make_balance(reportee_employee, annual_leave, allocated=2)
    response = _submit(client, reportee_employee, annual_leave)
    assert response.status_code == status.HTTP_409_CONFLICT
    body = response.json()
    assert body["error_code"] == "INSUFFICIENT_BALANCE"
    assert body["stage"] == "submission"
    assert body["requested"] == 5.0
    assert body["available"] == 2.0


def test_self_approval_forbidden(client, reportee_employee, annual_leave, reportee_balance):
    leave_id = _submit(client, reportee_employee, annual_leave).json()["id"]
    response = client.post(f"/api/v1/leaves/{leave_id}/approve", headers=auth_headers(reportee_employee))
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["error_code"] == "UNAUTHORIZED"


def test_double_approve_is_invalid_transition(client, reportee_employee, manager_employee, annual_leave, reportee_balance):
    leave_id = _submit(client, reportee_employee, annual_leave).json()["id"]
    client.post(f"/api/v1/leaves/{leave_id}/approve", headers=auth_headers(manager_employee))
    response = client.post(f"/api/v1/leaves/{leave_id}/approve", headers=auth_headers(manager_employee))
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["error_code"] == "INVALID_TRANSITION"
    assert response.json()["current_status"] == "APPROVED"


def test_reject_requires_reason_body(client, reportee_employee, manager_employee, annual_leave, reportee_balance):
    leave_id = _submit(client, reportee_employee, annual_leave).json()["id"]
    response = client.post(f"/api/v1/leaves/{leave_id}/reject", json={}, headers=auth_headers(manager_employee))
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    response = client.post(
        f"/api/v1/leaves/{leave_id}/reject", json={"reason": "Busy"}, headers=auth_headers(manager_employee)
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["decision_comment"] == "Busy"


def test_hr_cancels_approved(client, reportee_employee, manager_employee, hr_employee, annual_leave, reportee_balance):
    leave_id = _submit(client, reportee_employee, annual_leave).json()["id"]
    client.post(f"/api/v1/leaves/{leave_id}/approve", headers=auth_headers(manager_employee))

    response = client.post(f"/api/v1/leaves/{leave_id}/cancel", headers=auth_headers(manager_employee))
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = client.post(
        f"/api/v1/leaves/{leave_id}/cancel", json={"comment": "Reorg"}, headers=auth_headers(hr_employee)
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "CANCELLED"

    audit = client.get(f"/api/v1/leaves/{leave_id}/audit", headers=auth_headers(reportee_employee))
    assert [e["action"] for e in audit.json()] == ["SUBMIT", "APPROVE", "CANCEL_APPROVED"]


def test_request_visibility(client, reportee_employee, other_manager, hr_employee, annual_leave, reportee_balance):
    leave_id = _submit(client, reportee_employee, annual_leave).json()["id"]
    assert client.get(f"/api/v1/leaves/{leave_id}", headers=auth_headers(reportee_employee)).status_code == 200
    assert client.get(f"/api/v1/leaves/{leave_id}", headers=auth_headers(hr_employee)).status_code == 200
    assert client.get(f"/api/v1/leaves/{leave_id}", headers=auth_headers(other_manager)).status_code == 403
    assert client.get("/api/v1/leaves/999", headers=auth_headers(hr_employee)).status_code == 404


def test_my_leaves(client, reportee_employee, annual_leave, reportee_balance):
    _submit(client, reportee_employee, annual_leave)
    response = client.get("/api/v1/leaves/my?status=PENDING", headers=auth_headers(reportee_employee))
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["total"] == 1


def test_missing_token_rejected(client):
    response = client.get("/api/v1/leaves/my")
    assert response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)


def test_invalid_token_rejected(client):
    response = client.get("/api/v1/leaves/my", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_employee_balances_scope(client, reportee_employee, manager_employee, other_manager, reportee_balance):
    url = f"/api/v1/balances/{reportee_employee.id}?year={YEAR}"
    assert client.get(url, headers=auth_headers(manager_employee)).status_code == 200
    assert client.get(url, headers=auth_headers(other_manager)).status_code == 403


def test_initialize_and_reconcile_hr_only(client, reportee_employee, hr_employee, annual_leave):
    response = client.post(
        "/api/v1/balances/initialize", json={"year": YEAR}, headers=auth_headers(reportee_employee)
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = client.post("/api/v1/balances/initialize", json={"year": YEAR}, headers=auth_headers(hr_employee))
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["balances_created"] == 3

    response = client.get(
        f"/api/v1/balances/{reportee_employee.id}/reconcile?leave_type_id={annual_leave.id}&year={YEAR}",
        headers=auth_headers(hr_employee),
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["consistent"] is True


def test_leave_type_admin(client, reportee_employee, manager_employee, hr_employee, admin_employee):
    payload = {"name": "Sick", "default_allocation_days": "10", "max_carryover_days": "0"}
    assert client.post("/api/v1/leave-types", json=payload, headers=auth_headers(reportee_employee)).status_code == 403

    response = client.post("/api/v1/leave-types", json=payload, headers=auth_headers(hr_employee))
    assert response.status_code == status.HTTP_201_CREATED
    leave_type_id = response.json()["id"]

    duplicate = client.post("/api/v1/leave-types", json=payload, headers=auth_headers(admin_employee))
    assert duplicate.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    response = client.post(f"/api/v1/leave-types/{leave_type_id}/deactivate", headers=auth_headers(admin_employee))
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["is_active"] is False

    listed = client.get("/api/v1/leave-types", headers=auth_headers(reportee_employee)).json()
    assert leave_type_id not in [t["id"] for t in listed]
