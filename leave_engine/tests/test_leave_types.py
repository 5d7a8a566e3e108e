"""
Tests for leave type administration
"""
import pytest
from datetime import date
from decimal import Decimal

from leave_engine.core.exceptions import ValidationFailed
from leave_engine.models.leave import AccrualKind
from leave_engine.services import leave_service
from leave_engine.services import leave_type_service
from leave_engine.tests.conftest import YEAR


def test_create_and_update_unused_type(db, hr_employee):
    leave_type = leave_type_service.create_leave_type(
        db, "Study", actor_id=hr_employee.id, default_allocation_days=Decimal("3")
    )
    updated = leave_type_service.update_leave_type(
        db, leave_type.id, actor_id=hr_employee.id, accrual_kind=AccrualKind.MONTHLY, accrual_rate=Decimal("0.5")
    )
    assert updated.accrual_kind == AccrualKind.MONTHLY
    assert updated.accrual_rate == Decimal("0.5")


def test_negative_amounts_rejected(db, hr_employee):
    with pytest.raises(ValidationFailed):
        leave_type_service.create_leave_type(db, "Bad", actor_id=hr_employee.id, max_carryover_days=Decimal("-1"))


def test_type_is_frozen_once_approved_request_references_it(
    db, hr_employee, manager_employee, reportee_employee, annual_leave, reportee_balance
):
    leave_request = leave_service.submit_request(db, reportee_employee, annual_leave.id, date(YEAR, 3, 2), date(YEAR, 3, 2))
    leave_service.approve_request(db, leave_request.id, manager_employee)

    with pytest.raises(ValidationFailed, match="only be deactivated"):
        leave_type_service.update_leave_type(
            db, annual_leave.id, actor_id=hr_employee.id, default_allocation_days=Decimal("25")
        )

    deactivated = leave_type_service.deactivate_leave_type(db, annual_leave.id, actor_id=hr_employee.id)
    assert deactivated.is_active is False


def test_unknown_field_rejected(db, hr_employee, annual_leave):
    with pytest.raises(ValidationFailed):
        leave_type_service.update_leave_type(db, annual_leave.id, actor_id=hr_employee.id, name="Renamed")


def test_freeze_check_runs_under_row_lock(
    db, monkeypatch, hr_employee, manager_employee, reportee_employee, annual_leave, reportee_balance
):
    lock_calls = []
    original = leave_type_service.get_leave_type

    def recording_get_leave_type(db, leave_type_id, for_update=False, shared=False):
        lock_calls.append((for_update, shared))
        return original(db, leave_type_id, for_update=for_update, shared=shared)

    monkeypatch.setattr(leave_type_service, "get_leave_type", recording_get_leave_type)
    monkeypatch.setattr(leave_service, "get_leave_type", recording_get_leave_type)

    leave_request = leave_service.submit_request(db, reportee_employee, annual_leave.id, date(YEAR, 3, 2), date(YEAR, 3, 2))
    leave_service.approve_request(db, leave_request.id, manager_employee)
    assert lock_calls == [(True, True)]

    with pytest.raises(ValidationFailed):
        leave_type_service.update_leave_type(
            db, annual_leave.id, actor_id=hr_employee.id, default_allocation_days=Decimal("25")
        )
    assert lock_calls[-1] == (True, False)
    # The failed update must not keep the row locked
    assert not db.in_transaction()
