"""
Tests for the balance ledger: allocation, carry-forward, usage and reconciliation
"""
import pytest
from datetime import date
from decimal import Decimal
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from leave_engine.core.exceptions import LockContention, NotFound
from leave_engine.models.audit_log import AuditEntry
from leave_engine.models.leave import AccrualKind, LeaveBalance, LeaveType
from leave_engine.services import ledger_service as ledger
from leave_engine.tests.conftest import YEAR


def _leave_type(kind=AccrualKind.ANNUAL, default="0", rate="0"):
    return LeaveType(
        name="t",
        default_allocation_days=Decimal(default),
        max_carryover_days=Decimal("0"),
        accrual_kind=kind,
        accrual_rate=Decimal(rate),
    )


class TestComputeAllocation:
    def test_annual_full_year(self):
        assert ledger.compute_allocation(_leave_type(default="20"), YEAR, date(2020, 1, 1)) == Decimal("20")

    def test_annual_pro_rated_for_joiner(self):
        # Joined in July: 6 of 12 months
        assert ledger.compute_allocation(_leave_type(default="20"), YEAR, date(YEAR, 7, 15)) == Decimal("10")

    def test_annual_rounds_down_to_half_day(self):
        # 15 * 9 / 12 = 11.25
        assert ledger.compute_allocation(_leave_type(default="15"), YEAR, date(YEAR, 4, 10)) == Decimal("11")

    def test_monthly_accrual(self):
        lt = _leave_type(kind=AccrualKind.MONTHLY, rate="1.5")
        assert ledger.compute_allocation(lt, YEAR, date(2020, 1, 1)) == Decimal("18")

    def test_monthly_accrual_capped_by_default(self):
        lt = _leave_type(kind=AccrualKind.MONTHLY, default="20", rate="2")
        assert ledger.compute_allocation(lt, YEAR, date(2020, 1, 1)) == Decimal("20")

    def test_pay_period_accrual(self):
        lt = _leave_type(kind=AccrualKind.PER_PAY_PERIOD, rate="0.5")
        assert ledger.compute_allocation(lt, YEAR, None) == Decimal("13")

    def test_not_yet_hired(self):
        assert ledger.compute_allocation(_leave_type(default="20"), YEAR, date(YEAR + 1, 1, 5)) == Decimal("0")


def test_initialize_balance_carries_forward_capped(db, reportee_employee, annual_leave, make_balance):
    make_balance(reportee_employee, annual_leave, allocated=20, used=12, year=YEAR - 1)

    balance = ledger.initialize_balance(db, reportee_employee, annual_leave, YEAR, actor_id=reportee_employee.id)
    db.commit()

    assert balance.allocated_days == Decimal("20")
    # 8 unused, capped at 5
    assert balance.carried_forward_days == Decimal("5")
    assert balance.used_days == Decimal("0")
    assert balance.remaining_days == Decimal("25")


def test_initialize_balance_never_carries_negative(db, reportee_employee, annual_leave, make_balance):
    make_balance(reportee_employee, annual_leave, allocated=5, used=7, year=YEAR - 1)

    balance = ledger.initialize_balance(db, reportee_employee, annual_leave, YEAR, actor_id=reportee_employee.id)
    db.commit()

    assert balance.carried_forward_days == Decimal("0")


def test_initialize_balance_is_idempotent(db, reportee_employee, annual_leave):
    first = ledger.initialize_balance(db, reportee_employee, annual_leave, YEAR, actor_id=reportee_employee.id)
    db.commit()
    second = ledger.initialize_balance(db, reportee_employee, annual_leave, YEAR, actor_id=reportee_employee.id)
    db.commit()

    assert first.id == second.id
    assert db.query(LeaveBalance).count() == 1
    entries = db.query(AuditEntry).filter(AuditEntry.action == "INITIALIZE").all()
    assert len(entries) == 1


def test_initialize_year_batch(db, manager_employee, reportee_employee, hr_employee, annual_leave):
    result = ledger.initialize_year(db, YEAR, actor_id=hr_employee.id)
    assert result["employees_processed"] == 3
    assert result["balances_created"] == 3
    assert result["failed_employee_ids"] == []

    again = ledger.initialize_year(db, YEAR, actor_id=hr_employee.id)
    assert again["balances_created"] == 0


def test_initialize_year_skips_inactive_leave_types(db, reportee_employee, annual_leave, hr_employee):
    annual_leave.is_active = False
    db.commit()

    result = ledger.initialize_year(db, YEAR, actor_id=hr_employee.id)
    assert result["balances_created"] == 0


def test_commit_and_release_usage(db, reportee_balance, hr_employee):
    balance = ledger.lock_balance(db, reportee_balance.employee_id, reportee_balance.leave_type_id, YEAR)
    ledger.commit_usage(db, balance, Decimal("3"), hr_employee.id, request_id=None)
    db.commit()

    assert balance.used_days == Decimal("3")
    assert balance.version == 2

    balance = ledger.lock_balance(db, reportee_balance.employee_id, reportee_balance.leave_type_id, YEAR)
    ledger.release_usage(db, balance, Decimal("3"), hr_employee.id, request_id=None)
    db.commit()

    assert balance.used_days == Decimal("0")
    assert balance.version == 3
    actions = [e.action for e in db.query(AuditEntry).order_by(AuditEntry.id).all()]
    assert actions == ["COMMIT_USAGE", "RELEASE_USAGE"]


def test_stale_version_raises_lock_contention(db, reportee_balance, hr_employee):
    balance = ledger.lock_balance(db, reportee_balance.employee_id, reportee_balance.leave_type_id, YEAR)
    # Another writer bumps the version behind this session's back
    db.execute(
        update(LeaveBalance)
        .where(LeaveBalance.id == balance.id)
        .values(version=LeaveBalance.version + 1)
        .execution_options(synchronize_session=False)
    )

    with pytest.raises(LockContention):
        ledger.commit_usage(db, balance, Decimal("1"), hr_employee.id)
    db.rollback()


def test_available_balance_subtracts_pending(db, reportee_employee, reportee_balance, annual_leave):
    from leave_engine.services.leave_service import submit_request

    submit_request(db, reportee_employee, annual_leave.id, date(YEAR, 3, 2), date(YEAR, 3, 4))
    balance = ledger.get_balance(db, reportee_employee.id, annual_leave.id, YEAR)

    assert ledger.pending_reserved_days(db, reportee_employee.id, annual_leave.id, YEAR) == Decimal("3")
    assert ledger.available_balance(db, balance, include_pending=True) == Decimal("17")
    assert ledger.available_balance(db, balance, include_pending=False) == Decimal("20")


def test_reconcile_reports_mismatch(db, reportee_employee, annual_leave, make_balance):
    make_balance(reportee_employee, annual_leave, allocated=20, used=3)

    result = ledger.reconcile_balance(db, reportee_employee.id, annual_leave.id, YEAR)
    assert result["consistent"] is False
    assert result["used_days"] == Decimal("3")
    assert result["approved_days"] == Decimal("0")


def test_reconcile_missing_balance(db, reportee_employee, annual_leave):
    with pytest.raises(NotFound):
        ledger.reconcile_balance(db, reportee_employee.id, annual_leave.id, YEAR)


def test_balances_cannot_be_deleted(db, reportee_balance):
    db.delete(reportee_balance)
    with pytest.raises(RuntimeError):
        db.flush()
    db.rollback()


def test_release_below_zero_is_refused_by_the_database(db, reportee_balance, hr_employee):
    balance = ledger.lock_balance(db, reportee_balance.employee_id, reportee_balance.leave_type_id, YEAR)
    with pytest.raises(IntegrityError):
        ledger.release_usage(db, balance, Decimal("1"), hr_employee.id)
    db.rollback()


@pytest.mark.parametrize("column", ["allocated_days", "carried_forward_days", "used_days"])
def test_balance_amounts_cannot_be_negative(db, reportee_employee, annual_leave, column):
    values = {"allocated_days": Decimal("1"), "carried_forward_days": Decimal("0"), "used_days": Decimal("0")}
    values[column] = Decimal("-1")
    db.add(LeaveBalance(employee_id=reportee_employee.id, leave_type_id=annual_leave.id, year=YEAR, version=1, **values))
    with pytest.raises(IntegrityError):
        db.flush()
    db.rollback()
