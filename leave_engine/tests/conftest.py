"""
Pytest configuration and fixtures
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from datetime import date  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from leave_engine.main import app  # noqa: E402
from leave_engine.db.base import Base  # noqa: E402
from leave_engine.core.deps import get_db  # noqa: E402
from leave_engine.core.security import create_access_token  # noqa: E402
from leave_engine.services import notification_service  # noqa: E402

# Import all models to ensure they're registered with Base.metadata
from leave_engine.models import (  # noqa: E402
    Employee,
    Role,
    AuditEntry,
    Holiday,
    LeaveType,
    LeaveBalance,
    LeaveRequest,
    AccrualKind,
)  # noqa


# Use in-memory SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# Enable foreign keys for SQLite
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

YEAR = 2026


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db):
    """Test client fixture with database override"""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def recorded_notifications():
    """Capture notifications instead of logging them"""
    recorder = notification_service.RecordingDispatcher()
    previous = notification_service.set_dispatcher(recorder)
    yield recorder.sent
    notification_service.set_dispatcher(previous)


def _employee(db, emp_code, name, role, manager_id=None, hire_date=date(2020, 1, 1)):
    emp = Employee(
        emp_code=emp_code,
        name=name,
        role=role.value,
        manager_id=manager_id,
        hire_date=hire_date,
        active=True,
    )
    db.add(emp)
    db.commit()
    db.refresh(emp)
    return emp


@pytest.fixture
def manager_employee(db):
    """Create a manager employee"""
    return _employee(db, "MGR001", "Manager", Role.MANAGER)


@pytest.fixture
def reportee_employee(db, manager_employee):
    """Create an employee reporting to manager"""
    return _employee(db, "EMP001", "Reportee", Role.EMPLOYEE, manager_id=manager_employee.id)


@pytest.fixture
def other_manager(db):
    """A manager the reportee does not report to"""
    return _employee(db, "MGR002", "Other Manager", Role.MANAGER)


@pytest.fixture
def hr_employee(db):
    """Create an HR employee"""
    return _employee(db, "HR001", "HR", Role.HR)


@pytest.fixture
def admin_employee(db):
    return _employee(db, "ADM001", "Admin", Role.ADMIN)


@pytest.fixture
def annual_leave(db):
    """20 days a year, up to 5 carried over, no negative balance"""
    leave_type = LeaveType(
        name="Annual",
        default_allocation_days=Decimal("20"),
        max_carryover_days=Decimal("5"),
        accrual_kind=AccrualKind.ANNUAL,
        accrual_rate=Decimal("0"),
        allows_negative_balance=False,
        is_active=True,
    )
    db.add(leave_type)
    db.commit()
    db.refresh(leave_type)
    return leave_type


@pytest.fixture
def unpaid_leave(db):
    """Leave type that may go negative"""
    leave_type = LeaveType(
        name="Unpaid",
        default_allocation_days=Decimal("0"),
        max_carryover_days=Decimal("0"),
        accrual_kind=AccrualKind.ANNUAL,
        accrual_rate=Decimal("0"),
        allows_negative_balance=True,
        is_active=True,
    )
    db.add(leave_type)
    db.commit()
    db.refresh(leave_type)
    return leave_type


@pytest.fixture
def make_balance(db):
    """Insert a balance row directly"""
    def _make(employee, leave_type, allocated, used="0", carried="0", year=YEAR):
        balance = LeaveBalance(
            employee_id=employee.id,
            leave_type_id=leave_type.id,
            year=year,
            allocated_days=Decimal(str(allocated)),
            carried_forward_days=Decimal(str(carried)),
            used_days=Decimal(str(used)),
            version=1,
        )
        db.add(balance)
        db.commit()
        db.refresh(balance)
        return balance
    return _make


@pytest.fixture
def reportee_balance(make_balance, reportee_employee, annual_leave):
    return make_balance(reportee_employee, annual_leave, allocated=20)


def auth_headers(employee) -> dict:
    token = create_access_token({"sub": str(employee.id)})
    return {"Authorization": f"Bearer {token}"}
