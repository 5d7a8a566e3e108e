"""
Leave models
"""
from sqlalchemy import (
    Column,
    Integer,
    Date,
    DateTime,
    ForeignKey,
    String,
    Text,
    Numeric,
    Enum as SQLEnum,
    Boolean,
    UniqueConstraint,
    Index,
    CheckConstraint,
    event,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import text
import enum
from leave_engine.db.base import Base


class AccrualKind(str, enum.Enum):
    ANNUAL = "ANNUAL"
    MONTHLY = "MONTHLY"
    PER_PAY_PERIOD = "PER_PAY_PERIOD"


class LeaveStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


# Statuses that hold dates (overlap) and, for PENDING, soft-reserve days
ACTIVE_LEAVE_STATUSES = (LeaveStatus.PENDING, LeaveStatus.APPROVED)


class LeaveType(Base):
    __tablename__ = "leave_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    default_allocation_days = Column(Numeric(6, 2), nullable=False, default=0)
    max_carryover_days = Column(Numeric(6, 2), nullable=False, default=0)
    accrual_kind = Column(SQLEnum(AccrualKind), nullable=False, default=AccrualKind.ANNUAL)
    accrual_rate = Column(Numeric(6, 2), nullable=False, default=0)
    allows_negative_balance = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False,
    )


class LeaveBalance(Base):
    """
    One row per (employee_id, leave_type_id, year).
    available = allocated_days + carried_forward_days - used_days.
    version is bumped by every ledger mutation and used as a compare-and-swap token.
    """
    __tablename__ = "leave_balances"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    leave_type_id = Column(Integer, ForeignKey("leave_types.id"), nullable=False, index=True)
    year = Column(Integer, nullable=False, index=True)
    allocated_days = Column(Numeric(6, 2), nullable=False, default=0)
    carried_forward_days = Column(Numeric(6, 2), nullable=False, default=0)
    used_days = Column(Numeric(6, 2), nullable=False, default=0)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False,
    )

    employee = relationship("Employee", foreign_keys=[employee_id])
    leave_type = relationship("LeaveType")

    __table_args__ = (
        UniqueConstraint("employee_id", "leave_type_id", "year", name="uq_leave_balances_employee_type_year"),
        CheckConstraint("allocated_days >= 0", name="check_allocated_days_non_negative"),
        CheckConstraint("carried_forward_days >= 0", name="check_carried_forward_days_non_negative"),
        CheckConstraint("used_days >= 0", name="check_used_days_non_negative"),
    )

    @property
    def entitlement_days(self):
        return self.allocated_days + self.carried_forward_days

    @property
    def remaining_days(self):
        return self.allocated_days + self.carried_forward_days - self.used_days


class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id = Column(Integer, primary_key=True, index=True)
    requester_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    leave_type_id = Column(Integer, ForeignKey("leave_types.id"), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    start_half_day = Column(Boolean, nullable=False, default=False)
    end_half_day = Column(Boolean, nullable=False, default=False)
    days_count = Column(Numeric(6, 2), nullable=False)  # server-computed, 0.5 granularity
    reason = Column(Text, nullable=True)
    status = Column(SQLEnum(LeaveStatus), nullable=False, default=LeaveStatus.PENDING)
    approver_id = Column(Integer, ForeignKey("employees.id"), nullable=True, index=True)
    decision_at = Column(DateTime(timezone=True), nullable=True)
    decision_comment = Column(Text, nullable=True)
    cancelled_by_id = Column(Integer, ForeignKey("employees.id"), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancel_comment = Column(Text, nullable=True)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False,
    )

    # Relationships
    requester = relationship("Employee", foreign_keys=[requester_id], back_populates="leave_requests")
    approver = relationship("Employee", foreign_keys=[approver_id])
    cancelled_by = relationship("Employee", foreign_keys=[cancelled_by_id])
    leave_type = relationship("LeaveType")

    __table_args__ = (
        Index("ix_leave_requests_requester_dates", "requester_id", "start_date", "end_date"),
        CheckConstraint("start_date <= end_date", name="check_start_date_le_end_date"),
        CheckConstraint("days_count > 0", name="check_days_count_positive"),
    )

    @property
    def year(self) -> int:
        return self.start_date.year


@event.listens_for(LeaveRequest, "before_delete")
def _forbid_request_delete(mapper, connection, target):
    raise RuntimeError("Leave requests are never deleted; cancel them instead")


@event.listens_for(LeaveBalance, "before_delete")
def _forbid_balance_delete(mapper, connection, target):
    raise RuntimeError("Leave balances are never deleted; the next year's row supersedes them")
