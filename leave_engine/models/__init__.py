"""
Database models
"""
from leave_engine.models.employee import Employee, Role, PRIVILEGED_ROLES
from leave_engine.models.audit_log import AuditEntry
from leave_engine.models.holiday import Holiday
from leave_engine.models.leave import (
    LeaveType,
    LeaveBalance,
    LeaveRequest,
    LeaveStatus,
    AccrualKind,
    ACTIVE_LEAVE_STATUSES,
)

__all__ = [
    "Employee",
    "Role",
    "PRIVILEGED_ROLES",
    "AuditEntry",
    "Holiday",
    "LeaveType",
    "LeaveBalance",
    "LeaveRequest",
    "LeaveStatus",
    "AccrualKind",
    "ACTIVE_LEAVE_STATUSES",
]
