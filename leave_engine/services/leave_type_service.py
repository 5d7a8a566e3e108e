"""
Leave type administration

A leave type becomes immutable once an approved request references it, apart
from deactivation. Deactivated types stop accepting submissions but keep
their balances and history.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from leave_engine.core.exceptions import NotFound, ValidationFailed
from leave_engine.models.leave import AccrualKind, LeaveRequest, LeaveStatus, LeaveType
from leave_engine.services.audit_service import record

logger = logging.getLogger(__name__)

ENTITY_TYPE = "leave_type"

MUTABLE_FIELDS = (
    "description",
    "default_allocation_days",
    "max_carryover_days",
    "accrual_kind",
    "accrual_rate",
    "allows_negative_balance",
)


def leave_type_snapshot(leave_type: LeaveType) -> Dict[str, Any]:
    return {
        "name": leave_type.name,
        "description": leave_type.description,
        "default_allocation_days": leave_type.default_allocation_days,
        "max_carryover_days": leave_type.max_carryover_days,
        "accrual_kind": leave_type.accrual_kind,
        "accrual_rate": leave_type.accrual_rate,
        "allows_negative_balance": leave_type.allows_negative_balance,
        "is_active": leave_type.is_active,
    }


def get_leave_type(db: Session, leave_type_id: int, for_update: bool = False, shared: bool = False) -> LeaveType:
    """
    Load a leave type, optionally under a row lock held until the transaction
    ends. shared=True takes FOR SHARE: approvals hold it while they commit usage
    and update_leave_type takes the exclusive lock before its freeze check.
    """
    query = db.query(LeaveType).filter(LeaveType.id == leave_type_id)
    if for_update:
        query = query.populate_existing().with_for_update(read=shared)
    leave_type = query.first()
    if not leave_type:
        raise NotFound(f"Leave type with id {leave_type_id} not found", entity_id=leave_type_id)
    return leave_type


def list_leave_types(db: Session, include_inactive: bool = False) -> List[LeaveType]:
    query = db.query(LeaveType)
    if not include_inactive:
        query = query.filter(LeaveType.is_active == True)  # noqa: E712
    return query.order_by(LeaveType.name).all()


def _validate_amounts(default_allocation_days, max_carryover_days, accrual_rate) -> None:
    for label, value in (
        ("default_allocation_days", default_allocation_days),
        ("max_carryover_days", max_carryover_days),
        ("accrual_rate", accrual_rate),
    ):
        if value is not None and Decimal(str(value)) < 0:
            raise ValidationFailed(f"{label} cannot be negative")


def create_leave_type(
    db: Session,
    name: str,
    actor_id: int,
    description: Optional[str] = None,
    default_allocation_days: Decimal = Decimal("0"),
    max_carryover_days: Decimal = Decimal("0"),
    accrual_kind: AccrualKind = AccrualKind.ANNUAL,
    accrual_rate: Decimal = Decimal("0"),
    allows_negative_balance: bool = False,
) -> LeaveType:
    name = (name or "").strip()
    if not name:
        raise ValidationFailed("Leave type name is required")
    _validate_amounts(default_allocation_days, max_carryover_days, accrual_rate)
    if db.query(LeaveType).filter(LeaveType.name == name).first():
        raise ValidationFailed(f"Leave type {name} already exists")

    leave_type = LeaveType(
        name=name,
        description=description,
        default_allocation_days=default_allocation_days,
        max_carryover_days=max_carryover_days,
        accrual_kind=accrual_kind,
        accrual_rate=accrual_rate,
        allows_negative_balance=allows_negative_balance,
        is_active=True,
    )
    try:
        db.add(leave_type)
        db.flush()
        record(
            db,
            entity_type=ENTITY_TYPE,
            entity_id=leave_type.id,
            actor_id=actor_id,
            action="LEAVE_TYPE_CREATE",
            after=leave_type_snapshot(leave_type),
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(leave_type)
    logger.info("leave type created: id=%s name=%s accrual=%s", leave_type.id, name, accrual_kind)
    return leave_type


def is_referenced_by_approved_request(db: Session, leave_type_id: int) -> bool:
    return (
        db.query(LeaveRequest.id)
        .filter(LeaveRequest.leave_type_id == leave_type_id, LeaveRequest.status == LeaveStatus.APPROVED)
        .first()
        is not None
    )


def update_leave_type(db: Session, leave_type_id: int, actor_id: int, **changes) -> LeaveType:
    """
    Change the configurable fields of a leave type.

    Raises ValidationFailed for unknown fields, and for any change once an
    approved request references the type. The freeze check runs under the
    leave type's row lock, which approvals hold in shared mode.
    """
    unknown = set(changes) - set(MUTABLE_FIELDS)
    if unknown:
        raise ValidationFailed(f"Cannot update leave type fields: {sorted(unknown)}", entity_id=leave_type_id)

    try:
        leave_type = get_leave_type(db, leave_type_id, for_update=True)
        changes = {k: v for k, v in changes.items() if v is not None and getattr(leave_type, k) != v}
        if not changes:
            db.commit()
            return leave_type
        if is_referenced_by_approved_request(db, leave_type_id):
            raise ValidationFailed(
                f"Leave type {leave_type.name} is referenced by approved requests and can only be deactivated",
                entity_id=leave_type_id,
            )
        _validate_amounts(
            changes.get("default_allocation_days"),
            changes.get("max_carryover_days"),
            changes.get("accrual_rate"),
        )

        before = leave_type_snapshot(leave_type)
        for field_name, value in changes.items():
            setattr(leave_type, field_name, value)
        db.flush()
        record(
            db,
            entity_type=ENTITY_TYPE,
            entity_id=leave_type.id,
            actor_id=actor_id,
            action="LEAVE_TYPE_UPDATE",
            before=before,
            after=leave_type_snapshot(leave_type),
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(leave_type)
    return leave_type


def deactivate_leave_type(db: Session, leave_type_id: int, actor_id: int) -> LeaveType:
    leave_type = get_leave_type(db, leave_type_id)
    if not leave_type.is_active:
        return leave_type
    before = leave_type_snapshot(leave_type)
    try:
        leave_type.is_active = False
        db.flush()
        record(
            db,
            entity_type=ENTITY_TYPE,
            entity_id=leave_type.id,
            actor_id=actor_id,
            action="LEAVE_TYPE_DEACTIVATE",
            before=before,
            after=leave_type_snapshot(leave_type),
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(leave_type)
    logger.info("leave type deactivated: id=%s name=%s", leave_type.id, leave_type.name)
    return leave_type
