"""
Leave type endpoints
"""
from typing import List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from leave_engine.core.deps import get_db, get_current_user, require_roles
from leave_engine.models.employee import Employee, Role
from leave_engine.schemas.leave_type import LeaveTypeCreate, LeaveTypeUpdate, LeaveTypeOut
from leave_engine.services import leave_type_service

router = APIRouter()


@router.get("", response_model=List[LeaveTypeOut])
def list_leave_types_endpoint(
    include_inactive: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return leave_type_service.list_leave_types(db, include_inactive=include_inactive)


@router.post("", response_model=LeaveTypeOut, status_code=201)
def create_leave_type_endpoint(
    payload: LeaveTypeCreate,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.HR)),
):
    """Create a leave type (HR/ADMIN)"""
    return leave_type_service.create_leave_type(db, actor_id=current_user.id, **payload.model_dump())


@router.patch("/{leave_type_id}", response_model=LeaveTypeOut)
def update_leave_type_endpoint(
    leave_type_id: int,
    payload: LeaveTypeUpdate,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.HR)),
):
    """
    Update a leave type (HR/ADMIN)

    Refused once an approved request references the type; deactivate it instead.
    """
    return leave_type_service.update_leave_type(
        db, leave_type_id, actor_id=current_user.id, **payload.model_dump(exclude_unset=True)
    )


@router.post("/{leave_type_id}/deactivate", response_model=LeaveTypeOut)
def deactivate_leave_type_endpoint(
    leave_type_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.HR)),
):
    """Stop accepting submissions for a leave type (HR/ADMIN)"""
    return leave_type_service.deactivate_leave_type(db, leave_type_id, actor_id=current_user.id)
