"""
Holiday calendar endpoints
"""
from typing import List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from leave_engine.core.deps import get_db, get_current_user, require_roles
from leave_engine.models.employee import Employee, Role
from leave_engine.schemas.holiday import HolidayCreate, HolidayOut
from leave_engine.services import holiday_service

router = APIRouter()


@router.get("", response_model=List[HolidayOut])
def list_holidays_endpoint(
    year: int = Query(..., description="Calendar year"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return holiday_service.list_holidays(db, year)


@router.post("", response_model=HolidayOut, status_code=201)
def add_holiday_endpoint(
    payload: HolidayCreate,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.HR)),
):
    """
    Add a holiday (HR/ADMIN)

    Pending requests are recomputed against it at approval time.
    """
    return holiday_service.add_holiday(db, payload.date, payload.name, actor_id=current_user.id)


@router.post("/{holiday_id}/deactivate", response_model=HolidayOut)
def deactivate_holiday_endpoint(
    holiday_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.HR)),
):
    return holiday_service.deactivate_holiday(db, holiday_id, actor_id=current_user.id)
