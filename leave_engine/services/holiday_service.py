"""
Holiday calendar source - configuration data read by the calendar resolver
"""
import logging
from datetime import date
from typing import List, Set

from sqlalchemy.orm import Session
from sqlalchemy import and_

from leave_engine.core.exceptions import NotFound, ValidationFailed
from leave_engine.models.holiday import Holiday
from leave_engine.services.audit_service import record

logger = logging.getLogger(__name__)


def get_holidays_in_range(
    db: Session,
    from_date: date,
    to_date: date
) -> Set[date]:
    """
    Get set of active holiday dates within the given date range

    Args:
        db: Database session
        from_date: Start date (inclusive)
        to_date: End date (inclusive)

    Returns:
        Set of holiday dates
    """
    holidays = db.query(Holiday.date).filter(
        and_(
            Holiday.active == True,  # noqa: E712
            Holiday.date >= from_date,
            Holiday.date <= to_date
        )
    ).all()

    return {holiday_date for (holiday_date,) in holidays}


def list_holidays(db: Session, year: int) -> List[Holiday]:
    return (
        db.query(Holiday)
        .filter(Holiday.date >= date(year, 1, 1), Holiday.date <= date(year, 12, 31))
        .order_by(Holiday.date)
        .all()
    )


def add_holiday(db: Session, holiday_date: date, name: str, actor_id: int) -> Holiday:
    """
    Add a holiday to the calendar

    Requests already submitted keep their stored day count until approval,
    where it is recomputed against the calendar in force at that moment.
    """
    existing = db.query(Holiday).filter(Holiday.date == holiday_date).first()
    if existing and existing.active:
        raise ValidationFailed(f"Holiday already exists for date {holiday_date}", entity_id=existing.id)

    try:
        if existing:
            existing.active = True
            existing.name = name
            holiday = existing
        else:
            holiday = Holiday(date=holiday_date, name=name, active=True)
            db.add(holiday)
        db.flush()
        record(
            db,
            entity_type="holiday",
            entity_id=holiday.id,
            actor_id=actor_id,
            action="HOLIDAY_ADD",
            before=None,
            after={"date": holiday_date, "name": name, "active": True},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(holiday)
    logger.info("holiday added: date=%s name=%s", holiday_date, name)
    return holiday


def deactivate_holiday(db: Session, holiday_id: int, actor_id: int) -> Holiday:
    holiday = db.query(Holiday).filter(Holiday.id == holiday_id).first()
    if not holiday:
        raise NotFound(f"Holiday with id {holiday_id} not found", entity_id=holiday_id)
    try:
        holiday.active = False
        record(
            db,
            entity_type="holiday",
            entity_id=holiday.id,
            actor_id=actor_id,
            action="HOLIDAY_DEACTIVATE",
            before={"active": True},
            after={"active": False},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(holiday)
    return holiday
