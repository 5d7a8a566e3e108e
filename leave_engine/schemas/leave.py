"""
Leave request schemas
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from leave_engine.models.leave import LeaveStatus


class LeaveSubmitRequest(BaseModel):
    """Schema for submitting a leave request"""
    leave_type_id: int = Field(..., description="Leave type to charge")
    start_date: date = Field(..., description="First day of leave (inclusive)")
    end_date: date = Field(..., description="Last day of leave (inclusive)")
    start_half_day: bool = Field(False, description="Take only half of the first day")
    end_half_day: bool = Field(False, description="Take only half of the last day")
    reason: Optional[str] = Field(None, description="Reason for leave")


class ApproveRequest(BaseModel):
    """Schema for approving a leave request"""
    comment: Optional[str] = Field(None, description="Optional approval comment")


class RejectRequest(BaseModel):
    """Schema for rejecting a leave request"""
    reason: str = Field(..., min_length=1, description="Reason for rejection")


class CancelRequest(BaseModel):
    """Schema for cancelling a leave request"""
    comment: Optional[str] = Field(None, description="Optional cancellation comment")


class LeaveOut(BaseModel):
    """Schema for leave request output"""
    id: int
    requester_id: int
    leave_type_id: int
    start_date: date
    end_date: date
    start_half_day: bool
    end_half_day: bool
    days_count: Decimal
    reason: Optional[str] = None
    status: LeaveStatus
    approver_id: Optional[int] = None
    decision_at: Optional[datetime] = None
    decision_comment: Optional[str] = None
    cancelled_by_id: Optional[int] = None
    cancelled_at: Optional[datetime] = None
    cancel_comment: Optional[str] = None
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("days_count", when_used="always")
    @classmethod
    def _ser_days(cls, value: Decimal) -> float:
        return float(value)


class LeaveListResponse(BaseModel):
    items: List[LeaveOut]
    total: int


class AuditEntryOut(BaseModel):
    """One row of an entity's audit trail"""
    id: int
    entity_type: str
    entity_id: int
    actor_id: int
    action: str
    before_state: Optional[Dict[str, Any]] = None
    after_state: Optional[Dict[str, Any]] = None
    comment: Optional[str] = None
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)
