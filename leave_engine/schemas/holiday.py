"""
Holiday calendar schemas
"""
from datetime import date as date_type, datetime
from pydantic import BaseModel, Field, ConfigDict


class HolidayCreate(BaseModel):
    """Schema for adding a holiday"""
    date: date_type = Field(..., description="Holiday date")
    name: str = Field(..., min_length=1, description="Holiday name")


class HolidayOut(BaseModel):
    id: int
    date: date_type
    name: str
    active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
