from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TimeEntryCreate(BaseModel):
    subsidiary_id: int
    service_id: Optional[int] = None
    work_date: date
    minutes: int
    note: Optional[str] = None
    requester: Optional[str] = None


class TimeEntryUpdate(BaseModel):
    """Partial update. Only fields present in the request body are changed."""

    subsidiary_id: Optional[int] = None
    service_id: Optional[int] = None
    work_date: Optional[date] = None
    minutes: Optional[int] = None
    note: Optional[str] = None
    requester: Optional[str] = None


class TimeEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    employee_id: int
    subsidiary_id: int
    service_id: Optional[int]
    work_date: date
    minutes: int
    note: Optional[str]
    requester: Optional[str]
    status: str
    submitted_at: Optional[datetime]
    approved_at: Optional[datetime]
    approved_by: Optional[int]
    rejection_reason: Optional[str]
    created_at: datetime
    updated_at: datetime


class TimesheetResponse(BaseModel):
    employee_id: int
    month_start: date
    month_end: date
    total_minutes: int
    entries: List[TimeEntryResponse]


class SubmitRequest(BaseModel):
    entry_ids: Optional[List[str]] = Field(
        default=None,
        description="If omitted or empty, every DRAFT entry of the caller is submitted.",
    )


class SubmitResponse(BaseModel):
    submitted_count: int
    time_entry_ids: List[str]
