from datetime import date
from typing import List

from pydantic import BaseModel

from worktime.schemas.employee import EmployeeResponse
from worktime.schemas.time_entry import TimeEntryResponse


class RejectRequest(BaseModel):
    reason: str


class BulkApproveRequest(BaseModel):
    entry_ids: List[str]


class BulkApproveResponse(BaseModel):
    approved_count: int
    time_entry_ids: List[str]


class ValidationQueueItem(BaseModel):
    employee_id: int
    employee_code: str
    name: str
    entry_count: int


class ValidationQueueResponse(BaseModel):
    status: str
    page: int
    per_page: int
    total: int
    items: List[ValidationQueueItem]


class EmployeeEntriesResponse(BaseModel):
    employee: EmployeeResponse
    month_start: date
    month_end: date
    entries: List[TimeEntryResponse]
