from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel


class EstimationRow(BaseModel):
    employee_id: int
    employee_code: Optional[str]
    employee_name: str
    minutes: int
    hours: Decimal
    amount: Decimal


class SubsidiaryEstimate(BaseModel):
    subsidiary_id: int
    subsidiary_code: Optional[str]
    subsidiary_name: str
    start: Optional[date]
    end: Optional[date]
    rate: Decimal
    rows: List[EstimationRow]
    total_minutes: int
    total_hours: Decimal
    total_amount: Decimal


class EstimationSummaryItem(BaseModel):
    subsidiary_id: int
    subsidiary_code: Optional[str]
    subsidiary_name: str
    total_minutes: int
    total_hours: Decimal
    employee_count: int
