from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from worktime.core.authorization import Actor, Role, require_role
from worktime.core.errors import DomainError, as_http_exception
from worktime.database import SessionLocal
from worktime.schemas.employee import EmployeeResponse
from worktime.schemas.time_entry import TimeEntryResponse
from worktime.schemas.validation import (
    BulkApproveRequest,
    BulkApproveResponse,
    EmployeeEntriesResponse,
    RejectRequest,
    ValidationQueueResponse,
)
from worktime.services import batch_service, validation_service

router = APIRouter(prefix="/validation", tags=["Validation"])


@router.get("", response_model=ValidationQueueResponse)
def list_validation_queue(
    status: Optional[str] = Query(default=None, description="DRAFT, SUBMITTED, APPROVED, REJECTED or ALL."),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=20, ge=1, le=100),
    actor: Actor = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        return validation_service.validation_queue(db, actor, status=status, page=page, per_page=per_page)
    except DomainError as exc:
        raise as_http_exception(exc) from exc
    finally:
        db.close()


@router.get("/employees/{employee_id}", response_model=EmployeeEntriesResponse)
def get_employee_entries(
    employee_id: int,
    month: Optional[str] = Query(default=None, description="YYYY-MM, defaults to the current month."),
    actor: Actor = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        employee, entries, start, end = validation_service.employee_detail(db, actor, employee_id, month=month)
        return EmployeeEntriesResponse(
            employee=EmployeeResponse.model_validate(employee),
            month_start=start,
            month_end=end,
            entries=[TimeEntryResponse.model_validate(e) for e in entries],
        )
    except DomainError as exc:
        raise as_http_exception(exc) from exc
    finally:
        db.close()


@router.post("/{entry_id}/approve", response_model=TimeEntryResponse)
def approve_entry(
    entry_id: str,
    actor: Actor = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        return batch_service.approve(actor, entry_id, db=db)
    except DomainError as exc:
        db.rollback()
        raise as_http_exception(exc) from exc
    finally:
        db.close()


@router.post("/{entry_id}/reject", response_model=TimeEntryResponse)
def reject_entry(
    entry_id: str,
    payload: RejectRequest,
    actor: Actor = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        return batch_service.reject(actor, entry_id, payload.reason, db=db)
    except DomainError as exc:
        db.rollback()
        raise as_http_exception(exc) from exc
    finally:
        db.close()


@router.post("/bulk-approve", response_model=BulkApproveResponse)
def bulk_approve_entries(
    payload: BulkApproveRequest,
    actor: Actor = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        return batch_service.bulk_approve(actor, payload.entry_ids, db=db)
    except DomainError as exc:
        db.rollback()
        raise as_http_exception(exc) from exc
    finally:
        db.close()
