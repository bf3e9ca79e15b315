from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from worktime.core.authorization import Actor, current_actor
from worktime.core.errors import DomainError, as_http_exception
from worktime.database import SessionLocal
from worktime.schemas.time_entry import (
    SubmitRequest,
    SubmitResponse,
    TimeEntryCreate,
    TimeEntryResponse,
    TimeEntryUpdate,
    TimesheetResponse,
)
from worktime.services import batch_service, time_entry_service

router = APIRouter(
    prefix="/timesheet",
    tags=["Timesheet"],
)


@router.get("", response_model=TimesheetResponse)
def get_timesheet(
    month: Optional[str] = Query(default=None, description="YYYY-MM, defaults to the current month."),
    actor: Actor = Depends(current_actor),
):
    db = SessionLocal()
    try:
        employee = time_entry_service.ensure_employee(db, actor.user_id)
        db.commit()

        start, end = time_entry_service.parse_month(month)
        entries = time_entry_service.month_entries(db, employee.id, start, end)
        return TimesheetResponse(
            employee_id=employee.id,
            month_start=start,
            month_end=end,
            total_minutes=sum(int(e.minutes) for e in entries),
            entries=[TimeEntryResponse.model_validate(e) for e in entries],
        )
    except DomainError as exc:
        db.rollback()
        raise as_http_exception(exc) from exc
    finally:
        db.close()


@router.post("", response_model=TimeEntryResponse, status_code=201)
def create_timesheet_entry(
    payload: TimeEntryCreate,
    actor: Actor = Depends(current_actor),
):
    db = SessionLocal()
    try:
        employee = time_entry_service.ensure_employee(db, actor.user_id)
        entry = time_entry_service.create_entry(
            actor.with_employee(employee.id),
            subsidiary_id=payload.subsidiary_id,
            service_id=payload.service_id,
            work_date=payload.work_date,
            minutes=payload.minutes,
            note=payload.note,
            requester=payload.requester,
            db=db,
        )
        db.commit()
        return entry
    except DomainError as exc:
        db.rollback()
        raise as_http_exception(exc) from exc
    finally:
        db.close()


@router.put("/{entry_id}", response_model=TimeEntryResponse)
def update_timesheet_entry(
    entry_id: str,
    payload: TimeEntryUpdate,
    actor: Actor = Depends(current_actor),
):
    db = SessionLocal()
    try:
        entry = time_entry_service.update_entry(
            actor,
            entry_id,
            db=db,
            **payload.model_dump(exclude_unset=True),
        )
        db.commit()
        return entry
    except DomainError as exc:
        db.rollback()
        raise as_http_exception(exc) from exc
    finally:
        db.close()


@router.delete("/{entry_id}", status_code=204)
def delete_timesheet_entry(
    entry_id: str,
    actor: Actor = Depends(current_actor),
):
    db = SessionLocal()
    try:
        time_entry_service.delete_entry(actor, entry_id, db=db)
        db.commit()
    except DomainError as exc:
        db.rollback()
        raise as_http_exception(exc) from exc
    finally:
        db.close()


@router.post("/submit", response_model=SubmitResponse)
def submit_timesheet(
    payload: Optional[SubmitRequest] = None,
    actor: Actor = Depends(current_actor),
):
    db = SessionLocal()
    try:
        return batch_service.submit_drafts(
            actor,
            None if payload is None else payload.entry_ids,
            db=db,
        )
    except DomainError as exc:
        db.rollback()
        raise as_http_exception(exc) from exc
    finally:
        db.close()
