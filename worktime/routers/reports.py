from __future__ import annotations

from datetime import date
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query

from worktime.core.authorization import Actor, current_actor
from worktime.database import SessionLocal
from worktime.services import aggregation_service, scoping_service

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("")
def get_report(
    start: Optional[date] = None,
    end: Optional[date] = None,
    subsidiary_id: Optional[int] = None,
    employee_id: Optional[int] = None,
    search: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=20, ge=1, le=100),
    actor: Actor = Depends(current_actor),
) -> dict[str, Any]:
    db = SessionLocal()
    try:
        return aggregation_service.report(
            db,
            actor,
            start=start,
            end=end,
            subsidiary_id=subsidiary_id,
            employee_id=employee_id,
            search=search,
            page=page,
            per_page=per_page,
        )
    finally:
        db.close()


@router.get("/subsidiaries")
def report_by_subsidiary(
    start: Optional[date] = None,
    end: Optional[date] = None,
    subsidiary_id: Optional[int] = None,
    employee_id: Optional[int] = None,
    actor: Actor = Depends(current_actor),
) -> dict[str, Any]:
    db = SessionLocal()
    try:
        visible = scoping_service.managed_employee_ids(db, actor)
        rows = aggregation_service.minute_rows(
            db, visible, start=start, end=end, subsidiary_id=subsidiary_id, employee_id=employee_id
        )
        return {
            "totals": aggregation_service.flat_totals(rows),
            "subsidiaries": aggregation_service.by_subsidiary(db, rows),
        }
    finally:
        db.close()


@router.get("/services")
def report_by_service(
    start: Optional[date] = None,
    end: Optional[date] = None,
    subsidiary_id: Optional[int] = None,
    employee_id: Optional[int] = None,
    actor: Actor = Depends(current_actor),
) -> dict[str, Any]:
    db = SessionLocal()
    try:
        visible = scoping_service.managed_employee_ids(db, actor)
        rows = aggregation_service.minute_rows(
            db, visible, start=start, end=end, subsidiary_id=subsidiary_id, employee_id=employee_id
        )
        return {
            "totals": aggregation_service.flat_totals(rows),
            "services": aggregation_service.by_service(db, rows),
        }
    finally:
        db.close()


@router.get("/employees")
def report_by_employee(
    start: Optional[date] = None,
    end: Optional[date] = None,
    subsidiary_id: Optional[int] = None,
    search: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=20, ge=1, le=100),
    actor: Actor = Depends(current_actor),
) -> dict[str, Any]:
    db = SessionLocal()
    try:
        visible = scoping_service.managed_employee_ids(db, actor)
        rows = aggregation_service.minute_rows(db, visible, start=start, end=end, subsidiary_id=subsidiary_id)
        return aggregation_service.by_employee(db, rows, visible, search=search, page=page, per_page=per_page)
    finally:
        db.close()
