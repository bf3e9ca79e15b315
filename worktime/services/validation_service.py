from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from worktime.core.authorization import Actor
from worktime.core.errors import Forbidden, NotFound, ValidationError
from worktime.models.employee import Employee
from worktime.models.time_entry import TimeEntry
from worktime.services import scoping_service, time_entry_service
from worktime.services.entry_state import EntryStatus

REVIEWED_STATUSES = (EntryStatus.SUBMITTED, EntryStatus.APPROVED, EntryStatus.REJECTED)


def _statuses_for(filter_value: Optional[str]) -> List[str]:
    value = (filter_value or EntryStatus.SUBMITTED.value).upper()
    if value == "ALL":
        return [s.value for s in REVIEWED_STATUSES]
    try:
        return [EntryStatus(value).value]
    except ValueError as exc:
        raise ValidationError(f"Unknown status filter: {filter_value}") from exc


def validation_queue(
    db: Session,
    actor: Actor,
    *,
    status: Optional[str] = None,
    page: int = 1,
    per_page: int = 20,
) -> Dict[str, Any]:
    """Managed employees with entries in the given status, with their entry count."""
    if not actor.can_approve():
        raise Forbidden("Only managers and admins can review time entries")

    statuses = _statuses_for(status)
    managed = scoping_service.managed_employee_ids(db, actor)

    page = max(int(page), 1)
    per_page = max(int(per_page), 1)

    if not managed:
        return {"status": status or EntryStatus.SUBMITTED.value, "page": page, "per_page": per_page, "total": 0, "items": []}

    rows = (
        db.query(
            Employee.id.label("employee_id"),
            Employee.employee_code.label("employee_code"),
            Employee.first_name.label("first_name"),
            Employee.last_name.label("last_name"),
            func.count(TimeEntry.id).label("entry_count"),
        )
        .join(TimeEntry, TimeEntry.employee_id == Employee.id)
        .filter(Employee.id.in_(managed), TimeEntry.status.in_(statuses))
        .group_by(Employee.id, Employee.employee_code, Employee.first_name, Employee.last_name)
        .order_by(Employee.last_name.asc(), Employee.first_name.asc(), Employee.id.asc())
        .all()
    )

    window = rows[(page - 1) * per_page: page * per_page]
    return {
        "status": status or EntryStatus.SUBMITTED.value,
        "page": page,
        "per_page": per_page,
        "total": len(rows),
        "items": [
            {
                "employee_id": int(r.employee_id),
                "employee_code": r.employee_code,
                "name": f"{r.first_name} {r.last_name}".strip(),
                "entry_count": int(r.entry_count),
            }
            for r in window
        ],
    }


def employee_detail(
    db: Session,
    actor: Actor,
    employee_id: int,
    *,
    month: Optional[str] = None,
    today: Optional[date] = None,
) -> Tuple[Employee, List[TimeEntry], date, date]:
    employee = db.query(Employee).filter(Employee.id == int(employee_id)).first()
    if employee is None:
        raise NotFound("Employee not found")

    scoping_service.authorize_employee_access(db, actor, employee.id)

    start, end = time_entry_service.parse_month(month, today)
    return employee, time_entry_service.month_entries(db, employee.id, start, end), start, end
