"""Minute rollups by subsidiary, service and employee.

Read-only. Every rollup is built from one grouped query

    (employee_id, subsidiary_id, service_id, status) -> SUM(minutes)

so that all views of a single call come from the same snapshot and sum to
each other exactly. Date bounds are inclusive. An empty scope yields empty
rollups, never an error.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Sequence

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from worktime.core.authorization import Actor
from worktime.models.employee import Employee
from worktime.models.service import Service
from worktime.models.subsidiary import Subsidiary
from worktime.models.time_entry import TimeEntry
from worktime.services import scoping_service
from worktime.services.entry_state import EntryStatus

NO_SERVICE_LABEL = "No service"

_SPLIT_KEYS = {
    EntryStatus.APPROVED.value: "approved_minutes",
    EntryStatus.SUBMITTED.value: "submitted_minutes",
    EntryStatus.DRAFT.value: "draft_minutes",
    EntryStatus.REJECTED.value: "rejected_minutes",
}


class MinuteRow(NamedTuple):
    employee_id: int
    subsidiary_id: int
    service_id: Optional[int]
    status: str
    minutes: int


def hours(minutes: int) -> float:
    return round(int(minutes) / 60, 2)


def _empty_split() -> Dict[str, Any]:
    split: Dict[str, Any] = {"total_minutes": 0}
    for key in _SPLIT_KEYS.values():
        split[key] = 0
    return split


def _add(split: Dict[str, Any], row: MinuteRow) -> None:
    split["total_minutes"] += row.minutes
    split[_SPLIT_KEYS[row.status]] += row.minutes


def _finish(split: Dict[str, Any]) -> Dict[str, Any]:
    split["total_hours"] = hours(split["total_minutes"])
    split["approved_hours"] = hours(split["approved_minutes"])
    return split


# ---------- snapshot ----------

def minute_rows(
    db: Session,
    employee_ids: Iterable[int],
    *,
    start: Optional[date] = None,
    end: Optional[date] = None,
    subsidiary_id: Optional[int] = None,
    employee_id: Optional[int] = None,
    statuses: Optional[Sequence[str]] = None,
) -> List[MinuteRow]:
    visible = sorted({int(i) for i in employee_ids})
    if employee_id is not None:
        visible = [i for i in visible if i == int(employee_id)]
    if not visible:
        return []

    q = (
        db.query(
            TimeEntry.employee_id.label("employee_id"),
            TimeEntry.subsidiary_id.label("subsidiary_id"),
            TimeEntry.service_id.label("service_id"),
            TimeEntry.status.label("status"),
            func.coalesce(func.sum(TimeEntry.minutes), 0).label("minutes"),
        )
        .filter(TimeEntry.employee_id.in_(visible))
    )

    if start is not None:
        q = q.filter(TimeEntry.work_date >= start)
    if end is not None:
        q = q.filter(TimeEntry.work_date <= end)
    if subsidiary_id is not None:
        q = q.filter(TimeEntry.subsidiary_id == int(subsidiary_id))
    if statuses:
        q = q.filter(TimeEntry.status.in_(list(statuses)))

    rows = q.group_by(
        TimeEntry.employee_id,
        TimeEntry.subsidiary_id,
        TimeEntry.service_id,
        TimeEntry.status,
    ).all()

    return [
        MinuteRow(
            employee_id=int(r.employee_id),
            subsidiary_id=int(r.subsidiary_id),
            service_id=None if r.service_id is None else int(r.service_id),
            status=str(r.status),
            minutes=int(r.minutes),
        )
        for r in rows
    ]


def _subsidiary_names(db: Session, ids: Iterable[int]) -> Dict[int, Subsidiary]:
    ids = sorted(set(ids))
    if not ids:
        return {}
    return {int(s.id): s for s in db.query(Subsidiary).filter(Subsidiary.id.in_(ids)).all()}


def _service_names(db: Session, ids: Iterable[Optional[int]]) -> Dict[int, str]:
    ids = sorted({i for i in ids if i is not None})
    if not ids:
        return {}
    return {int(s.id): s.name for s in db.query(Service.id, Service.name).filter(Service.id.in_(ids)).all()}


def _service_breakdown(rows: Iterable[MinuteRow], names: Dict[int, str]) -> List[Dict[str, Any]]:
    per_service: Dict[Optional[int], Dict[str, Any]] = defaultdict(_empty_split)
    for row in rows:
        _add(per_service[row.service_id], row)

    out = []
    for service_id, split in per_service.items():
        if not split["total_minutes"]:
            continue
        out.append(
            {
                "service_id": service_id,
                "service_name": NO_SERVICE_LABEL if service_id is None else names.get(service_id, str(service_id)),
                **_finish(split),
            }
        )
    # "No service" last
    out.sort(key=lambda s: (s["service_id"] is None, s["service_name"].lower()))
    return out


# ---------- rollups ----------

def flat_totals(rows: Iterable[MinuteRow]) -> Dict[str, Any]:
    split = _empty_split()
    for row in rows:
        _add(split, row)
    return _finish(split)


def by_subsidiary(db: Session, rows: Sequence[MinuteRow]) -> List[Dict[str, Any]]:
    grouped: Dict[int, List[MinuteRow]] = defaultdict(list)
    for row in rows:
        grouped[row.subsidiary_id].append(row)

    subsidiaries = _subsidiary_names(db, grouped.keys())
    service_names = _service_names(db, (r.service_id for r in rows))

    out = []
    for subsidiary_id, sub_rows in grouped.items():
        split = flat_totals(sub_rows)
        if not split["total_minutes"]:
            continue
        sub = subsidiaries.get(subsidiary_id)
        out.append(
            {
                "subsidiary_id": subsidiary_id,
                "subsidiary_code": None if sub is None else sub.code,
                "subsidiary_name": str(subsidiary_id) if sub is None else sub.name,
                **split,
                "services": _service_breakdown(sub_rows, service_names),
            }
        )
    out.sort(key=lambda s: s["subsidiary_name"].lower())
    return out


def by_service(db: Session, rows: Sequence[MinuteRow]) -> List[Dict[str, Any]]:
    return _service_breakdown(rows, _service_names(db, (r.service_id for r in rows)))


def by_employee(
    db: Session,
    rows: Sequence[MinuteRow],
    employee_ids: Iterable[int],
    *,
    search: Optional[str] = None,
    page: int = 1,
    per_page: int = 20,
) -> Dict[str, Any]:
    """Every visible employee matching ``search``, paginated, with a drill-down per subsidiary."""
    page = max(int(page), 1)
    per_page = max(int(per_page), 1)
    ids = sorted({int(i) for i in employee_ids})

    employees: List[Employee] = []
    if ids:
        q = db.query(Employee).filter(Employee.id.in_(ids))
        if search:
            pattern = f"%{search.strip()}%"
            q = q.filter(
                or_(
                    Employee.first_name.ilike(pattern),
                    Employee.last_name.ilike(pattern),
                    Employee.employee_code.ilike(pattern),
                )
            )
        employees = q.order_by(Employee.last_name.asc(), Employee.first_name.asc(), Employee.id.asc()).all()

    window = employees[(page - 1) * per_page: page * per_page]
    wanted = {int(e.id) for e in window}

    per_employee: Dict[int, List[MinuteRow]] = defaultdict(list)
    for row in rows:
        if row.employee_id in wanted:
            per_employee[row.employee_id].append(row)

    items = []
    for emp in window:
        emp_rows = per_employee.get(int(emp.id), [])
        items.append(
            {
                "employee_id": int(emp.id),
                "employee_code": emp.employee_code,
                "employee_name": emp.full_name,
                **flat_totals(emp_rows),
                "subsidiaries": by_subsidiary(db, emp_rows),
            }
        )

    return {"page": page, "per_page": per_page, "total": len(employees), "items": items}


# ---------- combined view ----------

def report(
    db: Session,
    actor: Actor,
    *,
    start: Optional[date] = None,
    end: Optional[date] = None,
    subsidiary_id: Optional[int] = None,
    employee_id: Optional[int] = None,
    search: Optional[str] = None,
    page: int = 1,
    per_page: int = 20,
) -> Dict[str, Any]:
    """The caller's own rollups, plus the managed scope for managers and admins."""
    filters = {"start": start, "end": end, "subsidiary_id": subsidiary_id}

    mine: Dict[str, Any] = {"totals": flat_totals([]), "by_subsidiary": [], "by_service": []}
    if actor.employee_id is not None:
        own_rows = minute_rows(db, [actor.employee_id], **filters)
        mine = {
            "totals": flat_totals(own_rows),
            "by_subsidiary": by_subsidiary(db, own_rows),
            "by_service": by_service(db, own_rows),
        }

    result: Dict[str, Any] = {
        "filters": {**filters, "employee_id": employee_id, "search": search},
        "mine": mine,
        "team": None,
    }

    if actor.can_approve():
        visible = scoping_service.managed_employee_ids(db, actor)
        rows = minute_rows(db, visible, employee_id=employee_id, **filters)
        scoped_ids = visible if employee_id is None else [i for i in visible if i == int(employee_id)]
        result["team"] = {
            "totals": flat_totals(rows),
            "by_subsidiary": by_subsidiary(db, rows),
            "by_service": by_service(db, rows),
            "by_employee": by_employee(db, rows, scoped_ids, search=search, page=page, per_page=per_page),
        }

    return result
