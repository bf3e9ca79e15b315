from __future__ import annotations

from collections import defaultdict
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from worktime.core.errors import NotFound, ValidationError
from worktime.models.employee import Employee
from worktime.models.subsidiary import Subsidiary
from worktime.services import aggregation_service
from worktime.services.entry_state import EntryStatus

_CENT = Decimal("0.01")


def hours_decimal(minutes: int) -> Decimal:
    return (Decimal(int(minutes)) / Decimal(60)).quantize(_CENT, rounding=ROUND_HALF_UP)


def _rate(value: Any) -> Decimal:
    try:
        rate = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError("rate must be a number") from exc
    if not rate.is_finite() or rate < 0:
        raise ValidationError("rate must be a non-negative number")
    return rate


def _approved_rows(db: Session, employee_ids: Iterable[int], **filters):
    return aggregation_service.minute_rows(db, employee_ids, statuses=[EntryStatus.APPROVED.value], **filters)


def estimate_subsidiary(
    db: Session,
    subsidiary_id: int,
    employee_ids: Iterable[int],
    rate: Any,
    *,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> Dict[str, Any]:
    """
    Approved hours per employee for one subsidiary, priced at ``rate``.

    Each row's hours are rounded to 2 decimals first, the amount is
    hours x rate, and the total amount is the sum of row amounts.
    """
    hourly_rate = _rate(rate)

    sub = db.query(Subsidiary).filter(Subsidiary.id == int(subsidiary_id)).first()
    if sub is None:
        raise NotFound("Subsidiary not found")

    rows = _approved_rows(db, employee_ids, start=start, end=end, subsidiary_id=sub.id)

    minutes_by_employee: Dict[int, int] = defaultdict(int)
    for row in rows:
        minutes_by_employee[row.employee_id] += row.minutes

    employees = {}
    if minutes_by_employee:
        employees = {
            int(e.id): e
            for e in db.query(Employee).filter(Employee.id.in_(sorted(minutes_by_employee))).all()
        }

    lines: List[Dict[str, Any]] = []
    for employee_id, minutes in minutes_by_employee.items():
        emp = employees.get(employee_id)
        row_hours = hours_decimal(minutes)
        lines.append(
            {
                "employee_id": employee_id,
                "employee_code": None if emp is None else emp.employee_code,
                "employee_name": str(employee_id) if emp is None else emp.full_name,
                "minutes": minutes,
                "hours": row_hours,
                "amount": row_hours * hourly_rate,
            }
        )
    lines.sort(key=lambda r: r["employee_name"].lower())

    return {
        "subsidiary_id": int(sub.id),
        "subsidiary_code": sub.code,
        "subsidiary_name": sub.name,
        "start": start,
        "end": end,
        "rate": hourly_rate,
        "rows": lines,
        "total_minutes": sum(r["minutes"] for r in lines),
        "total_hours": sum((r["hours"] for r in lines), Decimal("0.00")),
        "total_amount": sum((r["amount"] for r in lines), Decimal("0")),
    }


def estimation_summary(
    db: Session,
    employee_ids: Iterable[int],
    *,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """
    Every subsidiary with approved time in scope, with how many employees contributed.

    ``total_hours`` adds up per-employee hours rounded the same way as
    :func:`estimate_subsidiary`, so both views agree for the same scope.
    """
    rows = _approved_rows(db, employee_ids, start=start, end=end)

    minutes: Dict[int, Dict[int, int]] = defaultdict(lambda: defaultdict(int))
    for row in rows:
        minutes[row.subsidiary_id][row.employee_id] += row.minutes

    if not minutes:
        return []

    subs = {int(s.id): s for s in db.query(Subsidiary).filter(Subsidiary.id.in_(sorted(minutes))).all()}
    out = []
    for sid, per_employee in minutes.items():
        total = sum(per_employee.values())
        if not total:
            continue
        sub = subs.get(sid)
        out.append(
            {
                "subsidiary_id": sid,
                "subsidiary_code": None if sub is None else sub.code,
                "subsidiary_name": str(sid) if sub is None else sub.name,
                "total_minutes": total,
                "total_hours": sum((hours_decimal(m) for m in per_employee.values()), Decimal("0.00")),
                "employee_count": len(per_employee),
            }
        )
    out.sort(key=lambda s: s["subsidiary_name"].lower())
    return out
