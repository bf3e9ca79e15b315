from __future__ import annotations

from calendar import monthrange
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from worktime.core.authorization import Actor
from worktime.models.employee import Employee
from worktime.models.service import Service
from worktime.models.subsidiary import Subsidiary
from worktime.models.time_entry import TimeEntry
from worktime.models.user import User
from worktime.services import scoping_service
from worktime.services.entry_state import EntryStatus

RECENT_LIMIT = 5


def week_bounds(day: date) -> Tuple[date, date]:
    monday = day - timedelta(days=day.weekday())
    return monday, monday + timedelta(days=6)


def month_bounds(day: date) -> Tuple[date, date]:
    return day.replace(day=1), day.replace(day=monthrange(day.year, day.month)[1])


def previous_month_bounds(day: date) -> Tuple[date, date]:
    return month_bounds(day.replace(day=1) - timedelta(days=1))


def _day_window(start: date, end: date) -> Tuple[datetime, datetime]:
    # [start 00:00, (end+1) 00:00)
    return datetime.combine(start, time.min), datetime.combine(end + timedelta(days=1), time.min)


def _sum_minutes(db: Session, employee_id: int, start: date, end: date) -> int:
    value = (
        db.query(func.coalesce(func.sum(TimeEntry.minutes), 0))
        .filter(
            TimeEntry.employee_id == int(employee_id),
            TimeEntry.work_date >= start,
            TimeEntry.work_date <= end,
        )
        .scalar()
    )
    return int(value or 0)


def _entry_summary(entry: TimeEntry, employee_name: Optional[str] = None) -> Dict[str, Any]:
    data = {
        "id": entry.id,
        "employee_id": int(entry.employee_id),
        "subsidiary_id": int(entry.subsidiary_id),
        "service_id": None if entry.service_id is None else int(entry.service_id),
        "work_date": entry.work_date,
        "minutes": int(entry.minutes),
        "status": entry.status,
        "submitted_at": entry.submitted_at,
    }
    if employee_name is not None:
        data["employee_name"] = employee_name
    return data


def employee_stats(db: Session, employee_id: int, today: date) -> Dict[str, Any]:
    week_start, week_end = week_bounds(today)
    month_start, month_end = month_bounds(today)
    last_start, last_end = previous_month_bounds(today)

    status_counts = {s.value: 0 for s in EntryStatus}
    for status, count in (
        db.query(TimeEntry.status, func.count(TimeEntry.id))
        .filter(
            TimeEntry.employee_id == int(employee_id),
            TimeEntry.work_date >= month_start,
            TimeEntry.work_date <= month_end,
        )
        .group_by(TimeEntry.status)
        .all()
    ):
        status_counts[str(status)] = int(count)

    per_day = {week_start + timedelta(days=i): 0 for i in range(7)}
    for work_date, minutes in (
        db.query(TimeEntry.work_date, func.sum(TimeEntry.minutes))
        .filter(
            TimeEntry.employee_id == int(employee_id),
            TimeEntry.work_date >= week_start,
            TimeEntry.work_date <= week_end,
        )
        .group_by(TimeEntry.work_date)
        .all()
    ):
        per_day[work_date] = int(minutes or 0)

    recent = (
        db.query(TimeEntry)
        .filter(TimeEntry.employee_id == int(employee_id))
        .order_by(TimeEntry.created_at.desc(), TimeEntry.id.desc())
        .limit(RECENT_LIMIT)
        .all()
    )

    return {
        "week_minutes": _sum_minutes(db, employee_id, week_start, week_end),
        "month_minutes": _sum_minutes(db, employee_id, month_start, month_end),
        "last_month_minutes": _sum_minutes(db, employee_id, last_start, last_end),
        "month_status_counts": status_counts,
        "recent_entries": [_entry_summary(e) for e in recent],
        "week_days": [{"date": d, "minutes": m} for d, m in sorted(per_day.items())],
    }


def manager_stats(db: Session, actor: Actor, today: date) -> Dict[str, Any]:
    team = scoping_service.managed_employee_ids(db, actor)
    stats: Dict[str, Any] = {
        "team_size": len(team),
        "pending_validations": 0,
        "approved_this_week": 0,
        "rejected_this_week": 0,
        "latest_pending": [],
    }
    if not team:
        return stats

    week_from, week_to = _day_window(*week_bounds(today))
    in_team = TimeEntry.employee_id.in_(team)

    stats["pending_validations"] = (
        db.query(TimeEntry).filter(in_team, TimeEntry.status == EntryStatus.SUBMITTED.value).count()
    )
    stats["approved_this_week"] = (
        db.query(TimeEntry)
        .filter(
            in_team,
            TimeEntry.status == EntryStatus.APPROVED.value,
            TimeEntry.approved_at >= week_from,
            TimeEntry.approved_at < week_to,
        )
        .count()
    )
    stats["rejected_this_week"] = (
        db.query(TimeEntry)
        .filter(
            in_team,
            TimeEntry.status == EntryStatus.REJECTED.value,
            TimeEntry.updated_at >= week_from,
            TimeEntry.updated_at < week_to,
        )
        .count()
    )

    pending = (
        db.query(TimeEntry, Employee)
        .join(Employee, Employee.id == TimeEntry.employee_id)
        .filter(in_team, TimeEntry.status == EntryStatus.SUBMITTED.value)
        .order_by(TimeEntry.submitted_at.desc(), TimeEntry.id.desc())
        .limit(RECENT_LIMIT)
        .all()
    )
    stats["latest_pending"] = [_entry_summary(entry, emp.full_name) for entry, emp in pending]
    return stats


def admin_stats(db: Session, today: date) -> Dict[str, Any]:
    month_start, month_end = month_bounds(today)
    return {
        "active_employees": db.query(Employee).filter(Employee.is_active.is_(True)).count(),
        "users": db.query(User).count(),
        "active_subsidiaries": db.query(Subsidiary).filter(Subsidiary.is_active.is_(True)).count(),
        "active_services": db.query(Service).filter(Service.is_active.is_(True)).count(),
        "entries_this_month": (
            db.query(TimeEntry)
            .filter(TimeEntry.work_date >= month_start, TimeEntry.work_date <= month_end)
            .count()
        ),
    }


def dashboard(db: Session, actor: Actor, *, today: Optional[date] = None) -> Dict[str, Any]:
    today = today or date.today()
    return {
        "today": today,
        "roles": sorted(r.value for r in actor.roles),
        "employee": None if actor.employee_id is None else employee_stats(db, actor.employee_id, today),
        "manager": manager_stats(db, actor, today) if actor.can_approve() else None,
        "admin": admin_stats(db, today) if actor.is_admin else None,
    }
