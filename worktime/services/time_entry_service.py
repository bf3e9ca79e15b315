from __future__ import annotations

import hashlib
import logging
from calendar import monthrange
from datetime import date, datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy.orm import Session

from worktime.core.authorization import Actor
from worktime.core.errors import Forbidden, NotFound, ValidationError
from worktime.database import SessionLocal
from worktime.models.employee import Employee
from worktime.models.service import Service
from worktime.models.subsidiary import Subsidiary
from worktime.models.time_entry import TimeEntry
from worktime.models.user import User
from worktime.services import entry_state

logger = logging.getLogger(__name__)

MIN_MINUTES = 1
MAX_MINUTES = 1440
NOTE_MAX = 1000
REQUESTER_MAX = 255

_UNSET = object()


# ---------- employee bootstrap ----------

def employee_code_for_user(user_id: int) -> str:
    digest = hashlib.md5(str(int(user_id)).encode("utf-8")).hexdigest()
    return "EMP-" + digest[:6].upper()


def ensure_employee(db: Session, user_id: int) -> Employee:
    """Return the employee linked to this user, creating and linking one if needed.

    Only the timesheet pathway calls this. Caller owns the transaction.
    """
    user = db.query(User).filter(User.id == int(user_id)).first()
    if user is None:
        raise NotFound("User not found")

    if user.employee_id is not None:
        employee = db.query(Employee).filter(Employee.id == user.employee_id).first()
        if employee is not None:
            return employee

    first_name = (user.name or "").strip() or user.email.split("@", 1)[0]
    employee = Employee(
        employee_code=employee_code_for_user(user.id),
        first_name=first_name,
        last_name="",
        email=user.email,
        is_active=True,
    )
    db.add(employee)
    db.flush()

    user.employee_id = employee.id
    db.flush()

    logger.info(
        "Employee created for user",
        extra={"user_id": user.id, "employee_id": employee.id, "employee_code": employee.employee_code},
    )
    return employee


# ---------- validation ----------

def _validate_minutes(minutes: Any) -> int:
    try:
        value = int(minutes)
    except (TypeError, ValueError) as exc:
        raise ValidationError("minutes must be an integer") from exc
    if isinstance(minutes, bool) or value != minutes:
        raise ValidationError("minutes must be an integer")
    if value < MIN_MINUTES or value > MAX_MINUTES:
        raise ValidationError(f"minutes must be between {MIN_MINUTES} and {MAX_MINUTES}")
    return value


def _validate_text(value: Optional[str], field: str, max_len: int) -> Optional[str]:
    if value is None:
        return None
    value = str(value)
    if len(value) > max_len:
        raise ValidationError(f"{field} must be at most {max_len} characters")
    return value


def _validate_subsidiary(db: Session, subsidiary_id: Any) -> int:
    if subsidiary_id is None:
        raise ValidationError("subsidiary_id is required")
    sub = db.query(Subsidiary).filter(Subsidiary.id == int(subsidiary_id)).first()
    if sub is None or not sub.is_active:
        raise ValidationError("Unknown or inactive subsidiary")
    return int(sub.id)


def _validate_service(db: Session, service_id: Any) -> Optional[int]:
    if service_id is None:
        return None
    svc = db.query(Service).filter(Service.id == int(service_id)).first()
    if svc is None:
        raise ValidationError("Unknown service")
    return int(svc.id)


def _validate_date(work_date: Any) -> date:
    if isinstance(work_date, datetime):
        return work_date.date()
    if isinstance(work_date, date):
        return work_date
    if work_date is None:
        raise ValidationError("work_date is required")
    try:
        return date.fromisoformat(str(work_date))
    except ValueError as exc:
        raise ValidationError("work_date must be an ISO date") from exc


def _get_entry(db: Session, entry_id: str) -> TimeEntry:
    entry = db.query(TimeEntry).filter(TimeEntry.id == str(entry_id)).first()
    if entry is None:
        raise NotFound("Time entry not found")
    return entry


def _require_owner(actor: Actor, entry: TimeEntry) -> None:
    if actor.employee_id is None or int(actor.employee_id) != int(entry.employee_id):
        raise Forbidden("Only the owner may modify this time entry")


# ---------- operations ----------

def create_entry(
    actor: Actor,
    *,
    subsidiary_id: int,
    work_date: Any,
    minutes: Any,
    service_id: Optional[int] = None,
    note: Optional[str] = None,
    requester: Optional[str] = None,
    now: Optional[datetime] = None,
    db: Optional[Session] = None,
) -> TimeEntry:
    """
    Create an entry owned by the actor's employee.

    If db is provided, this function will NOT commit/close. Caller owns the transaction.
    If db is None, this function manages its own session + commit.
    """
    owns_db = db is None
    if owns_db:
        db = SessionLocal()

    try:
        if actor.employee_id is None:
            raise ValidationError("Actor has no employee record")

        values = {
            "minutes": _validate_minutes(minutes),
            "work_date": _validate_date(work_date),
            "note": _validate_text(note, "note", NOTE_MAX),
            "requester": _validate_text(requester, "requester", REQUESTER_MAX),
            "subsidiary_id": _validate_subsidiary(db, subsidiary_id),
            "service_id": _validate_service(db, service_id),
        }

        now = now or datetime.utcnow()
        fields = entry_state.on_create(actor, now)

        entry = TimeEntry(
            id=str(uuid4()),
            employee_id=int(actor.employee_id),
            created_at=now,
            updated_at=now,
            **values,
            **fields.as_dict(),
        )
        db.add(entry)
        db.flush()
        db.refresh(entry)

        if owns_db:
            db.commit()

        logger.info(
            "Time entry created",
            extra={
                "time_entry_id": entry.id,
                "employee_id": entry.employee_id,
                "status": entry.status,
                "minutes": entry.minutes,
            },
        )
        return entry
    except Exception:
        if owns_db:
            db.rollback()
        raise
    finally:
        if owns_db:
            db.close()


def update_entry(
    actor: Actor,
    entry_id: str,
    *,
    subsidiary_id: Any = _UNSET,
    service_id: Any = _UNSET,
    work_date: Any = _UNSET,
    minutes: Any = _UNSET,
    note: Any = _UNSET,
    requester: Any = _UNSET,
    now: Optional[datetime] = None,
    db: Optional[Session] = None,
) -> TimeEntry:
    """
    Edit one of the actor's own DRAFT or REJECTED entries.

    Omitted fields keep their value. The edit sends the entry back to DRAFT, or
    straight to APPROVED when the editor may approve; rejection details are
    cleared either way.
    """
    owns_db = db is None
    if owns_db:
        db = SessionLocal()

    try:
        entry = _get_entry(db, entry_id)
        _require_owner(actor, entry)
        entry_state.assert_editable(entry.id, entry.status)

        changes: Dict[str, Any] = {}
        if minutes is not _UNSET:
            changes["minutes"] = _validate_minutes(minutes)
        if work_date is not _UNSET:
            changes["work_date"] = _validate_date(work_date)
        if note is not _UNSET:
            changes["note"] = _validate_text(note, "note", NOTE_MAX)
        if requester is not _UNSET:
            changes["requester"] = _validate_text(requester, "requester", REQUESTER_MAX)
        if subsidiary_id is not _UNSET:
            changes["subsidiary_id"] = _validate_subsidiary(db, subsidiary_id)
        if service_id is not _UNSET:
            changes["service_id"] = _validate_service(db, service_id)

        now = now or datetime.utcnow()
        previous = entry.status
        fields = entry_state.on_edit(entry.id, entry.status, actor, now)
        changes.update(fields.as_dict())
        changes["updated_at"] = now

        for key, value in changes.items():
            setattr(entry, key, value)

        db.flush()
        db.refresh(entry)

        if owns_db:
            db.commit()

        logger.info(
            "Time entry updated",
            extra={"time_entry_id": entry.id, "from_status": previous, "to_status": entry.status},
        )
        return entry
    except Exception:
        if owns_db:
            db.rollback()
        raise
    finally:
        if owns_db:
            db.close()


def delete_entry(actor: Actor, entry_id: str, *, db: Optional[Session] = None) -> None:
    owns_db = db is None
    if owns_db:
        db = SessionLocal()

    try:
        entry = _get_entry(db, entry_id)
        _require_owner(actor, entry)
        entry_state.assert_deletable(entry.id, entry.status)

        db.delete(entry)
        db.flush()

        if owns_db:
            db.commit()

        logger.info("Time entry deleted", extra={"time_entry_id": str(entry_id), "employee_id": actor.employee_id})
    except Exception:
        if owns_db:
            db.rollback()
        raise
    finally:
        if owns_db:
            db.close()


# ---------- reads ----------

def parse_month(month: Optional[str], today: Optional[date] = None) -> tuple[date, date]:
    """'YYYY-MM' -> (first day, last day). None means the current month."""
    if not month:
        today = today or date.today()
        year, mon = today.year, today.month
    else:
        try:
            year_s, mon_s = str(month).split("-", 1)
            year, mon = int(year_s), int(mon_s)
            if not 1 <= mon <= 12:
                raise ValueError(month)
        except ValueError as exc:
            raise ValidationError("month must be formatted YYYY-MM") from exc
    return date(year, mon, 1), date(year, mon, monthrange(year, mon)[1])


def month_entries(db: Session, employee_id: int, start: date, end: date) -> List[TimeEntry]:
    return (
        db.query(TimeEntry)
        .filter(
            TimeEntry.employee_id == int(employee_id),
            TimeEntry.work_date >= start,
            TimeEntry.work_date <= end,
        )
        .order_by(TimeEntry.work_date.asc(), TimeEntry.created_at.asc())
        .all()
    )
