"""Submission and approval over sets of entries.

Every operation runs in two phases: the eligible id set is computed under the
current authorization and status, then a single UPDATE restricted to that
exact set and conditioned on the pre-transition status is applied. The UPDATE
rowcount is what gets reported, so rows another request moved first are not
counted twice.

The transition is committed before the notification hook runs. The hook
commits its own rows on the same session and never raises.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from worktime.core.authorization import Actor
from worktime.core.errors import Forbidden, InvalidTransition, NoEntriesError, NotFound, ValidationError
from worktime.database import SessionLocal
from worktime.models.employee import Employee
from worktime.models.time_entry import TimeEntry
from worktime.services import notification_service, scoping_service
from worktime.services.entry_state import (
    EntryStatus,
    approved_fields,
    as_status,
    rejected_fields,
    submitted_fields,
)
from worktime.services.notification_service import CONFIGURED_SINK

logger = logging.getLogger(__name__)

REJECTION_REASON_MAX = 500


def _unique_ids(entry_ids: Optional[Iterable[str]]) -> List[str]:
    if not entry_ids:
        return []
    return sorted({str(i) for i in entry_ids})


def _employees_by_id(db: Session, employee_ids: Iterable[int]) -> Dict[int, Employee]:
    ids = sorted({int(i) for i in employee_ids})
    if not ids:
        return {}
    return {int(e.id): e for e in db.query(Employee).filter(Employee.id.in_(ids)).all()}


# ---------- submit ----------

def submit_drafts(
    actor: Actor,
    entry_ids: Optional[Iterable[str]] = None,
    *,
    now: Optional[datetime] = None,
    db: Optional[Session] = None,
    sink: Any = CONFIGURED_SINK,
) -> Dict[str, Any]:
    """
    Move the actor's DRAFT entries to SUBMITTED.

    No ids means every current DRAFT of the actor. Ids that are not the
    actor's, or not DRAFT, are skipped. Raises NoEntriesError when nothing
    qualifies. Commits even when a session is passed in.
    """
    owns_db = db is None
    if owns_db:
        db = SessionLocal()

    try:
        if actor.employee_id is None:
            raise NoEntriesError("Nothing to submit")

        requested = _unique_ids(entry_ids)
        q = db.query(TimeEntry.id).filter(
            TimeEntry.employee_id == int(actor.employee_id),
            TimeEntry.status == EntryStatus.DRAFT.value,
        )
        if requested:
            q = q.filter(TimeEntry.id.in_(requested))
        eligible = [r.id for r in q.all()]
        if not eligible:
            raise NoEntriesError("Nothing to submit")

        now = now or datetime.utcnow()
        updated = (
            db.query(TimeEntry)
            .filter(
                TimeEntry.id.in_(eligible),
                TimeEntry.employee_id == int(actor.employee_id),
                TimeEntry.status == EntryStatus.DRAFT.value,
            )
            .update(submitted_fields(now), synchronize_session=False)
        )
        if not updated:
            db.rollback()
            raise NoEntriesError("Nothing to submit")
        db.commit()

        changed = (
            db.query(TimeEntry.id, TimeEntry.minutes)
            .filter(
                TimeEntry.id.in_(eligible),
                TimeEntry.status == EntryStatus.SUBMITTED.value,
                TimeEntry.submitted_at == now,
            )
            .order_by(TimeEntry.id.asc())
            .all()
        )
        submitted_ids = [r.id for r in changed]
        total_minutes = sum(int(r.minutes) for r in changed)

        logger.info(
            "Time entries submitted",
            extra={
                "employee_id": actor.employee_id,
                "submitted_count": int(updated),
                "total_minutes": total_minutes,
            },
        )

        employee = db.query(Employee).filter(Employee.id == int(actor.employee_id)).first()
        if employee is not None:
            notification_service.notify_task_submitted(db, employee, submitted_ids, total_minutes, sink=sink)

        return {"submitted_count": int(updated), "time_entry_ids": submitted_ids}
    except Exception:
        if owns_db:
            db.rollback()
        raise
    finally:
        if owns_db:
            db.close()


# ---------- single approve / reject ----------

def _load_reviewable(db: Session, actor: Actor, entry_id: str, requested: EntryStatus) -> TimeEntry:
    entry = db.query(TimeEntry).filter(TimeEntry.id == str(entry_id)).first()
    if entry is None:
        raise NotFound("Time entry not found")

    if not actor.can_approve():
        raise Forbidden("Only managers and admins can review time entries")
    scoping_service.authorize_employee_access(db, actor, entry.employee_id)

    current = as_status(entry.status)
    if current != EntryStatus.SUBMITTED:
        raise InvalidTransition(current.value, requested.value)
    return entry


def _apply_single(db: Session, entry: TimeEntry, requested: EntryStatus, values: Dict[str, Any]) -> None:
    updated = (
        db.query(TimeEntry)
        .filter(TimeEntry.id == entry.id, TimeEntry.status == EntryStatus.SUBMITTED.value)
        .update(values, synchronize_session=False)
    )
    if not updated:
        db.rollback()
        db.refresh(entry)
        raise InvalidTransition(str(entry.status), requested.value)
    db.commit()
    db.refresh(entry)


def approve(
    actor: Actor,
    entry_id: str,
    *,
    now: Optional[datetime] = None,
    db: Optional[Session] = None,
    sink: Any = CONFIGURED_SINK,
) -> TimeEntry:
    owns_db = db is None
    if owns_db:
        db = SessionLocal()

    try:
        entry = _load_reviewable(db, actor, entry_id, EntryStatus.APPROVED)

        now = now or datetime.utcnow()
        _apply_single(db, entry, EntryStatus.APPROVED, approved_fields(actor, now))

        logger.info(
            "Time entry approved",
            extra={"time_entry_id": entry.id, "employee_id": entry.employee_id, "approved_by": actor.user_id},
        )

        employee = db.query(Employee).filter(Employee.id == entry.employee_id).first()
        if employee is not None:
            notification_service.notify_task_approved(
                db, employee, [entry.id], int(entry.minutes), actor.user_id, sink=sink
            )
        return entry
    except Exception:
        if owns_db:
            db.rollback()
        raise
    finally:
        if owns_db:
            db.close()


def validate_reason(reason: Optional[str]) -> str:
    cleaned = (reason or "").strip()
    if not cleaned:
        raise ValidationError("A rejection reason is required")
    if len(cleaned) > REJECTION_REASON_MAX:
        raise ValidationError(f"Rejection reason must be at most {REJECTION_REASON_MAX} characters")
    return cleaned


def reject(
    actor: Actor,
    entry_id: str,
    reason: Optional[str],
    *,
    now: Optional[datetime] = None,
    db: Optional[Session] = None,
    sink: Any = CONFIGURED_SINK,
) -> TimeEntry:
    cleaned = validate_reason(reason)

    owns_db = db is None
    if owns_db:
        db = SessionLocal()

    try:
        entry = _load_reviewable(db, actor, entry_id, EntryStatus.REJECTED)

        now = now or datetime.utcnow()
        _apply_single(db, entry, EntryStatus.REJECTED, rejected_fields(cleaned, now))

        logger.info(
            "Time entry rejected",
            extra={"time_entry_id": entry.id, "employee_id": entry.employee_id, "rejected_by": actor.user_id},
        )

        employee = db.query(Employee).filter(Employee.id == entry.employee_id).first()
        if employee is not None:
            notification_service.notify_task_rejected(db, employee, entry, actor.user_id, cleaned, sink=sink)
        return entry
    except Exception:
        if owns_db:
            db.rollback()
        raise
    finally:
        if owns_db:
            db.close()


# ---------- bulk approve ----------

def eligible_for_approval(db: Session, actor: Actor, entry_ids: Iterable[str]) -> List[str]:
    """Ids among ``entry_ids`` that are SUBMITTED and that the actor may approve."""
    ids = _unique_ids(entry_ids)
    if not ids or not actor.can_approve():
        return []

    candidates = (
        db.query(TimeEntry.id, TimeEntry.employee_id)
        .filter(TimeEntry.id.in_(ids), TimeEntry.status == EntryStatus.SUBMITTED.value)
        .all()
    )
    if actor.is_admin:
        return sorted(r.id for r in candidates)

    actor_services = scoping_service.service_ids_for_employee(db, actor.employee_id)
    owner_services = scoping_service.service_ids_by_employee(db, [r.employee_id for r in candidates])
    return sorted(
        r.id
        for r in candidates
        if scoping_service.may_approve(actor, actor_services, owner_services.get(int(r.employee_id), set()))
    )


def apply_approval(
    db: Session,
    actor: Actor,
    eligible: Iterable[str],
    *,
    now: Optional[datetime] = None,
    sink: Any = CONFIGURED_SINK,
) -> Dict[str, Any]:
    """
    Second phase of a bulk approval: one UPDATE over ``eligible``, still
    conditioned on SUBMITTED, then one notification per owning employee.

    Rows that left SUBMITTED after ``eligible`` was computed are not touched,
    counted or notified.
    """
    ids = _unique_ids(eligible)
    if not ids:
        return {"approved_count": 0, "time_entry_ids": []}

    now = now or datetime.utcnow()
    updated = (
        db.query(TimeEntry)
        .filter(TimeEntry.id.in_(ids), TimeEntry.status == EntryStatus.SUBMITTED.value)
        .update(approved_fields(actor, now), synchronize_session=False)
    )
    if not updated:
        db.rollback()
        return {"approved_count": 0, "time_entry_ids": []}
    db.commit()

    changed = (
        db.query(TimeEntry.id, TimeEntry.employee_id, TimeEntry.minutes)
        .filter(
            TimeEntry.id.in_(ids),
            TimeEntry.status == EntryStatus.APPROVED.value,
            TimeEntry.approved_at == now,
            TimeEntry.approved_by == actor.user_id,
        )
        .order_by(TimeEntry.id.asc())
        .all()
    )

    per_employee: Dict[int, List[Any]] = defaultdict(list)
    for row in changed:
        per_employee[int(row.employee_id)].append(row)

    logger.info(
        "Time entries bulk approved",
        extra={
            "approved_by": actor.user_id,
            "eligible_count": len(ids),
            "approved_count": int(updated),
            "employee_count": len(per_employee),
        },
    )

    employees = _employees_by_id(db, per_employee.keys())
    for employee_id in sorted(per_employee):
        employee = employees.get(employee_id)
        if employee is None:
            continue
        rows = per_employee[employee_id]
        notification_service.notify_task_approved(
            db,
            employee,
            [r.id for r in rows],
            sum(int(r.minutes) for r in rows),
            actor.user_id,
            sink=sink,
        )

    return {"approved_count": int(updated), "time_entry_ids": [r.id for r in changed]}


def bulk_approve(
    actor: Actor,
    entry_ids: Iterable[str],
    *,
    now: Optional[datetime] = None,
    db: Optional[Session] = None,
    sink: Any = CONFIGURED_SINK,
) -> Dict[str, Any]:
    """
    Approve every id that is SUBMITTED and within the actor's reach.

    Other ids are dropped without error. Returns the number of rows this call
    actually moved to APPROVED.
    """
    owns_db = db is None
    if owns_db:
        db = SessionLocal()

    try:
        eligible = eligible_for_approval(db, actor, entry_ids)
        return apply_approval(db, actor, eligible, now=now, sink=sink)
    except Exception:
        if owns_db:
            db.rollback()
        raise
    finally:
        if owns_db:
            db.close()
