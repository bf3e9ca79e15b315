"""Notification records and their external delivery.

Business transitions call the ``notify_*`` hooks once per batch and per
owning employee. Each hook writes one row per recipient and then tries the
configured sink once per row. A sink failure is logged and leaves
``email_sent`` False; it is never re-raised to the caller.
"""

from __future__ import annotations

import logging
import os
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from worktime.core.errors import Forbidden, NotFound
from worktime.models.employee import Employee
from worktime.models.notification import Notification
from worktime.models.time_entry import TimeEntry
from worktime.models.user import User
from worktime.services import scoping_service

logger = logging.getLogger(__name__)

TASK_SUBMITTED = "TASK_SUBMITTED"
TASK_APPROVED = "TASK_APPROVED"
TASK_REJECTED = "TASK_REJECTED"

# hooks resolve this to get_sink() at call time
CONFIGURED_SINK = object()


# ---------- sinks ----------

class NotificationSink:
    """Delivers one notification to one address. Raises on failure."""

    name = "base"

    def send(self, notification: Notification, recipient_email: str) -> None:
        raise NotImplementedError


class LogSink(NotificationSink):
    name = "log"

    def send(self, notification: Notification, recipient_email: str) -> None:
        logger.info(
            "Notification delivered to log sink",
            extra={
                "notification_id": notification.id,
                "notification_type": notification.type,
                "recipient": recipient_email,
            },
        )


class SmtpSink(NotificationSink):
    name = "smtp"

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        sender: Optional[str] = None,
        starttls: bool = True,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender or username or "no-reply@localhost"
        self.starttls = starttls
        self.timeout = timeout

    def _build_message(self, notification: Notification, recipient_email: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = notification.title
        msg["From"] = self.sender
        msg["To"] = recipient_email
        msg.attach(MIMEText(notification.message, "plain"))
        msg.attach(MIMEText(f"<h3>{notification.title}</h3><p>{notification.message}</p>", "html"))
        return msg

    def send(self, notification: Notification, recipient_email: str) -> None:
        msg = self._build_message(notification, recipient_email)
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as s:
            if self.starttls:
                s.starttls()
            if self.username:
                s.login(self.username, self.password or "")
            s.sendmail(self.sender, [recipient_email], msg.as_string())


def get_sink() -> Optional[NotificationSink]:
    kind = os.getenv("NOTIFICATION_SINK", "log").strip().lower()
    if kind in {"", "none", "off"}:
        return None
    if kind == "smtp":
        return SmtpSink(
            host=os.getenv("SMTP_HOST", "localhost"),
            port=int(os.getenv("SMTP_PORT", "587")),
            username=os.getenv("SMTP_USER") or None,
            password=os.getenv("SMTP_PASSWORD") or None,
            sender=os.getenv("SMTP_FROM") or None,
            starttls=os.getenv("SMTP_STARTTLS", "1").strip() not in {"0", "false", "False", "no", "NO"},
        )
    return LogSink()


# ---------- records + delivery ----------

def _hours(minutes: int, ndigits: int = 1) -> float:
    return round(int(minutes) / 60, ndigits)


def create_notification(
    db: Session,
    *,
    user_id: int,
    type: str,
    title: str,
    message: str,
    data: Optional[Dict[str, Any]] = None,
) -> Notification:
    row = Notification(
        user_id=int(user_id),
        type=type,
        title=title,
        message=message,
        data=data or {},
        email_sent=False,
    )
    db.add(row)
    return row


def deliver(db: Session, notification: Notification, sink: Optional[NotificationSink]) -> bool:
    """Attempt delivery exactly once. Returns True when the sink confirmed it."""
    if sink is None:
        return False

    try:
        user = db.query(User).filter(User.id == notification.user_id).first()
        if user is None or not user.email:
            return False

        sink.send(notification, user.email)
        notification.email_sent = True
        db.flush()
        return True
    except Exception:
        logger.exception(
            "Notification delivery failed",
            extra={
                "notification_id": notification.id,
                "notification_type": notification.type,
                "user_id": notification.user_id,
                "sink": sink.name,
            },
        )
        return False


def _fan_out(
    db: Session,
    recipients: Sequence[int],
    *,
    type: str,
    title: str,
    message: str,
    data: Dict[str, Any],
    sink: Any,
) -> List[Notification]:
    """Persist one row per recipient, then attempt delivery for each.

    Rows are committed before delivery so a sink failure cannot lose them.
    Any failure while writing rows is logged and swallowed: the business
    transition that triggered the hook has already been committed.
    """
    unique = sorted({int(r) for r in recipients})
    if not unique:
        return []

    if sink is CONFIGURED_SINK:
        try:
            sink = get_sink()
        except Exception:
            # rows are still written; delivery stays unconfirmed
            logger.exception("Notification sink misconfigured", extra={"notification_type": type})
            sink = None

    try:
        rows = [
            create_notification(db, user_id=uid, type=type, title=title, message=message, data=dict(data))
            for uid in unique
        ]
        db.flush()
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(
            "Notification fan-out failed",
            extra={"notification_type": type, "recipient_count": len(unique)},
        )
        return []

    for row in rows:
        deliver(db, row, sink)

    try:
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Could not record notification delivery state", extra={"notification_type": type})

    logger.info(
        "Notifications dispatched",
        extra={
            "notification_type": type,
            "recipient_count": len(rows),
            "delivered": sum(1 for r in rows if r.email_sent),
        },
    )
    return rows


def notify_task_submitted(
    db: Session,
    employee: Employee,
    entry_ids: Sequence[str],
    total_minutes: int,
    *,
    sink: Any = CONFIGURED_SINK,
) -> List[Notification]:
    recipients = scoping_service.notification_audience(db, employee.id)
    count = len(entry_ids)
    hours = _hours(total_minutes)
    return _fan_out(
        db,
        recipients,
        type=TASK_SUBMITTED,
        title="New hours submitted",
        message=f"{employee.full_name} submitted {count} entry(ies) ({hours}h) for validation.",
        data={
            "employee_id": employee.id,
            "employee_name": employee.full_name,
            "time_entry_ids": list(entry_ids),
            "total_minutes": int(total_minutes),
            "total_hours": hours,
            "entry_count": count,
        },
        sink=sink,
    )


def _approver_name(db: Session, approver_user_id: int) -> str:
    user = db.query(User).filter(User.id == int(approver_user_id)).first()
    if user is None:
        return "unknown"
    if user.employee_id is not None:
        emp = db.query(Employee).filter(Employee.id == user.employee_id).first()
        if emp is not None and emp.full_name:
            return emp.full_name
    return user.email


def notify_task_approved(
    db: Session,
    employee: Employee,
    entry_ids: Sequence[str],
    total_minutes: int,
    approver_user_id: int,
    *,
    sink: Any = CONFIGURED_SINK,
) -> List[Notification]:
    owner_user_id = scoping_service.user_id_for_employee(db, employee.id)
    if owner_user_id is None:
        return []

    hours = _hours(total_minutes)
    return _fan_out(
        db,
        [owner_user_id],
        type=TASK_APPROVED,
        title="Hours approved",
        message=f"Your hours ({hours}h) were approved by {_approver_name(db, approver_user_id)}.",
        data={
            "time_entry_ids": list(entry_ids),
            "total_minutes": int(total_minutes),
            "total_hours": hours,
            "approved_by": int(approver_user_id),
        },
        sink=sink,
    )


def notify_task_rejected(
    db: Session,
    employee: Employee,
    entry: TimeEntry,
    rejected_by_user_id: int,
    reason: str,
    *,
    sink: Any = CONFIGURED_SINK,
) -> List[Notification]:
    owner_user_id = scoping_service.user_id_for_employee(db, employee.id)
    if owner_user_id is None:
        return []

    hours = _hours(entry.minutes)
    return _fan_out(
        db,
        [owner_user_id],
        type=TASK_REJECTED,
        title="Hours rejected",
        message=(
            f"Your entry of {entry.work_date.strftime('%d/%m/%Y')} ({hours}h) was rejected. "
            f"Reason: {reason}"
        ),
        data={
            "time_entry_id": entry.id,
            "hours": hours,
            "rejected_by": int(rejected_by_user_id),
            "reason": reason,
        },
        sink=sink,
    )


# ---------- inbox ----------

def list_notifications(db: Session, user_id: int, *, limit: int = 20, unread_only: bool = False) -> List[Notification]:
    q = db.query(Notification).filter(Notification.user_id == int(user_id))
    if unread_only:
        q = q.filter(Notification.read_at.is_(None))
    return q.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(int(limit)).all()


def count_unread(db: Session, user_id: int) -> int:
    return (
        db.query(Notification)
        .filter(Notification.user_id == int(user_id), Notification.read_at.is_(None))
        .count()
    )


def mark_as_read(db: Session, user_id: int, notification_id: int, *, now: Optional[datetime] = None) -> Notification:
    row = db.query(Notification).filter(Notification.id == int(notification_id)).first()
    if row is None:
        raise NotFound("Notification not found")
    if int(row.user_id) != int(user_id):
        raise Forbidden("Notification belongs to another user")
    if row.read_at is None:
        row.read_at = now or datetime.utcnow()
        db.flush()
    return row


def mark_all_as_read(db: Session, user_id: int, *, now: Optional[datetime] = None) -> int:
    return (
        db.query(Notification)
        .filter(Notification.user_id == int(user_id), Notification.read_at.is_(None))
        .update({"read_at": now or datetime.utcnow()}, synchronize_session=False)
    )

