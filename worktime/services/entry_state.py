"""Time entry lifecycle.

    create ──► DRAFT ──submit──► SUBMITTED ──approve──► APPROVED
       │         ▲  │                 │
       │    edit │  └─delete          └──reject──► REJECTED ──edit──► DRAFT
       │         │
       └─────────┴── creator/editor holding MANAGER or ADMIN goes straight to APPROVED

Only DRAFT and REJECTED entries can be edited; only DRAFT entries can be
deleted. Everything here is pure: callers apply the returned field values.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from worktime.core.authorization import Actor
from worktime.core.errors import EntryLocked, InvalidTransition


class EntryStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


EDITABLE_STATUSES = frozenset({EntryStatus.DRAFT, EntryStatus.REJECTED})
DELETABLE_STATUSES = frozenset({EntryStatus.DRAFT})

# Explicit transitions. Edits are modelled as DRAFT/REJECTED -> DRAFT|APPROVED.
TRANSITIONS = {
    EntryStatus.DRAFT: frozenset({EntryStatus.DRAFT, EntryStatus.SUBMITTED, EntryStatus.APPROVED}),
    EntryStatus.REJECTED: frozenset({EntryStatus.DRAFT, EntryStatus.APPROVED}),
    EntryStatus.SUBMITTED: frozenset({EntryStatus.APPROVED, EntryStatus.REJECTED}),
    EntryStatus.APPROVED: frozenset(),
}


def as_status(value: Any) -> EntryStatus:
    if isinstance(value, EntryStatus):
        return value
    return EntryStatus(str(value))


def assert_transition(current: Any, requested: Any) -> None:
    cur = as_status(current)
    req = as_status(requested)
    if req not in TRANSITIONS[cur]:
        raise InvalidTransition(cur.value, req.value)


def assert_editable(entry_id: str, current: Any) -> None:
    cur = as_status(current)
    if cur not in EDITABLE_STATUSES:
        raise EntryLocked(entry_id, cur.value)


def assert_deletable(entry_id: str, current: Any) -> None:
    cur = as_status(current)
    if cur not in DELETABLE_STATUSES:
        raise EntryLocked(entry_id, cur.value)


@dataclass(frozen=True)
class StatusFields:
    status: EntryStatus
    approved_at: Optional[datetime]
    approved_by: Optional[int]
    rejection_reason: Optional[str]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "approved_at": self.approved_at,
            "approved_by": self.approved_by,
            "rejection_reason": self.rejection_reason,
        }


def _authored_fields(author: Actor, now: datetime) -> StatusFields:
    if author.can_approve():
        return StatusFields(
            status=EntryStatus.APPROVED,
            approved_at=now,
            approved_by=author.user_id,
            rejection_reason=None,
        )
    return StatusFields(
        status=EntryStatus.DRAFT,
        approved_at=None,
        approved_by=None,
        rejection_reason=None,
    )


def on_create(creator: Actor, now: datetime) -> StatusFields:
    return _authored_fields(creator, now)


def on_edit(entry_id: str, current: Any, editor: Actor, now: datetime) -> StatusFields:
    assert_editable(entry_id, current)
    fields = _authored_fields(editor, now)
    assert_transition(current, fields.status)
    return fields


def submitted_fields(now: datetime) -> Dict[str, Any]:
    return {
        "status": EntryStatus.SUBMITTED.value,
        "submitted_at": now,
        "updated_at": now,
    }


def approved_fields(approver: Actor, now: datetime) -> Dict[str, Any]:
    return {
        "status": EntryStatus.APPROVED.value,
        "approved_at": now,
        "approved_by": approver.user_id,
        "updated_at": now,
    }


def rejected_fields(reason: str, now: datetime) -> Dict[str, Any]:
    return {
        "status": EntryStatus.REJECTED.value,
        "rejection_reason": reason,
        "updated_at": now,
    }
