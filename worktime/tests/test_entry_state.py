from datetime import datetime

import pytest

from worktime.core.authorization import Actor, Role
from worktime.core.errors import EntryLocked, InvalidTransition
from worktime.services import entry_state
from worktime.services.entry_state import EntryStatus

NOW = datetime(2024, 3, 1, 12, 0, 0)

EMPLOYEE = Actor.of(1, 10, [Role.EMPLOYEE])
MANAGER = Actor.of(2, 20, [Role.MANAGER])
ADMIN = Actor.of(3, None, [Role.ADMIN])


def test_employee_creates_draft_without_approval_fields():
    fields = entry_state.on_create(EMPLOYEE, NOW)
    assert fields.status == EntryStatus.DRAFT
    assert fields.approved_at is None
    assert fields.approved_by is None


@pytest.mark.parametrize("actor", [MANAGER, ADMIN])
def test_manager_or_admin_creation_is_auto_approved(actor):
    fields = entry_state.on_create(actor, NOW)
    assert fields.status == EntryStatus.APPROVED
    assert fields.approved_at == NOW
    assert fields.approved_by == actor.user_id


def test_edit_of_rejected_entry_returns_to_draft_and_clears_reason():
    fields = entry_state.on_edit("e1", "REJECTED", EMPLOYEE, NOW)
    assert fields.as_dict() == {
        "status": "DRAFT",
        "approved_at": None,
        "approved_by": None,
        "rejection_reason": None,
    }


def test_edit_by_manager_approves():
    fields = entry_state.on_edit("e1", EntryStatus.DRAFT, MANAGER, NOW)
    assert fields.status == EntryStatus.APPROVED
    assert fields.approved_by == MANAGER.user_id
    assert fields.rejection_reason is None


@pytest.mark.parametrize("status", ["SUBMITTED", "APPROVED"])
def test_submitted_and_approved_entries_are_locked(status):
    with pytest.raises(EntryLocked) as exc_info:
        entry_state.on_edit("e1", status, EMPLOYEE, NOW)
    assert exc_info.value.status == status

    with pytest.raises(EntryLocked):
        entry_state.assert_deletable("e1", status)


def test_rejected_entries_cannot_be_deleted():
    with pytest.raises(EntryLocked):
        entry_state.assert_deletable("e1", "REJECTED")
    entry_state.assert_deletable("e1", "DRAFT")


@pytest.mark.parametrize(
    "current,requested",
    [
        ("APPROVED", "REJECTED"),
        ("APPROVED", "DRAFT"),
        ("REJECTED", "SUBMITTED"),
        ("SUBMITTED", "DRAFT"),
        ("DRAFT", "REJECTED"),
    ],
)
def test_illegal_transitions_name_both_states(current, requested):
    with pytest.raises(InvalidTransition) as exc_info:
        entry_state.assert_transition(current, requested)
    assert exc_info.value.current == current
    assert exc_info.value.requested == requested
    assert current in str(exc_info.value) and requested in str(exc_info.value)


def test_transition_field_sets():
    assert entry_state.submitted_fields(NOW) == {"status": "SUBMITTED", "submitted_at": NOW, "updated_at": NOW}
    approved = entry_state.approved_fields(MANAGER, NOW)
    assert approved["approved_by"] == MANAGER.user_id and approved["approved_at"] == NOW
    rejected = entry_state.rejected_fields("incomplete description", NOW)
    assert rejected["status"] == "REJECTED"
    assert "approved_at" not in rejected and "approved_by" not in rejected
