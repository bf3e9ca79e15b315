from datetime import date

import pytest

from worktime.core.authorization import Role
from worktime.core.errors import Forbidden, ValidationError
from worktime.services import validation_service


@pytest.fixture
def team(factory):
    s1 = factory.service("S1")
    s2 = factory.service("S2")
    sub = factory.subsidiary()
    zed = factory.employee("Zed", "Young", services=[s1])
    amy = factory.employee("Amy", "Young", services=[s1])
    bo = factory.employee("Bo", "Adams", services=[s1])
    far = factory.employee("Far", "Away", services=[s2])
    _, _, manager = factory.person([Role.MANAGER], services=[s1], first_name="Max", last_name="Zulu")

    factory.entry(zed, sub, status="SUBMITTED")
    factory.entry(zed, sub, status="SUBMITTED")
    factory.entry(amy, sub, status="SUBMITTED")
    factory.entry(bo, sub, status="APPROVED")
    factory.entry(bo, sub, status="DRAFT")
    factory.entry(far, sub, status="SUBMITTED")
    return manager, (zed, amy, bo, far)


def test_queue_defaults_to_submitted_and_orders_by_name(team, db):
    manager, (zed, amy, _, _) = team

    queue = validation_service.validation_queue(db, manager)

    assert queue["total"] == 2
    assert [(i["employee_id"], i["entry_count"]) for i in queue["items"]] == [(amy.id, 1), (zed.id, 2)]


def test_queue_all_covers_reviewed_statuses(team, db):
    manager, (zed, amy, bo, _) = team

    queue = validation_service.validation_queue(db, manager, status="ALL")

    assert [i["employee_id"] for i in queue["items"]] == [bo.id, amy.id, zed.id]
    assert queue["items"][0]["entry_count"] == 1


def test_queue_pagination_and_bad_filter(team, db):
    manager, (zed, _, _, _) = team

    page2 = validation_service.validation_queue(db, manager, page=2, per_page=1)
    assert page2["total"] == 2
    assert [i["employee_id"] for i in page2["items"]] == [zed.id]

    with pytest.raises(ValidationError):
        validation_service.validation_queue(db, manager, status="PENDING")


def test_queue_is_for_reviewers_only(factory, db):
    _, _, employee = factory.person([Role.EMPLOYEE])
    with pytest.raises(Forbidden):
        validation_service.validation_queue(db, employee)


def test_employee_detail_requires_shared_service(team, db):
    manager, (zed, _, _, far) = team

    employee, entries, start, end = validation_service.employee_detail(
        db, manager, zed.id, month="2024-03"
    )
    assert employee.id == zed.id
    assert len(entries) == 2
    assert (start, end) == (date(2024, 3, 1), date(2024, 3, 31))

    with pytest.raises(Forbidden):
        validation_service.employee_detail(db, manager, far.id, month="2024-03")
