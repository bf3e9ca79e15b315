from datetime import date, datetime

from worktime.core.authorization import Role
from worktime.services import dashboard_service

TODAY = date(2024, 3, 13)  # Wednesday


def test_period_bounds():
    assert dashboard_service.week_bounds(TODAY) == (date(2024, 3, 11), date(2024, 3, 17))
    assert dashboard_service.month_bounds(TODAY) == (date(2024, 3, 1), date(2024, 3, 31))
    assert dashboard_service.previous_month_bounds(date(2024, 1, 10)) == (date(2023, 12, 1), date(2023, 12, 31))


def test_employee_stats(factory, db):
    sub = factory.subsidiary()
    emp, _, actor = factory.person([Role.EMPLOYEE])
    factory.entry(emp, sub, minutes=60, work_date=date(2024, 3, 11))
    factory.entry(emp, sub, minutes=30, work_date=date(2024, 3, 11), status="SUBMITTED")
    factory.entry(emp, sub, minutes=120, work_date=date(2024, 3, 4), status="APPROVED")
    factory.entry(emp, sub, minutes=240, work_date=date(2024, 2, 20), status="APPROVED")

    snapshot = dashboard_service.dashboard(db, actor, today=TODAY)

    stats = snapshot["employee"]
    assert stats["week_minutes"] == 90
    assert stats["month_minutes"] == 210
    assert stats["last_month_minutes"] == 240
    assert stats["month_status_counts"] == {"DRAFT": 1, "SUBMITTED": 1, "APPROVED": 1, "REJECTED": 0}
    assert len(stats["week_days"]) == 7
    assert stats["week_days"][0] == {"date": date(2024, 3, 11), "minutes": 90}
    assert len(stats["recent_entries"]) == 4

    assert snapshot["manager"] is None
    assert snapshot["admin"] is None


def test_manager_stats(factory, db):
    s1 = factory.service("S1")
    sub = factory.subsidiary()
    team_member = factory.employee("Tia", services=[s1])
    outsider = factory.employee("Out")
    _, _, manager = factory.person([Role.MANAGER], services=[s1])

    factory.entry(team_member, sub, status="SUBMITTED", submitted_at=datetime(2024, 3, 12, 9))
    factory.entry(team_member, sub, status="SUBMITTED", submitted_at=datetime(2024, 3, 12, 10))
    factory.entry(team_member, sub, status="APPROVED", approved_at=datetime(2024, 3, 12, 11))
    factory.entry(team_member, sub, status="APPROVED", approved_at=datetime(2024, 3, 1, 11))
    factory.entry(outsider, sub, status="SUBMITTED")

    stats = dashboard_service.dashboard(db, manager, today=TODAY)["manager"]

    assert stats["team_size"] == 2
    assert stats["pending_validations"] == 2
    assert stats["approved_this_week"] == 1
    assert [p["employee_name"] for p in stats["latest_pending"]] == [team_member.full_name] * 2
    assert stats["latest_pending"][0]["submitted_at"] == datetime(2024, 3, 12, 10)


def test_admin_stats(factory, db):
    sub = factory.subsidiary()
    factory.subsidiary(is_active=False)
    factory.service()
    emp = factory.employee("A")
    admin = factory.actor(factory.user([Role.ADMIN]))
    factory.entry(emp, sub, work_date=date(2024, 3, 2))
    factory.entry(emp, sub, work_date=date(2024, 2, 2))

    snapshot = dashboard_service.dashboard(db, admin, today=TODAY)

    assert snapshot["employee"] is None
    assert snapshot["manager"]["team_size"] == 1
    assert snapshot["admin"] == {
        "active_employees": 1,
        "users": 1,
        "active_subsidiaries": 1,
        "active_services": 1,
        "entries_this_month": 1,
    }
