from datetime import date
from decimal import Decimal

import pytest

from worktime.core.errors import NotFound, ValidationError
from worktime.services import estimation_service


@pytest.fixture
def priced(factory):
    north = factory.subsidiary("North")
    south = factory.subsidiary("South")
    ana = factory.employee("Ana", "Alpha")
    bob = factory.employee("Bob", "Bravo")
    factory.entry(ana, north, minutes=100, status="APPROVED")
    factory.entry(ana, north, minutes=25, status="APPROVED", work_date=date(2024, 3, 2))
    factory.entry(ana, north, minutes=600, status="SUBMITTED")
    factory.entry(bob, north, minutes=50, status="APPROVED")
    factory.entry(bob, south, minutes=60, status="APPROVED")
    factory.entry(bob, south, minutes=30, status="DRAFT")
    return north, south, ana, bob


def test_row_amount_is_rounded_hours_times_rate_and_total_is_sum_of_rows(priced, db):
    north, _, ana, bob = priced

    result = estimation_service.estimate_subsidiary(db, north.id, [ana.id, bob.id], "37.50")

    rows = {r["employee_id"]: r for r in result["rows"]}
    assert rows[ana.id]["minutes"] == 125
    assert rows[ana.id]["hours"] == Decimal("2.08")
    assert rows[ana.id]["amount"] == Decimal("2.08") * Decimal("37.50")
    assert rows[bob.id]["hours"] == Decimal("0.83")
    assert rows[bob.id]["amount"] == Decimal("0.83") * Decimal("37.50")

    assert result["total_amount"] == rows[ana.id]["amount"] + rows[bob.id]["amount"]
    assert result["total_hours"] == Decimal("2.91")
    assert result["total_minutes"] == 175


def test_only_approved_minutes_count(priced, db):
    north, _, ana, _ = priced
    result = estimation_service.estimate_subsidiary(db, north.id, [ana.id], 10)
    assert result["total_minutes"] == 125


def test_half_up_rounding():
    # 1 minute -> 0.01666..; 3 minutes -> 0.05; 1231 minutes -> 20.51666..
    assert estimation_service.hours_decimal(1) == Decimal("0.02")
    assert estimation_service.hours_decimal(3) == Decimal("0.05")
    assert estimation_service.hours_decimal(1231) == Decimal("20.52")


def test_scope_and_range_filter(priced, db):
    north, _, ana, bob = priced
    only_first_day = estimation_service.estimate_subsidiary(
        db, north.id, [ana.id, bob.id], 1, start=date(2024, 3, 1), end=date(2024, 3, 1)
    )
    assert only_first_day["total_minutes"] == 150

    nobody = estimation_service.estimate_subsidiary(db, north.id, [], 1)
    assert nobody["rows"] == []
    assert nobody["total_amount"] == 0


def test_bad_inputs(priced, db):
    north, _, ana, _ = priced
    with pytest.raises(ValidationError):
        estimation_service.estimate_subsidiary(db, north.id, [ana.id], "abc")
    with pytest.raises(ValidationError):
        estimation_service.estimate_subsidiary(db, north.id, [ana.id], "-1")
    with pytest.raises(NotFound):
        estimation_service.estimate_subsidiary(db, 999999, [ana.id], 1)


def test_summary_reports_employee_count(priced, db):
    north, south, ana, bob = priced

    summary = estimation_service.estimation_summary(db, [ana.id, bob.id])

    assert [s["subsidiary_name"] for s in summary] == ["North", "South"]
    by_id = {s["subsidiary_id"]: s for s in summary}
    assert by_id[north.id]["employee_count"] == 2
    assert by_id[north.id]["total_minutes"] == 175
    assert by_id[south.id]["employee_count"] == 1
    assert by_id[south.id]["total_hours"] == Decimal("1.00")

    assert estimation_service.estimation_summary(db, [ana.id]) == [
        {
            "subsidiary_id": north.id,
            "subsidiary_code": north.code,
            "subsidiary_name": "North",
            "total_minutes": 125,
            "total_hours": Decimal("2.08"),
            "employee_count": 1,
        }
    ]


def test_summary_hours_match_the_subsidiary_estimate(priced, factory, db):
    north, south, ana, bob = priced
    tiny = factory.subsidiary("Tiny")
    for emp in (ana, bob):
        factory.entry(emp, tiny, minutes=1, status="APPROVED")

    scope = [ana.id, bob.id]
    by_id = {s["subsidiary_id"]: s for s in estimation_service.estimation_summary(db, scope)}

    for sub in (north, south, tiny):
        detail = estimation_service.estimate_subsidiary(db, sub.id, scope, 1)
        assert by_id[sub.id]["total_hours"] == detail["total_hours"]
        assert by_id[sub.id]["total_minutes"] == detail["total_minutes"]

    assert by_id[tiny.id]["total_hours"] == Decimal("0.04")
    assert by_id[north.id]["total_hours"] == Decimal("2.91")
