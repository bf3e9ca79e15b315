from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from worktime.core.authorization import Actor, Role, require_role
from worktime.core.errors import DomainError, as_http_exception
from worktime.database import SessionLocal
from worktime.schemas.estimation import EstimationSummaryItem, SubsidiaryEstimate
from worktime.services import estimation_service, scoping_service

router = APIRouter(prefix="/estimation", tags=["Estimation"])


@router.get("", response_model=List[EstimationSummaryItem])
def get_estimation_summary(
    start: Optional[date] = None,
    end: Optional[date] = None,
    actor: Actor = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        visible = scoping_service.managed_employee_ids(db, actor)
        return estimation_service.estimation_summary(db, visible, start=start, end=end)
    finally:
        db.close()


@router.get("/subsidiaries/{subsidiary_id}", response_model=SubsidiaryEstimate)
def estimate_subsidiary(
    subsidiary_id: int,
    rate: str = Query(default="0", description="Hourly rate applied to approved hours."),
    start: Optional[date] = None,
    end: Optional[date] = None,
    actor: Actor = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        visible = scoping_service.managed_employee_ids(db, actor)
        return estimation_service.estimate_subsidiary(db, subsidiary_id, visible, rate, start=start, end=end)
    except DomainError as exc:
        raise as_http_exception(exc) from exc
    finally:
        db.close()
