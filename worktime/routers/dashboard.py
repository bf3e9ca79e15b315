from __future__ import annotations

from datetime import date
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query

from worktime.core.authorization import Actor, current_actor
from worktime.database import SessionLocal
from worktime.services import dashboard_service

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("")
def get_dashboard(
    today: Optional[date] = Query(default=None, description="Reference day, defaults to today."),
    actor: Actor = Depends(current_actor),
) -> dict[str, Any]:
    db = SessionLocal()
    try:
        return dashboard_service.dashboard(db, actor, today=today)
    finally:
        db.close()
