from typing import List

from fastapi import APIRouter, Depends

from worktime.core.authorization import Actor, current_actor
from worktime.database import SessionLocal
from worktime.models.employee import Employee
from worktime.schemas.employee import EmployeeResponse
from worktime.services import scoping_service

router = APIRouter(prefix="/employees", tags=["Employees"])


@router.get("/visible", response_model=List[EmployeeResponse])
def list_visible_employees(actor: Actor = Depends(current_actor)):
    db = SessionLocal()
    try:
        ids = scoping_service.list_visible_employees(actor, db=db)
        if not ids:
            return []
        return (
            db.query(Employee)
            .filter(Employee.id.in_(ids))
            .order_by(Employee.last_name.asc(), Employee.first_name.asc(), Employee.id.asc())
            .all()
        )
    finally:
        db.close()
