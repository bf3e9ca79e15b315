"""Who may see or act on which employees and entries.

Manager reach is derived from shared service membership, never granted
directly: a manager covers every active employee that belongs to at least one
active service the manager's own employee record also belongs to. Nothing is
cached; every call reads the current membership rows.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy.orm import Session

from worktime.core.authorization import Actor, Role
from worktime.core.errors import Forbidden
from worktime.database import SessionLocal
from worktime.models.employee import Employee, EmployeeService
from worktime.models.service import Service
from worktime.models.user import RoleRow, User, UserRole


# ---------- pure decisions ----------

def shares_service(actor_service_ids: Iterable[int], owner_service_ids: Iterable[int]) -> bool:
    return bool(set(actor_service_ids) & set(owner_service_ids))


def may_approve(actor: Actor, actor_service_ids: Iterable[int], owner_service_ids: Iterable[int]) -> bool:
    if actor.is_admin:
        return True
    if actor.is_manager:
        return shares_service(actor_service_ids, owner_service_ids)
    return False


# ---------- membership reads ----------

def _active_memberships(db: Session):
    return (
        db.query(EmployeeService.employee_id, EmployeeService.service_id)
        .join(Service, Service.id == EmployeeService.service_id)
        .filter(Service.is_active.is_(True))
    )


def service_ids_for_employee(db: Session, employee_id: Optional[int]) -> Set[int]:
    if employee_id is None:
        return set()
    rows = _active_memberships(db).filter(EmployeeService.employee_id == int(employee_id)).all()
    return {int(r.service_id) for r in rows}


def service_ids_by_employee(db: Session, employee_ids: Iterable[int]) -> Dict[int, Set[int]]:
    ids = sorted({int(i) for i in employee_ids})
    result: Dict[int, Set[int]] = {i: set() for i in ids}
    if not ids:
        return result
    for r in _active_memberships(db).filter(EmployeeService.employee_id.in_(ids)).all():
        result[int(r.employee_id)].add(int(r.service_id))
    return result


# ---------- managed set ----------

def managed_employee_ids(db: Session, actor: Actor) -> List[int]:
    if actor.is_admin:
        rows = db.query(Employee.id).filter(Employee.is_active.is_(True)).order_by(Employee.id.asc()).all()
        return [int(r.id) for r in rows]

    if actor.is_manager:
        manager_services = service_ids_for_employee(db, actor.employee_id)
        if not manager_services:
            return []
        rows = (
            db.query(Employee.id)
            .join(EmployeeService, EmployeeService.employee_id == Employee.id)
            .filter(
                Employee.is_active.is_(True),
                EmployeeService.service_id.in_(sorted(manager_services)),
            )
            .distinct()
            .order_by(Employee.id.asc())
            .all()
        )
        return [int(r.id) for r in rows]

    if actor.employee_id is None:
        return []
    return [int(actor.employee_id)]


def list_visible_employees(actor: Actor, *, db: Optional[Session] = None) -> List[int]:
    owns_db = db is None
    if owns_db:
        db = SessionLocal()
    try:
        return managed_employee_ids(db, actor)
    finally:
        if owns_db:
            db.close()


def authorize_employee_access(db: Session, actor: Actor, employee_id: int) -> None:
    """Raise Forbidden unless the actor may review this employee's entries."""
    if actor.is_admin:
        return
    if actor.is_manager and shares_service(
        service_ids_for_employee(db, actor.employee_id),
        service_ids_for_employee(db, employee_id),
    ):
        return
    raise Forbidden("Not allowed to review this employee")


# ---------- reverse lookup ----------

def _user_ids_with_role(db: Session, role: Role):
    return (
        db.query(User.id)
        .join(UserRole, UserRole.user_id == User.id)
        .join(RoleRow, RoleRow.id == UserRole.role_id)
        .filter(RoleRow.name == role.value, User.is_active.is_(True))
    )


def notification_audience(db: Session, employee_id: int) -> List[int]:
    """Users to tell about a submission: service-sharing managers plus every admin."""
    employee_services = service_ids_for_employee(db, employee_id)

    manager_ids: Set[int] = set()
    if employee_services:
        rows = (
            _user_ids_with_role(db, Role.MANAGER)
            .join(EmployeeService, EmployeeService.employee_id == User.employee_id)
            .filter(EmployeeService.service_id.in_(sorted(employee_services)))
            .all()
        )
        manager_ids = {int(r.id) for r in rows}

    admin_ids = {int(r.id) for r in _user_ids_with_role(db, Role.ADMIN).all()}

    return sorted(manager_ids | admin_ids)


def user_id_for_employee(db: Session, employee_id: int) -> Optional[int]:
    row = db.query(User.id).filter(User.employee_id == int(employee_id)).first()
    return None if row is None else int(row.id)
