from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterable, Optional

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from worktime.database import SessionLocal
from worktime.deps.auth import require_auth
from worktime.models.user import RoleRow, User, UserRole


class Role(Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    EMPLOYEE = "EMPLOYEE"


_RANK = {
    Role.EMPLOYEE: 1,
    Role.MANAGER: 2,
    Role.ADMIN: 3,
}


@dataclass(frozen=True)
class Actor:
    """Who is calling, as far as the domain cares.

    A user may hold several roles at once; ADMIN implies every MANAGER
    capability.
    """

    user_id: int
    employee_id: Optional[int]
    roles: FrozenSet[Role]
    email: str = ""

    @classmethod
    def of(cls, user_id: int, employee_id: Optional[int], roles: Iterable[Role], email: str = "") -> "Actor":
        return cls(user_id=int(user_id), employee_id=employee_id, roles=frozenset(roles), email=email)

    def has_role(self, role: Role) -> bool:
        return any(_RANK[r] >= _RANK[role] for r in self.roles)

    @property
    def is_admin(self) -> bool:
        return Role.ADMIN in self.roles

    @property
    def is_manager(self) -> bool:
        return Role.MANAGER in self.roles

    def can_approve(self) -> bool:
        return self.is_admin or self.is_manager

    def with_employee(self, employee_id: int) -> "Actor":
        return Actor(user_id=self.user_id, employee_id=employee_id, roles=self.roles, email=self.email)


def parse_roles(names: Iterable[str]) -> FrozenSet[Role]:
    roles = set()
    for name in names:
        try:
            roles.add(Role(str(name).upper()))
        except ValueError:
            continue
    return frozenset(roles)


def load_actor(db: Session, user_id: int) -> Optional[Actor]:
    user = db.query(User).filter(User.id == int(user_id)).first()
    if user is None or not user.is_active:
        return None

    names = [
        row.name
        for row in (
            db.query(RoleRow.name)
            .join(UserRole, UserRole.role_id == RoleRow.id)
            .filter(UserRole.user_id == user.id)
            .all()
        )
    ]

    return Actor.of(user.id, user.employee_id, parse_roles(names), email=user.email)


def current_actor(request: Request, _auth: str = Depends(require_auth)) -> Actor:
    try:
        user_id = int(request.state.user_id)
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=401, detail="Invalid subject claim") from exc

    db = SessionLocal()
    try:
        actor = load_actor(db, user_id)
    finally:
        db.close()

    if actor is None:
        raise HTTPException(status_code=401, detail="Unknown or inactive user")

    token_employee_id = getattr(request.state, "token_employee_id", None)
    if token_employee_id is not None and actor.employee_id != int(token_employee_id):
        raise HTTPException(status_code=401, detail="Token no longer matches the linked employee")

    request.state.roles = sorted(r.value for r in actor.roles)
    return actor


def require_role(role: Role):
    def dependency(actor: Actor = Depends(current_actor)) -> Actor:
        if not actor.has_role(role):
            raise HTTPException(status_code=403, detail="Insufficient role")
        return actor

    return dependency
