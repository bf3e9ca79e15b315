import os
_default_test_secret = "test-jwt-secret-for-pytest-only-0000000000000000"
if len(os.environ.get("JWT_SECRET", "")) < 32:
    os.environ["JWT_SECRET"] = _default_test_secret
os.environ.setdefault("ENV", "test")

import itertools
import subprocess
from datetime import date, datetime
from pathlib import Path
from typing import Iterable, List, Optional

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url

TEST_DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./worktime_test.db")
os.environ["DATABASE_URL"] = TEST_DATABASE_URL

from worktime import database  # noqa: E402
from worktime import models  # noqa: E402,F401
from worktime.core.authorization import Actor, Role, load_actor  # noqa: E402
from worktime.models.employee import Employee, EmployeeService, EmployeeSubsidiary  # noqa: E402
from worktime.models.service import Service  # noqa: E402
from worktime.models.subsidiary import Subsidiary, SubsidiaryService  # noqa: E402
from worktime.models.time_entry import TimeEntry  # noqa: E402
from worktime.models.user import RoleRow, User, UserRole  # noqa: E402
from worktime.services.notification_service import NotificationSink  # noqa: E402


def _ensure_database_exists(database_url: str) -> None:
    url = make_url(database_url)

    if not url.drivername.startswith("postgresql"):
        return

    db_name = url.database
    admin_url = url.set(database="postgres")
    admin_engine = create_engine(admin_url, isolation_level="AUTOCOMMIT")

    try:
        with admin_engine.connect() as conn:
            exists = conn.execute(
                text("SELECT 1 FROM pg_database WHERE datname = :name"),
                {"name": db_name},
            ).scalar()
            if not exists:
                safe_db_name = db_name.replace('"', '""')
                conn.execute(text(f'CREATE DATABASE "{safe_db_name}"'))
    finally:
        admin_engine.dispose()


@pytest.fixture(scope="session", autouse=True)
def _prepare_test_database() -> None:
    database.configure_database()

    if make_url(TEST_DATABASE_URL).drivername.startswith("postgresql"):
        _ensure_database_exists(TEST_DATABASE_URL)

        env = os.environ.copy()
        env["DATABASE_URL"] = TEST_DATABASE_URL

        subprocess.run(
            ["alembic", "upgrade", "head"],
            check=True,
            cwd=Path(__file__).resolve().parents[2],
            env=env,
        )
    else:
        database.Base.metadata.drop_all(bind=database.engine)
        database.Base.metadata.create_all(bind=database.engine)


def _clear_tables() -> None:
    with database.engine.begin() as conn:
        for table in reversed(database.Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture(scope="function", autouse=True)
def _clear_tables_between_tests():
    _clear_tables()
    yield
    _clear_tables()


@pytest.fixture
def db():
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.close()


# ---------- factories ----------

class Factory:
    """Creates committed rows, each in its own short session."""

    def __init__(self):
        self._seq = itertools.count(1)

    def _save(self, *rows):
        session = database.SessionLocal()
        try:
            for row in rows:
                session.add(row)
            session.commit()
            for row in rows:
                session.refresh(row)
            return rows[0] if len(rows) == 1 else rows
        finally:
            session.close()

    def service(self, name: Optional[str] = None, *, is_active: bool = True) -> Service:
        n = next(self._seq)
        return self._save(Service(name=name or f"Service {n}", is_active=is_active))

    def subsidiary(self, name: Optional[str] = None, *, code: Optional[str] = None, is_active: bool = True) -> Subsidiary:
        n = next(self._seq)
        return self._save(Subsidiary(code=code or f"SUB{n:03d}", name=name or f"Subsidiary {n}", is_active=is_active))

    def employee(
        self,
        first_name: str = "Emp",
        last_name: Optional[str] = None,
        *,
        services: Iterable[Service] = (),
        subsidiaries: Iterable[Subsidiary] = (),
        is_active: bool = True,
    ) -> Employee:
        n = next(self._seq)
        emp = self._save(
            Employee(
                employee_code=f"E{n:04d}",
                first_name=first_name,
                last_name=last_name if last_name is not None else f"Last{n:04d}",
                is_active=is_active,
            )
        )
        for svc in services:
            self._save(EmployeeService(employee_id=emp.id, service_id=svc.id))
        for sub in subsidiaries:
            self._save(EmployeeSubsidiary(employee_id=emp.id, subsidiary_id=sub.id))
        return emp

    def link(self, subsidiary: Subsidiary, service: Service, *, is_active: bool = True) -> SubsidiaryService:
        return self._save(SubsidiaryService(subsidiary_id=subsidiary.id, service_id=service.id, is_active=is_active))

    def _role(self, session, role: Role) -> RoleRow:
        row = session.query(RoleRow).filter(RoleRow.name == role.value).first()
        if row is None:
            row = RoleRow(name=role.value)
            session.add(row)
            session.flush()
        return row

    def user(
        self,
        roles: Iterable[Role] = (),
        *,
        employee: Optional[Employee] = None,
        email: Optional[str] = None,
        name: Optional[str] = None,
        is_active: bool = True,
    ) -> User:
        n = next(self._seq)
        session = database.SessionLocal()
        try:
            user = User(
                email=email or f"user{n}@example.test",
                name=name,
                employee_id=None if employee is None else employee.id,
                is_active=is_active,
            )
            session.add(user)
            session.flush()
            for role in roles:
                session.add(UserRole(user_id=user.id, role_id=self._role(session, role).id))
            session.commit()
            session.refresh(user)
            return user
        finally:
            session.close()

    def actor(self, user: User) -> Actor:
        session = database.SessionLocal()
        try:
            actor = load_actor(session, user.id)
            assert actor is not None
            return actor
        finally:
            session.close()

    def person(
        self,
        roles: Iterable[Role] = (Role.EMPLOYEE,),
        *,
        services: Iterable[Service] = (),
        first_name: str = "Emp",
        last_name: Optional[str] = None,
    ):
        """Employee + linked user + loaded actor."""
        emp = self.employee(first_name, last_name, services=services)
        user = self.user(roles, employee=emp)
        return emp, user, self.actor(user)

    def entry(
        self,
        employee: Employee,
        subsidiary: Subsidiary,
        *,
        minutes: int = 60,
        work_date: date = date(2024, 3, 1),
        status: str = "DRAFT",
        service: Optional[Service] = None,
        note: Optional[str] = None,
        approved_by: Optional[int] = None,
        submitted_at: Optional[datetime] = None,
        approved_at: Optional[datetime] = None,
    ) -> TimeEntry:
        n = next(self._seq)
        now = datetime.utcnow()
        return self._save(
            TimeEntry(
                id=f"te-{n:06d}",
                employee_id=employee.id,
                subsidiary_id=subsidiary.id,
                service_id=None if service is None else service.id,
                work_date=work_date,
                minutes=minutes,
                note=note,
                status=status,
                submitted_at=submitted_at or (now if status != "DRAFT" else None),
                approved_at=approved_at or (now if status == "APPROVED" else None),
                approved_by=approved_by,
                created_at=now,
                updated_at=now,
            )
        )

    def reload(self, entry_id: str) -> TimeEntry:
        session = database.SessionLocal()
        try:
            row = session.query(TimeEntry).filter(TimeEntry.id == entry_id).first()
            assert row is not None
            return row
        finally:
            session.close()


@pytest.fixture
def factory() -> Factory:
    return Factory()


# ---------- sinks ----------

class RecordingSink(NotificationSink):
    name = "recording"

    def __init__(self):
        self.sent: List[tuple] = []

    def send(self, notification, recipient_email):
        self.sent.append((notification.type, recipient_email, notification.title))


class FailingSink(NotificationSink):
    name = "failing"

    def __init__(self):
        self.calls = 0

    def send(self, notification, recipient_email):
        self.calls += 1
        raise ConnectionError("smtp unreachable")


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def failing_sink() -> FailingSink:
    return FailingSink()
