from worktime.core.authorization import Actor, Role
from worktime.models.employee import EmployeeService
from worktime.services import scoping_service


def test_may_approve_is_a_pure_function_of_roles_and_service_sets():
    manager = Actor.of(1, 10, [Role.MANAGER])
    admin = Actor.of(2, None, [Role.ADMIN])
    employee = Actor.of(3, 30, [Role.EMPLOYEE])

    assert scoping_service.may_approve(manager, {1, 2}, {2, 3}) is True
    assert scoping_service.may_approve(manager, {1}, {2}) is False
    assert scoping_service.may_approve(manager, set(), set()) is False
    assert scoping_service.may_approve(admin, set(), {9}) is True
    assert scoping_service.may_approve(employee, {1}, {1}) is False


def test_managed_set_follows_shared_active_services(factory, db):
    s1 = factory.service("S1")
    s2 = factory.service("S2")
    retired = factory.service("Retired", is_active=False)

    e1 = factory.employee("Ana", services=[s1])
    e2 = factory.employee("Ben", services=[s2])
    e3 = factory.employee("Cid", services=[s1, s2])
    factory.employee("Inactive", services=[s1], is_active=False)
    e5 = factory.employee("Old", services=[retired])

    _, _, manager = factory.person([Role.MANAGER], services=[s1, retired])
    manager_emp_id = manager.employee_id

    managed = scoping_service.managed_employee_ids(db, manager)
    assert managed == sorted([e1.id, e3.id, manager_emp_id])
    assert e2.id not in managed
    assert e5.id not in managed


def test_admin_sees_every_active_employee(factory, db):
    a = factory.employee("A")
    b = factory.employee("B")
    factory.employee("Gone", is_active=False)
    admin = factory.actor(factory.user([Role.ADMIN]))

    assert scoping_service.managed_employee_ids(db, admin) == sorted([a.id, b.id])


def test_employee_sees_only_themselves_and_manager_without_employee_sees_nobody(factory, db):
    emp, _, actor = factory.person([Role.EMPLOYEE])
    assert scoping_service.managed_employee_ids(db, actor) == [emp.id]

    detached_manager = factory.actor(factory.user([Role.MANAGER]))
    assert scoping_service.managed_employee_ids(db, detached_manager) == []


def test_visibility_is_recomputed_after_membership_changes(factory, db):
    s1 = factory.service("S1")
    s2 = factory.service("S2")
    target = factory.employee("T", services=[s2])
    _, _, manager = factory.person([Role.MANAGER], services=[s1])

    assert target.id not in scoping_service.list_visible_employees(manager)

    db.add(EmployeeService(employee_id=target.id, service_id=s1.id))
    db.commit()

    assert target.id in scoping_service.list_visible_employees(manager)


def test_notification_audience_is_sharing_managers_plus_all_admins(factory, db):
    s1 = factory.service("S1")
    s2 = factory.service("S2")
    submitter = factory.employee("E", services=[s1])

    _, m1_user, _ = factory.person([Role.MANAGER], services=[s1])
    factory.person([Role.MANAGER], services=[s2])
    _, both_user, _ = factory.person([Role.MANAGER, Role.ADMIN], services=[s1])
    admin_user = factory.user([Role.ADMIN])
    factory.user([Role.ADMIN], is_active=False)

    audience = scoping_service.notification_audience(db, submitter.id)
    assert audience == sorted({m1_user.id, both_user.id, admin_user.id})
