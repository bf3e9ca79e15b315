from fastapi.testclient import TestClient

from worktime.core.authorization import Role
from worktime.main import app
from worktime.services.auth_service import create_access_token, verify_token

client = TestClient(app)


def _mint_token(user_id: int) -> str:
    r = client.post("/auth/token", json={"user_id": user_id})
    assert r.status_code == 200, r.text
    return r.json()["access_token"]


def test_missing_authorization_header_401():
    r = client.get("/timesheet")
    assert r.status_code == 401


def test_wrong_scheme_401(factory):
    user = factory.user([Role.EMPLOYEE])
    token = _mint_token(user.id)
    r = client.get("/timesheet", headers={"Authorization": f"Basic {token}"})
    assert r.status_code == 401


def test_garbled_bearer_token_401():
    r = client.get("/timesheet", headers={"Authorization": "Bearer not-a-real-token"})
    assert r.status_code == 401


def test_unknown_user_401():
    assert client.post("/auth/token", json={"user_id": 424242}).status_code == 404

    token = create_access_token(424242)
    r = client.get("/timesheet", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401


def test_inactive_user_401(factory):
    user = factory.user([Role.ADMIN], is_active=False)
    assert client.post("/auth/token", json={"user_id": user.id}).status_code == 404

    token = create_access_token(user.id, roles=[Role.ADMIN.value])
    r = client.get("/dashboard", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401


def test_token_carries_linked_employee_and_roles(factory):
    emp, user, _ = factory.person([Role.MANAGER, Role.EMPLOYEE])

    r = client.post("/auth/token", json={"user_id": user.id})
    assert r.status_code == 200
    assert r.json()["employee_id"] == emp.id
    assert r.json()["roles"] == ["EMPLOYEE", "MANAGER"]

    claims = verify_token(r.json()["access_token"])
    assert claims["sub"] == str(user.id)
    assert claims["emp"] == emp.id
    assert claims["roles"] == ["EMPLOYEE", "MANAGER"]


def test_token_for_another_employee_record_401(factory):
    emp, user, _ = factory.person([Role.EMPLOYEE])
    other = factory.employee("Other")

    token = create_access_token(user.id, employee_id=other.id)
    r = client.get("/timesheet", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401

    token = create_access_token(user.id, employee_id=emp.id)
    r = client.get("/timesheet", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200


def test_roles_are_read_fresh_not_from_the_token(factory):
    _, user, _ = factory.person([Role.EMPLOYEE])
    token = create_access_token(user.id, roles=[Role.ADMIN.value])

    r = client.get("/validation", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 403


def test_token_endpoint_hidden_outside_dev(monkeypatch):
    monkeypatch.setenv("ENV", "prod")
    r = client.post("/auth/token", json={"user_id": 1})
    assert r.status_code == 404


def test_employee_cannot_reach_review_endpoints(factory):
    _, user, _ = factory.person([Role.EMPLOYEE])
    headers = {"Authorization": f"Bearer {_mint_token(user.id)}"}

    assert client.get("/validation", headers=headers).status_code == 403
    assert client.post("/validation/bulk-approve", json={"entry_ids": []}, headers=headers).status_code == 403
    assert client.get("/estimation", headers=headers).status_code == 403
    assert client.get("/subsidiary-services", headers=headers).status_code == 403


def test_health():
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"
