import pytest

from worktime.core.errors import NotFound, ValidationError
from worktime.models.subsidiary import SubsidiaryService
from worktime.services import org_service


def test_attach_detach_reattach_keeps_one_row(factory, db):
    sub = factory.subsidiary()
    svc = factory.service()

    org_service.attach(db, sub.id, svc.id)
    db.commit()
    assert org_service.active_service_ids(db, sub.id) == [svc.id]

    org_service.detach(db, sub.id, svc.id)
    db.commit()
    assert org_service.active_service_ids(db, sub.id) == []

    org_service.attach(db, sub.id, svc.id)
    db.commit()
    assert org_service.active_service_ids(db, sub.id) == [svc.id]
    assert db.query(SubsidiaryService).count() == 1


def test_sync_replaces_active_set(factory, db):
    sub = factory.subsidiary()
    a, b, c = factory.service("A"), factory.service("B"), factory.service("C")
    factory.link(sub, a)
    factory.link(sub, b)

    active = org_service.sync(db, sub.id, [b.id, c.id])
    db.commit()

    assert active == sorted([b.id, c.id])
    assert db.query(SubsidiaryService).count() == 3
    assert org_service.list_links(db, subsidiary_id=sub.id)[0].service_id == b.id


def test_link_errors(factory, db):
    sub = factory.subsidiary()
    svc = factory.service()

    with pytest.raises(NotFound):
        org_service.attach(db, 999999, svc.id)
    with pytest.raises(ValidationError):
        org_service.attach(db, sub.id, 999999)
    with pytest.raises(NotFound):
        org_service.detach(db, sub.id, svc.id)
    with pytest.raises(ValidationError):
        org_service.sync(db, sub.id, [svc.id, 999999])
