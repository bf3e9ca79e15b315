"""Subsidiary <-> service links.

Links are never deleted. Detaching flips ``is_active`` off so the history of
which services a subsidiary offered survives a later re-attach.
Caller owns the transaction.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from worktime.core.errors import NotFound, ValidationError
from worktime.models.service import Service
from worktime.models.subsidiary import Subsidiary, SubsidiaryService

logger = logging.getLogger(__name__)


def _require_subsidiary(db: Session, subsidiary_id: int) -> Subsidiary:
    sub = db.query(Subsidiary).filter(Subsidiary.id == int(subsidiary_id)).first()
    if sub is None:
        raise NotFound("Subsidiary not found")
    return sub


def _require_services(db: Session, service_ids: Iterable[int]) -> List[int]:
    ids = sorted({int(i) for i in service_ids})
    if not ids:
        return []
    found = {int(r.id) for r in db.query(Service.id).filter(Service.id.in_(ids)).all()}
    missing = [i for i in ids if i not in found]
    if missing:
        raise ValidationError(f"Unknown service id(s): {', '.join(str(i) for i in missing)}")
    return ids


def list_links(db: Session, *, subsidiary_id: Optional[int] = None) -> List[SubsidiaryService]:
    q = db.query(SubsidiaryService).filter(SubsidiaryService.is_active.is_(True))
    if subsidiary_id is not None:
        q = q.filter(SubsidiaryService.subsidiary_id == int(subsidiary_id))
    return q.order_by(SubsidiaryService.subsidiary_id.asc(), SubsidiaryService.service_id.asc()).all()


def active_service_ids(db: Session, subsidiary_id: int) -> List[int]:
    return [int(link.service_id) for link in list_links(db, subsidiary_id=subsidiary_id)]


def _activate(db: Session, subsidiary_id: int, service_id: int) -> SubsidiaryService:
    link = (
        db.query(SubsidiaryService)
        .filter(
            SubsidiaryService.subsidiary_id == int(subsidiary_id),
            SubsidiaryService.service_id == int(service_id),
        )
        .first()
    )
    if link is None:
        link = SubsidiaryService(subsidiary_id=int(subsidiary_id), service_id=int(service_id), is_active=True)
        db.add(link)
    else:
        link.is_active = True
    return link


def attach(db: Session, subsidiary_id: int, service_id: int) -> SubsidiaryService:
    sub = _require_subsidiary(db, subsidiary_id)
    _require_services(db, [service_id])

    link = _activate(db, sub.id, service_id)
    db.flush()

    logger.info("Service attached to subsidiary", extra={"subsidiary_id": sub.id, "service_id": int(service_id)})
    return link


def detach(db: Session, subsidiary_id: int, service_id: int) -> SubsidiaryService:
    link = (
        db.query(SubsidiaryService)
        .filter(
            SubsidiaryService.subsidiary_id == int(subsidiary_id),
            SubsidiaryService.service_id == int(service_id),
        )
        .first()
    )
    if link is None:
        raise NotFound("Service is not linked to this subsidiary")

    link.is_active = False
    db.flush()

    logger.info("Service detached from subsidiary", extra={"subsidiary_id": int(subsidiary_id), "service_id": int(service_id)})
    return link


def sync(db: Session, subsidiary_id: int, service_ids: Iterable[int]) -> List[int]:
    """Make exactly ``service_ids`` the active services of the subsidiary."""
    sub = _require_subsidiary(db, subsidiary_id)
    wanted = _require_services(db, service_ids)

    (
        db.query(SubsidiaryService)
        .filter(SubsidiaryService.subsidiary_id == sub.id)
        .update({"is_active": False}, synchronize_session="fetch")
    )
    for service_id in wanted:
        _activate(db, sub.id, service_id)
    db.flush()

    logger.info("Subsidiary services synced", extra={"subsidiary_id": sub.id, "service_ids": wanted})
    return active_service_ids(db, sub.id)
