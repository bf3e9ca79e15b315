from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends

from worktime.core.authorization import Role, require_role
from worktime.core.errors import DomainError, as_http_exception
from worktime.database import SessionLocal
from worktime.schemas.org import (
    ServiceLinkRequest,
    ServiceSyncRequest,
    ServiceSyncResponse,
    SubsidiaryServiceResponse,
)
from worktime.services import org_service

router = APIRouter(prefix="/subsidiary-services", tags=["Subsidiary Services"])


@router.get("", response_model=List[SubsidiaryServiceResponse])
def list_subsidiary_services(
    subsidiary_id: Optional[int] = None,
    _role=Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        return org_service.list_links(db, subsidiary_id=subsidiary_id)
    finally:
        db.close()


@router.post("/{subsidiary_id}/attach", response_model=SubsidiaryServiceResponse)
def attach_service(
    subsidiary_id: int,
    payload: ServiceLinkRequest,
    _role=Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        link = org_service.attach(db, subsidiary_id, payload.service_id)
        db.commit()
        db.refresh(link)
        return link
    except DomainError as exc:
        db.rollback()
        raise as_http_exception(exc) from exc
    finally:
        db.close()


@router.post("/{subsidiary_id}/detach", response_model=SubsidiaryServiceResponse)
def detach_service(
    subsidiary_id: int,
    payload: ServiceLinkRequest,
    _role=Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        link = org_service.detach(db, subsidiary_id, payload.service_id)
        db.commit()
        db.refresh(link)
        return link
    except DomainError as exc:
        db.rollback()
        raise as_http_exception(exc) from exc
    finally:
        db.close()


@router.post("/{subsidiary_id}/sync", response_model=ServiceSyncResponse)
def sync_services(
    subsidiary_id: int,
    payload: ServiceSyncRequest,
    _role=Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        service_ids = org_service.sync(db, subsidiary_id, payload.service_ids)
        db.commit()
        return ServiceSyncResponse(subsidiary_id=subsidiary_id, service_ids=service_ids)
    except DomainError as exc:
        db.rollback()
        raise as_http_exception(exc) from exc
    finally:
        db.close()
