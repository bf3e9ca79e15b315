from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query

from worktime.core.authorization import Actor, current_actor
from worktime.core.errors import DomainError, as_http_exception
from worktime.database import SessionLocal
from worktime.schemas.notification import MarkAllReadResponse, NotificationResponse, UnreadCountResponse
from worktime.services import notification_service

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=List[NotificationResponse])
def list_notifications(
    limit: int = Query(default=20, ge=1, le=100),
    actor: Actor = Depends(current_actor),
):
    db = SessionLocal()
    try:
        return notification_service.list_notifications(db, actor.user_id, limit=limit)
    finally:
        db.close()


@router.get("/unread", response_model=List[NotificationResponse])
def list_unread_notifications(
    limit: int = Query(default=20, ge=1, le=100),
    actor: Actor = Depends(current_actor),
):
    db = SessionLocal()
    try:
        return notification_service.list_notifications(db, actor.user_id, limit=limit, unread_only=True)
    finally:
        db.close()


@router.get("/count", response_model=UnreadCountResponse)
def count_unread_notifications(actor: Actor = Depends(current_actor)):
    db = SessionLocal()
    try:
        return UnreadCountResponse(unread=notification_service.count_unread(db, actor.user_id))
    finally:
        db.close()


@router.post("/{notification_id}/read", response_model=NotificationResponse)
def mark_notification_read(
    notification_id: int,
    actor: Actor = Depends(current_actor),
):
    db = SessionLocal()
    try:
        row = notification_service.mark_as_read(db, actor.user_id, notification_id)
        db.commit()
        return row
    except DomainError as exc:
        db.rollback()
        raise as_http_exception(exc) from exc
    finally:
        db.close()


@router.post("/read-all", response_model=MarkAllReadResponse)
def mark_all_notifications_read(actor: Actor = Depends(current_actor)):
    db = SessionLocal()
    try:
        updated = notification_service.mark_all_as_read(db, actor.user_id)
        db.commit()
        return MarkAllReadResponse(updated=int(updated))
    finally:
        db.close()
