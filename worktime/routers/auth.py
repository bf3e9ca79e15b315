from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

import os
from worktime.core.authorization import load_actor
from worktime.database import SessionLocal
from worktime.services.auth_service import create_access_token

router = APIRouter(prefix="/auth", tags=["auth"])


class TokenRequest(BaseModel):
    user_id: int


@router.post("/token")
def issue_token(payload: TokenRequest):
    env = os.getenv("ENV", "dev").lower()
    if env not in {"dev", "local", "test"}:
        raise HTTPException(status_code=404, detail="Not Found")

    db = SessionLocal()
    try:
        actor = load_actor(db, int(payload.user_id))
    finally:
        db.close()
    if actor is None:
        raise HTTPException(status_code=404, detail="Unknown or inactive user")

    roles = sorted(r.value for r in actor.roles)
    try:
        token = create_access_token(actor.user_id, employee_id=actor.employee_id, roles=roles)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return {
        "access_token": token,
        "token_type": "bearer",
        "employee_id": actor.employee_id,
        "roles": roles,
    }
