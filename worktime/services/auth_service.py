from datetime import datetime, timedelta, timezone
import os
from typing import Iterable, Optional

import jwt

JWT_ALGORITHM = "HS256"
JWT_EXP_HOURS = 8


def _get_jwt_secret() -> str:
    secret = os.getenv("JWT_SECRET")
    if not secret:
        raise ValueError("JWT_SECRET is required")
    if len(secret) < 32:
        raise ValueError("JWT_SECRET must be at least 32 characters")
    return secret


def create_access_token(user_id: int, *, employee_id: Optional[int] = None, roles: Iterable[str] = ()) -> str:
    """
    ``emp`` pins the token to the employee record linked at issue time.
    ``roles`` is informational; authorization always re-reads roles.
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "roles": sorted({str(r) for r in roles}),
        "iat": now,
        "exp": now + timedelta(hours=JWT_EXP_HOURS),
    }
    if employee_id is not None:
        payload["emp"] = int(employee_id)
    return jwt.encode(payload, _get_jwt_secret(), algorithm=JWT_ALGORITHM)


def verify_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, _get_jwt_secret(), algorithms=[JWT_ALGORITHM])
    except Exception as exc:
        raise ValueError("Invalid or expired token") from exc

    if "sub" not in payload:
        raise ValueError("Invalid token claims")
    if not isinstance(payload.get("roles", []), list):
        raise ValueError("Invalid token claims")
    if "emp" in payload and not isinstance(payload["emp"], int):
        raise ValueError("Invalid token claims")

    return payload
