"""Domain error taxonomy.

Services raise these; routers translate them into HTTP responses using
``status_code``. ``code`` is a stable name for the failure, used in logs.
"""

from typing import Optional

from fastapi import HTTPException


class DomainError(Exception):
    status_code = 400
    code = "domain_error"


class ValidationError(DomainError):
    """Malformed input: out-of-range minutes, missing or unknown references."""

    status_code = 422
    code = "validation_error"


class Forbidden(DomainError):
    status_code = 403
    code = "forbidden"


class NotFound(DomainError):
    status_code = 404
    code = "not_found"


class InvalidTransition(DomainError):
    status_code = 409
    code = "invalid_transition"

    def __init__(self, current: str, requested: str, message: Optional[str] = None):
        self.current = current
        self.requested = requested
        super().__init__(message or f"Cannot move time entry from {current} to {requested}")


class EntryLocked(DomainError):
    status_code = 409
    code = "entry_locked"

    def __init__(self, entry_id: str, status: str):
        self.entry_id = entry_id
        self.status = status
        super().__init__(f"Time entry {entry_id} is {status} and can no longer be modified")


class NoEntriesError(DomainError):
    status_code = 400
    code = "no_entries"


def as_http_exception(exc: DomainError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=str(exc) or exc.code)
