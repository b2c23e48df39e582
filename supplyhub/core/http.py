from __future__ import annotations

from fastapi import HTTPException

from supplyhub.core.errors import CapacityError, ConflictError, InvalidStateError, NotFoundError, ValidationError

_STATUS = {
    NotFoundError: 404,
    InvalidStateError: 409,
    ConflictError: 409,
    ValidationError: 422,
}


def as_http_exception(exc: CapacityError) -> HTTPException:
    """Map a domain failure onto the HTTP error it is reported as."""
    status = next((code for kind, code in _STATUS.items() if isinstance(exc, kind)), 400)
    return HTTPException(status_code=status, detail=exc.to_dict())
