from fastapi import HTTPException, status

from setflow.errors import (
    NotOwner,
    PhaseError,
    SessionClosed,
    SessionNotFound,
    SetNotFound,
    SetValidationError,
    StoreUnavailable,
    WorkoutError,
)
from setflow.services.controller import ConfirmationRequired

_STATUS = [
    (SetValidationError, 422),
    (SessionNotFound, status.HTTP_404_NOT_FOUND),
    (SetNotFound, status.HTTP_404_NOT_FOUND),
    (NotOwner, status.HTTP_403_FORBIDDEN),
    (SessionClosed, status.HTTP_409_CONFLICT),
    (PhaseError, status.HTTP_409_CONFLICT),
    (ConfirmationRequired, status.HTTP_400_BAD_REQUEST),
    (StoreUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
]

def http_error(e: WorkoutError) -> HTTPException:
    """Translate a domain error into the HTTPException a router raises."""
    code = next((c for kind, c in _STATUS if isinstance(e, kind)), status.HTTP_400_BAD_REQUEST)
    if isinstance(e, SetValidationError):
        return HTTPException(status_code=code, detail={"message": "invalid set", "errors": e.errors})
    return HTTPException(status_code=code, detail=str(e))
