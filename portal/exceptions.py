# portal/exceptions.py
from typing import Any, Optional
from fastapi import HTTPException, status


class PortalError(HTTPException):
    """
    Base for errors raised from the service layer.

    ``errors`` carries structured detail (missing documents, conflicting
    district, restriction reason) that the API envelope passes through to
    the client.
    """
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, errors: Optional[Any] = None, status_code: Optional[int] = None):
        super().__init__(status_code=status_code or self.status_code, detail=message)
        self.message = message
        self.errors = errors


class ValidationError(PortalError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(PortalError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(PortalError):
    # Business conflicts (invalid transition, locked application) surface as 400;
    # duplicates pass status_code=409 explicitly.
    status_code = status.HTTP_400_BAD_REQUEST


class PreconditionError(PortalError):
    status_code = status.HTTP_400_BAD_REQUEST


class CapacityExceededError(ConflictError):
    status_code = status.HTTP_409_CONFLICT


class InternalError(PortalError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
