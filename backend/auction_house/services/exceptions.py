"""
Service-level errors.

Each error carries the HTTP status and a machine-readable code so the
API layer can translate it without knowing which service raised it.
Expected bidding outcomes are not errors, see services.bidding.BidResult.
"""
from typing import Any
from fastapi import status


class ErrorCode:
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    CONFLICT = "CONFLICT"
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"


class ServiceError(Exception):
    """Base exception for service errors"""

    def __init__(
        self,
        message: str,
        error_code: str = ErrorCode.PERSISTENCE_FAILURE,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class ValidationError(ServiceError):
    def __init__(self, message: str):
        super().__init__(message, ErrorCode.VALIDATION_ERROR, status.HTTP_400_BAD_REQUEST)


class NotFoundError(ServiceError):
    def __init__(self, resource: str, identifier: Any):
        self.resource = resource
        self.identifier = identifier
        super().__init__(
            f"{resource} with ID {identifier} not found",
            ErrorCode.NOT_FOUND,
            status.HTTP_404_NOT_FOUND,
        )


class PermissionDeniedError(ServiceError):
    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message, ErrorCode.PERMISSION_DENIED, status.HTTP_403_FORBIDDEN)


class ConflictError(ServiceError):
    def __init__(self, message: str):
        super().__init__(message, ErrorCode.CONFLICT, status.HTTP_409_CONFLICT)


class PersistenceError(ServiceError):
    """Storage unavailable or a write failed; the request cannot complete"""

    def __init__(self, message: str = "Unable to complete the request, please try again"):
        super().__init__(message, ErrorCode.PERSISTENCE_FAILURE, status.HTTP_500_INTERNAL_SERVER_ERROR)
