from typing import List, Optional

from fastapi import status


class AppError(Exception):
    """
    Base class for every error the API reports to clients.

    Each subclass fixes the HTTP status and the short ``error`` label; the
    ``message`` and optional ``details`` list are rendered into the
    response envelope by the handlers registered in ``main.py``.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "InternalServerError"

    def __init__(self, message: str, details: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "ValidationError"


class WeakInputError(ValidationError):
    error = "WeakInputError"


class DuplicateError(AppError):
    status_code = status.HTTP_409_CONFLICT
    error = "DuplicateEntryError"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "NotFoundError"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    error = "ConflictError"


class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error = "AuthenticationError"


class MissingCredentialsError(AuthenticationError):
    error = "MissingCredentialsError"


class TokenExpiredError(AuthenticationError):
    error = "TokenExpiredError"


class TokenInvalidError(AuthenticationError):
    error = "TokenInvalidError"


class IdentityNotFoundError(AuthenticationError):
    error = "IdentityNotFoundError"


class AuthorizationError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    error = "AuthorizationError"


class InfrastructureError(AppError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error = "InfrastructureError"


class SigningError(InfrastructureError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "SigningError"
