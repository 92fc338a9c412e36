"""
Error kinds raised by the gateway and its collaborators.

Each kind carries the HTTP status it maps to and whether the calling layer may
retry it. Routers never build error responses themselves; the exception handler
in main.py renders any FilegateError as {"detail": ...}.
"""
from typing import Optional

from fastapi import status


class FilegateError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail = "Internal server error"
    retryable = False

    def __init__(self, detail: Optional[str] = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class RetryableError(FilegateError):
    retryable = True


# Identity provider
class InvalidAssertion(FilegateError):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Invalid identity assertion"


class ProviderUnavailable(RetryableError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    detail = "Identity provider unavailable"


# Persistence
class StoreUnavailable(RetryableError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    detail = "Storage of records is temporarily unavailable"


class IdentityConflict(FilegateError):
    status_code = status.HTTP_409_CONFLICT
    detail = "Email already registered to another identity"


# Session credentials
class Unauthorized(FilegateError):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Not authenticated"


class InvalidToken(Unauthorized):
    detail = "Could not validate credentials"


class ExpiredToken(Unauthorized):
    detail = "Session expired, please login again"


class RevokedToken(InvalidToken):
    detail = "Token has been revoked, please login again"


class UnknownUser(Unauthorized):
    detail = "User no longer exists"


# Files
class Forbidden(FilegateError):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "Access denied: you don't own this file"


class NotFound(FilegateError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Not found"


class BadRequest(FilegateError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Bad request"


class PayloadTooLarge(FilegateError):
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    detail = "File too large"


class StorageFailure(RetryableError):
    status_code = status.HTTP_502_BAD_GATEWAY
    detail = "Object storage failure"
