# app/modules/auth/exceptions.py

"""
Centralized auth exceptions used across services.
"""

from enum import Enum

from app.core.exceptions import AuthenticationError, ConflictError, PermissionDenied
from app.modules.auth.constants import MSG_INVALID_CREDENTIALS


class AuthFailureKind(str, Enum):
    """
    Why a credential check failed. Logged, never shown to the caller.
    """
    UNKNOWN_USER = "unknown_user"
    BAD_PASSWORD = "bad_password"
    INACTIVE = "inactive"
    OTP_REJECTED = "otp_rejected"
    UNEXPECTED = "unexpected"


class InvalidCredentialsException(AuthenticationError):
    def __init__(self, detail: str = MSG_INVALID_CREDENTIALS):
        super().__init__(detail=detail)


class AlreadyExistsException(ConflictError):
    def __init__(self, detail: str = "User already exists"):
        super().__init__(detail=detail)


class NotAuthenticatedException(AuthenticationError):
    def __init__(self):
        super().__init__(detail="Not authenticated")


class InsufficientRoleException(PermissionDenied):
    def __init__(self):
        super().__init__(detail="Insufficient role for this operation")
