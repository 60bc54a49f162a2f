# app/core/exceptions.py

from fastapi import HTTPException, status


class CashCachedError(HTTPException):
    def __init__(self, detail="An error occurred", status_code=status.HTTP_400_BAD_REQUEST, headers=None):
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class AuthenticationError(CashCachedError):
    def __init__(self, detail="Authentication failed"):
        super().__init__(
            detail=detail,
            status_code=status.HTTP_401_UNAUTHORIZED,
            headers={"WWW-Authenticate": "Bearer"},
        )


class PermissionDenied(CashCachedError):
    def __init__(self, detail="Permission denied"):
        super().__init__(detail=detail, status_code=status.HTTP_403_FORBIDDEN)


class NotFoundError(CashCachedError):
    def __init__(self, detail="Resource not found"):
        super().__init__(detail=detail, status_code=status.HTTP_404_NOT_FOUND)


class ConflictError(CashCachedError):
    def __init__(self, detail="Resource already exists"):
        super().__init__(detail=detail, status_code=status.HTTP_409_CONFLICT)
