# app/dependencies/auth_utils.py

"""
Downstream authorization helpers.

The gateway middleware only *attaches* a principal; these dependencies
decide whether a route may run without one.
Used by:
- routers (current username / role)
- admin-only endpoints (require_roles)
"""

from typing import Optional

from fastapi import Request

from app.modules.auth.exceptions import InsufficientRoleException, NotAuthenticatedException
from app.modules.auth.schemas import Principal


def get_optional_principal(request: Request) -> Optional[Principal]:
    return getattr(request.state, "principal", None)


def get_current_principal(request: Request) -> Principal:
    """
    FastAPI dependency returning the authenticated principal, or 401.

    Example:
        def some_route(principal: Principal = Depends(get_current_principal)):
            ...
    """
    principal = get_optional_principal(request)
    if principal is None:
        raise NotAuthenticatedException()
    return principal


def require_roles(*roles: str):
    """
    Dependency factory: the principal must hold at least one of `roles`.

    Usage:
        @router.get("/x", dependencies=[Depends(require_roles("ADMIN"))])
    """

    def checker(request: Request) -> Principal:
        principal = get_current_principal(request)
        if not principal.has_role(*roles):
            raise InsufficientRoleException()
        return principal

    return checker
