# app/dependencies/__init__.py

from .database import get_db_connection
from .auth_utils import get_current_principal, get_optional_principal, require_roles

__all__ = [
    "get_db_connection",
    "get_current_principal",
    "get_optional_principal",
    "require_roles",
]
