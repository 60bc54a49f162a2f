# app/dependencies/services.py

"""
Providers for the long-lived auth components.

Each component is built once at import time from settings (see the
module-level instances next to each class); routes receive them through
these functions so tests can swap any of them with
app.dependency_overrides.
"""

from fastapi import Depends

from app.core.email import mail_sender
from app.core.security import TokenIssuer, token_issuer
from app.dependencies.database import get_db_connection
from app.modules.audit.repository import LoginAuditLog, login_audit_log
from app.modules.auth.mfa.service import OtpService, otp_service
from app.modules.auth.session_service import SessionStore, session_store
from app.modules.users.repository import CredentialStore, UserRepository


def get_user_repository(conn=Depends(get_db_connection)) -> CredentialStore:
    return UserRepository(conn)


def get_session_store() -> SessionStore:
    return session_store


def get_otp_service() -> OtpService:
    return otp_service


def get_login_audit_log() -> LoginAuditLog:
    return login_audit_log


def get_token_issuer() -> TokenIssuer:
    return token_issuer


def get_mail_sender():
    return mail_sender
