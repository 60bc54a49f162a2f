# app/modules/auth/router.py

from typing import List

from fastapi import APIRouter, Depends, Query, Request, Response, status

from app.dependencies.auth_utils import get_current_principal
from app.dependencies.services import (
    get_login_audit_log,
    get_mail_sender,
    get_otp_service,
    get_session_store,
    get_token_issuer,
    get_user_repository,
)
from app.dependencies.session import clear_session_cookie, set_session_cookie
from app.modules.audit.schemas import LoginEvent
from app.modules.auth.schemas import (
    AuthResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    Principal,
    RegisterRequest,
    VerifyOtpRequest,
)
from app.modules.auth.service import AuthResult, AuthService

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


# -------------------------------------------------------
# Dependency factory for AuthService
# -------------------------------------------------------
def get_auth_service(
    users=Depends(get_user_repository),
    tokens=Depends(get_token_issuer),
    sessions=Depends(get_session_store),
    otp=Depends(get_otp_service),
    audit=Depends(get_login_audit_log),
    mailer=Depends(get_mail_sender),
) -> AuthService:
    return AuthService(users, tokens, sessions, otp, audit, mailer)


def _client_info(request: Request):
    ip = request.client.host if request.client else None
    ua = request.headers.get("user-agent", "")
    return ip, ua


def _finish(result: AuthResult, response: Response):
    if result.session_id:
        set_session_cookie(response, result.session_id)
    return result.response


# -------------------------------------------------------
# REGISTER
# -------------------------------------------------------
@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    response: Response,
    svc: AuthService = Depends(get_auth_service),
):
    return _finish(await svc.register(body), response)


# -------------------------------------------------------
# LOGIN
# -------------------------------------------------------
@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    svc: AuthService = Depends(get_auth_service),
):
    ip, ua = _client_info(request)
    result = await svc.login(body.username, body.password, ip_address=ip, user_agent=ua)
    return _finish(result, response)


# -------------------------------------------------------
# VERIFY OTP
# -------------------------------------------------------
@router.post("/verify-otp", response_model=AuthResponse)
async def verify_otp(
    body: VerifyOtpRequest,
    request: Request,
    response: Response,
    svc: AuthService = Depends(get_auth_service),
):
    ip, ua = _client_info(request)
    result = await svc.verify_otp(body.username, body.code, ip_address=ip, user_agent=ua)
    return _finish(result, response)


# -------------------------------------------------------
# LOGOUT
# -------------------------------------------------------
@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    principal: Principal = Depends(get_current_principal),
    svc: AuthService = Depends(get_auth_service),
):
    await svc.logout(principal)
    clear_session_cookie(response)
    return MessageResponse(message="Logged out")


# -------------------------------------------------------
# OWN LOGIN ACTIVITY
# -------------------------------------------------------
@router.get("/login-activity", response_model=List[LoginEvent])
async def my_login_activity(
    limit: int = Query(20, ge=1, le=100),
    principal: Principal = Depends(get_current_principal),
    svc: AuthService = Depends(get_auth_service),
):
    return svc.recent_login_activity(principal.username, limit)
