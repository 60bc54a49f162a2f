# app/modules/users/router.py

from fastapi import APIRouter, Depends, Response

from app.dependencies.auth_utils import get_current_principal
from app.dependencies.services import get_session_store, get_user_repository
from app.dependencies.session import clear_session_cookie
from app.modules.auth.schemas import MessageResponse, Principal
from app.modules.users.schemas import (
    ChangePasswordRequest,
    TwoFactorStatus,
    UserProfileResponse,
)
from app.modules.users.service import UserService

router = APIRouter(
    prefix="/customer",
    tags=["Customer"],
)


def get_user_service(
    users=Depends(get_user_repository),
    sessions=Depends(get_session_store),
) -> UserService:
    return UserService(users, sessions)


# ---------------------------------------------------------
# PROFILE
# ---------------------------------------------------------
@router.get("/profile", response_model=UserProfileResponse)
async def get_profile(
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
):
    return await service.get_profile(principal.username)


# ---------------------------------------------------------
# TWO-FACTOR SETTINGS
# ---------------------------------------------------------
@router.get("/security/2fa", response_model=TwoFactorStatus)
async def get_two_factor(
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
):
    return await service.get_two_factor(principal.username)


@router.put("/security/2fa/enable", response_model=TwoFactorStatus)
async def enable_two_factor(
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
):
    return await service.set_two_factor(principal.username, True)


@router.put("/security/2fa/disable", response_model=TwoFactorStatus)
async def disable_two_factor(
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
):
    return await service.set_two_factor(principal.username, False)


# ---------------------------------------------------------
# CHANGE PASSWORD
# ---------------------------------------------------------
@router.post("/password/change", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest,
    response: Response,
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
):
    await service.change_password(principal.username, body)
    clear_session_cookie(response)
    return MessageResponse(message="Password changed. Please sign in again.")
