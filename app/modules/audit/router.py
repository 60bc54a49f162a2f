# app/modules/audit/router.py

from fastapi import APIRouter, Depends, Query
from typing import List

from app.dependencies.auth_utils import require_roles
from app.dependencies.services import get_login_audit_log
from app.modules.audit.repository import LoginAuditLog
from app.modules.audit.schemas import LoginEvent

router = APIRouter(
    prefix="/audit",
    tags=["Audit"],
)


@router.get(
    "/login-activity/{username}",
    response_model=List[LoginEvent],
    dependencies=[Depends(require_roles("ADMIN", "BANKOFFICER"))],
)
async def user_login_activity(
    username: str,
    limit: int = Query(20, ge=1, le=100),
    audit: LoginAuditLog = Depends(get_login_audit_log),
):
    return audit.recent(username, limit)
