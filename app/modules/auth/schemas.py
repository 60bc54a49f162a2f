from dataclasses import dataclass, field
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------- Core Auth Schemas ----------

class RegisterRequest(CamelModel):
    username: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=8)
    full_name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=100)
    phone_number: Optional[str] = Field(default=None, max_length=15)


class LoginRequest(CamelModel):
    username: str
    password: str


class VerifyOtpRequest(CamelModel):
    username: str
    code: str = Field(..., min_length=6, max_length=6)


class AuthResponse(CamelModel):
    token: Optional[str] = None
    username: str
    role: str
    message: str


class LoginResponse(AuthResponse):
    two_factor_required: bool = False


class MessageResponse(BaseModel):
    message: str


# ---------- Sessions ----------

class SessionData(CamelModel):
    """
    The record stored under session:{session_id}.
    Epoch seconds throughout.
    """
    session_id: str
    username: str
    user_id: Optional[int] = None
    role: str
    email: Optional[str] = None
    created_at: int
    last_activity: int


@dataclass(frozen=True)
class Principal:
    """
    Authenticated identity attached to request.state by the gateway.
    """
    username: str
    role: str
    session_id: str
    authorities: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_session(cls, session: SessionData) -> "Principal":
        authorities = (f"ROLE_{session.role}",) if session.role else ()
        return cls(
            username=session.username,
            role=session.role,
            session_id=session.session_id,
            authorities=authorities,
        )

    def has_role(self, *roles: str) -> bool:
        return any(f"ROLE_{r}" in self.authorities for r in roles)
