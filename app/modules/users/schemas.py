from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Role(str, Enum):
    CUSTOMER = "CUSTOMER"
    ADMIN = "ADMIN"
    BANKOFFICER = "BANKOFFICER"


class UserRecord(BaseModel):
    """
    Credential record as stored in the `users` table.
    Used internally by repositories/services; never returned as-is.
    """
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    username: str
    password_hash: str
    full_name: str
    email: str
    phone_number: Optional[str] = None
    role: Role = Role.CUSTOMER
    active: bool = True
    two_factor_enabled: bool = False
    created_at: Optional[datetime] = None


class UserProfileResponse(BaseModel):
    """
    Response for GET /customer/profile.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: Optional[int] = None
    username: str
    full_name: str
    email: str
    phone_number: Optional[str] = None
    role: Role
    two_factor_enabled: bool
    created_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, user: UserRecord) -> "UserProfileResponse":
        return cls(
            id=user.id,
            username=user.username,
            full_name=user.full_name,
            email=user.email,
            phone_number=user.phone_number,
            role=user.role,
            two_factor_enabled=user.two_factor_enabled,
            created_at=user.created_at,
        )


class TwoFactorStatus(BaseModel):
    enabled: bool


class ChangePasswordRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    current_password: str
    new_password: str = Field(min_length=8)
