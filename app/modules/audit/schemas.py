# app/modules/audit/schemas.py

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class LoginEventType(str, Enum):
    PASSWORD = "PASSWORD"
    OTP = "OTP"


class LoginEvent(BaseModel):
    """
    One successful sign-in. Immutable once recorded.
    """
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    type: LoginEventType
    source_ip: Optional[str] = None
    user_agent: Optional[str] = None
    timestamp: datetime
