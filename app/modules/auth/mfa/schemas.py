# app/modules/auth/mfa/schemas.py

from pydantic import BaseModel, ConfigDict, Field


class OtpEntry(BaseModel):
    """
    Pending one-time password, stored under otp:{username}.
    """
    model_config = ConfigDict(frozen=True)

    code: str = Field(..., pattern=r"^\d{6}$")
    expires_at: int  # epoch seconds
