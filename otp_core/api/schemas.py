"""
Request Schemas
===============
Pydantic models for the OTP HTTP endpoints.
"""

from typing import Optional

from pydantic import BaseModel, Field

from ..otp.models import OTPPurpose


class SendOTPRequest(BaseModel):
    phone_number: str = Field(..., min_length=4, max_length=32)
    purpose: OTPPurpose = OTPPurpose.LOGIN
    ttl_seconds: Optional[int] = Field(default=None, ge=1, le=3600)


class VerifyOTPRequest(BaseModel):
    phone_number: str = Field(..., min_length=4, max_length=32)
    code: str = Field(..., pattern=r"^\d{4,10}$")
    purpose: OTPPurpose = OTPPurpose.LOGIN


class CancelOTPRequest(BaseModel):
    phone_number: str = Field(..., min_length=4, max_length=32)
    purpose: OTPPurpose = OTPPurpose.LOGIN
