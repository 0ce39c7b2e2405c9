"""
OTP HTTP API
============
FastAPI router exposing the OTP service.
"""

from .router import ERROR_STATUS_CODES, create_otp_router, status_code_for
from .schemas import CancelOTPRequest, SendOTPRequest, VerifyOTPRequest

__all__ = [
    "create_otp_router",
    "status_code_for",
    "ERROR_STATUS_CODES",
    "SendOTPRequest",
    "VerifyOTPRequest",
    "CancelOTPRequest",
]
