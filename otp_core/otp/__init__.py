"""
OTP Generation and Verification
================================
Models and keyed hashing for one-time passwords.
"""

from .models import OTPPurpose, OTPErrorKind, OTPResult, OTPRecord, PurposeLike
from .hashing import generate_otp, generate_salt, hash_otp, verify_otp_hash

__all__ = [
    # Models
    "OTPPurpose",
    "OTPErrorKind",
    "OTPResult",
    "OTPRecord",
    "PurposeLike",
    # Hashing
    "generate_otp",
    "generate_salt",
    "hash_otp",
    "verify_otp_hash",
]
