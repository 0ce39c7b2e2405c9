"""
OTP Models
==========
Data models and enums for OTP issuance and verification.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union


class OTPPurpose(str, Enum):
    """Business context an OTP is scoped to."""
    LOGIN = "login"
    REGISTER = "register"
    PASSWORD_RESET = "password_reset"
    DEVICE_CHANGE = "device_change"

    @classmethod
    def coerce(cls, value: Union["OTPPurpose", str]) -> "OTPPurpose":
        """Accept an enum member or its string value; raises ValueError otherwise."""
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


PurposeLike = Union[OTPPurpose, str]


class OTPErrorKind(str, Enum):
    """Machine-readable failure reasons surfaced in ``OTPResult.error``."""
    OTP_NOT_FOUND = "otp_not_found"
    OTP_EXPIRED = "otp_expired"
    OTP_LOCKED = "otp_locked"
    INVALID_OTP = "invalid_otp"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    RESEND_COOLDOWN = "resend_cooldown"
    SMS_SEND_FAILED = "sms_send_failed"
    SERVICE_ERROR = "service_error"
    NOT_INITIALIZED = "not_initialized"
    INVALID_PHONE = "invalid_phone"
    CONFIGURATION_ERROR = "configuration_error"


@dataclass
class OTPResult:
    """Result of every provider and service operation."""
    success: bool
    message: Optional[str] = None
    error: Optional[OTPErrorKind] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, message: str, **data: Any) -> "OTPResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, error: OTPErrorKind, message: str, **data: Any) -> "OTPResult":
        return cls(success=False, message=message, error=error, data=data)

    def to_dict(self) -> Dict[str, Any]:
        """Render as a JSON-safe dict, omitting empty fields."""
        result: Dict[str, Any] = {"success": self.success}
        if self.message is not None:
            result["message"] = self.message
        if self.error is not None:
            result["error"] = self.error.value
        if self.data:
            result["data"] = dict(self.data)
        return result


@dataclass
class OTPRecord:
    """
    A pending OTP, stored under ``otp:{phone}:{purpose}``.

    All instants are epoch milliseconds. The plain code is never stored.
    """
    otp_hash: str
    salt: str
    purpose: str
    created_at: int
    expires_at: int
    attempts: int = 0
    locked: bool = False
    locked_until: Optional[int] = None

    def is_expired(self, now_ms: int) -> bool:
        return now_ms > self.expires_at

    def lock_lapsed(self, now_ms: int) -> bool:
        return self.locked and self.locked_until is not None and now_ms > self.locked_until

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OTPRecord":
        return cls(**data)
