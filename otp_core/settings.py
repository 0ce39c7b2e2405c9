"""
OTP Settings
============
Typed configuration for the OTP core, validated once at startup.
"""

import os
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

DEFAULT_NETGSM_ENDPOINT = "https://api.netgsm.com.tr/sms/send/get/"

# Field name -> environment variable
ENV_VARS: Dict[str, str] = {
    "provider": "OTP_PROVIDER",
    "dry_run": "OTP_DRY_RUN",
    "signing_secret": "APP_SIGNING_SECRET",
    "netgsm_usercode": "NETGSM_USER",
    "netgsm_password": "NETGSM_PASS",
    "netgsm_msgheader": "NETGSM_HEADER",
    "netgsm_endpoint": "NETGSM_ENDPOINT",
    "transport_timeout_seconds": "OTP_TRANSPORT_TIMEOUT_SECONDS",
    "ttl_seconds": "OTP_TTL_SECONDS",
    "resend_cooldown_seconds": "OTP_RESEND_COOLDOWN_SECONDS",
    "max_attempts": "OTP_MAX_ATTEMPTS",
    "lockout_seconds": "OTP_LOCKOUT_SECONDS",
    "rate_per_minute": "OTP_RATE_PER_MINUTE",
    "rate_per_hour": "OTP_RATE_PER_HOUR",
    "rate_per_day": "OTP_RATE_PER_DAY",
    "code_length": "OTP_CODE_LENGTH",
    "sms_brand": "OTP_SMS_BRAND",
    "default_country_code": "OTP_DEFAULT_COUNTRY_CODE",
    "mock_valid_codes": "OTP_MOCK_CODES",
}


class OTPSettings(BaseModel):
    """
    OTP core configuration.

    Every numeric default can be overridden from the environment
    (see ``ENV_VARS``) or by passing keyword arguments.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    provider: str = "mock"
    dry_run: bool = False
    signing_secret: Optional[SecretStr] = None

    # Netgsm transport
    netgsm_usercode: Optional[str] = None
    netgsm_password: Optional[SecretStr] = None
    netgsm_msgheader: Optional[str] = None
    netgsm_endpoint: str = DEFAULT_NETGSM_ENDPOINT
    transport_timeout_seconds: float = Field(default=10.0, gt=0)

    # Code lifecycle
    ttl_seconds: int = Field(default=180, ge=1)
    resend_cooldown_seconds: int = Field(default=60, ge=0)
    max_attempts: int = Field(default=5, ge=1)
    lockout_seconds: int = Field(default=300, ge=1)
    code_length: int = Field(default=6, ge=4, le=10)

    # Sends per phone number
    rate_per_minute: int = Field(default=1, ge=1)
    rate_per_hour: int = Field(default=3, ge=1)
    rate_per_day: int = Field(default=5, ge=1)

    sms_brand: str = "Verify"
    default_country_code: str = Field(default="90", pattern=r"^[1-9]\d{0,2}$")
    mock_valid_codes: List[str] = Field(default_factory=lambda: ["123456"])

    @field_validator("provider", mode="before")
    @classmethod
    def _normalize_provider(cls, value: Any) -> str:
        value = str(value or "").strip().lower()
        return value or "mock"

    @field_validator(
        "signing_secret", "netgsm_usercode", "netgsm_password", "netgsm_msgheader",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("mock_valid_codes", mode="before")
    @classmethod
    def _split_codes(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [code.strip() for code in value.split(",") if code.strip()]
        return value

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        **overrides: Any,
    ) -> "OTPSettings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read from (defaults to ``os.environ``)
            **overrides: Values that win over the environment

        Returns:
            Validated settings
        """
        environ = os.environ if environ is None else environ
        data: Dict[str, Any] = {
            field: environ[env_name]
            for field, env_name in ENV_VARS.items()
            if env_name in environ
        }
        data.update(overrides)
        return cls.model_validate(data)

    def with_overrides(self, **overrides: Any) -> "OTPSettings":
        """Return a re-validated copy with ``overrides`` applied."""
        if not overrides:
            return self
        data = {name: getattr(self, name) for name in type(self).model_fields}
        data.update(overrides)
        return type(self).model_validate(data)

    def secret_value(self) -> Optional[str]:
        if self.signing_secret is None:
            return None
        return self.signing_secret.get_secret_value()

    def public_dict(self) -> Dict[str, Any]:
        """Settings as a JSON-safe dict with secrets redacted."""
        data = self.model_dump(mode="json", exclude={"signing_secret", "netgsm_password"})
        data["has_signing_secret"] = self.signing_secret is not None
        data["has_netgsm_password"] = self.netgsm_password is not None
        return data
