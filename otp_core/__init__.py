"""
OTP Core Library
================
SMS one-time password issuance and verification for login, registration,
password reset and device change flows.
"""

__version__ = "0.1.0"

# Exceptions
from otp_core.exceptions import (
    OTPCoreError,
    OTPConfigurationError,
    ProviderUnhealthyError,
    ServiceNotInitializedError,
)

# Settings
from otp_core.settings import OTPSettings

# OTP
from otp_core.otp import (
    OTPPurpose,
    OTPErrorKind,
    OTPResult,
    OTPRecord,
    generate_otp,
    hash_otp,
    verify_otp_hash,
)

# Messaging
from otp_core.messaging import (
    normalize_phone,
    format_phone_for_transport,
    mask_phone,
    validate_e164,
    render_otp_message,
)

# Storage
from otp_core.storage import KeyValueStore, InMemoryStore

# Rate Limiting
from otp_core.rate_limit import WindowedRateLimiter, RateLimitInfo

# Transport
from otp_core.transport import SMSTransport, DispatchResult, NetgsmTransport

# Providers
from otp_core.providers import (
    OTPProvider,
    MockOTPProvider,
    SMSOTPProvider,
    create_provider,
)

# Service
from otp_core.service import OTPService, get_otp_service, reset_otp_service

__all__ = [
    # Exceptions
    "OTPCoreError",
    "OTPConfigurationError",
    "ProviderUnhealthyError",
    "ServiceNotInitializedError",
    # Settings
    "OTPSettings",
    # OTP
    "OTPPurpose",
    "OTPErrorKind",
    "OTPResult",
    "OTPRecord",
    "generate_otp",
    "hash_otp",
    "verify_otp_hash",
    # Messaging
    "normalize_phone",
    "format_phone_for_transport",
    "mask_phone",
    "validate_e164",
    "render_otp_message",
    # Storage
    "KeyValueStore",
    "InMemoryStore",
    # Rate Limiting
    "WindowedRateLimiter",
    "RateLimitInfo",
    # Transport
    "SMSTransport",
    "DispatchResult",
    "NetgsmTransport",
    # Providers
    "OTPProvider",
    "MockOTPProvider",
    "SMSOTPProvider",
    "create_provider",
    # Service
    "OTPService",
    "get_otp_service",
    "reset_otp_service",
]
