"""
OTP Core Exceptions
===================
Raised only for programmer and configuration errors. Expected user-facing
failures (wrong code, rate limits, expiry) are returned as ``OTPResult``.
"""

from typing import Optional


class OTPCoreError(Exception):
    """Base exception for the OTP core."""

    def __init__(self, message: str, provider: Optional[str] = None):
        self.message = message
        self.provider = provider
        prefix = f"[{provider}] " if provider else ""
        super().__init__(f"{prefix}{message}")


class OTPConfigurationError(OTPCoreError):
    """Raised when a provider or transport is missing required configuration."""
    pass


class ProviderUnhealthyError(OTPCoreError):
    """Raised when a provider fails its health check during initialize/switch."""
    pass


class ServiceNotInitializedError(OTPCoreError):
    """Raised when the OTP service is used before ``initialize()``."""

    def __init__(self, message: str = "OTPService is not initialized. Call initialize() first."):
        super().__init__(message)
