"""
OTP Provider Interface
======================
Contract every OTP provider (mock, SMS gateway, ...) implements.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict

import structlog

from ..otp.models import OTPPurpose, OTPResult, PurposeLike
from ..settings import OTPSettings

logger = structlog.get_logger(__name__)


class OTPProvider(ABC):
    """
    Abstract base class for OTP providers.

    Expected failures (wrong code, expiry, rate limits) are returned as a
    failed ``OTPResult``. Only configuration errors raise, at construction.
    """

    name: str = "base"

    def __init__(self, settings: OTPSettings):
        self.settings = settings

    @abstractmethod
    async def send_otp(
        self,
        phone_number: str,
        purpose: PurposeLike = OTPPurpose.LOGIN,
        **options: Any,
    ) -> OTPResult:
        """
        Issue and deliver a new code.

        Args:
            phone_number: Phone number in any accepted format
            purpose: OTP purpose
            **options: Provider-specific send options

        Returns:
            OTPResult
        """

    @abstractmethod
    async def verify_otp(
        self,
        phone_number: str,
        code: str,
        purpose: PurposeLike = OTPPurpose.LOGIN,
    ) -> OTPResult:
        """Verify a code for (phone, purpose)."""

    @abstractmethod
    async def cancel_otp(
        self,
        phone_number: str,
        purpose: PurposeLike = OTPPurpose.LOGIN,
    ) -> OTPResult:
        """Drop the pending code for (phone, purpose)."""

    @abstractmethod
    async def health_check(self) -> OTPResult:
        """Validate configuration without network I/O."""

    async def cleanup(self) -> Dict[str, int]:
        """Remove stale state. Providers without state have nothing to do."""
        return {"records_removed": 0, "rate_limits_removed": 0}

    async def close(self) -> None:
        """Release resources held by the provider."""
        logger.info("OTP provider closed", provider=self.name)
