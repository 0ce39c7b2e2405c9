"""
Mock OTP Provider
=================
Fixed-code provider for tests and local development. Sends nothing.
"""

import asyncio
from typing import Any, Optional, Sequence, Set, Tuple

import structlog

from ..messaging.phone_utils import mask_phone, normalize_phone
from ..otp.models import OTPErrorKind, OTPPurpose, OTPResult, PurposeLike
from ..settings import OTPSettings
from .base import OTPProvider

logger = structlog.get_logger(__name__)


class MockOTPProvider(OTPProvider):
    """Accepts any code from ``valid_codes``; never delivers an SMS."""

    name = "mock"

    def __init__(
        self,
        settings: OTPSettings,
        valid_codes: Optional[Sequence[str]] = None,
        latency_seconds: float = 0.0,
    ):
        super().__init__(settings)
        self.valid_codes = list(valid_codes or settings.mock_valid_codes)
        self.latency_seconds = latency_seconds
        self.dry_run = settings.dry_run
        self._pending: Set[Tuple[str, str]] = set()

    def _key(self, phone_number: str, purpose: PurposeLike) -> Tuple[str, str]:
        phone = normalize_phone(phone_number, self.settings.default_country_code)
        return phone, OTPPurpose.coerce(purpose).value

    async def _simulate_latency(self) -> None:
        if self.latency_seconds > 0:
            await asyncio.sleep(self.latency_seconds)

    async def send_otp(
        self,
        phone_number: str,
        purpose: PurposeLike = OTPPurpose.LOGIN,
        **options: Any,
    ) -> OTPResult:
        key = self._key(phone_number, purpose)
        logger.info("Mock OTP sent", phone=mask_phone(key[0]), purpose=key[1], dry_run=self.dry_run)

        await self._simulate_latency()
        self._pending.add(key)

        return OTPResult.ok(
            "SMS sent (mock)",
            provider=self.name,
            purpose=key[1],
            ttl_seconds=self.settings.ttl_seconds,
            test_code=self.valid_codes[0] if self.valid_codes else None,
        )

    async def verify_otp(
        self,
        phone_number: str,
        code: str,
        purpose: PurposeLike = OTPPurpose.LOGIN,
    ) -> OTPResult:
        key = self._key(phone_number, purpose)
        await self._simulate_latency()

        if str(code).strip() in self.valid_codes:
            self._pending.discard(key)
            logger.info("Mock OTP verified", phone=mask_phone(key[0]), purpose=key[1])
            return OTPResult.ok("OTP verified", provider=self.name, purpose=key[1])

        logger.warning("Invalid mock OTP", phone=mask_phone(key[0]), purpose=key[1])
        return OTPResult.fail(
            OTPErrorKind.INVALID_OTP,
            "The code you entered is incorrect. Please try again.",
        )

    async def cancel_otp(
        self,
        phone_number: str,
        purpose: PurposeLike = OTPPurpose.LOGIN,
    ) -> OTPResult:
        key = self._key(phone_number, purpose)
        if key in self._pending:
            self._pending.discard(key)
            return OTPResult.ok("OTP cancelled")
        return OTPResult.fail(OTPErrorKind.OTP_NOT_FOUND, "No pending OTP to cancel")

    async def health_check(self) -> OTPResult:
        return OTPResult.ok(
            "Mock OTP provider is healthy",
            provider=self.name,
            status="healthy",
            dry_run=self.dry_run,
        )
