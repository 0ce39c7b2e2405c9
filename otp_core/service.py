"""
OTP Service
===========
Facade owning the active OTP provider.

Usage:
    from otp_core import get_otp_service

    service = get_otp_service()
    await service.initialize()

    result = await service.send_otp("05551234567", "login")
    result = await service.verify_otp("05551234567", "123456", "login")
"""

from typing import Any, Callable, Dict, Optional

import structlog

from .exceptions import ProviderUnhealthyError, ServiceNotInitializedError
from .messaging.phone_utils import mask_phone
from .otp.models import OTPErrorKind, OTPPurpose, OTPResult, PurposeLike
from .providers import OTPProvider, create_provider
from .settings import OTPSettings

logger = structlog.get_logger(__name__)

ProviderFactory = Callable[[str, OTPSettings], OTPProvider]


class OTPService:
    """
    Entry point for sending, verifying and cancelling OTP codes.

    The provider is only committed once it passes its health check, both
    on ``initialize`` and on ``switch_provider``.
    """

    def __init__(self, provider_factory: ProviderFactory = create_provider):
        """
        Args:
            provider_factory: Builds a provider from (name, settings)
        """
        self._provider_factory = provider_factory
        self._provider: Optional[OTPProvider] = None
        self._settings: Optional[OTPSettings] = None

    @property
    def initialized(self) -> bool:
        return self._provider is not None

    @property
    def provider(self) -> OTPProvider:
        self._require_initialized()
        return self._provider

    @property
    def settings(self) -> OTPSettings:
        self._require_initialized()
        return self._settings

    def _require_initialized(self) -> None:
        if self._provider is None:
            raise ServiceNotInitializedError()

    async def _build_healthy(self, settings: OTPSettings) -> OTPProvider:
        provider = self._provider_factory(settings.provider, settings)
        health = await provider.health_check()
        if not health.success:
            await provider.close()
            raise ProviderUnhealthyError(
                health.message or "Provider health check failed",
                provider=settings.provider,
            )
        return provider

    async def initialize(
        self,
        settings: Optional[OTPSettings] = None,
        **overrides: Any,
    ) -> None:
        """
        Build and health-check the configured provider.

        Does nothing when already initialized.

        Args:
            settings: Explicit settings (read from the environment if omitted)
            **overrides: Field overrides applied on top of the settings

        Raises:
            OTPConfigurationError: Unknown provider or missing configuration
            ProviderUnhealthyError: Provider failed its health check
        """
        if self.initialized:
            return

        if settings is None:
            settings = OTPSettings.from_env(**overrides)
        elif overrides:
            settings = settings.with_overrides(**overrides)

        provider = await self._build_healthy(settings)

        self._settings = settings
        self._provider = provider
        logger.info(
            "OTP service initialized",
            provider=provider.name,
            dry_run=settings.dry_run,
        )

    async def switch_provider(self, name: str, **overrides: Any) -> None:
        """
        Replace the active provider.

        The old provider is closed only after the new one is healthy.
        Pending codes held by the old provider are lost.
        """
        self._require_initialized()

        settings = self._settings.with_overrides(provider=name, **overrides)
        provider = await self._build_healthy(settings)

        previous = self._provider
        self._settings = settings
        self._provider = provider
        await previous.close()

        logger.info("OTP provider switched", old_provider=previous.name, new_provider=provider.name)

    def _service_error(self, operation: str, phone_number: str) -> OTPResult:
        logger.exception("OTP operation failed", operation=operation, phone=mask_phone(phone_number))
        return OTPResult.fail(
            OTPErrorKind.SERVICE_ERROR,
            "An unexpected error occurred. Please try again.",
        )

    async def send_otp(
        self,
        phone_number: str,
        purpose: PurposeLike = OTPPurpose.LOGIN,
        **options: Any,
    ) -> OTPResult:
        self._require_initialized()
        try:
            return await self._provider.send_otp(phone_number, purpose, **options)
        except Exception:
            return self._service_error("send", phone_number)

    async def verify_otp(
        self,
        phone_number: str,
        code: str,
        purpose: PurposeLike = OTPPurpose.LOGIN,
    ) -> OTPResult:
        self._require_initialized()
        try:
            return await self._provider.verify_otp(phone_number, code, purpose)
        except Exception:
            return self._service_error("verify", phone_number)

    async def cancel_otp(
        self,
        phone_number: str,
        purpose: PurposeLike = OTPPurpose.LOGIN,
    ) -> OTPResult:
        self._require_initialized()
        try:
            return await self._provider.cancel_otp(phone_number, purpose)
        except Exception:
            return self._service_error("cancel", phone_number)

    async def health_check(self) -> OTPResult:
        """Provider health plus service state. Never raises."""
        if not self.initialized:
            return OTPResult.fail(
                OTPErrorKind.NOT_INITIALIZED,
                "OTP service is not initialized",
                initialized=False,
            )

        try:
            health = await self._provider.health_check()
        except Exception:
            logger.exception("OTP health check failed", provider=self._provider.name)
            return OTPResult.fail(
                OTPErrorKind.SERVICE_ERROR,
                "Health check failed",
                initialized=True,
                provider=self._provider.name,
            )

        data: Dict[str, Any] = dict(health.data)
        data.update(initialized=True, provider=self._provider.name)
        return OTPResult(
            success=health.success,
            message=health.message,
            error=health.error,
            data=data,
        )

    def get_config(self) -> Dict[str, Any]:
        """Active settings as a JSON-safe dict, secrets redacted."""
        self._require_initialized()
        config = self._settings.public_dict()
        config["active_provider"] = self._provider.name
        return config

    async def cleanup(self) -> Dict[str, int]:
        """Remove expired codes, lapsed locks and stale rate-limit counters."""
        self._require_initialized()
        try:
            return await self._provider.cleanup()
        except Exception:
            logger.exception("OTP cleanup failed", provider=self._provider.name)
            return {"records_removed": 0, "rate_limits_removed": 0}

    async def shutdown(self) -> None:
        """Close the provider and return to the uninitialized state."""
        if self._provider is None:
            return

        provider = self._provider
        self._provider = None
        self._settings = None
        await provider.close()
        logger.info("OTP service shut down", provider=provider.name)


# Singleton instance
_otp_service: Optional[OTPService] = None


def get_otp_service() -> OTPService:
    """Get or create the process-wide OTP service."""
    global _otp_service
    if _otp_service is None:
        _otp_service = OTPService()
    return _otp_service


def reset_otp_service() -> None:
    """Drop the process-wide instance. Call ``shutdown()`` first to release resources."""
    global _otp_service
    _otp_service = None
