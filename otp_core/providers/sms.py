"""
SMS OTP Provider
================
Issues, hashes, rate-limits, expires, locks and verifies OTP codes and
delivers them through an ``SMSTransport``.
"""

import math
import secrets
import time
from typing import Any, Callable, Dict, Optional, Tuple

import structlog

from ..exceptions import OTPConfigurationError
from ..messaging.phone_utils import (
    mask_phone,
    normalize_phone,
    validate_e164,
)
from ..messaging.templates import render_otp_message
from ..otp.hashing import generate_otp, generate_salt, hash_otp, verify_otp_hash
from ..otp.models import OTPErrorKind, OTPPurpose, OTPRecord, OTPResult, PurposeLike
from ..rate_limit import RateLimitInfo, WindowedRateLimiter
from ..settings import OTPSettings
from ..storage import InMemoryStore, KeyValueStore
from ..storage.base import Value
from ..transport import NetgsmTransport, SMSTransport
from .base import OTPProvider

logger = structlog.get_logger(__name__)

RECORD_PREFIX = "otp:"


class SMSOTPProvider(OTPProvider):
    """
    OTP provider backed by an SMS gateway.

    Features:
    - Keyed HMAC digests, the code itself is never stored
    - Minute/hour/day send limits per phone number
    - Resend cooldown per (phone, purpose)
    - Attempt counting with temporary lockout
    - Dry-run mode that skips delivery and returns the code
    """

    name = "sms"

    def __init__(
        self,
        settings: OTPSettings,
        store: Optional[KeyValueStore] = None,
        transport: Optional[SMSTransport] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            settings: Validated OTP settings
            store: Backing store for records and counters (in-memory by default)
            transport: SMS gateway (Netgsm built from settings by default)
            clock: Returns current epoch seconds
        """
        super().__init__(settings)
        self.dry_run = settings.dry_run
        self.clock = clock
        self.store = store if store is not None else InMemoryStore()
        self.transport = transport if transport is not None else NetgsmTransport.from_settings(settings)
        self.rate_limiter = WindowedRateLimiter(
            self.store,
            per_minute=settings.rate_per_minute,
            per_hour=settings.rate_per_hour,
            per_day=settings.rate_per_day,
            clock=clock,
        )

        self._signing_secret = settings.secret_value()
        if not self._signing_secret and self.dry_run:
            # Codes hashed with this secret do not survive a restart
            self._signing_secret = secrets.token_hex(32)
            logger.warning("No signing secret configured, using an ephemeral one for dry run")

        self.validate_config()

    def validate_config(self) -> None:
        """
        Raise ``OTPConfigurationError`` if required settings are missing.

        The signing secret is always required. Transport credentials are
        only required when real messages are sent.
        """
        if not self._signing_secret:
            raise OTPConfigurationError("APP_SIGNING_SECRET is required", provider=self.name)

        if not self.dry_run:
            missing = self.transport.missing_credentials()
            if missing:
                raise OTPConfigurationError(
                    f"Transport configuration incomplete, missing: {', '.join(missing)}",
                    provider=self.name,
                )

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def normalize_phone(self, phone_number: str) -> str:
        return normalize_phone(phone_number, self.settings.default_country_code)

    def get_record_key(self, phone: str, purpose: str) -> str:
        return f"{RECORD_PREFIX}{phone}:{purpose}"

    def create_otp_hash(self, phone: str, code: str, purpose: str) -> Tuple[str, str]:
        """
        Hash a code with a fresh salt.

        Returns:
            Tuple of (hash, salt)
        """
        salt = generate_salt()
        return hash_otp(phone, code, purpose, salt, self._signing_secret), salt

    def verify_otp_hash(self, phone: str, code: str, purpose: str, record: OTPRecord) -> bool:
        return verify_otp_hash(
            phone, code, purpose, record.salt, self._signing_secret, record.otp_hash
        )

    async def check_rate_limit(self, phone_number: str) -> RateLimitInfo:
        """Check send limits for a phone number without consuming one."""
        return await self.rate_limiter.check(self.normalize_phone(phone_number))

    async def increment_rate_limit(self, phone_number: str) -> None:
        """Count one send for a phone number."""
        await self.rate_limiter.increment(self.normalize_phone(phone_number))

    def _rate_limited(self, info: RateLimitInfo) -> OTPResult:
        return OTPResult.fail(
            OTPErrorKind.RATE_LIMIT_EXCEEDED,
            f"Too many requests. {info.reason}. Please wait.",
            reset_time=info.reset_time,
            window=info.window,
        )

    async def send_otp(
        self,
        phone_number: str,
        purpose: PurposeLike = OTPPurpose.LOGIN,
        ttl_seconds: Optional[int] = None,
        **options: Any,
    ) -> OTPResult:
        """
        Issue a code and deliver it by SMS.

        Args:
            phone_number: Phone number in any accepted format
            purpose: OTP purpose
            ttl_seconds: Per-call lifetime override

        Returns:
            OTPResult with ``provider``, ``purpose`` and ``ttl_seconds``;
            ``test_code`` in dry run only
        """
        purpose = OTPPurpose.coerce(purpose).value
        if ttl_seconds is not None and ttl_seconds < 1:
            raise ValueError("ttl_seconds must be at least 1")
        ttl = ttl_seconds or self.settings.ttl_seconds
        phone = self.normalize_phone(phone_number)
        masked = mask_phone(phone)

        if not validate_e164(phone):
            return OTPResult.fail(OTPErrorKind.INVALID_PHONE, "Phone number is not valid")

        logger.info("Sending OTP", phone=masked, purpose=purpose)

        rate_limit = await self.rate_limiter.check(phone)
        if not rate_limit.allowed:
            return self._rate_limited(rate_limit)

        code = generate_otp(self.settings.code_length)
        otp_hash, salt = self.create_otp_hash(phone, code, purpose)
        message = render_otp_message(purpose, code, ttl, self.settings.sms_brand)

        key = self.get_record_key(phone, purpose)
        now = self._now_ms()
        record = OTPRecord(
            otp_hash=otp_hash,
            salt=salt,
            purpose=purpose,
            created_at=now,
            expires_at=now + ttl * 1000,
        )
        cooldown_ms = self.settings.resend_cooldown_seconds * 1000

        def claim(
            raw: Optional[Value],
        ) -> Tuple[Optional[Value], Tuple[Optional[int], Optional[Value]]]:
            if raw is not None:
                existing = OTPRecord.from_dict(raw)
                elapsed = now - existing.created_at
                if not existing.is_expired(now) and elapsed < cooldown_ms:
                    return raw, (math.ceil((cooldown_ms - elapsed) / 1000), None)
            return record.to_dict(), (None, raw)

        # Cooldown check and record write happen in one store update
        remaining_seconds, previous = await self.store.update(key, claim)
        if remaining_seconds is not None:
            return OTPResult.fail(
                OTPErrorKind.RESEND_COOLDOWN,
                f"Please wait {remaining_seconds} seconds before requesting a new code.",
                remaining_seconds=remaining_seconds,
            )

        # Claim the send slot before the gateway call
        reservation = await self.rate_limiter.reserve(phone)
        if not reservation.allowed:
            await self._restore_record(key, salt, previous)
            return self._rate_limited(reservation)

        if self.dry_run:
            logger.info("Dry run, SMS not sent", phone=masked, purpose=purpose)
        else:
            result = await self.transport.dispatch(phone.lstrip("+"), message)
            if not result.success:
                await self.rate_limiter.release(phone)
                await self._restore_record(key, salt, previous)
                logger.error(
                    "SMS dispatch failed",
                    phone=masked,
                    purpose=purpose,
                    error_code=result.error_code,
                )
                return OTPResult.fail(
                    OTPErrorKind.SMS_SEND_FAILED,
                    result.error_message or "SMS could not be sent. Please try again.",
                    transport_error=result.error_code,
                )
            logger.info("SMS dispatched", phone=masked, message_id=result.message_id)

        data: Dict[str, Any] = {
            "provider": self.name,
            "purpose": purpose,
            "ttl_seconds": ttl,
        }
        if self.dry_run:
            data["test_code"] = code

        return OTPResult.ok("SMS sent", **data)

    async def _restore_record(self, key: str, salt: str, previous: Optional[Value]) -> None:
        """Put back the record a failed send replaced, unless a newer send replaced it since."""

        def restore(raw: Optional[Value]) -> Tuple[Optional[Value], None]:
            if raw is not None and raw.get("salt") == salt:
                return previous, None
            return raw, None

        await self.store.update(key, restore)

    async def verify_otp(
        self,
        phone_number: str,
        code: str,
        purpose: PurposeLike = OTPPurpose.LOGIN,
    ) -> OTPResult:
        """
        Verify a code.

        Order: missing, expired, locked, then attempt count and digest.
        A correct code deletes the record.
        """
        purpose = OTPPurpose.coerce(purpose).value
        phone = self.normalize_phone(phone_number)
        code = str(code or "").strip()
        key = self.get_record_key(phone, purpose)
        now = self._now_ms()
        max_attempts = self.settings.max_attempts

        def mutation(raw: Optional[Value]) -> Tuple[Optional[Value], OTPResult]:
            if raw is None:
                return None, OTPResult.fail(
                    OTPErrorKind.OTP_NOT_FOUND,
                    "No code found. Please request a new one.",
                )

            record = OTPRecord.from_dict(raw)

            if record.is_expired(now):
                return None, OTPResult.fail(
                    OTPErrorKind.OTP_EXPIRED,
                    "The code has expired. Please request a new one.",
                )

            if record.locked:
                if record.lock_lapsed(now):
                    record.locked = False
                    record.locked_until = None
                    record.attempts = 0
                else:
                    return raw, self._locked(record)

            record.attempts += 1

            if self.verify_otp_hash(phone, code, purpose, record):
                return None, OTPResult.ok("OTP verified", provider=self.name, purpose=purpose)

            if record.attempts >= max_attempts:
                record.locked = True
                record.locked_until = now + self.settings.lockout_seconds * 1000
                return record.to_dict(), self._locked(record)

            remaining_attempts = max_attempts - record.attempts
            return record.to_dict(), OTPResult.fail(
                OTPErrorKind.INVALID_OTP,
                f"Invalid code. {remaining_attempts} attempts remaining.",
                remaining_attempts=remaining_attempts,
            )

        result = await self.store.update(key, mutation)

        masked = mask_phone(phone)
        if result.success:
            logger.info("OTP verified", phone=masked, purpose=purpose)
        else:
            logger.warning("OTP verification failed", phone=masked, purpose=purpose, error=result.error.value)
        return result

    def _locked(self, record: OTPRecord) -> OTPResult:
        minutes = max(1, math.ceil(self.settings.lockout_seconds / 60))
        return OTPResult.fail(
            OTPErrorKind.OTP_LOCKED,
            f"Too many incorrect attempts. Please wait {minutes} minutes.",
            locked_until=record.locked_until,
        )

    async def cancel_otp(
        self,
        phone_number: str,
        purpose: PurposeLike = OTPPurpose.LOGIN,
    ) -> OTPResult:
        purpose = OTPPurpose.coerce(purpose).value
        phone = self.normalize_phone(phone_number)

        if await self.store.delete(self.get_record_key(phone, purpose)):
            logger.info("OTP cancelled", phone=mask_phone(phone), purpose=purpose)
            return OTPResult.ok("OTP cancelled")

        return OTPResult.fail(OTPErrorKind.OTP_NOT_FOUND, "No pending OTP to cancel")

    async def health_check(self) -> OTPResult:
        try:
            self.validate_config()
        except OTPConfigurationError as e:
            logger.error("SMS OTP provider unhealthy", error=e.message)
            return OTPResult.fail(
                OTPErrorKind.CONFIGURATION_ERROR,
                e.message,
                provider=self.name,
                status="unhealthy",
            )

        return OTPResult.ok(
            "SMS OTP provider is healthy",
            provider=self.name,
            status="healthy",
            dry_run=self.dry_run,
            transport=self.transport.name,
            config={
                "has_signing_secret": bool(self._signing_secret),
                "has_transport_credentials": not self.transport.missing_credentials(),
            },
        )

    async def cleanup(self) -> Dict[str, int]:
        """
        Remove expired records, lapsed locks and stale rate-limit counters.

        Safe to call at any time; does nothing when nothing is stale.
        """
        now = self._now_ms()
        records_removed = 0

        for key, raw in await self.store.scan(RECORD_PREFIX):
            record = OTPRecord.from_dict(raw)
            if record.is_expired(now) or record.lock_lapsed(now):
                if await self.store.delete(key):
                    records_removed += 1

        rate_limits_removed = await self.rate_limiter.cleanup()

        logger.info(
            "OTP cleanup finished",
            records_removed=records_removed,
            rate_limits_removed=rate_limits_removed,
        )
        return {"records_removed": records_removed, "rate_limits_removed": rate_limits_removed}

    async def close(self) -> None:
        await self.transport.close()
        await super().close()
