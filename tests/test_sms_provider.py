"""
Tests for the SMS OTP provider
==============================
Issuance, verification, lockout, cooldown, rate limiting and cleanup.
"""

import asyncio

import pytest

from otp_core.exceptions import OTPConfigurationError
from otp_core.otp.models import OTPErrorKind, OTPPurpose
from otp_core.providers.sms import SMSOTPProvider
from otp_core.settings import OTPSettings
from otp_core.transport import NetgsmTransport

from conftest import TEST_PHONE, TEST_SECRET, FakeTransport


class SlowTransport(FakeTransport):
    """Yields to the event loop before accepting a message."""

    async def dispatch(self, phone_digits, message):
        await asyncio.sleep(0.01)
        return await super().dispatch(phone_digits, message)


@pytest.fixture
def make_provider(sms_settings, store, transport, clock):
    def factory(**overrides):
        return SMSOTPProvider(
            sms_settings.with_overrides(**overrides),
            store=store,
            transport=transport,
            clock=clock,
        )

    return factory


@pytest.fixture
def provider(make_provider):
    return make_provider()


class TestSend:
    """Tests for issuing codes."""

    @pytest.mark.asyncio
    async def test_send_dispatches_sms(self, provider, transport):
        """Should send one SMS to the bare-digit number."""
        result = await provider.send_otp("05551234567", "login")

        assert result.success is True
        assert result.data == {"provider": "sms", "purpose": "login", "ttl_seconds": 180}
        assert len(transport.sent) == 1
        phone_digits, message = transport.sent[0]
        assert phone_digits == "905551234567"
        assert message.isascii()
        assert "login code" in message
        assert "Valid for 3 min" in message

    @pytest.mark.asyncio
    async def test_live_send_never_returns_code(self, provider):
        """Code should only be returned in dry run."""
        result = await provider.send_otp(TEST_PHONE)
        assert "test_code" not in result.data

    @pytest.mark.asyncio
    async def test_dry_run_returns_code(self, make_provider, transport):
        """Dry run should skip dispatch and return the code."""
        provider = make_provider(dry_run=True)

        result = await provider.send_otp(TEST_PHONE, OTPPurpose.REGISTER)

        assert result.success is True
        assert transport.sent == []
        code = result.data["test_code"]
        assert len(code) == 6
        assert 100000 <= int(code) <= 999999

    @pytest.mark.asyncio
    async def test_invalid_phone(self, provider, transport):
        """Unusable numbers should be rejected before anything is sent."""
        result = await provider.send_otp("abc", "login")

        assert result.success is False
        assert result.error == OTPErrorKind.INVALID_PHONE
        assert transport.sent == []

    @pytest.mark.asyncio
    async def test_unknown_purpose_raises(self, provider):
        with pytest.raises(ValueError):
            await provider.send_otp(TEST_PHONE, "checkout")

    @pytest.mark.asyncio
    async def test_plain_code_not_stored(self, provider, store, transport):
        """Only the salted digest should be persisted."""
        await provider.send_otp(TEST_PHONE, "login")
        code = transport.last_code

        record = await store.get(provider.get_record_key(TEST_PHONE, "login"))

        assert record is not None
        assert code not in record.values()
        assert len(record["otp_hash"]) == 64
        assert len(record["salt"]) == 32

    @pytest.mark.asyncio
    async def test_ttl_override(self, provider, store, clock):
        result = await provider.send_otp(TEST_PHONE, "login", ttl_seconds=60)

        assert result.data["ttl_seconds"] == 60
        record = await store.get(provider.get_record_key(TEST_PHONE, "login"))
        assert record["expires_at"] - record["created_at"] == 60_000

    @pytest.mark.asyncio
    async def test_dispatch_uses_configured_country_code(self, make_provider, transport):
        """Bare digits sent to the gateway should keep the configured country code."""
        provider = make_provider(default_country_code="44")

        result = await provider.send_otp("07700900123", "login")

        assert result.success is True
        assert transport.sent[0][0] == "447700900123"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("ttl_seconds", [0, -5])
    async def test_invalid_ttl_override(self, provider, transport, ttl_seconds):
        with pytest.raises(ValueError):
            await provider.send_otp(TEST_PHONE, "login", ttl_seconds=ttl_seconds)
        assert transport.sent == []

    @pytest.mark.asyncio
    async def test_failed_resend_keeps_previous_code(self, provider, transport):
        """A failed resend should leave the earlier code usable."""
        await provider.send_otp(TEST_PHONE, "login")
        code = transport.last_code
        transport.fail_with = "80"

        failed = await provider.send_otp(TEST_PHONE, "login")

        assert failed.error == OTPErrorKind.SMS_SEND_FAILED
        assert (await provider.verify_otp(TEST_PHONE, code, "login")).success is True

    @pytest.mark.asyncio
    async def test_failed_dispatch(self, make_provider, store, transport):
        """Failed dispatch should neither persist a record nor consume a send."""
        provider = make_provider(rate_per_minute=1)
        transport.fail_with = "50"

        result = await provider.send_otp(TEST_PHONE, "login")

        assert result.success is False
        assert result.error == OTPErrorKind.SMS_SEND_FAILED
        assert result.data["transport_error"] == "50"
        assert await store.get(provider.get_record_key(TEST_PHONE, "login")) is None

        transport.fail_with = None
        result = await provider.send_otp(TEST_PHONE, "login")
        assert result.success is True


class TestRateLimiting:
    """Tests for per-phone send limits."""

    @pytest.mark.asyncio
    async def test_second_send_within_minute_rejected(self, make_provider, clock):
        provider = make_provider(rate_per_minute=1, rate_per_hour=3, rate_per_day=5)

        first = await provider.send_otp(TEST_PHONE, "login")
        second = await provider.send_otp(TEST_PHONE, "register")

        assert first.success is True
        assert second.success is False
        assert second.error == OTPErrorKind.RATE_LIMIT_EXCEEDED
        assert second.data["window"] == "minute"
        assert second.data["reset_time"] == int(clock() * 1000) + 60_000

    @pytest.mark.asyncio
    async def test_minute_window_resets(self, make_provider, clock):
        provider = make_provider(rate_per_minute=1, rate_per_hour=3, rate_per_day=5)

        await provider.send_otp(TEST_PHONE, "login")
        clock.advance(61)

        result = await provider.send_otp(TEST_PHONE, "login")
        assert result.success is True

    @pytest.mark.asyncio
    async def test_hour_limit(self, make_provider, clock):
        """Should report the hour window once the minute window is clear."""
        provider = make_provider(rate_per_minute=1, rate_per_hour=2, rate_per_day=5)

        for _ in range(2):
            assert (await provider.send_otp(TEST_PHONE, "login")).success is True
            clock.advance(61)

        result = await provider.send_otp(TEST_PHONE, "login")
        assert result.error == OTPErrorKind.RATE_LIMIT_EXCEEDED
        assert result.data["window"] == "hour"

    @pytest.mark.asyncio
    async def test_limits_are_per_phone(self, make_provider):
        provider = make_provider(rate_per_minute=1)

        await provider.send_otp(TEST_PHONE, "login")
        result = await provider.send_otp("+905559876543", "login")

        assert result.success is True

    @pytest.mark.asyncio
    async def test_concurrent_sends_consume_one_slot(self, make_provider, transport):
        provider = make_provider(rate_per_minute=1)

        results = await asyncio.gather(*[
            provider.send_otp(TEST_PHONE, purpose)
            for purpose in ("login", "register", "password_reset")
        ])

        assert sum(1 for r in results if r.success) == 1
        assert len(transport.sent) == 1

    @pytest.mark.asyncio
    async def test_check_and_increment_helpers(self, make_provider):
        provider = make_provider(rate_per_minute=2)

        assert (await provider.check_rate_limit("05551234567")).allowed is True
        await provider.increment_rate_limit("05551234567")
        await provider.increment_rate_limit(TEST_PHONE)

        info = await provider.check_rate_limit(TEST_PHONE)
        assert info.allowed is False
        assert info.window == "minute"


class TestResendCooldown:
    """Tests for the per-purpose resend cooldown."""

    @pytest.mark.asyncio
    async def test_resend_within_cooldown(self, make_provider, clock):
        provider = make_provider(resend_cooldown_seconds=60)

        await provider.send_otp(TEST_PHONE, "login")
        clock.advance(10)
        result = await provider.send_otp(TEST_PHONE, "login")

        assert result.success is False
        assert result.error == OTPErrorKind.RESEND_COOLDOWN
        assert result.data["remaining_seconds"] == 50

    @pytest.mark.asyncio
    async def test_resend_after_cooldown(self, make_provider, clock, transport):
        provider = make_provider(resend_cooldown_seconds=60)

        await provider.send_otp(TEST_PHONE, "login")
        clock.advance(60)
        result = await provider.send_otp(TEST_PHONE, "login")

        assert result.success is True
        assert len(transport.sent) == 2

    @pytest.mark.asyncio
    async def test_cooldown_is_per_purpose(self, make_provider):
        provider = make_provider(resend_cooldown_seconds=60)

        await provider.send_otp(TEST_PHONE, "login")
        result = await provider.send_otp(TEST_PHONE, "register")

        assert result.success is True

    @pytest.mark.asyncio
    async def test_concurrent_resends_send_once(self, sms_settings, store, clock):
        """Only one of two overlapping sends should reach the gateway."""
        transport = SlowTransport()
        provider = SMSOTPProvider(
            sms_settings.with_overrides(resend_cooldown_seconds=60, rate_per_minute=5),
            store=store,
            transport=transport,
            clock=clock,
        )

        results = await asyncio.gather(
            provider.send_otp(TEST_PHONE, "login"),
            provider.send_otp(TEST_PHONE, "login"),
        )

        assert [r.success for r in results].count(True) == 1
        assert OTPErrorKind.RESEND_COOLDOWN in [r.error for r in results]
        assert len(transport.sent) == 1
        assert (await provider.verify_otp(TEST_PHONE, transport.last_code, "login")).success is True

    @pytest.mark.asyncio
    async def test_expired_record_has_no_cooldown(self, make_provider, clock):
        provider = make_provider(resend_cooldown_seconds=60, ttl_seconds=30)

        await provider.send_otp(TEST_PHONE, "login")
        clock.advance(31)
        result = await provider.send_otp(TEST_PHONE, "login")

        assert result.success is True

    @pytest.mark.asyncio
    async def test_resend_replaces_code(self, make_provider, clock, transport):
        provider = make_provider(resend_cooldown_seconds=60)

        await provider.send_otp(TEST_PHONE, "login")
        first_code = transport.last_code
        clock.advance(60)
        await provider.send_otp(TEST_PHONE, "login")
        second_code = transport.last_code

        if first_code != second_code:
            old = await provider.verify_otp(TEST_PHONE, first_code, "login")
            assert old.error == OTPErrorKind.INVALID_OTP
        assert (await provider.verify_otp(TEST_PHONE, second_code, "login")).success is True


class TestVerify:
    """Tests for code verification."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("send_form, verify_form", [
        ("05551234567", "+905551234567"),
        ("905551234567", "0555 123 45 67"),
        ("+90 (555) 123-45-67", "5551234567"),
        ("5551234567", "905551234567"),
    ])
    async def test_round_trip_across_formats(self, provider, transport, send_form, verify_form):
        """Correct code should verify exactly once."""
        await provider.send_otp(send_form, "login")
        code = transport.last_code

        first = await provider.verify_otp(verify_form, code, "login")
        second = await provider.verify_otp(verify_form, code, "login")

        assert first.success is True
        assert first.data == {"provider": "sms", "purpose": "login"}
        assert second.error == OTPErrorKind.OTP_NOT_FOUND

    @pytest.mark.asyncio
    async def test_verify_without_send(self, provider):
        result = await provider.verify_otp(TEST_PHONE, "123456", "login")

        assert result.success is False
        assert result.error == OTPErrorKind.OTP_NOT_FOUND

    @pytest.mark.asyncio
    async def test_remaining_attempts_then_lock(self, provider, transport, clock):
        """Each failure should cost one attempt until the code locks."""
        await provider.send_otp(TEST_PHONE, "login")
        code = transport.last_code
        wrong = "000000"

        remaining = []
        for _ in range(4):
            result = await provider.verify_otp(TEST_PHONE, wrong, "login")
            assert result.error == OTPErrorKind.INVALID_OTP
            remaining.append(result.data["remaining_attempts"])

        assert remaining == [4, 3, 2, 1]

        locked = await provider.verify_otp(TEST_PHONE, wrong, "login")
        assert locked.error == OTPErrorKind.OTP_LOCKED
        assert locked.data["locked_until"] == int(clock() * 1000) + 300_000

        # Correct code is still refused while locked
        result = await provider.verify_otp(TEST_PHONE, code, "login")
        assert result.error == OTPErrorKind.OTP_LOCKED

    @pytest.mark.asyncio
    async def test_locked_attempts_not_counted(self, make_provider, store, transport):
        provider = make_provider(max_attempts=2)
        await provider.send_otp(TEST_PHONE, "login")

        for _ in range(4):
            await provider.verify_otp(TEST_PHONE, "000000", "login")

        record = await store.get(provider.get_record_key(TEST_PHONE, "login"))
        assert record["attempts"] == 2
        assert record["locked"] is True

    @pytest.mark.asyncio
    async def test_lock_lapses(self, make_provider, transport, clock):
        """After the lockout the attempt counter should start over."""
        provider = make_provider(max_attempts=2, ttl_seconds=3600)
        await provider.send_otp(TEST_PHONE, "login")
        code = transport.last_code

        for _ in range(2):
            await provider.verify_otp(TEST_PHONE, "000000", "login")

        clock.advance(301)

        result = await provider.verify_otp(TEST_PHONE, "000000", "login")
        assert result.error == OTPErrorKind.INVALID_OTP
        assert result.data["remaining_attempts"] == 1

        assert (await provider.verify_otp(TEST_PHONE, code, "login")).success is True

    @pytest.mark.asyncio
    async def test_expired_code(self, provider, transport, clock):
        await provider.send_otp(TEST_PHONE, "login")
        code = transport.last_code
        clock.advance(181)

        result = await provider.verify_otp(TEST_PHONE, code, "login")
        assert result.error == OTPErrorKind.OTP_EXPIRED

        # Expired records are removed
        result = await provider.verify_otp(TEST_PHONE, code, "login")
        assert result.error == OTPErrorKind.OTP_NOT_FOUND

    @pytest.mark.asyncio
    async def test_expiry_with_real_clock(self):
        """A one-second code should expire after a real wait."""
        provider = SMSOTPProvider(
            OTPSettings(provider="sms", dry_run=True, signing_secret=TEST_SECRET, ttl_seconds=1),
            transport=FakeTransport(),
        )
        sent = await provider.send_otp(TEST_PHONE, "login")

        await asyncio.sleep(1.2)

        result = await provider.verify_otp(TEST_PHONE, sent.data["test_code"], "login")
        assert result.error == OTPErrorKind.OTP_EXPIRED

    @pytest.mark.asyncio
    async def test_purposes_are_isolated(self, provider, transport):
        await provider.send_otp(TEST_PHONE, "login")
        login_code = transport.last_code
        await provider.send_otp(TEST_PHONE, "register")
        register_code = transport.last_code

        assert (await provider.verify_otp(TEST_PHONE, register_code, "register")).success is True
        assert (await provider.verify_otp(TEST_PHONE, login_code, "login")).success is True

    @pytest.mark.asyncio
    async def test_other_purpose_not_found(self, provider, transport):
        await provider.send_otp(TEST_PHONE, "login")

        result = await provider.verify_otp(TEST_PHONE, transport.last_code, "password_reset")
        assert result.error == OTPErrorKind.OTP_NOT_FOUND

    @pytest.mark.asyncio
    async def test_digest_bound_to_secret(self, sms_settings, store, transport, clock):
        """A record hashed under one secret should not verify under another."""
        first = SMSOTPProvider(sms_settings, store=store, transport=transport, clock=clock)
        await first.send_otp(TEST_PHONE, "login")
        code = transport.last_code

        second = SMSOTPProvider(
            sms_settings.with_overrides(signing_secret="another-secret"),
            store=store,
            transport=transport,
            clock=clock,
        )
        result = await second.verify_otp(TEST_PHONE, code, "login")
        assert result.error == OTPErrorKind.INVALID_OTP


class TestCancel:
    """Tests for cancelling pending codes."""

    @pytest.mark.asyncio
    async def test_cancel_pending(self, provider, transport):
        await provider.send_otp(TEST_PHONE, "login")

        result = await provider.cancel_otp(TEST_PHONE, "login")
        assert result.success is True

        verify = await provider.verify_otp(TEST_PHONE, transport.last_code, "login")
        assert verify.error == OTPErrorKind.OTP_NOT_FOUND

    @pytest.mark.asyncio
    async def test_cancel_twice(self, provider):
        """Cancelling nothing should fail cleanly, every time."""
        for _ in range(2):
            result = await provider.cancel_otp(TEST_PHONE, "login")
            assert result.success is False
            assert result.error == OTPErrorKind.OTP_NOT_FOUND


class TestCleanup:
    """Tests for stale state removal."""

    @pytest.mark.asyncio
    async def test_removes_expired_records_only(self, make_provider, store, clock):
        provider = make_provider(ttl_seconds=60)
        await provider.send_otp(TEST_PHONE, "login")
        clock.advance(61)
        await provider.send_otp("+905559876543", "login")

        result = await provider.cleanup()

        assert result == {"records_removed": 1, "rate_limits_removed": 0}
        assert await store.get(provider.get_record_key(TEST_PHONE, "login")) is None
        assert await store.get(provider.get_record_key("+905559876543", "login")) is not None

    @pytest.mark.asyncio
    async def test_removes_lapsed_locks(self, make_provider, store, clock):
        provider = make_provider(max_attempts=1, ttl_seconds=3600)
        await provider.send_otp(TEST_PHONE, "login")
        await provider.verify_otp(TEST_PHONE, "000000", "login")

        assert (await provider.cleanup())["records_removed"] == 0

        clock.advance(301)
        assert (await provider.cleanup())["records_removed"] == 1

    @pytest.mark.asyncio
    async def test_removes_stale_counters(self, provider, clock):
        await provider.send_otp(TEST_PHONE, "login")
        clock.advance(24 * 3600 + 1)

        first = await provider.cleanup()
        second = await provider.cleanup()

        assert first == {"records_removed": 1, "rate_limits_removed": 1}
        assert second == {"records_removed": 0, "rate_limits_removed": 0}


class TestConfiguration:
    """Tests for construction-time validation and health."""

    def test_missing_secret_rejected(self, transport):
        settings = OTPSettings(provider="sms")

        with pytest.raises(OTPConfigurationError) as exc:
            SMSOTPProvider(settings, transport=transport)

        assert "APP_SIGNING_SECRET" in str(exc.value)

    def test_missing_credentials_rejected(self):
        settings = OTPSettings(provider="sms", signing_secret=TEST_SECRET)

        with pytest.raises(OTPConfigurationError) as exc:
            SMSOTPProvider(settings)

        assert "NETGSM_USER" in str(exc.value)

    def test_dry_run_needs_no_credentials(self):
        provider = SMSOTPProvider(OTPSettings(provider="sms", dry_run=True))
        assert provider.dry_run is True

    @pytest.mark.asyncio
    async def test_dry_run_ephemeral_secret(self):
        provider = SMSOTPProvider(OTPSettings(provider="sms", dry_run=True))

        sent = await provider.send_otp(TEST_PHONE, "login")
        result = await provider.verify_otp(TEST_PHONE, sent.data["test_code"], "login")

        assert result.success is True

    def test_default_transport_is_netgsm(self, sms_settings):
        provider = SMSOTPProvider(sms_settings)

        assert isinstance(provider.transport, NetgsmTransport)
        assert provider.transport.usercode == "user"

    @pytest.mark.asyncio
    async def test_health_check(self, provider):
        result = await provider.health_check()

        assert result.success is True
        assert result.data["status"] == "healthy"
        assert result.data["config"] == {
            "has_signing_secret": True,
            "has_transport_credentials": True,
        }

    @pytest.mark.asyncio
    async def test_health_check_unhealthy(self, provider, transport):
        transport.missing = ["NETGSM_PASS"]

        result = await provider.health_check()

        assert result.success is False
        assert result.error == OTPErrorKind.CONFIGURATION_ERROR

    @pytest.mark.asyncio
    async def test_close_closes_transport(self, provider, transport):
        await provider.close()
        assert transport.closed is True
