"""
Shared fixtures for otp-core tests.
"""

import re
from typing import List, Optional, Tuple

import pytest

from otp_core.settings import OTPSettings
from otp_core.storage import InMemoryStore
from otp_core.transport import DispatchResult, SMSTransport

TEST_SECRET = "test-signing-secret"
TEST_PHONE = "+905551234567"


class FakeClock:
    """Controllable epoch-seconds clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTransport(SMSTransport):
    """Records dispatched messages instead of sending them."""

    name = "fake"

    def __init__(self, fail_with: Optional[str] = None, missing: Optional[List[str]] = None):
        self.fail_with = fail_with
        self.missing = missing or []
        self.sent: List[Tuple[str, str]] = []
        self.closed = False

    async def dispatch(self, phone_digits: str, message: str) -> DispatchResult:
        if self.fail_with:
            return DispatchResult(
                success=False,
                error_code=self.fail_with,
                error_message="Gateway rejected message",
            )
        self.sent.append((phone_digits, message))
        return DispatchResult(success=True, message_id=str(len(self.sent)))

    def missing_credentials(self) -> List[str]:
        return list(self.missing)

    async def close(self) -> None:
        self.closed = True

    @property
    def last_code(self) -> str:
        _, message = self.sent[-1]
        return re.search(r"code: (\d+)", message).group(1)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def sms_settings() -> OTPSettings:
    """Live (non dry-run) settings with generous send limits."""
    return OTPSettings(
        provider="sms",
        signing_secret=TEST_SECRET,
        netgsm_usercode="user",
        netgsm_password="pass",
        netgsm_msgheader="HEADER",
        rate_per_minute=10,
        rate_per_hour=20,
        rate_per_day=50,
        resend_cooldown_seconds=0,
    )


@pytest.fixture
def mock_settings() -> OTPSettings:
    return OTPSettings(provider="mock")
