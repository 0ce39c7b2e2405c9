"""
Windowed Rate Limiter
=====================
Minute/hour/day fixed-window send limits per phone number.
"""

import time
from typing import Callable, Dict, Optional, Tuple

import structlog

from ..messaging.phone_utils import mask_phone
from ..storage.base import KeyValueStore, Value
from .models import RateLimitCounter, RateLimitInfo, WINDOWS

logger = structlog.get_logger(__name__)


class WindowedRateLimiter:
    """
    Three fixed windows (minute, hour, day) checked in that order.

    Counters live in a ``KeyValueStore`` and are created lazily on the
    first check for a phone number.
    """

    def __init__(
        self,
        store: KeyValueStore,
        per_minute: int = 1,
        per_hour: int = 3,
        per_day: int = 5,
        clock: Callable[[], float] = time.time,
        prefix: str = "otp",
    ):
        """
        Args:
            store: Backing store
            per_minute: Sends allowed per minute
            per_hour: Sends allowed per hour
            per_day: Sends allowed per day
            clock: Returns current epoch seconds
            prefix: Key namespace
        """
        self.store = store
        self.limits: Dict[str, int] = {
            "minute": per_minute,
            "hour": per_hour,
            "day": per_day,
        }
        self.clock = clock
        self.prefix = prefix

    def get_key(self, phone: str) -> str:
        """Generate a rate limit key."""
        return f"ratelimit:{self.prefix}:{phone}"

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def _evaluate(self, counter: RateLimitCounter) -> RateLimitInfo:
        for name, _ in WINDOWS:
            window = getattr(counter, name)
            limit = self.limits[name]
            if window.count >= limit:
                return RateLimitInfo(
                    allowed=False,
                    window=name,
                    limit=limit,
                    reset_time=window.reset_time,
                )
        return RateLimitInfo(allowed=True)

    def _load(self, raw: Optional[Value], now_ms: int) -> RateLimitCounter:
        counter = RateLimitCounter.from_dict(raw) if raw else RateLimitCounter.fresh(now_ms)
        counter.refresh(now_ms)
        return counter

    async def check(self, phone: str) -> RateLimitInfo:
        """
        Check whether another send is allowed, without consuming it.

        Initializes counters and resets stale windows as a side effect.
        """
        now_ms = self._now_ms()

        def mutation(raw: Optional[Value]) -> Tuple[Value, RateLimitInfo]:
            counter = self._load(raw, now_ms)
            return counter.to_dict(), self._evaluate(counter)

        return await self.store.update(self.get_key(phone), mutation)

    async def increment(self, phone: str) -> None:
        """Count one send in all three windows."""
        now_ms = self._now_ms()

        def mutation(raw: Optional[Value]) -> Tuple[Value, None]:
            counter = self._load(raw, now_ms)
            for name, _ in WINDOWS:
                getattr(counter, name).count += 1
            return counter.to_dict(), None

        await self.store.update(self.get_key(phone), mutation)

    async def reserve(self, phone: str) -> RateLimitInfo:
        """
        Check and consume one send in a single store update.

        Returns:
            RateLimitInfo; counters are only incremented when allowed
        """
        now_ms = self._now_ms()

        def mutation(raw: Optional[Value]) -> Tuple[Value, RateLimitInfo]:
            counter = self._load(raw, now_ms)
            info = self._evaluate(counter)
            if info.allowed:
                for name, _ in WINDOWS:
                    getattr(counter, name).count += 1
            return counter.to_dict(), info

        info = await self.store.update(self.get_key(phone), mutation)
        if not info.allowed:
            logger.warning(
                "Rate limit exceeded",
                phone=mask_phone(phone),
                window=info.window,
                reset_time=info.reset_time,
            )
        return info

    async def release(self, phone: str) -> None:
        """Give back a reservation after a failed send."""

        def mutation(raw: Optional[Value]) -> Tuple[Optional[Value], None]:
            if raw is None:
                return None, None
            counter = RateLimitCounter.from_dict(raw)
            for name, _ in WINDOWS:
                window = getattr(counter, name)
                window.count = max(0, window.count - 1)
            return counter.to_dict(), None

        await self.store.update(self.get_key(phone), mutation)

    async def cleanup(self) -> int:
        """
        Drop counters whose day window has passed.

        Returns:
            Number of counters removed
        """
        now_ms = self._now_ms()
        removed = 0
        for key, raw in await self.store.scan(self.get_key("")):
            if now_ms > raw["day"]["reset_time"]:
                if await self.store.delete(key):
                    removed += 1
        return removed
