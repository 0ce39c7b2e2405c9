"""
Rate Limit Models
=================
Per-phone send counters and check results.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Tuple

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS

# Evaluation order matters: the first exhausted window is reported
WINDOWS: Tuple[Tuple[str, int], ...] = (
    ("minute", MINUTE_MS),
    ("hour", HOUR_MS),
    ("day", DAY_MS),
)


@dataclass
class RateLimitWindow:
    """A fixed window counter."""
    count: int
    reset_time: int  # epoch ms


@dataclass
class RateLimitCounter:
    """Minute/hour/day counters for one phone number."""
    minute: RateLimitWindow
    hour: RateLimitWindow
    day: RateLimitWindow

    @classmethod
    def fresh(cls, now_ms: int) -> "RateLimitCounter":
        return cls(**{
            name: RateLimitWindow(count=0, reset_time=now_ms + duration)
            for name, duration in WINDOWS
        })

    def refresh(self, now_ms: int) -> None:
        """Reset every window whose reset time has passed."""
        for name, duration in WINDOWS:
            window: RateLimitWindow = getattr(self, name)
            if now_ms > window.reset_time:
                setattr(self, name, RateLimitWindow(count=0, reset_time=now_ms + duration))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RateLimitCounter":
        return cls(**{name: RateLimitWindow(**data[name]) for name, _ in WINDOWS})


@dataclass
class RateLimitInfo:
    """Rate limit check result."""
    allowed: bool
    window: Optional[str] = None  # first exhausted window
    limit: Optional[int] = None
    reset_time: Optional[int] = None  # epoch ms

    @property
    def reason(self) -> Optional[str]:
        if self.allowed:
            return None
        return f"Per-{self.window} limit of {self.limit} reached"
