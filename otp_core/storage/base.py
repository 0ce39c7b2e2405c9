"""
Key-Value Store Interface
=========================
Storage seam for OTP records and rate-limit counters.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

T = TypeVar("T")

Value = Dict[str, Any]

# Receives the current value (None if absent) and returns
# (new value or None to delete, result handed back to the caller)
Mutation = Callable[[Optional[Value]], Tuple[Optional[Value], T]]


class KeyValueStore(ABC):
    """
    Async keyed store holding JSON-serializable dicts.

    ``update`` is the atomic read-modify-write primitive. Implementations
    backed by a shared cache must make it a compare-and-swap or a
    transaction so concurrent callers cannot interleave.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[Value]:
        """Return a copy of the stored value, or None."""

    @abstractmethod
    async def set(self, key: str, value: Value) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete ``key``. Returns True if it existed."""

    @abstractmethod
    async def scan(self, prefix: str) -> List[Tuple[str, Value]]:
        """Return a snapshot of all (key, value) pairs whose key starts with ``prefix``."""

    @abstractmethod
    async def update(self, key: str, mutation: Mutation[T]) -> T:
        """Atomically apply ``mutation`` to the value under ``key``."""
