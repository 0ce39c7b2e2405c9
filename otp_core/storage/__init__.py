"""
Storage
=======
Keyed storage for OTP records and rate-limit counters.
"""

from .base import KeyValueStore, Mutation
from .in_memory import InMemoryStore

__all__ = [
    "KeyValueStore",
    "Mutation",
    "InMemoryStore",
]
