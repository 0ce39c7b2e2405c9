"""
In-Memory Store
===============
Process-local ``KeyValueStore`` for development, tests and single-process use.
"""

import copy
from typing import Dict, List, Optional, Tuple

from .base import KeyValueStore, Mutation, T, Value


class InMemoryStore(KeyValueStore):
    """
    Dict-backed store.

    Values are deep-copied in and out so callers never alias stored state.
    ``update`` runs the mutation without awaiting, which makes it atomic
    within one event loop. Not shared across processes.
    """

    def __init__(self):
        self._data: Dict[str, Value] = {}

    async def get(self, key: str) -> Optional[Value]:
        value = self._data.get(key)
        return copy.deepcopy(value) if value is not None else None

    async def set(self, key: str, value: Value) -> None:
        self._data[key] = copy.deepcopy(value)

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    async def scan(self, prefix: str) -> List[Tuple[str, Value]]:
        return [
            (key, copy.deepcopy(value))
            for key, value in self._data.items()
            if key.startswith(prefix)
        ]

    async def update(self, key: str, mutation: Mutation[T]) -> T:
        current = self._data.get(key)
        new_value, result = mutation(copy.deepcopy(current) if current is not None else None)
        if new_value is None:
            self._data.pop(key, None)
        else:
            self._data[key] = copy.deepcopy(new_value)
        return result

    def __len__(self) -> int:
        return len(self._data)
