"""Keyed canvas stores for guest sessions.

Guest canvases live in an in-memory store keyed by ``(session_id,
canvas_id)``.  Capacity is enforced by an eviction policy object so the
policy can be swapped or tested in isolation.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Callable, NamedTuple, Protocol

from .constants import GUEST_STORE_LIMIT
from .model import Canvas

log = logging.getLogger(__name__)


class StoreKey(NamedTuple):
    session_id: str
    canvas_id: str


class CanvasStore(Protocol):
    def get(self, key: StoreKey) -> Canvas | None: ...
    def put(self, key: StoreKey, canvas: Canvas) -> None: ...
    def delete(self, key: StoreKey) -> bool: ...
    def evict(self) -> list[StoreKey]: ...


class EvictionPolicy(Protocol):
    def victims(self, touched: dict[StoreKey, float]) -> list[StoreKey]: ...


@dataclass
class LruEvictionPolicy:
    """Drop the least-recently-updated keys once *limit* is exceeded."""

    limit: int = GUEST_STORE_LIMIT

    def victims(self, touched: dict[StoreKey, float]) -> list[StoreKey]:
        excess = len(touched) - max(0, self.limit)
        if excess <= 0:
            return []
        ordered = sorted(touched, key=lambda k: touched[k])
        return ordered[:excess]


class MemoryCanvasStore:
    """In-memory :class:`CanvasStore` holding independent canvas copies."""

    def __init__(
        self,
        policy: EvictionPolicy | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._policy = policy or LruEvictionPolicy()
        # Monotonic tick by default so ordering is stable within one process
        self._clock = clock or itertools.count().__next__
        self._canvases: dict[StoreKey, Canvas] = {}
        self._touched: dict[StoreKey, float] = {}

    def __len__(self) -> int:
        return len(self._canvases)

    def __contains__(self, key: StoreKey) -> bool:
        return key in self._canvases

    def keys(self) -> list[StoreKey]:
        return list(self._canvases)

    def get(self, key: StoreKey) -> Canvas | None:
        canvas = self._canvases.get(key)
        return canvas.copy() if canvas is not None else None

    def put(self, key: StoreKey, canvas: Canvas) -> None:
        self._canvases[key] = canvas.copy()
        self._touched[key] = self._clock()
        self.evict()

    def delete(self, key: StoreKey) -> bool:
        self._touched.pop(key, None)
        return self._canvases.pop(key, None) is not None

    def evict(self) -> list[StoreKey]:
        victims = self._policy.victims(dict(self._touched))
        for key in victims:
            self.delete(key)
        if victims:
            log.debug("Evicted %d guest canvases", len(victims))
        return victims
