"""Rationing of asset generation for the basic tier."""

import threading
import time
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Callable


class RationingPolicy(ABC):
    """Decides whether an owner may spend an asset-generation run now."""

    @abstractmethod
    def allow(self, owner_id: str) -> bool:
        raise NotImplementedError


class AlwaysAllowPolicy(RationingPolicy):
    def allow(self, owner_id: str) -> bool:
        _ = owner_id
        return True


class QuotaRationingPolicy(RationingPolicy):
    """Sliding-window quota: at most `quota` granted runs per owner per window.

    `allow` records a grant when it returns True, so the same sequence of
    calls and clock readings always yields the same answers.
    """

    def __init__(
        self,
        quota: int,
        window_seconds: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._quota = max(0, quota)
        self._window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._grants: dict[str, deque[float]] = {}

    def allow(self, owner_id: str) -> bool:
        now = self._clock()
        with self._lock:
            grants = self._expire(owner_id, now)
            if len(grants) >= self._quota:
                return False
            grants.append(now)
            return True

    def remaining(self, owner_id: str) -> int:
        with self._lock:
            grants = self._expire(owner_id, self._clock())
            return max(0, self._quota - len(grants))

    def _expire(self, owner_id: str, now: float) -> deque[float]:
        grants = self._grants.setdefault(owner_id, deque())
        while grants and now - grants[0] >= self._window_seconds:
            grants.popleft()
        return grants
