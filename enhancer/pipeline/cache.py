import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum


class CacheKind(str, Enum):
    ANALYSIS = "analysis"
    PLAN = "plan"
    ASSETS = "assets"


@dataclass(frozen=True)
class CacheEntry:
    data: object
    timestamp: float


class StageCache:
    """Per-document stage results with a freshness window.

    Reads and writes go straight to a dict. Two runs for the same document
    may both miss and both write; the later write wins, which is fine because
    both values come from the same input.
    """

    def __init__(
        self,
        ttl_seconds: float = 3600,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[tuple[str, CacheKind], CacheEntry] = {}

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    def get(self, document_id: str, kind: CacheKind) -> CacheEntry | None:
        """Return the entry when it is younger than the TTL, else None."""
        entry = self._entries.get((document_id, kind))
        if entry is None:
            return None
        if self._clock() - entry.timestamp >= self._ttl_seconds:
            return None
        return entry

    def set(self, document_id: str, kind: CacheKind, data: object) -> CacheEntry:
        entry = CacheEntry(data=data, timestamp=self._clock())
        self._entries[(document_id, kind)] = entry
        return entry

    def invalidate(self, document_id: str, kind: CacheKind | None = None) -> None:
        kinds = [kind] if kind is not None else list(CacheKind)
        for item in kinds:
            self._entries.pop((document_id, item), None)

    def for_document(self, document_id: str) -> "DocumentCache":
        return DocumentCache(self, document_id)


class DocumentCache:
    """View of `StageCache` bound to one document."""

    def __init__(self, cache: StageCache, document_id: str) -> None:
        self._cache = cache
        self._document_id = document_id

    def get(self, kind: CacheKind) -> CacheEntry | None:
        return self._cache.get(self._document_id, kind)

    def set(self, kind: CacheKind, data: object) -> CacheEntry:
        return self._cache.set(self._document_id, kind, data)
