from enhancer.pipeline.cache import CacheKind, StageCache


class _Clock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestStageCache:
    def test_fresh_entry_is_returned(self) -> None:
        clock = _Clock()
        cache = StageCache(ttl_seconds=60, clock=clock)
        cache.set("doc-1", CacheKind.ANALYSIS, {"score": 5})

        clock.now += 59
        entry = cache.get("doc-1", CacheKind.ANALYSIS)

        assert entry is not None
        assert entry.data == {"score": 5}
        assert entry.timestamp == 1000.0

    def test_expired_entry_is_a_miss(self) -> None:
        clock = _Clock()
        cache = StageCache(ttl_seconds=60, clock=clock)
        cache.set("doc-1", CacheKind.ANALYSIS, "x")

        clock.now += 60

        assert cache.get("doc-1", CacheKind.ANALYSIS) is None

    def test_kinds_are_separate(self) -> None:
        cache = StageCache()
        cache.set("doc-1", CacheKind.PLAN, "plan")

        assert cache.get("doc-1", CacheKind.ASSETS) is None
        assert cache.get("doc-2", CacheKind.PLAN) is None

    def test_later_write_wins(self) -> None:
        cache = StageCache()
        cache.set("doc-1", CacheKind.PLAN, "first")
        cache.set("doc-1", CacheKind.PLAN, "second")

        assert cache.get("doc-1", CacheKind.PLAN).data == "second"  # type: ignore[union-attr]

    def test_invalidate_single_kind(self) -> None:
        cache = StageCache()
        cache.set("doc-1", CacheKind.PLAN, "plan")
        cache.set("doc-1", CacheKind.ANALYSIS, "analysis")

        cache.invalidate("doc-1", CacheKind.PLAN)

        assert cache.get("doc-1", CacheKind.PLAN) is None
        assert cache.get("doc-1", CacheKind.ANALYSIS) is not None

    def test_invalidate_whole_document(self) -> None:
        cache = StageCache()
        for kind in CacheKind:
            cache.set("doc-1", kind, kind.value)

        cache.invalidate("doc-1")

        assert all(cache.get("doc-1", kind) is None for kind in CacheKind)

    def test_document_view(self) -> None:
        cache = StageCache()
        view = cache.for_document("doc-1")

        view.set(CacheKind.ASSETS, ["a"])

        assert cache.get("doc-1", CacheKind.ASSETS).data == ["a"]  # type: ignore[union-attr]
        assert view.get(CacheKind.ASSETS) is not None
