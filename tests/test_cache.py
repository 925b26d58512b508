import unittest

from linkpreview.cache import MemoryStore, MetadataCache, StoreError
from linkpreview.extractor import LinkMetadata


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class BrokenStore:
    def __init__(self) -> None:
        self.get_calls = 0
        self.put_calls = 0

    async def get(self, key):
        self.get_calls += 1
        raise StoreError("store unavailable")

    async def put(self, key, value, expiration_ttl):
        self.put_calls += 1
        raise StoreError("store unavailable")


class MemoryStoreTests(unittest.IsolatedAsyncioTestCase):
    async def test_entries_expire_after_ttl(self) -> None:
        clock = FakeClock()
        store = MemoryStore(clock=clock)

        await store.put("k", "v", expiration_ttl=3600)
        clock.now += 3599
        self.assertEqual("v", await store.get("k"))

        clock.now += 1
        self.assertIsNone(await store.get("k"))
        self.assertEqual(0, store.get_cache_stats()["total_entries"])

    async def test_rejects_non_positive_ttl(self) -> None:
        with self.assertRaises(StoreError):
            await MemoryStore().put("k", "v", expiration_ttl=0)

    async def test_stats(self) -> None:
        clock = FakeClock()
        store = MemoryStore(clock=clock)
        await store.put("a", "1", expiration_ttl=10)
        await store.put("b", "2", expiration_ttl=100)
        clock.now += 50

        stats = store.get_cache_stats()

        self.assertEqual(2, stats["total_entries"])
        self.assertEqual(1, stats["valid_entries"])
        self.assertEqual(1, stats["expired_entries"])

    async def test_put_drops_expired_entries(self) -> None:
        clock = FakeClock()
        store = MemoryStore(clock=clock)
        await store.put("old", "1", expiration_ttl=10)
        clock.now += 10

        await store.put("new", "2", expiration_ttl=10)

        self.assertEqual(1, store.get_cache_stats()["total_entries"])
        self.assertEqual("2", await store.get("new"))


class MetadataCacheTests(unittest.IsolatedAsyncioTestCase):
    async def test_round_trip_uses_prefixed_original_url(self) -> None:
        store = MemoryStore()
        cache = MetadataCache(store)
        url = "https://m.facebook.com/share/p/abc/"
        metadata = LinkMetadata(title="T", description="D", url=url)

        self.assertTrue(await cache.put(url, metadata))

        self.assertEqual("link_meta:" + url, cache.cache_key(url))
        self.assertIsNotNone(await store.get("link_meta:" + url))
        self.assertEqual(metadata, await cache.get(url))
        self.assertEqual(1, cache.hits)

    async def test_miss(self) -> None:
        cache = MetadataCache(MemoryStore())
        self.assertIsNone(await cache.get("https://www.facebook.com/x"))
        self.assertEqual(1, cache.misses)

    async def test_store_failures_degrade(self) -> None:
        store = BrokenStore()
        cache = MetadataCache(store)

        with self.assertLogs("linkpreview.cache", level="ERROR"):
            self.assertIsNone(await cache.get("https://www.facebook.com/x"))
        with self.assertLogs("linkpreview.cache", level="ERROR"):
            self.assertFalse(await cache.put("https://www.facebook.com/x", LinkMetadata(title="T")))

        self.assertEqual(2, cache.errors)

    async def test_unreadable_entry_is_a_miss(self) -> None:
        store = MemoryStore()
        cache = MetadataCache(store)
        await store.put(cache.cache_key("https://fb.com/x"), "{not json", expiration_ttl=60)

        self.assertIsNone(await cache.get("https://fb.com/x"))

    async def test_custom_ttl_is_passed_to_store(self) -> None:
        clock = FakeClock()
        cache = MetadataCache(MemoryStore(clock=clock), ttl_sec=10)
        await cache.put("https://fb.com/x", LinkMetadata(title="T"))

        clock.now += 11

        self.assertIsNone(await cache.get("https://fb.com/x"))


if __name__ == "__main__":
    unittest.main()
