"""
Unit tests for the slice cache and prefetcher (core.slice_cache).

Tests write-once insertion, stale-result suppression, failure handling and
worker clamping. Runnable with pytest or unittest.
"""

import threading
import unittest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from core.slice_cache import MAX_PREFETCH_WORKERS, SliceCache, SlicePrefetcher


class TestSliceCache(unittest.TestCase):
    """Tests for SliceCache."""

    def test_write_once(self):
        cache = SliceCache()
        first = object()
        self.assertIs(cache.put("a", first), first)
        self.assertIs(cache.put("a", object()), first)
        self.assertIs(cache.get("a"), first)
        self.assertEqual(len(cache), 1)

    def test_evict_and_clear(self):
        cache = SliceCache()
        cache.put("a", 1)
        cache.put("b", 2)
        self.assertTrue(cache.evict("a"))
        self.assertFalse(cache.evict("a"))
        self.assertNotIn("a", cache)
        cache.clear()
        self.assertEqual(cache.keys(), [])


class TestSlicePrefetcher(unittest.TestCase):
    """Tests for SlicePrefetcher."""

    def test_request_delivers_current(self):
        ready = threading.Event()
        delivered = []

        def on_ready(key, value):
            delivered.append((key, value))
            ready.set()

        prefetcher = SlicePrefetcher(lambda key: f"slice-{key}", on_ready=on_ready)
        try:
            prefetcher.request("k1")
            self.assertTrue(ready.wait(5.0))
            self.assertEqual(delivered, [("k1", "slice-k1")])
            self.assertEqual(prefetcher.cache.get("k1"), "slice-k1")
        finally:
            prefetcher.shutdown()

    def test_stale_result_cached_not_delivered(self):
        release = threading.Event()
        delivered = []

        def decoder(key):
            if key == "old":
                release.wait(5.0)
            return f"slice-{key}"

        prefetcher = SlicePrefetcher(decoder, max_workers=2,
                                     on_ready=lambda key, value: delivered.append(key))
        try:
            old_future = prefetcher.request("old")
            prefetcher.request("new")
            prefetcher.wait("new", timeout=5.0)
            release.set()
            old_future.result(timeout=5.0)
            prefetcher.shutdown()
            self.assertNotIn("old", delivered)
            self.assertIn("new", delivered)
            self.assertEqual(prefetcher.cache.get("old"), "slice-old")
        finally:
            release.set()
            prefetcher.shutdown()

    def test_cached_request_is_immediate(self):
        delivered = []
        prefetcher = SlicePrefetcher(lambda key: key, on_ready=lambda key, value: delivered.append(key))
        try:
            prefetcher.cache.put("k", "cached")
            future = prefetcher.request("k")
            self.assertTrue(future.done())
            self.assertEqual(future.result(), "cached")
            self.assertEqual(delivered, ["k"])
        finally:
            prefetcher.shutdown()

    def test_decode_failure_not_cached(self):
        def decoder(key):
            raise ValueError("bad pixel data")

        prefetcher = SlicePrefetcher(decoder)
        try:
            future = prefetcher.request("broken")
            with self.assertRaises(ValueError):
                future.result(timeout=5.0)
            self.assertNotIn("broken", prefetcher.cache)
        finally:
            prefetcher.shutdown()

    def test_prefetch_skips_cached(self):
        prefetcher = SlicePrefetcher(lambda key: key)
        try:
            prefetcher.cache.put("a", "a")
            futures = prefetcher.prefetch(["a", "b", "c"])
            self.assertEqual(len(futures), 2)
            self.assertEqual(prefetcher.wait("c", timeout=5.0), "c")
        finally:
            prefetcher.shutdown()

    def test_current_key_and_pending(self):
        release = threading.Event()
        prefetcher = SlicePrefetcher(lambda key: release.wait(5.0) and key, max_workers=1)
        try:
            prefetcher.request("a")
            prefetcher.prefetch(["b", "c"])
            self.assertEqual(prefetcher.current_key, "a")
            self.assertEqual(prefetcher.pending_count(), 3)
            self.assertGreaterEqual(prefetcher.cancel_pending(), 1)
            release.set()
            self.assertEqual(prefetcher.wait("a", timeout=5.0), "a")
        finally:
            release.set()
            prefetcher.shutdown()

    def test_worker_count_clamped(self):
        prefetcher = SlicePrefetcher(lambda key: key, max_workers=50)
        try:
            self.assertEqual(prefetcher.max_workers, MAX_PREFETCH_WORKERS)
        finally:
            prefetcher.shutdown()


if __name__ == "__main__":
    unittest.main()
