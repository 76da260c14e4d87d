"""
Slice Cache and Prefetcher

This module provides a write-once cache of decoded slices and a bounded
background prefetcher that fills it.

The cache never replaces an entry: the first decode result stored for a key
wins, so readers can hold on to a slice without locking. Prefetch tasks run
on a small thread pool; a completion callback is delivered only if the key
is still the one the viewer asked for last (stale results are cached but not
delivered).

Inputs:
    - Slice keys (e.g. SOPInstanceUID)
    - A decoder callable key -> Slice

Outputs:
    - Cached slices, futures, ready callbacks

Requirements:
    - concurrent.futures for the worker pool
    - threading for cache insertion lock
"""

import threading
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from typing import Callable, Dict, Hashable, Iterable, List, Optional

from utils.debug_log import debug_log


MIN_PREFETCH_WORKERS = 1
MAX_PREFETCH_WORKERS = 8
DEFAULT_PREFETCH_WORKERS = 4


class SliceCache:
    """
    Thread-safe, write-once mapping from slice key to decoded slice.
    """

    def __init__(self):
        self._entries: Dict[Hashable, object] = {}
        self._lock = threading.Lock()

    def put(self, key: Hashable, slice_) -> object:
        """
        Insert slice_ under key unless the key is already present.

        Returns:
            The cached slice for key (the existing one if already present)
        """
        with self._lock:
            existing = self._entries.get(key)
            if existing is not None:
                return existing
            self._entries[key] = slice_
            return slice_

    def get(self, key: Hashable) -> Optional[object]:
        with self._lock:
            return self._entries.get(key)

    def evict(self, key: Hashable) -> bool:
        """Remove key from the cache. Returns True if it was present."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def keys(self) -> List[Hashable]:
        with self._lock:
            return list(self._entries.keys())

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class SlicePrefetcher:
    """
    Decodes slices on a bounded worker pool and stores them in a SliceCache.

    The viewer calls request(key) for the slice it wants to show now and
    prefetch(keys) for neighbours. on_ready(key, slice_) is called (from the
    worker thread) only when key is still the current request.
    """

    def __init__(self, decoder: Callable[[Hashable], object], cache: Optional[SliceCache] = None,
                 max_workers: int = DEFAULT_PREFETCH_WORKERS,
                 on_ready: Optional[Callable[[Hashable, object], None]] = None):
        """
        Initialize the prefetcher.

        Args:
            decoder: Callable producing a decoded slice for a key
            cache: Cache to fill (a new one is created if None)
            max_workers: Number of concurrent decodes, clamped to [1, 8]
            on_ready: Callback for the current request's slice
        """
        self.decoder = decoder
        self.cache = cache if cache is not None else SliceCache()
        self.max_workers = max(MIN_PREFETCH_WORKERS, min(MAX_PREFETCH_WORKERS, int(max_workers)))
        self.on_ready = on_ready
        self._executor = ThreadPoolExecutor(max_workers=self.max_workers,
                                            thread_name_prefix="slice-prefetch")
        self._pending: Dict[Hashable, Future] = {}
        self._pending_lock = threading.Lock()
        self._current_key: Optional[Hashable] = None

    @classmethod
    def from_config(cls, decoder: Callable[[Hashable], object], config_manager,
                    cache: Optional[SliceCache] = None,
                    on_ready: Optional[Callable[[Hashable, object], None]] = None) -> 'SlicePrefetcher':
        return cls(decoder, cache, config_manager.get_prefetch_workers(), on_ready)

    @property
    def current_key(self) -> Optional[Hashable]:
        return self._current_key

    def _decode(self, key: Hashable):
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        return self.cache.put(key, self.decoder(key))

    def _submit(self, key: Hashable) -> Future:
        with self._pending_lock:
            future = self._pending.get(key)
            if future is not None:
                return future
            future = self._executor.submit(self._decode, key)
            self._pending[key] = future
        future.add_done_callback(lambda f, k=key: self._on_done(k, f))
        return future

    def _on_done(self, key: Hashable, future: Future) -> None:
        with self._pending_lock:
            if self._pending.get(key) is future:
                del self._pending[key]
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            print(f"[PREFETCH] Failed to decode slice {key}: {error}")
            return
        if key != self._current_key:
            debug_log("slice_cache.py:_on_done", "Stale decode ignored",
                      {"key": str(key), "current": str(self._current_key)})
            return
        if self.on_ready:
            self.on_ready(key, future.result())

    def request(self, key: Hashable) -> Future:
        """
        Make key the current slice and decode it if needed.

        Returns:
            Future resolving to the decoded slice
        """
        self._current_key = key
        cached = self.cache.get(key)
        if cached is not None:
            future: Future = Future()
            future.set_result(cached)
            if self.on_ready:
                self.on_ready(key, cached)
            return future
        return self._submit(key)

    def prefetch(self, keys: Iterable[Hashable]) -> List[Future]:
        """Queue background decodes for keys not yet cached."""
        return [self._submit(key) for key in keys if key not in self.cache]

    def cancel_pending(self) -> int:
        """
        Cancel queued decodes that have not started. Running decodes finish and
        are cached. Returns the number of cancelled tasks.
        """
        with self._pending_lock:
            futures = list(self._pending.values())
        return sum(1 for future in futures if future.cancel())

    def pending_count(self) -> int:
        with self._pending_lock:
            return len(self._pending)

    def wait(self, key: Hashable, timeout: Optional[float] = None):
        """Block until key is decoded; returns the slice (None if the task was cancelled)."""
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        with self._pending_lock:
            future = self._pending.get(key)
        if future is None:
            future = self._submit(key)
        try:
            return future.result(timeout=timeout)
        except CancelledError:
            return None

    def shutdown(self, wait: bool = True) -> None:
        self.cancel_pending()
        self._executor.shutdown(wait=wait)
