"""Thread-local cache: the fast path for small allocations."""

from __future__ import annotations

import threading

from mahjongpool.centralcache import CentralCache, get_central_cache
from mahjongpool.sizeclass import (
    ALIGNMENT,
    MAX_BATCH_SIZE,
    MAX_BYTES,
    SYSTEM_THRESHOLD,
    get_index,
    index_to_size,
)

_BATCH_TIERS = ((32, 64), (64, 32), (128, 16), (256, 8), (512, 4), (1024, 2))


def batch_num_for(size: int) -> int:
    """Return how many blocks of ``size`` bytes to fetch from the central cache at once."""
    base = next((count for limit, count in _BATCH_TIERS if size <= limit), 0)
    max_num = max(1, MAX_BATCH_SIZE // size)
    return max(1, min(max_num, base))


class ThreadCache:
    """Free lists private to one thread, refilled from a central cache."""

    def __init__(self, central_cache: CentralCache | None = None):
        self.central_cache = (
            central_cache if central_cache is not None else get_central_cache()
        )
        self.memory = self.central_cache.memory
        self._heads: dict[int, int | None] = {}
        self._counts: dict[int, int] = {}

    def allocate(self, size: int) -> int:
        """Return the address of a block of at least ``size`` bytes."""
        if size < 0:
            raise ValueError(f"cannot allocate {size} bytes")
        if size == 0:
            size = ALIGNMENT
        if size > MAX_BYTES:
            return self.memory.map(size)

        index = get_index(size)
        head = self._heads.get(index)
        if head is not None:
            self._heads[index] = self.memory.read_pointer(head)
            self._counts[index] -= 1
            return head
        return self._fetch_from_central(index)

    def deallocate(self, address: int, size: int) -> None:
        """Give back the block at ``address`` that was allocated with ``size``."""
        if size > MAX_BYTES:
            self.memory.unmap(address)
            return

        index = get_index(size)
        self.memory.write_pointer(address, self._heads.get(index))
        self._heads[index] = address
        self._counts[index] = self._counts.get(index, 0) + 1
        if self._counts[index] > SYSTEM_THRESHOLD:
            self._return_to_central(index)

    def _fetch_from_central(self, index: int) -> int:
        batch = batch_num_for(index_to_size(index))
        start = self.central_cache.fetch_range(index, batch)
        if start is None:
            raise MemoryError(f"central cache has no blocks for size class {index}")
        rest = self.memory.read_pointer(start)
        if rest is not None:
            count = 0
            node: int | None = rest
            while node is not None:
                count += 1
                node = self.memory.read_pointer(node)
            self._heads[index] = rest
            self._counts[index] = count
        return start

    def _return_to_central(self, index: int) -> None:
        count = self._counts[index]
        if count <= 1:
            return
        keep = max(count // 4, 1)
        node = self._heads[index]
        for _ in range(keep - 1):
            node = self.memory.read_pointer(node)
        surplus = self.memory.read_pointer(node)
        self.memory.write_pointer(node, None)
        self._counts[index] = keep
        if surplus is not None:
            self.central_cache.release_range(surplus, count - keep, index)


_local = threading.local()


def get_thread_cache() -> ThreadCache:
    """Return the calling thread's cache, creating it on first use."""
    cache = getattr(_local, "cache", None)
    if cache is None:
        cache = ThreadCache(get_central_cache())
        _local.cache = cache
    return cache