"""Central cache: per-size-class free lists shared by every thread."""

from __future__ import annotations

import threading

from mahjongpool.pagecache import PAGE_SIZE, PageCache, get_page_cache
from mahjongpool.sizeclass import FREE_LIST_SIZE, index_to_size

PAGE_CACHE_PAGES = 8
"""Pages requested from the page cache when a size class runs dry."""


class CentralCache:
    """Shared free lists, one per size class, each guarded by its own lock.

    Blocks are linked through their first bytes: every free block stores the
    address of the next one, and a null link ends the list.
    """

    def __init__(self, page_cache: PageCache | None = None):
        self.page_cache = page_cache if page_cache is not None else get_page_cache()
        self.memory = self.page_cache.memory
        self._free: dict[int, int | None] = {}
        self._locks = [threading.Lock() for _ in range(FREE_LIST_SIZE)]

    def fetch_range(self, index: int, batch_num: int) -> int | None:
        """Detach up to ``batch_num`` linked blocks of size class ``index``.

        Returns the address of the first block, or None for an invalid index
        or an empty request.
        """
        if not 0 <= index < FREE_LIST_SIZE or batch_num <= 0:
            return None
        with self._locks[index]:
            head = self._free.get(index)
            if head is None:
                return self._carve(index, batch_num)

            last = head
            current: int | None = head
            taken = 0
            while current is not None and taken < batch_num:
                last = current
                current = self.memory.read_pointer(current)
                taken += 1
            self.memory.write_pointer(last, None)
            self._free[index] = current
            return head

    def release_range(self, start: int | None, count: int, index: int) -> None:
        """Push a chain of at most ``count`` blocks back onto list ``index``."""
        if start is None or not 0 <= index < FREE_LIST_SIZE:
            return
        with self._locks[index]:
            end = start
            walked = 1
            while walked < count and (following := self.memory.read_pointer(end)) is not None:
                end = following
                walked += 1
            self.memory.write_pointer(end, self._free.get(index))
            self._free[index] = start

    def _carve(self, index: int, batch_num: int) -> int:
        size = index_to_size(index)
        if size <= PAGE_CACHE_PAGES * PAGE_SIZE:
            page_num = PAGE_CACHE_PAGES
        else:
            page_num = (size + PAGE_SIZE - 1) // PAGE_SIZE
        start = self.page_cache.allocate_pages(page_num)

        total = page_num * PAGE_SIZE // size
        taken = min(batch_num, total)
        self._link(start, size, 0, taken)
        if total > taken:
            self._link(start, size, taken, total)
            self._free[index] = start + taken * size
        return start

    def _link(self, start: int, size: int, first: int, stop: int) -> None:
        for i in range(first, stop - 1):
            self.memory.write_pointer(start + i * size, start + (i + 1) * size)
        self.memory.write_pointer(start + (stop - 1) * size, None)


_central_cache: CentralCache | None = None
_central_cache_lock = threading.Lock()


def get_central_cache() -> CentralCache:
    """Return the process-wide central cache."""
    global _central_cache
    with _central_cache_lock:
        if _central_cache is None:
            _central_cache = CentralCache(get_page_cache())
        return _central_cache