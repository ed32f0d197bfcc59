"""Simulated address space and the page-level cache built on top of it."""

from __future__ import annotations

import bisect
import threading
from dataclasses import dataclass

from mahjongpool.sizeclass import POINTER_SIZE

PAGE_SIZE = 4096


class InvalidAddressError(ValueError):
    """Raised when memory outside every mapped region is touched."""


class AddressSpace:
    """A flat, zero-initialised address space of mapped regions.

    Addresses are plain integers; zero is never mapped and stands for a null
    pointer.
    """

    BASE = 0x10000

    def __init__(self, capacity: int | None = None):
        self._regions: dict[int, bytearray] = {}
        self._starts: list[int] = []
        self._next = self.BASE
        self._capacity = capacity
        self._used = 0
        self._lock = threading.Lock()

    @property
    def mapped_bytes(self) -> int:
        """Total size of all regions currently mapped."""
        return self._used

    def map(self, size: int) -> int:
        """Map a new zero-filled region of ``size`` bytes and return its address."""
        if size <= 0:
            raise MemoryError(f"cannot map a region of {size} bytes")
        with self._lock:
            if self._capacity is not None and self._used + size > self._capacity:
                raise MemoryError(f"address space exhausted mapping {size} bytes")
            address = self._next
            span = (size + PAGE_SIZE - 1) // PAGE_SIZE * PAGE_SIZE
            # Leave an unmapped guard page between regions.
            self._next += span + PAGE_SIZE
            self._regions[address] = bytearray(size)
            bisect.insort(self._starts, address)
            self._used += size
            return address

    def unmap(self, address: int) -> None:
        """Release the region that starts at ``address``."""
        with self._lock:
            region = self._regions.pop(address, None)
            if region is None:
                raise InvalidAddressError(f"no region starts at {address:#x}")
            self._starts.remove(address)
            self._used -= len(region)

    def _locate(self, address: int, size: int) -> tuple[bytearray, int]:
        pos = bisect.bisect_right(self._starts, address) - 1
        if pos >= 0:
            start = self._starts[pos]
            region = self._regions[start]
            offset = address - start
            if size >= 0 and offset + size <= len(region):
                return region, offset
        raise InvalidAddressError(
            f"access of {size} bytes at {address:#x} is outside mapped memory"
        )

    def read(self, address: int, size: int) -> bytes:
        """Return ``size`` bytes starting at ``address``."""
        with self._lock:
            region, offset = self._locate(address, size)
            return bytes(region[offset:offset + size])

    def write(self, address: int, data: bytes) -> None:
        """Store ``data`` starting at ``address``."""
        with self._lock:
            region, offset = self._locate(address, len(data))
            region[offset:offset + len(data)] = data

    def read_pointer(self, address: int) -> int | None:
        """Read the link stored at ``address``; a null link reads as None."""
        value = int.from_bytes(self.read(address, POINTER_SIZE), "little")
        return value or None

    def write_pointer(self, address: int, value: int | None) -> None:
        """Store a link at ``address``; None stores a null link."""
        self.write(address, (value or 0).to_bytes(POINTER_SIZE, "little"))


@dataclass(eq=False)
class _Span:
    address: int
    page_num: int


class PageCache:
    """Hands out runs of pages, reusing and coalescing freed runs."""

    PAGE_SIZE = PAGE_SIZE

    def __init__(self, memory: AddressSpace | None = None):
        self.memory = memory if memory is not None else AddressSpace()
        # Free spans by page count; the end of each list is its head.
        self._free: dict[int, list[_Span]] = {}
        # Spans handed out or known to the cache, by start address.
        self._work: dict[int, _Span] = {}
        self._lock = threading.Lock()

    def allocate_pages(self, page_num: int) -> int:
        """Return the address of ``page_num`` contiguous pages."""
        with self._lock:
            fitting = [count for count in self._free if count >= page_num]
            if fitting:
                count = min(fitting)
                spans = self._free[count]
                span = spans.pop()
                if not spans:
                    del self._free[count]
                if span.page_num > page_num:
                    rest = _Span(
                        span.address + page_num * PAGE_SIZE,
                        span.page_num - page_num,
                    )
                    self._free.setdefault(rest.page_num, []).append(rest)
                    span.page_num = page_num
                self._work[span.address] = span
                return span.address

            address = self.memory.map(page_num * PAGE_SIZE)
            self._work[address] = _Span(address, page_num)
            return address

    def free_pages(self, address: int, page_num: int) -> None:
        """Give back the pages at ``address``; unknown addresses are ignored."""
        with self._lock:
            span = self._work.get(address)
            if span is None:
                return

            next_address = address + page_num * PAGE_SIZE
            neighbour = self._work.get(next_address)
            if neighbour is not None:
                spans = self._free.get(neighbour.page_num, [])
                if any(item is neighbour for item in spans):
                    spans.remove(neighbour)
                    if not spans:
                        del self._free[neighbour.page_num]
                    span.page_num += neighbour.page_num
                    del self._work[next_address]

            self._free.setdefault(span.page_num, []).append(span)


_page_cache: PageCache | None = None
_page_cache_lock = threading.Lock()


def get_page_cache() -> PageCache:
    """Return the process-wide page cache."""
    global _page_cache
    with _page_cache_lock:
        if _page_cache is None:
            _page_cache = PageCache(AddressSpace())
        return _page_cache