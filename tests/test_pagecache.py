import pytest

from mahjongpool.pagecache import (
    PAGE_SIZE,
    AddressSpace,
    InvalidAddressError,
    PageCache,
    get_page_cache,
)


@pytest.fixture
def cache():
    return PageCache(AddressSpace())


def test_pages_are_four_kilobytes(cache):
    address = cache.allocate_pages(2)
    assert cache.memory.mapped_bytes == 2 * 4096
    cache.free_pages(address, 2)
    first = cache.allocate_pages(1)
    second = cache.allocate_pages(1)
    assert first == address
    assert second == address + 4096


def test_map_is_zero_filled():
    memory = AddressSpace()
    address = memory.map(64)
    assert memory.read(address, 64) == bytes(64)


def test_write_read_round_trip():
    memory = AddressSpace()
    address = memory.map(128)
    payload = bytes(i % 256 for i in range(128))
    memory.write(address, payload)
    assert memory.read(address, 128) == payload


def test_pointer_round_trip():
    memory = AddressSpace()
    address = memory.map(32)
    memory.write_pointer(address + 8, address + 16)
    assert memory.read_pointer(address + 8) == address + 16
    memory.write_pointer(address + 8, None)
    assert memory.read_pointer(address + 8) is None


def test_regions_do_not_overlap():
    memory = AddressSpace()
    first = memory.map(PAGE_SIZE)
    second = memory.map(PAGE_SIZE)
    assert abs(second - first) >= PAGE_SIZE


def test_access_outside_region_raises():
    memory = AddressSpace()
    address = memory.map(16)
    with pytest.raises(InvalidAddressError):
        memory.read(address + 10, 8)
    with pytest.raises(InvalidAddressError):
        memory.write(0, b"x")


def test_unmap_releases_region():
    memory = AddressSpace()
    address = memory.map(16)
    memory.unmap(address)
    assert memory.mapped_bytes == 0
    with pytest.raises(InvalidAddressError):
        memory.read(address, 1)
    with pytest.raises(InvalidAddressError):
        memory.unmap(address)


def test_capacity_exhaustion_raises_memory_error():
    cache = PageCache(AddressSpace(capacity=2 * PAGE_SIZE))
    cache.allocate_pages(2)
    with pytest.raises(MemoryError):
        cache.allocate_pages(1)


def test_zero_size_map_raises():
    with pytest.raises(MemoryError):
        AddressSpace().map(0)


def test_allocated_pages_are_usable(cache):
    address = cache.allocate_pages(2)
    end = address + 2 * PAGE_SIZE - 8
    cache.memory.write_pointer(end, address)
    assert cache.memory.read_pointer(end) == address


def test_freed_span_is_reused(cache):
    address = cache.allocate_pages(4)
    cache.free_pages(address, 4)
    assert cache.allocate_pages(4) == address


def test_larger_span_is_split(cache):
    address = cache.allocate_pages(8)
    cache.free_pages(address, 8)
    assert cache.allocate_pages(3) == address
    assert cache.allocate_pages(5) == address + 3 * PAGE_SIZE


def test_adjacent_free_spans_coalesce(cache):
    address = cache.allocate_pages(8)
    cache.free_pages(address, 8)
    head = cache.allocate_pages(3)
    tail = cache.allocate_pages(5)
    cache.free_pages(tail, 5)
    cache.free_pages(head, 3)
    mapped = cache.memory.mapped_bytes
    assert cache.allocate_pages(8) == address
    assert cache.memory.mapped_bytes == mapped


def test_unknown_address_is_ignored(cache):
    address = cache.allocate_pages(1)
    cache.free_pages(address + PAGE_SIZE * 100, 1)
    second = cache.allocate_pages(1)
    assert second != address
    assert cache.memory.mapped_bytes == 2 * PAGE_SIZE


def test_get_page_cache_is_shared():
    address = get_page_cache().allocate_pages(1)
    get_page_cache().memory.write(address, b"shared")
    assert get_page_cache().memory.read(address, 6) == b"shared"