# mahjongpool

A size-class memory pool built in three tiers over a simulated address space:

- a **thread cache** (`ThreadCache`, in `mahjongpool.threadcache`) keeps
  per-thread free lists, one for each 8-byte size class, and serves small
  allocations from them without taking any cache lock;
- a **central cache** (`CentralCache`, in `mahjongpool.centralcache`) holds
  shared free lists per size class, each guarded by its own lock, and hands
  blocks out in batches;
- a **page cache** (`PageCache`, in `mahjongpool.pagecache`) hands out runs of
  4 KiB pages, splits larger free runs and merges a freed run with the free run
  directly after it.

Free blocks are linked through their first eight bytes, each storing the
address of the next free block.

Requests up to 256 KiB are rounded up to a multiple of 8 bytes and served from
the caches; a request of 0 bytes gets an 8-byte block. Larger requests bypass
the caches: they are mapped as their own region and unmapped when freed. A
negative size raises `ValueError`. When a thread's free list for one size class
grows past 64 blocks, about three quarters of it go back to the central cache.

## Installation

```
pip install .
```

## Usage

```python
from mahjongpool.pool import new_memory, delete_memory, read, write

address = new_memory(128)
write(address, bytes(range(128)))
assert read(address, 128) == bytes(range(128))
delete_memory(address, 128)
```

`delete_memory` must be given the same size the block was allocated with.
Reading or writing outside mapped memory raises
`mahjongpool.pagecache.InvalidAddressError` (a `ValueError`).

Size classes can be inspected directly:

```python
from mahjongpool.sizeclass import round_up, get_index, index_to_size

round_up(13)        # 16
get_index(16)       # 1
index_to_size(1)    # 16
```

The tiers can also be built on their own, each on the one below it:

```python
from mahjongpool.pagecache import AddressSpace, PageCache
from mahjongpool.centralcache import CentralCache
from mahjongpool.threadcache import ThreadCache

memory = AddressSpace(capacity=1 << 20)   # mapping past the capacity raises MemoryError
cache = ThreadCache(CentralCache(PageCache(memory)))
address = cache.allocate(24)
memory.write(address, b"hello")
cache.deallocate(address, 24)
```

The shared instances used by `mahjongpool.pool` are returned by
`get_page_cache()`, `get_central_cache()` and `get_thread_cache()`; the last
gives each thread its own cache.

## Command line

```
mahjongpool [--threads N] [--allocs N] [--seed N]
```

Runs a short self-check of the pool: allocations of 8 bytes, 1 KiB and 1 MiB, a
write/read round trip, and several threads (default 4) each making a number of
random allocations (default 1000), freeing some at random along the way. Each
check prints `ok` or `FAILED`; the exit status is 1 if any check failed.

## Limitations

The memory is simulated. Addresses are integers into an `AddressSpace`, and
block contents can only be reached through `read`/`write`; the pool does not
hand out real machine memory and cannot back Python objects or buffers. Page
runs that the page cache hands out are never returned to the address space.

## Running the tests

```
pip install .[test]
pytest
```