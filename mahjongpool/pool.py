"""Public allocation interface and a self-check command."""

from __future__ import annotations

import argparse
import random
import threading

from mahjongpool.pagecache import get_page_cache
from mahjongpool.threadcache import get_thread_cache


def new_memory(size: int) -> int:
    """Allocate ``size`` bytes and return the block's address."""
    return get_thread_cache().allocate(size)


def delete_memory(address: int, size: int) -> None:
    """Free a block obtained from new_memory with the same ``size``."""
    get_thread_cache().deallocate(address, size)


def read(address: int, size: int) -> bytes:
    """Read ``size`` bytes of pool memory at ``address``."""
    return get_page_cache().memory.read(address, size)


def write(address: int, data: bytes) -> None:
    """Write ``data`` into pool memory at ``address``."""
    get_page_cache().memory.write(address, data)


class _CheckFailed(Exception):
    pass


def _check_basic_allocation() -> None:
    for size in (8, 1024, 1024 * 1024):
        address = new_memory(size)
        if not address:
            raise _CheckFailed(f"allocation of {size} bytes failed")
        delete_memory(address, size)


def _check_memory_write() -> None:
    size = 128
    address = new_memory(size)
    pattern = bytes(i % 256 for i in range(size))
    write(address, pattern)
    if read(address, size) != pattern:
        raise _CheckFailed("data read back differs from data written")
    delete_memory(address, size)


def _check_multithreading(threads: int, allocs: int, seed: int) -> None:
    errors: list[str] = []
    stop = threading.Event()

    def worker(rng: random.Random) -> None:
        held: list[tuple[int, int]] = []
        try:
            for _ in range(allocs):
                if stop.is_set():
                    break
                size = (rng.randrange(256) + 1) * 8
                held.append((new_memory(size), size))
                if rng.randrange(2):
                    delete_memory(*held.pop(rng.randrange(len(held))))
            for address, size in held:
                delete_memory(address, size)
        except Exception as exc:  # reported by the check
            errors.append(f"thread error: {exc}")
            stop.set()

    workers = [
        threading.Thread(target=worker, args=(random.Random(seed + i),))
        for i in range(threads)
    ]
    for thread in workers:
        thread.start()
    for thread in workers:
        thread.join()
    if errors:
        raise _CheckFailed("; ".join(errors))


def main(argv: list[str] | None = None) -> int:
    """Run the pool's self-checks; return 0 when all pass."""
    parser = argparse.ArgumentParser(description="Exercise the memory pool.")
    parser.add_argument("--threads", type=int, default=4)
    parser.add_argument("--allocs", type=int, default=1000)
    parser.add_argument("--seed", type=int, default=0)
    args = parser.parse_args(argv)

    checks = [
        ("basic allocation", _check_basic_allocation),
        ("memory write", _check_memory_write),
        (
            "multithreading",
            lambda: _check_multithreading(args.threads, args.allocs, args.seed),
        ),
    ]
    failed = False
    for name, check in checks:
        try:
            check()
        except (_CheckFailed, MemoryError) as exc:
            print(f"{name}: FAILED ({exc})")
            failed = True
        else:
            print(f"{name}: ok")
    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())