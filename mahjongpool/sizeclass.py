"""Size classes: alignment rules and free-list indexing for small blocks."""

ALIGNMENT = 8
"""Every block handed out is a multiple of this many bytes."""

MAX_BYTES = 256 * 1024
"""Largest request served from the free lists; larger ones go to the system."""

FREE_LIST_SIZE = MAX_BYTES // ALIGNMENT
"""Number of free lists, one per size class."""

SYSTEM_THRESHOLD = 64
"""A thread-local free list longer than this hands blocks back to the central cache."""

MAX_BATCH_SIZE = 4 * 1024
"""Upper bound, in bytes, of one batch fetched from the central cache."""

POINTER_SIZE = 8
"""Bytes taken by a link stored inside a free block."""


def round_up(nbytes: int) -> int:
    """Round ``nbytes`` up to the next multiple of ALIGNMENT."""
    return (nbytes + ALIGNMENT - 1) & ~(ALIGNMENT - 1)


def get_index(nbytes: int) -> int:
    """Return the free-list index serving requests of ``nbytes`` bytes."""
    nbytes = max(nbytes, ALIGNMENT)
    return (nbytes + ALIGNMENT - 1) // ALIGNMENT - 1


def index_to_size(index: int) -> int:
    """Return the block size, in bytes, of the free list at ``index``."""
    return (index + 1) * ALIGNMENT