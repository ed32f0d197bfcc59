"""Three-tier size-class memory pool (thread, central and page caches) over a simulated address space."""

__version__ = "0.1.0"
__all__ = ["sizeclass", "pagecache", "centralcache", "threadcache", "pool"]