"""Persistence of computed mappings."""

from ._store import DiskStore, MemoryStore, Store, cached_map, fingerprint

__all__ = ["DiskStore", "MemoryStore", "Store", "cached_map", "fingerprint"]
