"""Cache key module.

This module handles:
- Deterministic hashing of tracked input files
- Cache key derivation and cache volume resolution
"""

from daggers.cache.hasher import FileEntry, FileSet, hash_file_set, hash_files
from daggers.cache.volumes import cache_volume_for_files, compute_cache_key

__all__ = [
    "FileEntry",
    "FileSet",
    "cache_volume_for_files",
    "compute_cache_key",
    "hash_file_set",
    "hash_files",
]
