"""Cache volume resolution keyed on file contents.

The cache key is ``prefix + hex(digest)`` over the tracked files. The
volume is requested from the build client on every call; whether it
already exists is left entirely to the client's namespace.
"""

from __future__ import annotations

import logging
import re
import threading
from pathlib import Path

from daggers.cache.hasher import hash_files
from daggers.engine.client import BuildClient
from daggers.engine.container import CacheVolume
from daggers.errors import VolumeResolutionError

logger = logging.getLogger(__name__)

# Prefixes must keep the key a valid volume name
PREFIX_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.\-]*$")


def validate_prefix(prefix: str) -> str:
    """Validate a cache key prefix.

    Raises:
        ValueError: If the prefix cannot start a volume name.
    """
    if prefix and not PREFIX_PATTERN.match(prefix):
        raise ValueError(
            f"cache key prefix must match {PREFIX_PATTERN.pattern}, got '{prefix}'"
        )
    return prefix


def compute_cache_key(
    prefix: str,
    root: Path,
    *names: str,
    cancel_event: threading.Event | None = None,
    strict: bool = False,
) -> str:
    """Compute a cache key from a prefix and the contents of tracked files.

    Args:
        prefix: Logical prefix, e.g. 'go-build-'.
        root: Directory the names are relative to.
        *names: Relative file names, in hashing order.
        cancel_event: Event that aborts hashing when set.
        strict: Require every tracked file to exist.

    Returns:
        Cache key string.
    """
    validate_prefix(prefix)
    digest = hash_files(root, *names, cancel_event=cancel_event, strict=strict)
    return f"{prefix}{digest}"


def cache_volume_for_files(
    client: BuildClient,
    prefix: str,
    root: Path,
    *names: str,
    cancel_event: threading.Event | None = None,
    strict: bool = False,
) -> CacheVolume:
    """Resolve the cache volume keyed on the contents of tracked files.

    Args:
        client: Build client owning the volume namespace.
        prefix: Logical prefix, e.g. 'go-build-'.
        root: Directory the names are relative to.
        *names: Relative file names, in hashing order.
        cancel_event: Event that aborts hashing when set.
        strict: Require every tracked file to exist.

    Returns:
        The resolved CacheVolume.

    Raises:
        MissingInputsError: If no tracked file exists.
        InputReadError: If a tracked file cannot be read.
        VolumeResolutionError: If the client cannot resolve the volume.
    """
    key = compute_cache_key(
        prefix, root, *names, cancel_event=cancel_event, strict=strict
    )
    logger.debug("Cache key for %s in %s: %s", list(names), root, key)

    try:
        return client.cache_volume(key)
    except VolumeResolutionError:
        raise
    except Exception as e:
        raise VolumeResolutionError(key, str(e)) from e


__all__ = [
    "PREFIX_PATTERN",
    "cache_volume_for_files",
    "compute_cache_key",
    "validate_prefix",
]
