"""Content hashing for cache keys.

This module handles:
- Selecting tracked files relative to a working directory
- Deterministic hash computation over file paths and contents

Each existing file contributes its path and the SHA-256 of its content,
both length-prefixed, to an outer SHA-256. Missing files contribute
nothing; at least one tracked file must exist.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from daggers.errors import InputReadError, MissingInputsError, PipelineCancelledError

logger = logging.getLogger(__name__)

# Schema version for digest framing; bump when the framing changes
HASH_SCHEMA_VERSION = "1"

# Chunk size for reading files (bytes)
READ_CHUNK_SIZE = 64 * 1024  # 64 KB


@dataclass(frozen=True)
class FileEntry:
    """A tracked file and whether it existed when the set was scanned."""

    path: str
    exists: bool


@dataclass(frozen=True)
class FileSet:
    """Ordered set of tracked files rooted at a directory."""

    root: Path
    entries: tuple[FileEntry, ...]

    @classmethod
    def scan(cls, root: Path, *names: str) -> FileSet:
        """Build a FileSet, recording which files exist.

        Args:
            root: Directory the names are relative to.
            *names: Relative file names, in hashing order.

        Returns:
            FileSet instance.

        Raises:
            ValueError: If a name is absolute or escapes the root.
        """
        entries = []
        for name in names:
            normalized = _normalize_name(name)
            entries.append(FileEntry(normalized, (root / normalized).exists()))
        return cls(root=root, entries=tuple(entries))

    @property
    def present(self) -> list[FileEntry]:
        """Entries whose files exist."""
        return [e for e in self.entries if e.exists]

    @property
    def missing(self) -> list[FileEntry]:
        """Entries whose files do not exist."""
        return [e for e in self.entries if not e.exists]


def _normalize_name(name: str) -> str:
    if not name:
        raise ValueError("tracked file name must not be empty")
    pure = PurePosixPath(name)
    if pure.is_absolute() or ".." in pure.parts:
        raise ValueError(f"tracked file must be relative to the workdir: {name}")
    return pure.as_posix()


def _file_digest(path: Path, cancel_event: threading.Event | None) -> bytes:
    sha256 = hashlib.sha256()
    try:
        with path.open("rb") as f:
            while chunk := f.read(READ_CHUNK_SIZE):
                if cancel_event is not None and cancel_event.is_set():
                    raise PipelineCancelledError()
                sha256.update(chunk)
    except OSError as e:
        raise InputReadError(path, e.strerror or str(e)) from e
    return sha256.digest()


def _frame(data: bytes) -> bytes:
    return len(data).to_bytes(8, "big") + data


def hash_file_set(
    file_set: FileSet,
    cancel_event: threading.Event | None = None,
    strict: bool = False,
) -> str:
    """Compute the digest of a FileSet.

    Args:
        file_set: Files to hash.
        cancel_event: Event that aborts hashing when set.
        strict: Require every tracked file to exist.

    Returns:
        Hex digest.

    Raises:
        MissingInputsError: If no tracked file exists (or, in strict mode,
            if any tracked file is missing).
        InputReadError: If an existing file cannot be read.
        PipelineCancelledError: If cancel_event is set while reading.
    """
    present = file_set.present
    missing = file_set.missing

    if not present:
        raise MissingInputsError(file_set.root, [e.path for e in file_set.entries])
    if strict and missing:
        raise MissingInputsError(file_set.root, [e.path for e in missing])
    if missing:
        logger.debug(
            "Ignoring missing cache inputs in %s: %s",
            file_set.root,
            [e.path for e in missing],
        )

    outer = hashlib.sha256()
    outer.update(_frame(f"daggers-file-hash:v{HASH_SCHEMA_VERSION}".encode()))
    for entry in present:
        if cancel_event is not None and cancel_event.is_set():
            raise PipelineCancelledError()
        outer.update(_frame(entry.path.encode("utf-8")))
        outer.update(_frame(_file_digest(file_set.root / entry.path, cancel_event)))

    return outer.hexdigest()


def hash_files(
    root: Path,
    *names: str,
    cancel_event: threading.Event | None = None,
    strict: bool = False,
) -> str:
    """Compute the digest of named files under a directory.

    Args:
        root: Directory the names are relative to.
        *names: Relative file names, in hashing order.
        cancel_event: Event that aborts hashing when set.
        strict: Require every tracked file to exist.

    Returns:
        Hex digest.
    """
    return hash_file_set(
        FileSet.scan(root, *names), cancel_event=cancel_event, strict=strict
    )


__all__ = [
    "HASH_SCHEMA_VERSION",
    "FileEntry",
    "FileSet",
    "hash_file_set",
    "hash_files",
]
