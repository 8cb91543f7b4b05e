"""
Per-entry filesystem helpers for the traversal engine.

Listing a directory, deciding the kind of an entry and computing the
auxiliary data (size, content hash) printed for matching files. All functions
are synchronous and raise ``OSError`` on filesystem failures; the caller
decides whether a failure drops a subtree or a single entry.
"""

import os
from typing import List

import xxhash

from ..models.search_results import EntryKind


HASH_CHUNK_SIZE = 1024 * 1024


def list_directory(path: str) -> List[os.DirEntry]:
    """
    Return the immediate entries of a directory.

    Args:
        path: Directory to list

    Returns:
        Entries in the order the operating system reports them

    Raises:
        OSError: If the directory cannot be opened or read
    """
    with os.scandir(path) as it:
        return list(it)


def classify_entry(entry: os.DirEntry) -> EntryKind:
    """
    Decide the kind of a directory entry without following symbolic links.

    Symbolic links are reported as such even when they point to a directory,
    so a link is never descended into, statted or hashed.
    """
    if entry.is_symlink():
        return EntryKind.SYMLINK
    if entry.is_dir(follow_symlinks=False):
        return EntryKind.DIRECTORY
    if entry.is_file(follow_symlinks=False):
        return EntryKind.FILE
    return EntryKind.OTHER


def file_size(path: str) -> int:
    """Size of a regular file in bytes."""
    return os.stat(path).st_size


def compute_xxhash(path: str, chunk_size: int = HASH_CHUNK_SIZE) -> int:
    """
    Compute the xxHash64 (seed 0) of a file's content.

    Args:
        path: File to hash
        chunk_size: Number of bytes read per call

    Returns:
        The 64-bit digest as an unsigned integer
    """
    hasher = xxhash.xxh64()
    with open(path, 'rb') as f:
        for chunk in iter(lambda: f.read(chunk_size), b''):
            hasher.update(chunk)
    return hasher.intdigest()
