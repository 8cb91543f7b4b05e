"""
Search root handling: tilde expansion and validation.
"""

import os
from pathlib import Path

from .parser import HomeDirectoryError, RootPathError


def expand_root(root: str) -> str:
    """
    Expand a leading ``~`` in the search root.

    Only ``~`` and ``~/...`` are expanded; ``~user`` forms and every other
    string are returned unchanged.

    Raises:
        HomeDirectoryError: If the home directory cannot be determined
    """
    if root != "~" and not root.startswith("~/"):
        return root

    try:
        home = str(Path.home())
    except (RuntimeError, KeyError) as e:
        raise HomeDirectoryError(f"failed to get user home directory: {e}") from e

    if root == "~":
        return home
    return os.path.join(home, root[2:])


def validate_root(root: str) -> str:
    """
    Check that the search root exists and is a directory.

    Raises:
        RootPathError: If it does not exist or is not a directory
    """
    if not os.path.exists(root):
        raise RootPathError(f"Root directory does not exist: {root}")
    if not os.path.isdir(root):
        raise RootPathError(f"Root path is not a directory: {root}")
    return root
