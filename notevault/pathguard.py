"""
Path sandboxing for the notes root.

Every caller-supplied path is normalized (``..`` collapsed, relative paths
anchored at the root) and must be the root itself or lie below it. The check
is anchored on the path separator so a sibling such as ``/x/NotesEvil`` is
never accepted for the root ``/x/Notes``.
"""

import os
from pathlib import Path
from typing import Optional, Union

from notevault.errors import AccessDenied

PathLike = Union[str, Path]


def normalize(path: PathLike, root: PathLike) -> str:
    """Return the absolute, normalized form of *path*."""
    root_str = os.path.abspath(os.fspath(root))
    raw = os.fspath(path)
    if not os.path.isabs(raw):
        raw = os.path.join(root_str, raw)
    return os.path.normpath(os.path.abspath(raw))


def is_within(path: str, base: str) -> bool:
    """Separator-anchored containment test on already-normalized paths."""
    return path == base or path.startswith(base.rstrip(os.sep) + os.sep)


def is_within_root(path: PathLike, root: PathLike) -> bool:
    """Check whether *path* resolves to the root or one of its descendants."""
    root_str = os.path.normpath(os.path.abspath(os.fspath(root)))
    return is_within(normalize(path, root_str), root_str)


def guard(path: PathLike, root: PathLike, label: Optional[str] = None) -> str:
    """
    Resolve *path* and verify it stays inside *root*.

    Args:
        path: Absolute or root-relative path supplied by a caller.
        root: The notes root.
        label: Optional role of the path ("source", "target") used in the
            error message.

    Returns:
        The normalized absolute path.

    Raises:
        AccessDenied: If the path escapes the root.
    """
    resolved = normalize(path, root)
    if not is_within_root(resolved, root):
        if label:
            raise AccessDenied(f"Access denied: {label} path outside root directory")
        raise AccessDenied()
    return resolved
