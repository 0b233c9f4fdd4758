"""Poll-based watch signatures for solution files and project directories.

Computes cheap hashes over stat metadata. Callers compare successive
signatures to decide when to re-parse or refresh expanded directories.
"""

from __future__ import annotations

import hashlib
import os
from collections.abc import Iterable
from pathlib import Path


def _feed(digest, *parts: object) -> None:
    """Add one NUL-terminated record of ``parts`` joined by colons."""
    record = ":".join(str(part) for part in parts)
    digest.update(record.encode("utf-8", errors="surrogateescape") + b"\0")


def _stat_record(path: Path) -> tuple[str, int, int, int]:
    """``(state, mtime_ns, size, mode)`` with zeroed numbers for missing or unreadable paths."""
    try:
        st = path.stat()
    except FileNotFoundError:
        return "missing", 0, 0, 0
    except OSError:
        return "error", 0, 0, 0
    return "ok", st.st_mtime_ns, st.st_size, st.st_mode


def file_signature(*paths: Path) -> str:
    """Digest over the stat state of each file in ``paths``."""
    digest = hashlib.blake2b(digest_size=20)
    for path in paths:
        _feed(digest, "file", path, *_stat_record(path))
    return digest.hexdigest()


def build_directory_watch_signature(
    root: Path,
    watched_dirs: Iterable[Path],
    skip_dirs: frozenset[str] | set[str] = frozenset(),
    show_hidden: bool = False,
) -> str:
    """Digest over child metadata of every watched directory.

    Directories outside ``root`` are ignored. Child names in ``skip_dirs`` and,
    unless ``show_hidden``, dot-prefixed names do not contribute.
    """
    root = root.resolve()
    directories: set[Path] = set()
    for path in watched_dirs:
        try:
            resolved = path.resolve()
        except OSError:
            continue
        if resolved == root or resolved.is_relative_to(root):
            directories.add(resolved)

    digest = hashlib.blake2b(digest_size=20)
    _feed(digest, "root", root)
    for directory in sorted(directories, key=lambda p: str(p)):
        _feed(digest, "dir", directory)
        stat_state, _mtime, _size, stat_mode = _stat_record(directory)
        _feed(digest, "dir_stat", stat_state, stat_mode)
        if stat_state != "ok":
            continue

        children: list[tuple[str, bool, int, int]] = []
        try:
            with os.scandir(directory) as entries:
                for child in entries:
                    name = child.name
                    if name in skip_dirs:
                        continue
                    if not show_hidden and name.startswith("."):
                        continue
                    try:
                        is_dir = child.is_dir(follow_symlinks=False)
                        st = child.stat(follow_symlinks=False)
                        mtime_ns, size = st.st_mtime_ns, st.st_size
                    except OSError:
                        is_dir, mtime_ns, size = False, 0, 0
                    children.append((name, is_dir, mtime_ns, size))
        except OSError:
            _feed(digest, "children", "error")
            continue

        children.sort(key=lambda item: (not item[1], item[0].casefold(), item[0]))
        for name, is_dir, mtime_ns, size in children:
            _feed(digest, "child", name, int(is_dir), mtime_ns, size)
    return digest.hexdigest()
