"""File collection utilities for the upload run."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Set, Tuple

from ..services.media_paths import is_video

logger = logging.getLogger(__name__)

DirectoryIdentity = Tuple[int, int]


@dataclass
class ScanResult:
    """Files found by a scan plus the directories that could not be read."""
    files: List[Path] = field(default_factory=list)
    errors: List[Tuple[Path, OSError]] = field(default_factory=list)


def sorted_entries(directory: Path) -> List[os.DirEntry]:
    """List a directory's entries in name order."""
    with os.scandir(directory) as it:
        return sorted(it, key=lambda entry: entry.name)


def check_listable(directory: Path) -> None:
    """Raise OSError unless the directory can be opened for listing."""
    with os.scandir(directory):
        pass


def directory_identity(directory: Path) -> DirectoryIdentity:
    """Device/inode pair of a directory, following symlinks."""
    st = os.stat(directory)
    return st.st_dev, st.st_ino


def enter_directory(directory: Path, visited: Set[DirectoryIdentity]) -> List[os.DirEntry]:
    """
    Mark a directory visited and list it.

    Returns an empty list for a directory already seen in this walk (a
    symlink loop or a second link to the same tree).

    Raises:
        OSError: if the directory cannot be read
    """
    identity = directory_identity(directory)
    if identity in visited:
        logger.warning("Skipping already visited directory (symlink loop?): %s", directory)
        return []
    visited.add(identity)
    return sorted_entries(directory)


class DirectoryScanner:
    """
    Collects recognized media files below a root.

    Depth-first, pre-order, entries visited in name order. A directory that
    cannot be read is skipped together with its subtree and reported in
    ``ScanResult.errors``.
    """

    def __init__(self, root: Path):
        self._root = Path(root)

    def scan(self) -> ScanResult:
        result = ScanResult()
        visited: Set[DirectoryIdentity] = set()
        stack: List[Tuple[bool, Path]] = [(True, self._root)]

        while stack:
            is_dir, path = stack.pop()
            if not is_dir:
                result.files.append(path)
                continue

            try:
                entries = enter_directory(path, visited)
            except OSError as e:
                logger.warning("Cannot read directory %s: %s", path, e)
                result.errors.append((path, e))
                continue

            for entry in reversed(entries):
                entry_path = Path(entry.path)
                if entry.is_dir():
                    stack.append((True, entry_path))
                elif entry.is_file() and is_video(entry_path):
                    stack.append((False, entry_path))

        logger.info(
            "Scan of %s found %d media file(s), %d unreadable director(ies)",
            self._root, len(result.files), len(result.errors),
        )
        return result
