"""Directory snapshots and structural comparison.

Used to verify that a reconstructed filesystem matches a reference tree.
A snapshot is an ordered list of ``(path, kind, fingerprint)`` entries, so two
snapshots of the same filesystem state are always equal.
"""

import os
import stat
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from .digest import calculate_file_digest


class EntryKind(str, Enum):
    """Kind of a filesystem entry."""

    FILE = "file"
    DIR = "dir"
    SYMLINK = "symlink"


@dataclass(frozen=True)
class SnapshotEntry:
    """One path of a directory snapshot."""

    path: str  # POSIX path relative to the snapshot root
    kind: EntryKind
    fingerprint: Optional[str] = None


@dataclass(frozen=True)
class DirectorySnapshot:
    """Ordered, content-addressed view of a directory tree."""

    root: str
    entries: tuple[SnapshotEntry, ...]

    def paths(self) -> tuple[str, ...]:
        return tuple(entry.path for entry in self.entries)

    def as_mapping(self) -> dict[str, SnapshotEntry]:
        return {entry.path: entry for entry in self.entries}


@dataclass(frozen=True)
class DirectoryDiff:
    """Result of comparing two snapshots, keyed by path."""

    added: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()
    changed: tuple[str, ...] = ()
    unchanged: tuple[str, ...] = ()

    @property
    def identical(self) -> bool:
        return not (self.added or self.removed or self.changed)


def snapshot(root: Union[str, Path], include_content: bool = True) -> DirectorySnapshot:
    """Walk ``root`` into a deterministic snapshot.

    Symlinks are recorded, never followed.

    Args:
        root: Directory to walk
        include_content: Whether to fingerprint files (size and sha256) and
            record symlink targets

    Returns:
        DirectorySnapshot sorted by path

    Raises:
        NotADirectoryError: If ``root`` is not a directory
    """
    root_path = os.fspath(root)
    if not os.path.isdir(root_path):
        raise NotADirectoryError(f"Not a directory: {root_path}")

    entries: list[SnapshotEntry] = []
    _walk(root_path, "", include_content, entries)
    entries.sort(key=lambda entry: entry.path)
    return DirectorySnapshot(root=root_path, entries=tuple(entries))


def _walk(directory: str, prefix: str, include_content: bool, entries: list) -> None:
    with os.scandir(directory) as it:
        children = sorted(it, key=lambda child: child.name)

    for child in children:
        relative = f"{prefix}/{child.name}" if prefix else child.name

        if child.is_symlink():
            target = os.readlink(child.path) if include_content else None
            entries.append(SnapshotEntry(relative, EntryKind.SYMLINK, target))
        elif child.is_dir(follow_symlinks=False):
            entries.append(SnapshotEntry(relative, EntryKind.DIR))
            _walk(child.path, relative, include_content, entries)
        else:
            fingerprint = None
            if include_content:
                info = child.stat(follow_symlinks=False)
                if stat.S_ISREG(info.st_mode):
                    digest = calculate_file_digest(child.path)
                    fingerprint = f"{info.st_size}:{digest}"
            entries.append(SnapshotEntry(relative, EntryKind.FILE, fingerprint))


def compare(
    a: DirectorySnapshot, b: DirectorySnapshot
) -> tuple[DirectoryDiff, bool]:
    """Compare two snapshots path by path.

    Paths only in ``a`` are removed, only in ``b`` added, and present in both
    with a different kind or fingerprint changed.

    Returns:
        Tuple of (differences, identical)
    """
    before = a.as_mapping()
    after = b.as_mapping()

    added, removed, changed, unchanged = [], [], [], []
    for path in sorted(before.keys() | after.keys()):
        if path not in after:
            removed.append(path)
        elif path not in before:
            added.append(path)
        elif (before[path].kind, before[path].fingerprint) != (
            after[path].kind,
            after[path].fingerprint,
        ):
            changed.append(path)
        else:
            unchanged.append(path)

    diff = DirectoryDiff(
        added=tuple(added),
        removed=tuple(removed),
        changed=tuple(changed),
        unchanged=tuple(unchanged),
    )
    return diff, diff.identical


def directories_equal(
    a: Union[str, Path], b: Union[str, Path], include_content: bool = True
) -> bool:
    """Check whether two directory trees have the same structure and content."""
    _, identical = compare(snapshot(a, include_content), snapshot(b, include_content))
    return identical
