"""Layer extraction: squash ordered tar layers into one directory tree."""

import logging
import os
import posixpath
import shutil
import stat
import tarfile
from pathlib import Path
from typing import BinaryIO, Iterable, Optional, Union

from ..exceptions import ExtractionError, LayerReadError, PathEscapeError

logger = logging.getLogger(__name__)

WHITEOUT_PREFIX = ".wh."
OPAQUE_WHITEOUT = ".wh..wh..opq"

# Same limit as the Linux kernel's MAXSYMLINKS
MAX_SYMLINK_HOPS = 40

LayerArchive = Union[str, Path, BinaryIO]


def normalize_entry_name(name: str) -> str:
    """Normalize a tar entry name to a clean path relative to the image root.

    Args:
        name: Entry name as stored in the archive

    Returns:
        POSIX path relative to the root, "." for the root itself

    Raises:
        PathEscapeError: If the name climbs out of the root with ".."
    """
    relative = posixpath.normpath(name.lstrip("/"))
    if relative == ".." or relative.startswith("../"):
        raise PathEscapeError(f"Tar entry {name!r} resolves outside the extraction root")
    return relative


def normalize_exclude(exclude: Iterable[str]) -> tuple[str, ...]:
    """Turn exclusion prefixes into normalized root-relative paths."""
    prefixes = []
    for prefix in exclude:
        relative = posixpath.normpath(prefix.strip().lstrip("/"))
        if relative in ("", "."):
            continue
        prefixes.append(relative)
    return tuple(prefixes)


def is_excluded(relative: str, exclude: tuple[str, ...]) -> bool:
    """Check whether a root-relative path is at or under an excluded prefix."""
    return any(
        relative == prefix or relative.startswith(prefix + "/") for prefix in exclude
    )


def resolve_in_root(root: str, relative: str, follow_final: bool = True) -> str:
    """Resolve a root-relative path on disk as if the root were "/".

    Symlinks met along the way are followed, with absolute link targets
    re-rooted at ``root`` and ".." never climbing above it.

    Args:
        root: Extraction root directory
        relative: Path relative to the root
        follow_final: Whether a symlink in the last component is followed

    Returns:
        Host path of the resolved location, always inside ``root``

    Raises:
        ExtractionError: If too many symlinks are followed
    """
    remaining = [part for part in relative.split("/") if part]
    resolved = ""
    hops = 0

    while remaining:
        part = remaining.pop(0)
        if part == ".":
            continue
        if part == "..":
            resolved = posixpath.dirname(resolved)
            continue

        candidate = posixpath.join(resolved, part) if resolved else part
        host_path = os.path.join(root, candidate)
        if os.path.islink(host_path) and (remaining or follow_final):
            hops += 1
            if hops > MAX_SYMLINK_HOPS:
                raise ExtractionError(f"Too many levels of symbolic links in {relative!r}")
            link = os.readlink(host_path)
            if link.startswith("/"):
                resolved = ""
            remaining = [p for p in link.split("/") if p] + remaining
            continue

        resolved = candidate

    return os.path.join(root, resolved) if resolved else root


def validate_symlink(relative: str, link_target: str) -> None:
    """Ensure a symlink placed at ``relative`` cannot point outside the root.

    Raises:
        PathEscapeError: If the link target escapes the root
    """
    if link_target.startswith("/"):
        # Absolute targets are interpreted against the image root
        return

    resolved = posixpath.normpath(posixpath.join(posixpath.dirname(relative), link_target))
    if resolved == ".." or resolved.startswith("../"):
        raise PathEscapeError(
            f"Symlink {relative!r} -> {link_target!r} resolves outside the extraction root"
        )


def open_layer(layer: LayerArchive) -> tarfile.TarFile:
    """Open a layer tar stream, detecting compression.

    Args:
        layer: Path to a layer tar or a readable binary file object

    Returns:
        TarFile opened in streaming mode

    Raises:
        LayerReadError: If the layer cannot be opened
    """
    try:
        if isinstance(layer, (str, Path)):
            return tarfile.open(str(layer), mode="r|*")
        return tarfile.open(fileobj=layer, mode="r|*")
    except (tarfile.TarError, OSError) as e:
        raise LayerReadError(f"Failed to open layer {layer!r}: {e}") from e


def extract_layers(
    layers: Iterable[LayerArchive], target: Union[str, Path], exclude: Iterable[str] = ()
) -> None:
    """Apply layers, oldest first, onto ``target``.

    Args:
        layers: Ordered layer archives (paths or binary file objects)
        target: Directory receiving the merged filesystem
        exclude: Root-relative path prefixes left untouched by every layer

    Raises:
        PathEscapeError: If any entry or symlink escapes the target
        LayerReadError: If a layer cannot be opened or read
        ExtractionError: If an entry cannot be written
    """
    root = os.path.realpath(str(target))
    os.makedirs(root, exist_ok=True)
    prefixes = normalize_exclude(exclude)

    for index, layer in enumerate(layers, 1):
        logger.debug(f"Applying layer {index} to {root}")
        tar = open_layer(layer)
        with tar:
            extract_layer(tar, root, prefixes)


def extract_layer(
    tar: tarfile.TarFile, target: Union[str, Path], exclude: Iterable[str] = ()
) -> None:
    """Apply a single opened layer onto ``target``.

    Raises:
        PathEscapeError: If any entry or symlink escapes the target
        LayerReadError: If the tar stream is corrupt
        ExtractionError: If an entry cannot be written
    """
    root = os.path.realpath(str(target))
    prefixes = normalize_exclude(exclude)
    applier = _LayerApplier(tar, root, prefixes)

    try:
        for member in tar:
            applier.apply(member)
    except (tarfile.TarError, EOFError, OSError) as e:
        raise LayerReadError(f"Failed to read layer entries: {e}") from e


class _LayerApplier:
    """Applies the entries of one layer, tracking what this layer wrote."""

    def __init__(self, tar: tarfile.TarFile, root: str, exclude: tuple[str, ...]) -> None:
        self.tar = tar
        self.root = root
        self.exclude = exclude
        self.written: set[str] = set()

    def apply(self, member: tarfile.TarInfo) -> None:
        relative = normalize_entry_name(member.name)
        if relative == ".":
            return

        try:
            self._apply_entry(member, relative)
        except OSError as e:
            raise ExtractionError(f"Failed to extract {member.name!r}: {e}") from e

    def _apply_entry(self, member: tarfile.TarInfo, relative: str) -> None:
        parent, base = posixpath.split(relative)

        if base == OPAQUE_WHITEOUT:
            if not is_excluded(parent, self.exclude):
                self._reset_directory(parent)
            return

        if base.startswith(WHITEOUT_PREFIX):
            name = base[len(WHITEOUT_PREFIX):]
            if name in ("", ".", ".."):
                raise PathEscapeError(
                    f"Whiteout {member.name!r} names no entry inside the extraction root"
                )
            victim = posixpath.join(parent, name)
            if not is_excluded(victim, self.exclude):
                self._remove(victim)
            return

        if is_excluded(relative, self.exclude):
            logger.debug(f"Skipping excluded entry {relative}")
            return

        self._materialize(member, relative, parent, base)
        self._mark_written(relative)

    def _mark_written(self, relative: str) -> None:
        while relative and relative not in self.written:
            self.written.add(relative)
            relative = posixpath.dirname(relative)

    def _materialize(
        self, member: tarfile.TarInfo, relative: str, parent: str, base: str
    ) -> None:
        if member.issym():
            validate_symlink(relative, member.linkname)

        parent_path = resolve_in_root(self.root, parent)
        os.makedirs(parent_path, exist_ok=True)
        dest = os.path.join(parent_path, base)

        if member.isdir():
            self._make_directory(member, dest)
        elif member.isreg():
            self._write_file(member, relative, dest)
        elif member.issym():
            _remove_path(dest)
            os.symlink(member.linkname, dest)
        elif member.islnk():
            self._make_hardlink(member, dest)
        else:
            logger.debug(f"Skipping special file {relative} (type {member.type!r})")

    def _make_directory(self, member: tarfile.TarInfo, dest: str) -> None:
        if os.path.islink(dest):
            link_dest = resolve_in_root(self.root, os.path.relpath(dest, self.root))
            if os.path.isdir(link_dest):
                return
        if not os.path.isdir(dest) or os.path.islink(dest):
            _remove_path(dest)
            os.mkdir(dest)
        # Owner keeps rwx so later entries and layers can still write here
        _set_mode(dest, member.mode | stat.S_IRWXU)

    def _write_file(self, member: tarfile.TarInfo, relative: str, dest: str) -> None:
        if os.path.islink(dest):
            # The link stays; its in-root target gets the new content
            dest = resolve_in_root(self.root, relative)
            if os.path.isdir(dest):
                raise ExtractionError(
                    f"Symlink {relative!r} points to a directory, cannot write file"
                )
            os.makedirs(os.path.dirname(dest), exist_ok=True)
        _remove_path(dest)

        source = self.tar.extractfile(member)
        if source is None:
            raise ExtractionError(f"Could not read content of {member.name!r}")

        with source, open(dest, "wb") as out:
            shutil.copyfileobj(source, out)
        _set_mode(dest, member.mode)

    def _make_hardlink(self, member: tarfile.TarInfo, dest: str) -> None:
        link_relative = normalize_entry_name(member.linkname)
        source = resolve_in_root(self.root, link_relative, follow_final=False)
        if not os.path.lexists(source):
            raise ExtractionError(
                f"Hard link {member.name!r} refers to missing entry {member.linkname!r}"
            )
        if os.path.realpath(source) == os.path.realpath(dest):
            return
        _remove_path(dest)
        os.link(source, dest, follow_symlinks=False)

    def _remove(self, relative: str) -> None:
        parent = resolve_in_root(self.root, posixpath.dirname(relative))
        path = os.path.normpath(os.path.join(parent, posixpath.basename(relative)))
        if not path.startswith(os.path.join(self.root, "")):
            raise PathEscapeError(
                f"Whiteout of {relative!r} resolves outside the extraction root"
            )
        if os.path.lexists(path):
            logger.debug(f"Whiteout removes {relative}")
            _remove_path(path)

    def _reset_directory(self, relative: str) -> None:
        directory = resolve_in_root(self.root, relative)
        if not os.path.isdir(directory):
            return
        logger.debug(f"Opaque whiteout resets {relative or '/'}")
        self._clear_children(directory, relative)

    def _clear_children(self, directory: str, relative: str) -> None:
        for name in sorted(os.listdir(directory)):
            child_relative = posixpath.join(relative, name) if relative else name
            child_path = os.path.join(directory, name)

            if is_excluded(child_relative, self.exclude):
                continue
            if child_relative in self.written:
                # Written by the current layer: keep it, but still drop
                # older children of a directory this layer only touched
                if os.path.isdir(child_path) and not os.path.islink(child_path):
                    self._clear_children(child_path, child_relative)
                continue
            if any(prefix.startswith(child_relative + "/") for prefix in self.exclude):
                if os.path.isdir(child_path) and not os.path.islink(child_path):
                    self._clear_children(child_path, child_relative)
                continue

            _remove_path(child_path)


def _remove_path(path: str) -> None:
    """Remove a file, symlink, or directory tree if present."""
    if os.path.islink(path) or (os.path.lexists(path) and not os.path.isdir(path)):
        os.unlink(path)
    elif os.path.isdir(path):
        shutil.rmtree(path)


def _set_mode(path: str, mode: Optional[int]) -> None:
    if mode is None:
        return
    try:
        os.chmod(path, mode & 0o7777)
    except OSError as e:
        logger.debug(f"Could not set mode {mode:o} on {path}: {e}")
