"""Builders for synthetic layers, image archives and image filesystems."""

import asyncio
import io
import json
import os
import tarfile
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from container_inventory.utils.digest import calculate_digest

Entry = Tuple[tarfile.TarInfo, Optional[bytes]]


def record_executor_calls(monkeypatch) -> List[Callable]:
    """Record the functions the running loop hands to its executor."""
    loop = asyncio.get_running_loop()
    original = loop.run_in_executor
    calls = []

    def run_in_executor(executor, func, *args):
        calls.append(func)
        return original(executor, func, *args)

    monkeypatch.setattr(loop, "run_in_executor", run_in_executor)
    return calls


def file(name: str, content: bytes = b"", mode: int = 0o644) -> Entry:
    info = tarfile.TarInfo(name)
    info.size = len(content)
    info.mode = mode
    return info, content


def directory(name: str, mode: int = 0o755) -> Entry:
    info = tarfile.TarInfo(name)
    info.type = tarfile.DIRTYPE
    info.mode = mode
    return info, None


def symlink(name: str, target: str) -> Entry:
    info = tarfile.TarInfo(name)
    info.type = tarfile.SYMTYPE
    info.linkname = target
    return info, None


def hardlink(name: str, target: str) -> Entry:
    info = tarfile.TarInfo(name)
    info.type = tarfile.LNKTYPE
    info.linkname = target
    return info, None


def fifo(name: str) -> Entry:
    info = tarfile.TarInfo(name)
    info.type = tarfile.FIFOTYPE
    return info, None


def whiteout(path: str) -> Entry:
    """Entry deleting ``path`` from lower layers."""
    parent, base = os.path.split(path)
    return file(os.path.join(parent, f".wh.{base}"))


def opaque(path: str) -> Entry:
    """Entry hiding the lower-layer contents of directory ``path``."""
    return file(os.path.join(path, ".wh..wh..opq"))


def layer_bytes(*entries: Entry, compression: str = "") -> bytes:
    """Build a layer tar holding ``entries`` in order."""
    buffer = io.BytesIO()
    mode = f"w:{compression}" if compression else "w"
    with tarfile.open(fileobj=buffer, mode=mode) as tar:
        for info, content in entries:
            tar.addfile(info, fileobj=io.BytesIO(content) if content is not None else None)
    return buffer.getvalue()


def layer(*entries: Entry, compression: str = "") -> io.BytesIO:
    """Build a layer as a readable binary stream."""
    return io.BytesIO(layer_bytes(*entries, compression=compression))


def write_tree(root: str, files: Dict[str, str]) -> str:
    """Write text files under ``root`` (paths relative to it)."""
    for relative, content in files.items():
        path = os.path.join(root, relative)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
    return root


def create_image_archive(
    path: str,
    layers: Iterable[bytes],
    repo_tags: Optional[List[str]] = None,
    config: bytes = b'{"architecture": "amd64"}',
) -> str:
    """Create a ``docker save`` style archive at ``path``."""
    config_name = calculate_digest(config).split(":", 1)[1] + ".json"
    layer_names = []

    with tarfile.open(path, "w") as tar:
        for index, content in enumerate(layers):
            name = f"layer{index}/layer.tar"
            info, data = file(name, content)
            tar.addfile(info, fileobj=io.BytesIO(data))
            layer_names.append(name)

        info, data = file(config_name, config)
        tar.addfile(info, fileobj=io.BytesIO(data))

        manifest = [
            {"Config": config_name, "RepoTags": repo_tags, "Layers": layer_names}
        ]
        info, data = file("manifest.json", json.dumps(manifest).encode("utf-8"))
        tar.addfile(info, fileobj=io.BytesIO(data))

    return path


DPKG_STATUS = """\
Package: pac1
Status: install ok installed
Version: 1.0

Package: pac2
Status: install ok installed
Provides: the-pac
Version: 2.0

Package: pac3
Status: install ok installed
Source: pac_ng
Version: 3.0
Depends: pac1, libc | libc6 (>= 2.15)
Pre-Depends: debconf (>= 0.5)

Package: pac4
Status: install ok installed
Source: pac4_ng (2.29.2-1+deb9u1)
Version: 1:2.29.2-1+deb9u1
"""

APT_EXTENDED_STATES = """\
Package: pac2
Architecture: amd64
Auto-Installed: 1

Package: pac3
Architecture: amd64
Auto-Installed: 0

Package: not-installed
Architecture: amd64
Auto-Installed: 1
"""

APK_INSTALLED = """\
C:Q1nD9tH6mJcZ5nb8fFxm0LxaPHXJ0=
P:musl
V:1.1.18-r3
A:x86_64
o:musl
p:so:libc.musl-x86_64.so.1=1

P:musl-utils
V:1.1.18-r3
o:musl
D:!uclibc-utils scanelf musl=1.1.18-r3 so:libc.musl-x86_64.so.1
r:libiconv

P:scanelf
V:1.2.2-r1
o:pax-utils
D:so:libc.musl-x86_64.so.1
"""
