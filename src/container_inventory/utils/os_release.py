"""OS distribution detection from release files in an image filesystem."""

import os
import re
from typing import Callable, Optional

from ..core.types import OSRelease
from ..exceptions import OSReleaseError
from ..tar.extractor import resolve_in_root

ID_PATTERN = re.compile(r"^ID=(.+)$", re.MULTILINE)
VERSION_ID_PATTERN = re.compile(r"^VERSION_ID=(.+)$", re.MULTILINE)
DISTRIB_ID_PATTERN = re.compile(r"^DISTRIB_ID=(.+)$", re.MULTILINE)
DISTRIB_RELEASE_PATTERN = re.compile(r"^DISTRIB_RELEASE=(.+)$", re.MULTILINE)
FIRST_WORD_PATTERN = re.compile(r"^(\S+)", re.MULTILINE)


def _read(fs_path: str, relative: str) -> Optional[str]:
    """Read a release file, returning None when it does not exist."""
    path = resolve_in_root(os.path.realpath(fs_path), relative)
    if not os.path.isfile(path):
        return None
    try:
        with open(path, encoding="utf-8", errors="replace") as f:
            return f.read()
    except OSError as e:
        raise OSReleaseError(f"Cannot read /{relative}: {e}") from e


def _unquote(value: str) -> str:
    return value.replace('"', "").replace("'", "").strip()


def _single(pattern: re.Pattern, text: str) -> Optional[str]:
    matches = pattern.findall(text)
    return _unquote(matches[0]) if len(matches) == 1 else None


def try_os_release(fs_path: str) -> Optional[OSRelease]:
    for relative in ("etc/os-release", "usr/lib/os-release"):
        text = _read(fs_path, relative)
        if text is None:
            continue

        name = _single(ID_PATTERN, text)
        if name is None:
            raise OSReleaseError(f"Failed to parse /{relative}")
        version = _single(VERSION_ID_PATTERN, text) or "unstable"
        return OSRelease(name, version)
    return None


def try_lsb_release(fs_path: str) -> Optional[OSRelease]:
    text = _read(fs_path, "etc/lsb-release")
    if text is None:
        return None

    name = _single(DISTRIB_ID_PATTERN, text)
    version = _single(DISTRIB_RELEASE_PATTERN, text)
    if name is None or version is None:
        raise OSReleaseError("Failed to parse /etc/lsb-release")
    return OSRelease(name.lower(), version)


def try_debian_version(fs_path: str) -> Optional[OSRelease]:
    text = _read(fs_path, "etc/debian_version")
    if text is None:
        return None

    text = text.strip()
    if len(text) < 2:
        raise OSReleaseError("Failed to parse /etc/debian_version")
    return OSRelease("debian", text.split(".")[0])


def try_alpine_release(fs_path: str) -> Optional[OSRelease]:
    text = _read(fs_path, "etc/alpine-release")
    if text is None:
        return None

    text = text.strip()
    if len(text) < 2:
        raise OSReleaseError("Failed to parse /etc/alpine-release")
    return OSRelease("alpine", text)


def _try_vendor_release(
    fs_path: str, relative: str, version_pattern: re.Pattern
) -> Optional[OSRelease]:
    text = _read(fs_path, relative)
    if text is None:
        return None

    names = FIRST_WORD_PATTERN.findall(text)
    versions = version_pattern.findall(text)
    if len(names) != 1 or len(versions) != 1:
        raise OSReleaseError(f"Failed to parse /{relative}")
    return OSRelease(_unquote(names[0]).lower(), _unquote(versions[0]))


def try_oracle_release(fs_path: str) -> Optional[OSRelease]:
    return _try_vendor_release(fs_path, "etc/oracle-release", re.compile(r"(\d+\.\d+)"))


def try_redhat_release(fs_path: str) -> Optional[OSRelease]:
    return _try_vendor_release(fs_path, "etc/redhat-release", re.compile(r"(\d+)\."))


DETECTORS: tuple[Callable[[str], Optional[OSRelease]], ...] = (
    try_os_release,
    try_lsb_release,
    try_debian_version,
    try_alpine_release,
    try_oracle_release,
    try_redhat_release,
)


def detect_os_release(fs_path: str) -> OSRelease:
    """Detect the OS distribution name and version of an image filesystem.

    Release files are tried from the most generic to distro-specific
    fallbacks; the first file that exists decides the result.

    Args:
        fs_path: Root of the materialized image filesystem

    Returns:
        OSRelease with the distribution id and version

    Raises:
        OSReleaseError: If no release file exists or the first one found
            cannot be parsed
    """
    for detector in DETECTORS:
        release = detector(fs_path)
        if release is None:
            continue
        # Oracle Linux identifies itself with "ol"
        if release.name == "ol":
            release = OSRelease("oracle", release.version)
        return release

    raise OSReleaseError("Failed to detect OS release")
