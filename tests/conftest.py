"""Test configuration and fixtures."""

import pytest

from tests.helpers import APK_INSTALLED, APT_EXTENDED_STATES, DPKG_STATUS, write_tree


@pytest.fixture
def debian_root(tmp_path):
    """Image filesystem with a dpkg database and apt auto-installed marks."""
    root = tmp_path / "debian"
    return write_tree(
        str(root),
        {
            "var/lib/dpkg/status": DPKG_STATUS,
            "var/lib/apt/extended_states": APT_EXTENDED_STATES,
            "etc/os-release": 'ID=debian\nVERSION_ID="9"\n',
        },
    )


@pytest.fixture
def alpine_root(tmp_path):
    """Image filesystem with an apk database."""
    root = tmp_path / "alpine"
    return write_tree(
        str(root),
        {
            "lib/apk/db/installed": APK_INSTALLED,
            "etc/alpine-release": "3.7.0\n",
        },
    )


@pytest.fixture
def work_dir(tmp_path):
    """Parent directory for materialized image filesystems."""
    path = tmp_path / "work"
    path.mkdir()
    return str(path)
