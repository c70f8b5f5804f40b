"""Tests for directory snapshots and comparison."""

import os

import pytest

from container_inventory.utils.digest import calculate_digest
from container_inventory.utils.snapshot import (
    EntryKind,
    compare,
    directories_equal,
    snapshot,
)
from tests.helpers import write_tree


@pytest.fixture
def tree_a(tmp_path):
    root = write_tree(str(tmp_path / "a"), {"etc/hosts": "localhost", "bin/sh": "dash"})
    os.symlink("sh", os.path.join(root, "bin", "bash"))
    return root


@pytest.fixture
def tree_b(tmp_path):
    root = write_tree(str(tmp_path / "b"), {"etc/hosts": "localhost", "bin/sh": "dash"})
    os.symlink("sh", os.path.join(root, "bin", "bash"))
    return root


class TestSnapshot:
    """Test walking a directory into a snapshot."""

    def test_entries_sorted_and_typed(self, tree_a):
        snap = snapshot(tree_a)

        assert snap.paths() == ("bin", "bin/bash", "bin/sh", "etc", "etc/hosts")
        entries = snap.as_mapping()
        assert entries["bin"].kind == EntryKind.DIR
        assert entries["bin"].fingerprint is None
        assert entries["bin/bash"].kind == EntryKind.SYMLINK
        assert entries["bin/bash"].fingerprint == "sh"
        assert entries["etc/hosts"].kind == EntryKind.FILE
        assert entries["etc/hosts"].fingerprint == f"9:{calculate_digest(b'localhost')}"

    def test_without_content(self, tree_a):
        snap = snapshot(tree_a, include_content=False)

        assert all(entry.fingerprint is None for entry in snap.entries)

    def test_deterministic(self, tree_a):
        assert snapshot(tree_a) == snapshot(tree_a)

    def test_not_a_directory(self, tmp_path):
        with pytest.raises(NotADirectoryError):
            snapshot(str(tmp_path / "missing"))


class TestCompare:
    """Test three-way snapshot comparison."""

    def test_identical_trees(self, tree_a, tree_b):
        diff, identical = compare(snapshot(tree_a), snapshot(tree_b))

        assert identical
        assert diff.identical
        assert len(diff.unchanged) == 5
        assert directories_equal(tree_a, tree_b)

    def test_differences(self, tree_a, tree_b):
        write_tree(tree_b, {"etc/hosts": "changed", "etc/new": "x"})
        os.remove(os.path.join(tree_b, "bin", "sh"))

        diff, identical = compare(snapshot(tree_a), snapshot(tree_b))

        assert not identical
        assert diff.added == ("etc/new",)
        assert diff.removed == ("bin/sh",)
        assert diff.changed == ("etc/hosts",)
        assert diff.unchanged == ("bin", "bin/bash", "etc")

    def test_every_path_classified_once(self, tree_a, tree_b):
        write_tree(tree_b, {"etc/hosts": "changed", "opt/tool": "x"})
        a, b = snapshot(tree_a), snapshot(tree_b)

        diff, _ = compare(a, b)
        groups = diff.added + diff.removed + diff.changed + diff.unchanged

        assert sorted(groups) == sorted(set(a.paths()) | set(b.paths()))
        assert len(groups) == len(set(groups))

    def test_swapping_inputs(self, tree_a, tree_b):
        write_tree(tree_b, {"opt/tool": "x"})
        a, b = snapshot(tree_a), snapshot(tree_b)

        forward, _ = compare(a, b)
        backward, _ = compare(b, a)

        assert forward.added == backward.removed
        assert forward.removed == backward.added
        assert forward.changed == backward.changed

    def test_symlink_target_change(self, tree_a, tree_b):
        link = os.path.join(tree_b, "bin", "bash")
        os.remove(link)
        os.symlink("/bin/sh", link)

        diff, _ = compare(snapshot(tree_a), snapshot(tree_b))

        assert diff.changed == ("bin/bash",)

    def test_kind_change(self, tree_a, tree_b):
        os.remove(os.path.join(tree_b, "bin", "bash"))
        write_tree(tree_b, {"bin/bash": "bash"})

        diff, _ = compare(snapshot(tree_a), snapshot(tree_b))

        assert diff.changed == ("bin/bash",)

    def test_content_ignored_without_fingerprints(self, tree_a, tree_b):
        write_tree(tree_b, {"etc/hosts": "changed"})

        assert not directories_equal(tree_a, tree_b)
        assert directories_equal(tree_a, tree_b, include_content=False)
