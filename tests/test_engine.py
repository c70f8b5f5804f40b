"""Tests for inventory analysis and diffing."""

import pytest

from container_inventory.analysis.engine import analyze, diff, diff_package
from container_inventory.analysis.models import FieldChange
from container_inventory.core.types import OSRelease
from container_inventory.packages.models import PackageInfo


@pytest.fixture
def inventory_a():
    return {
        "libc6": PackageInfo("2.24-11", source="glibc", deps=frozenset({"libgcc1"})),
        "make": PackageInfo("4.1-9"),
        "zlib1g": PackageInfo("1.2.8", provides=("libz1", "libz")),
    }


@pytest.fixture
def inventory_b():
    return {
        "libc6": PackageInfo("2.28-10", source="glibc", deps=frozenset({"libgcc1"})),
        "curl": PackageInfo("7.64.0-4", auto_installed=True),
        "zlib1g": PackageInfo("1.2.8", provides=("libz", "libz1")),
    }


class TestAnalyze:
    """Test single-image analysis results."""

    def test_packages_sorted(self, inventory_a):
        release = OSRelease("debian", "9")
        result = analyze(inventory_a, "apt", "debian:9", release)

        assert [package.name for package in result.packages] == ["libc6", "make", "zlib1g"]
        data = result.to_dict()
        assert data["analyzer"] == "apt"
        assert data["image"] == "debian:9"
        assert data["osRelease"] == {"name": "debian", "version": "9"}
        assert data["packages"][0] == {
            "name": "libc6",
            "version": "2.24-11",
            "source": "glibc",
            "autoInstalled": False,
            "provides": [],
            "deps": ["libgcc1"],
        }

    def test_empty_inventory(self):
        assert analyze({}, "apk", "alpine").to_dict()["packages"] == []


class TestDiff:
    """Test two-image inventory diffs."""

    def test_added_deleted_modified(self, inventory_a, inventory_b):
        result = diff(inventory_a, inventory_b, "apt", "old", "new")

        assert [package.name for package in result.added] == ["curl"]
        assert [package.name for package in result.deleted] == ["make"]
        assert [change.name for change in result.modified] == ["libc6"]
        assert result.modified[0].changes == (FieldChange("version", "2.24-11", "2.28-10"),)

    def test_provides_order_ignored(self, inventory_a, inventory_b):
        result = diff(inventory_a, inventory_b, "apt", "old", "new")

        assert "zlib1g" not in [change.name for change in result.modified]

    def test_self_diff_is_empty(self, inventory_a):
        result = diff(inventory_a, inventory_a, "apt", "x", "x")

        assert result.is_empty
        assert result.to_dict()["added"] == []

    def test_swapped_inputs(self, inventory_a, inventory_b):
        forward = diff(inventory_a, inventory_b, "apt", "a", "b")
        backward = diff(inventory_b, inventory_a, "apt", "b", "a")

        assert forward.added == backward.deleted
        assert forward.deleted == backward.added
        assert [c.name for c in forward.modified] == [c.name for c in backward.modified]

    def test_ordering(self):
        inv_b = {name: PackageInfo("1") for name in ["zsh", "bash", "mksh"]}

        result = diff({}, inv_b, "apk", "a", "b")

        assert [package.name for package in result.added] == ["bash", "mksh", "zsh"]

    def test_does_not_mutate_inputs(self, inventory_a, inventory_b):
        before = (dict(inventory_a), dict(inventory_b))

        diff(inventory_a, inventory_b, "apt", "a", "b")

        assert (inventory_a, inventory_b) == before

    def test_to_dict(self, inventory_a, inventory_b):
        data = diff(inventory_a, inventory_b, "apt", "old", "new").to_dict()

        assert data["image1"] == "old"
        assert data["image2"] == "new"
        assert data["added"][0]["name"] == "curl"
        assert data["added"][0]["autoInstalled"] is True
        assert data["modified"] == [
            {
                "name": "libc6",
                "changes": [{"field": "version", "before": "2.24-11", "after": "2.28-10"}],
            }
        ]


class TestDiffPackage:
    """Test per-package field comparison."""

    def test_unchanged(self):
        info = PackageInfo("1.0", source="src", deps=frozenset({"a"}))

        assert diff_package("pkg", info, info) is None

    def test_every_field(self):
        a = PackageInfo("1.0", source="old", provides=("x",), deps=frozenset({"a"}))
        b = PackageInfo(
            "2.0", source="new", auto_installed=True, provides=("y",), deps=frozenset({"b"})
        )

        change = diff_package("pkg", a, b)

        assert change.name == "pkg"
        assert change.changes == (
            FieldChange("version", "1.0", "2.0"),
            FieldChange("source", "old", "new"),
            FieldChange("provides", ["x"], ["y"]),
            FieldChange("deps", ["a"], ["b"]),
            FieldChange("autoInstalled", False, True),
        )
