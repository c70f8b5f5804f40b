"""Single-image analysis and two-image diff of package inventories.

The engine is independent of the package manager: it only sees inventories,
so every analyzer shares the same diff semantics.
"""

from typing import Any, List, Optional

from ..core.types import OSRelease
from ..packages.models import Inventory, PackageInfo
from .models import AnalysisResult, DiffResult, FieldChange, PackageChange, PackageEntry


def analyze(
    inventory: Inventory,
    analyzer: str,
    image: str,
    os_release: Optional[OSRelease] = None,
) -> AnalysisResult:
    """Wrap an inventory into an analysis result.

    Args:
        inventory: Packages found in the image
        analyzer: Name of the analyzer that built the inventory
        image: Label of the analyzed image
        os_release: Detected OS release, if any

    Returns:
        AnalysisResult listing the packages by name
    """
    return AnalysisResult(
        analyzer=analyzer, image=image, inventory=inventory, os_release=os_release
    )


def diff(
    inv_a: Inventory, inv_b: Inventory, analyzer: str, image1: str, image2: str
) -> DiffResult:
    """Compare two inventories.

    Args:
        inv_a: Inventory of the first image
        inv_b: Inventory of the second image
        analyzer: Name of the analyzer that built both inventories
        image1: Label of the first image
        image2: Label of the second image

    Returns:
        DiffResult with packages added in B, deleted from A, and modified
        between them, each ordered by package name
    """
    added = [PackageEntry(name, inv_b[name]) for name in sorted(inv_b.keys() - inv_a.keys())]
    deleted = [PackageEntry(name, inv_a[name]) for name in sorted(inv_a.keys() - inv_b.keys())]

    modified = []
    for name in sorted(inv_a.keys() & inv_b.keys()):
        change = diff_package(name, inv_a[name], inv_b[name])
        if change is not None:
            modified.append(change)

    return DiffResult(
        analyzer=analyzer,
        image1=image1,
        image2=image2,
        added=added,
        deleted=deleted,
        modified=modified,
    )


def diff_package(name: str, a: PackageInfo, b: PackageInfo) -> Optional[PackageChange]:
    """Compare the metadata of one package, or return None if nothing changed."""
    changes: List[FieldChange] = []

    def compare(field: str, before: Any, after: Any) -> None:
        if before != after:
            changes.append(FieldChange(field, before, after))

    compare("version", a.version, b.version)
    compare("source", a.source, b.source)
    # Provides order follows the database, which is not meaningful
    if set(a.provides) != set(b.provides):
        changes.append(FieldChange("provides", list(a.provides), list(b.provides)))
    if a.deps != b.deps:
        changes.append(FieldChange("deps", sorted(a.deps), sorted(b.deps)))
    compare("autoInstalled", a.auto_installed, b.auto_installed)

    if not changes:
        return None
    return PackageChange(name=name, changes=tuple(changes))
