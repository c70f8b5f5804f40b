"""Data models for analysis and diff results."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..core.types import OSRelease
from ..packages.models import Inventory, PackageInfo


@dataclass(frozen=True)
class PackageEntry:
    """A package and its metadata, as listed in a result."""

    name: str
    info: PackageInfo

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, **self.info.to_dict()}


@dataclass(frozen=True)
class FieldChange:
    """One metadata field that differs between two images."""

    field: str
    before: Any
    after: Any

    def to_dict(self) -> Dict[str, Any]:
        return {"field": self.field, "before": self.before, "after": self.after}


@dataclass(frozen=True)
class PackageChange:
    """A package present in both images with differing metadata."""

    name: str
    changes: tuple[FieldChange, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "changes": [change.to_dict() for change in self.changes],
        }


@dataclass
class AnalysisResult:
    """Inventory of one image as seen by one analyzer."""

    analyzer: str
    image: str
    inventory: Inventory
    os_release: Optional[OSRelease] = None

    @property
    def packages(self) -> List[PackageEntry]:
        """Packages ordered by name."""
        return [PackageEntry(name, self.inventory[name]) for name in sorted(self.inventory)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "analyzer": self.analyzer,
            "image": self.image,
            "osRelease": self.os_release.to_dict() if self.os_release else None,
            "packages": [package.to_dict() for package in self.packages],
        }


@dataclass
class DiffResult:
    """Package differences between two images for one analyzer."""

    analyzer: str
    image1: str
    image2: str
    added: List[PackageEntry] = field(default_factory=list)
    deleted: List[PackageEntry] = field(default_factory=list)
    modified: List[PackageChange] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.deleted or self.modified)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "analyzer": self.analyzer,
            "image1": self.image1,
            "image2": self.image2,
            "added": [package.to_dict() for package in self.added],
            "deleted": [package.to_dict() for package in self.deleted],
            "modified": [change.to_dict() for change in self.modified],
        }
