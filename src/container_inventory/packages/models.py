"""Data models for package inventories."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class PackageInfo:
    """Installed package metadata, normalized across package managers."""

    version: str = ""
    source: Optional[str] = None
    auto_installed: bool = False
    provides: Tuple[str, ...] = ()
    deps: frozenset = frozenset()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "source": self.source,
            "autoInstalled": self.auto_installed,
            "provides": list(self.provides),
            "deps": sorted(self.deps),
        }


# Package name -> metadata
Inventory = Dict[str, PackageInfo]


@dataclass(frozen=True)
class ParseAnomaly:
    """A non-fatal finding met while scanning a package database."""

    line: int
    package: Optional[str]
    message: str

    def __str__(self) -> str:
        where = f"line {self.line}" if self.line else "unknown line"
        if self.package:
            return f"{where} ({self.package}): {self.message}"
        return f"{where}: {self.message}"


@dataclass(frozen=True)
class ParseResult:
    """Inventory built by one parser run, with the anomalies found on the way."""

    inventory: Inventory = field(default_factory=dict)
    anomalies: Tuple[ParseAnomaly, ...] = ()
