"""Line scanner shared by the package database parsers.

A database is read as a fold over its lines. The state is the name of the
package currently being described (``None`` before the first one); each
parser supplies the transition ``parse_line(text, current, inventory,
anomalies, line_no) -> current``.
"""

from dataclasses import replace
from typing import Callable, Iterable, List, Optional, Tuple

from .models import Inventory, PackageInfo, ParseAnomaly, ParseResult

Transition = Callable[
    [str, Optional[str], Inventory, List[ParseAnomaly], int], Optional[str]
]

DUPLICATE_VERSION = (
    "Multiple versions of same package detected. "
    "Diffing such multi-versioning not yet supported."
)


def scan(lines: Iterable[str], transition: Transition) -> ParseResult:
    """Fold ``transition`` over ``lines`` into an inventory.

    Args:
        lines: Database lines in file order
        transition: Per-line state transition of the parser

    Returns:
        ParseResult with the built inventory and collected anomalies
    """
    inventory: Inventory = {}
    anomalies: List[ParseAnomaly] = []
    current: Optional[str] = None

    for line_no, text in enumerate(lines, 1):
        current = transition(text.rstrip("\r\n"), current, inventory, anomalies, line_no)

    return ParseResult(inventory=inventory, anomalies=tuple(anomalies))


def split_field(text: str, separator: str) -> Optional[Tuple[str, str]]:
    """Split ``key<separator>value``, returning None for malformed lines."""
    key, sep, value = text.partition(separator)
    if not sep or not key or key != key.strip():
        return None
    return key, value.strip()


def require_package(
    current: Optional[str],
    key: str,
    anomalies: List[ParseAnomaly],
    line_no: int,
) -> bool:
    """Check that a field belongs to a package, recording an anomaly if not."""
    if current:
        return True
    anomalies.append(
        ParseAnomaly(line_no, None, f"Field {key!r} appears before any package name")
    )
    return False


def update_package(inventory: Inventory, name: str, **changes) -> None:
    """Replace the record of ``name`` with the given fields changed."""
    inventory[name] = replace(inventory.get(name, PackageInfo()), **changes)


def set_version(
    inventory: Inventory,
    anomalies: List[ParseAnomaly],
    name: str,
    version: str,
    line_no: int,
) -> None:
    """Set a package version once; later assignments are anomalies."""
    existing = inventory.get(name)
    if existing is not None and existing.version:
        anomalies.append(ParseAnomaly(line_no, name, DUPLICATE_VERSION))
        return
    update_package(inventory, name, version=version)


def add_provides(inventory: Inventory, name: str, provides: Iterable[str]) -> None:
    current = inventory.get(name, PackageInfo())
    update_package(inventory, name, provides=current.provides + tuple(provides))


def add_deps(inventory: Inventory, name: str, deps: Iterable[str]) -> None:
    current = inventory.get(name, PackageInfo())
    update_package(inventory, name, deps=current.deps | frozenset(deps))
