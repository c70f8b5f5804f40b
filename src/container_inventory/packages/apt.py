"""Debian/apt package database parser."""

import asyncio
from dataclasses import replace
from typing import List, Optional

from ..exceptions import DatabaseReadError
from .base import PackageParser, database_path, read_lines
from .models import Inventory, ParseAnomaly, ParseResult
from .scanner import (
    add_deps,
    add_provides,
    require_package,
    scan,
    set_version,
    split_field,
    update_package,
)


DPKG_STATUS = "var/lib/dpkg/status"
APT_EXTENDED_STATES = "var/lib/apt/extended_states"

FIELD_SEPARATOR = ": "
DEPENDS_FIELDS = ("Depends", "Pre-Depends")
PACKAGE_FIELDS = ("Version", "Source", "Provides") + DEPENDS_FIELDS


def parse_depends(value: str) -> List[str]:
    """Parse a Debian relationship field into bare package names.

    ``gcc | c-compiler, libc6 (>= 2.15)`` gives ``gcc``, ``c-compiler`` and
    ``libc6``.
    """
    names = []
    for group in value.split(","):
        for alternative in group.split("|"):
            tokens = alternative.split()
            if not tokens:
                continue
            name = tokens[0].split("(")[0]
            if name and not name.startswith("!"):
                names.append(name)
    return names


def parse_provides(value: str) -> List[str]:
    names = []
    for element in value.split(","):
        tokens = element.split()
        if not tokens:
            continue
        name = tokens[0].split("=")[0].split("(")[0]
        if name:
            names.append(name)
    return names


def parse_extended_states_line(
    text: str,
    current: Optional[str],
    inventory: Inventory,
    anomalies: List[ParseAnomaly],
    line_no: int = 0,
) -> Optional[str]:
    """Record packages marked ``Auto-Installed: 1`` in apt's extended states."""
    field = split_field(text, FIELD_SEPARATOR)
    if field is None:
        return current

    key, value = field
    if key == "Package":
        return value
    if key == "Auto-Installed" and current:
        try:
            auto_installed = int(value)
        except ValueError:
            return current
        if auto_installed == 1:
            update_package(inventory, current, auto_installed=True)
    return current


class AptParser(PackageParser):
    """Parses ``/var/lib/dpkg/status`` and apt's auto-installed markers."""

    name = "apt"
    database = DPKG_STATUS

    async def parse(self, fs_path: str) -> ParseResult:
        result = await super().parse(fs_path)
        if not result.inventory:
            return result

        loop = asyncio.get_running_loop()
        path = await loop.run_in_executor(
            None, database_path, fs_path, APT_EXTENDED_STATES
        )
        try:
            lines = await read_lines(path)
        except DatabaseReadError as e:
            anomaly = ParseAnomaly(0, None, f"Ignoring unreadable extended states: {e}")
            return replace(result, anomalies=result.anomalies + (anomaly,))

        if lines is None:
            return result

        states = await loop.run_in_executor(
            None, scan, lines, parse_extended_states_line
        )
        inventory = dict(result.inventory)
        for name, state in states.inventory.items():
            if state.auto_installed and name in inventory:
                inventory[name] = replace(inventory[name], auto_installed=True)

        return ParseResult(inventory=inventory, anomalies=result.anomalies)

    def parse_line(
        self,
        text: str,
        current: Optional[str],
        inventory: Inventory,
        anomalies: List[ParseAnomaly],
        line_no: int = 0,
    ) -> Optional[str]:
        field = split_field(text, FIELD_SEPARATOR)
        if field is None:
            return current

        key, value = field
        if key == "Package":
            return value
        if key not in PACKAGE_FIELDS or not require_package(
            current, key, anomalies, line_no
        ):
            return current

        if key == "Version":
            set_version(inventory, anomalies, current, value, line_no)
        elif key == "Source":
            tokens = value.split()
            if tokens:
                update_package(inventory, current, source=tokens[0])
        elif key == "Provides":
            add_provides(inventory, current, parse_provides(value))
        else:
            add_deps(inventory, current, parse_depends(value))

        return current
