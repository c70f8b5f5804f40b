"""Alpine/apk package database parser."""

import re
from typing import List, Optional

from .base import PackageParser
from .models import Inventory, ParseAnomaly
from .scanner import (
    add_deps,
    add_provides,
    require_package,
    set_version,
    split_field,
    update_package,
)

APK_INSTALLED = "lib/apk/db/installed"

FIELD_SEPARATOR = ":"
PACKAGE_FIELDS = ("V", "o", "p", "D", "r")

# apk constraints: name=1.0, name>=1.0, name<2, name~1.2
CONSTRAINT_PATTERN = re.compile(r"[<>=~]")


def strip_constraint(token: str) -> str:
    return CONSTRAINT_PATTERN.split(token, maxsplit=1)[0]


def parse_dependencies(value: str) -> List[str]:
    """Parse a ``D:`` or ``r:`` value; ``!name`` conflicts are dropped."""
    names = []
    for token in value.split():
        name = strip_constraint(token)
        if name and not name.startswith("!"):
            names.append(name)
    return names


def parse_provides(value: str) -> List[str]:
    return [name for name in map(strip_constraint, value.split()) if name]


class ApkParser(PackageParser):
    """Parses Alpine's ``/lib/apk/db/installed``."""

    name = "apk"
    database = APK_INSTALLED

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
        if key == "P":
            return value
        if key not in PACKAGE_FIELDS or not require_package(
            current, key, anomalies, line_no
        ):
            return current

        if key == "V":
            set_version(inventory, anomalies, current, value, line_no)
        elif key == "o":
            tokens = value.split()
            if tokens:
                update_package(inventory, current, source=tokens[0])
        elif key == "p":
            add_provides(inventory, current, parse_provides(value))
        else:
            add_deps(inventory, current, parse_dependencies(value))

        return current
