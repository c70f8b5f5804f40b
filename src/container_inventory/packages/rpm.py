"""RPM package database parser.

The rpm database is a binary store (Berkeley DB, NDB or SQLite depending on
the distribution), so it is read through the host's ``rpm`` binary. The
query format below prints every package as a stanza of ``Key: value`` lines,
which are then folded with the same scanner as the text databases.
"""

import asyncio
import logging
import os
import shutil
from typing import List, Optional

from ..exceptions import DatabaseReadError
from .base import PackageParser, check_image_root, database_path
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

logger = logging.getLogger(__name__)

RPM_DATABASES = ("var/lib/rpm", "usr/lib/sysimage/rpm")

FIELD_SEPARATOR = ": "
PACKAGE_FIELDS = ("Version", "Source", "Provides", "Depends")

QUERY_FORMAT = (
    "Package: %{NAME}\\n"
    "Version: %|EPOCH?{%{EPOCH}:}:{}|%{VERSION}-%{RELEASE}\\n"
    "%|SOURCERPM?{Source: %{SOURCERPM}\\n}:{}|"
    "[Provides: %{PROVIDENAME}\\n]"
    "[Depends: %{REQUIRENAME}\\n]"
    "\\n"
)


def find_database(fs_path: str) -> Optional[str]:
    """Return the host path of the image's rpm database directory, if any."""
    for relative in RPM_DATABASES:
        path = database_path(fs_path, relative)
        if os.path.isdir(path):
            return path
    return None


def locate_rpm_database(fs_path: str) -> Optional[str]:
    """Check the image root exists and find its rpm database (sync helper)."""
    check_image_root(fs_path)
    return find_database(fs_path)


def dependency_name(value: str) -> Optional[str]:
    """Reduce a requirement to a package name.

    File requirements (``/bin/sh``) and rich or internal capabilities
    (``rpmlib(PayloadIsXz)``, ``(a or b)``) name no package and are dropped.
    """
    tokens = value.split()
    if not tokens:
        return None
    name = tokens[0]
    if name.startswith(("/", "(", "!")) or "(" in name:
        return None
    return name


class RpmParser(PackageParser):
    """Parses the rpm database by querying it with the ``rpm`` binary."""

    name = "rpm"
    database = RPM_DATABASES[0]

    async def parse(self, fs_path: str) -> ParseResult:
        loop = asyncio.get_running_loop()
        db_dir = await loop.run_in_executor(None, locate_rpm_database, fs_path)
        if db_dir is None:
            return ParseResult()

        lines = await self._query(db_dir)
        return await loop.run_in_executor(None, scan, lines, self.parse_line)

    async def _query(self, db_dir: str) -> List[str]:
        """Run ``rpm -qa`` against ``db_dir`` and return its output lines.

        Raises:
            DatabaseReadError: If rpm is not installed or the query fails
        """
        rpm = shutil.which("rpm")
        if rpm is None:
            raise DatabaseReadError(
                f"Cannot read rpm database {db_dir}: rpm binary not found"
            )

        logger.debug(f"Querying rpm database {db_dir}")
        try:
            process = await asyncio.create_subprocess_exec(
                rpm,
                "--dbpath",
                db_dir,
                "-qa",
                "--queryformat",
                QUERY_FORMAT,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, stderr = await process.communicate()
        except OSError as e:
            raise DatabaseReadError(f"Cannot run rpm on {db_dir}: {e}") from e

        if process.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()
            raise DatabaseReadError(
                f"rpm query of {db_dir} failed ({process.returncode}): {message}"
            )

        return stdout.decode("utf-8", errors="replace").splitlines()

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
            tokens = value.split()
            if tokens:
                add_provides(inventory, current, tokens[:1])
        else:
            name = dependency_name(value)
            if name:
                add_deps(inventory, current, [name])

        return current
