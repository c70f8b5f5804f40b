"""Common contract of the package database parsers."""

import asyncio
import os
from abc import ABC, abstractmethod
from typing import ClassVar, List, Optional

import aiofiles
import aiofiles.os

from ..exceptions import DatabaseReadError, ImageNotFoundError
from ..tar.extractor import resolve_in_root
from .models import Inventory, ParseAnomaly, ParseResult
from .scanner import scan


def check_image_root(fs_path: str) -> None:
    """Raise ImageNotFoundError if the image filesystem root is missing."""
    if not os.path.isdir(fs_path):
        raise ImageNotFoundError(f"Image filesystem not found: {fs_path}")


def database_path(fs_path: str, relative: str) -> str:
    """Locate a database file inside the image without leaving its root."""
    return resolve_in_root(os.path.realpath(fs_path), relative)


def locate_database(fs_path: str, relative: str) -> str:
    """Check the image root exists and locate a database inside it (sync helper)."""
    check_image_root(fs_path)
    return database_path(fs_path, relative)


async def read_lines(path: str) -> Optional[List[str]]:
    """Read a text database.

    Args:
        path: Host path of the database file

    Returns:
        The file's lines, or None if the file does not exist

    Raises:
        DatabaseReadError: If the file exists but cannot be read
    """
    if not await aiofiles.os.path.exists(path):
        return None

    try:
        async with aiofiles.open(path, "r", encoding="utf-8", errors="replace") as f:
            return [line async for line in f]
    except OSError as e:
        raise DatabaseReadError(f"Cannot read package database {path}: {e}") from e


class PackageParser(ABC):
    """Turns one package manager's on-disk database into an Inventory."""

    name: ClassVar[str]
    database: ClassVar[str]

    async def parse(self, fs_path: str) -> ParseResult:
        """Parse the package database of an image filesystem.

        Args:
            fs_path: Root of the materialized image filesystem

        Returns:
            ParseResult; empty when the database does not exist

        Raises:
            ImageNotFoundError: If ``fs_path`` does not exist
            DatabaseReadError: If the database exists but cannot be read
        """
        loop = asyncio.get_running_loop()
        path = await loop.run_in_executor(
            None, locate_database, fs_path, self.database
        )
        lines = await read_lines(path)
        if lines is None:
            return ParseResult()
        return await loop.run_in_executor(None, scan, lines, self.parse_line)

    @abstractmethod
    def parse_line(
        self,
        text: str,
        current: Optional[str],
        inventory: Inventory,
        anomalies: List[ParseAnomaly],
        line_no: int = 0,
    ) -> Optional[str]:
        """Apply one database line and return the new current package."""
