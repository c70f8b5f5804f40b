"""Core data types shared across the package."""

import logging
import os
import shutil
from dataclasses import dataclass, field
from typing import Optional

from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_ANALYZERS: tuple[str, ...] = ("apt", "apk", "rpm")


@dataclass
class AnalyzerConfig:
    """Settings supplied by the caller before any extraction work starts."""

    analyzers: tuple[str, ...] = DEFAULT_ANALYZERS
    save: bool = False
    exclude: tuple[str, ...] = ()
    work_dir: Optional[str] = None

    def __post_init__(self) -> None:
        # Dedupe repeated names, keeping the first occurrence
        self.analyzers = tuple(dict.fromkeys(self.analyzers))
        self.exclude = tuple(self.exclude)

    def validate(self) -> None:
        """Check that every requested analyzer exists.

        Raises:
            ConfigurationError: If no analyzer is selected or a name is unknown
        """
        from ..packages import ANALYZERS

        if not self.analyzers:
            raise ConfigurationError("At least one analyzer must be selected")

        for name in self.analyzers:
            if name not in ANALYZERS:
                raise ConfigurationError(f"Argument {name} is not a valid analyzer")

        if self.work_dir is not None and not os.path.isdir(self.work_dir):
            raise ConfigurationError(f"Work directory does not exist: {self.work_dir}")


@dataclass(frozen=True)
class OSRelease:
    """OS distribution name and version."""

    name: str
    version: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "version": self.version}


@dataclass
class Image:
    """A materialized image filesystem on local storage."""

    source: str
    fs_path: str
    image_id: Optional[str] = None
    save: bool = False
    _cleaned: bool = field(default=False, init=False, repr=False)

    def __enter__(self) -> "Image":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.cleanup()

    def cleanup(self) -> None:
        """Remove the materialized filesystem unless it should be kept."""
        if self._cleaned:
            return
        self._cleaned = True

        if self.save:
            logger.info(f"Keeping filesystem for {self.source} at {self.fs_path}")
            return

        logger.debug(f"Removing filesystem for {self.source} at {self.fs_path}")
        shutil.rmtree(self.fs_path, ignore_errors=True)
