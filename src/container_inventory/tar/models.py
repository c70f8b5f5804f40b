"""Data models for image archive handling."""

from dataclasses import dataclass
from typing import List, Optional


@dataclass
class LayerInfo:
    """Layer entry of an image archive."""

    tar_path: str  # Path within the archive
    size: int


@dataclass
class ImageInfo:
    """Image information read from a ``docker save`` archive."""

    image_id: str
    repo_tags: List[str]
    config_path: str
    layers: List[LayerInfo]

    @property
    def name(self) -> Optional[str]:
        """First repository tag, if the archive carries one."""
        return self.repo_tags[0] if self.repo_tags else None
