"""Reader for ``docker save`` image archives."""

import asyncio
import json
import tarfile
from pathlib import Path
from typing import IO, Any, Dict, Iterable, List, Optional, Union

from ..exceptions import ArchiveError
from ..utils.digest import calculate_digest
from .extractor import extract_layers
from .models import ImageInfo, LayerInfo


class ImageArchiveReader:
    """Async reader for Docker save tar files."""

    def __init__(self, archive_path: Union[str, Path]) -> None:
        """Initialize archive reader.

        Args:
            archive_path: Path to the archive created by ``docker save``

        Raises:
            ArchiveError: If the archive does not exist
        """
        self.archive_path = Path(archive_path)
        if not self.archive_path.exists():
            raise ArchiveError(f"Image archive not found: {archive_path}")
        self._tar_file: Optional[tarfile.TarFile] = None

    async def __aenter__(self) -> "ImageArchiveReader":
        """Enter async context manager."""
        loop = asyncio.get_running_loop()
        try:
            self._tar_file = await loop.run_in_executor(
                None, tarfile.open, str(self.archive_path), "r"
            )
        except (tarfile.TarError, OSError) as e:
            raise ArchiveError(f"Cannot open image archive {self.archive_path}: {e}") from e
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context manager."""
        await self.close()

    async def close(self) -> None:
        """Close the archive."""
        if self._tar_file:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self._tar_file.close)
            self._tar_file = None

    async def get_manifest(self) -> List[Dict[str, Any]]:
        """Get the manifest.json entries of the archive.

        Returns:
            Manifest entries

        Raises:
            ArchiveError: If manifest cannot be read or is not a non-empty list
        """
        loop = asyncio.get_running_loop()
        content = await loop.run_in_executor(
            None, self._extract_file_content, "manifest.json"
        )
        try:
            manifest = json.loads(content)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ArchiveError(f"Invalid JSON in manifest.json: {e}") from e

        if not isinstance(manifest, list) or not manifest:
            raise ArchiveError("manifest.json must be a non-empty array")
        return manifest

    async def extract_image_info(self) -> ImageInfo:
        """Extract image information from the first manifest entry.

        Returns:
            ImageInfo object

        Raises:
            ArchiveError: If the manifest entry is incomplete or refers to missing layers
        """
        manifest = (await self.get_manifest())[0]
        if not isinstance(manifest, dict) or "Config" not in manifest:
            raise ArchiveError("Manifest entry has no Config field")

        layer_paths = manifest.get("Layers", [])
        if not isinstance(layer_paths, list):
            raise ArchiveError("Layers must be a list")

        layers = []
        for layer_path in layer_paths:
            member = self._get_member(layer_path)
            layers.append(LayerInfo(tar_path=layer_path, size=member.size))

        # The image ID is the digest of the image config blob
        config_path = manifest["Config"]
        loop = asyncio.get_running_loop()
        config = await loop.run_in_executor(
            None, self._extract_file_content, config_path
        )

        return ImageInfo(
            image_id=calculate_digest(config),
            repo_tags=manifest.get("RepoTags") or [],
            config_path=config_path,
            layers=layers,
        )

    async def extract_to(
        self, target: Union[str, Path], exclude: Iterable[str] = ()
    ) -> ImageInfo:
        """Squash all layers of the archive into ``target``.

        Args:
            target: Directory receiving the merged filesystem
            exclude: Root-relative path prefixes left untouched

        Returns:
            ImageInfo of the extracted image

        Raises:
            ArchiveError: If the archive structure is invalid
            ExtractionError: If a layer cannot be applied
        """
        image_info = await self.extract_image_info()
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(
            None, self._extract_layers, image_info, str(target), tuple(exclude)
        )
        return image_info

    def open_layer(self, layer_path: str) -> IO[bytes]:
        """Open a layer blob inside the archive (sync helper)."""
        member = self._get_member(layer_path)
        layer_file = self._tar_file.extractfile(member)
        if layer_file is None:
            raise ArchiveError(f"Could not extract layer {layer_path}")
        return layer_file

    def _extract_layers(
        self, image_info: ImageInfo, target: str, exclude: tuple[str, ...]
    ) -> None:
        # Layers open lazily so only one blob stream is live at a time
        layers = (self.open_layer(layer.tar_path) for layer in image_info.layers)
        extract_layers(layers, target, exclude)

    def _get_member(self, filename: str) -> tarfile.TarInfo:
        if not self._tar_file:
            raise ArchiveError("Image archive not opened")
        try:
            return self._tar_file.getmember(filename)
        except KeyError:
            raise ArchiveError(f"File {filename} not found in archive")

    def _extract_file_content(self, filename: str) -> bytes:
        """Extract file content from the archive (sync helper).

        Args:
            filename: Name of file to extract

        Returns:
            File content as bytes

        Raises:
            ArchiveError: If file cannot be extracted
        """
        member = self._get_member(filename)
        try:
            file_obj = self._tar_file.extractfile(member)
            if file_obj is None:
                raise ArchiveError(f"Could not extract {filename}")

            content = file_obj.read()
            file_obj.close()
            return content
        except (tarfile.TarError, OSError) as e:
            raise ArchiveError(f"Failed to extract {filename}: {e}") from e
