"""Run package analyzers against materialized image filesystems.

Layers of one image are applied in order in the default executor; the
analyzers of an image (and the two images of a diff) run concurrently.
"""

import asyncio
import logging
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from ..core.types import AnalyzerConfig, Image, OSRelease
from ..exceptions import InventoryError
from ..packages import get_parser
from ..packages.models import ParseAnomaly, ParseResult
from ..tar.extractor import LayerArchive, extract_layers
from ..tar.reader import ImageArchiveReader
from ..utils.os_release import detect_os_release
from .engine import analyze, diff
from .models import AnalysisResult, DiffResult

logger = logging.getLogger(__name__)

FS_PREFIX = "container-inventory-"


@dataclass
class ImageReport:
    """Outcome of running every configured analyzer on one image."""

    image: Image
    os_release: Optional[OSRelease] = None
    results: Dict[str, AnalysisResult] = field(default_factory=dict)
    errors: Dict[str, Exception] = field(default_factory=dict)
    anomalies: Dict[str, Tuple[ParseAnomaly, ...]] = field(default_factory=dict)


@dataclass
class DiffReport:
    """Outcome of diffing two images with every configured analyzer."""

    before: ImageReport
    after: ImageReport
    results: Dict[str, DiffResult] = field(default_factory=dict)
    errors: Dict[str, Exception] = field(default_factory=dict)


def _make_fs_dir(config: AnalyzerConfig, source: str) -> str:
    config.validate()
    fs_path = tempfile.mkdtemp(prefix=FS_PREFIX, dir=config.work_dir)
    logger.info(f"Extracting {source} to {fs_path}")
    return fs_path


async def prepare_image(
    layers: Iterable[LayerArchive],
    config: AnalyzerConfig,
    source: str = "layers",
    image_id: Optional[str] = None,
) -> Image:
    """Squash layer archives into a new image filesystem.

    Args:
        layers: Ordered layer archives, oldest first
        config: Analyzer configuration (``exclude``, ``work_dir``, ``save``)
        source: Label of the image used in results
        image_id: Optional image identifier

    Returns:
        Image handle; the caller is responsible for ``cleanup()``

    Raises:
        ConfigurationError: If the configuration is invalid
        ExtractionError: If the layers cannot be applied
    """
    fs_path = _make_fs_dir(config, source)
    loop = asyncio.get_running_loop()
    try:
        await loop.run_in_executor(None, extract_layers, layers, fs_path, config.exclude)
    except Exception:
        shutil.rmtree(fs_path, ignore_errors=True)
        raise

    return Image(source=source, fs_path=fs_path, image_id=image_id, save=config.save)


async def prepare_image_from_archive(
    archive_path: Union[str, Path], config: AnalyzerConfig
) -> Image:
    """Squash the layers of a ``docker save`` archive into a new image filesystem.

    The image is labeled with its first repository tag, or the archive path
    when it has none.

    Raises:
        ConfigurationError: If the configuration is invalid
        ArchiveError: If the archive is missing or malformed
        ExtractionError: If the layers cannot be applied
    """
    fs_path = _make_fs_dir(config, str(archive_path))
    try:
        async with ImageArchiveReader(archive_path) as reader:
            info = await reader.extract_to(fs_path, config.exclude)
    except Exception:
        shutil.rmtree(fs_path, ignore_errors=True)
        raise

    return Image(
        source=info.name or str(archive_path),
        fs_path=fs_path,
        image_id=info.image_id,
        save=config.save,
    )


async def _detect_os_release(image: Image) -> Optional[OSRelease]:
    loop = asyncio.get_running_loop()
    try:
        return await loop.run_in_executor(None, detect_os_release, image.fs_path)
    except InventoryError as e:
        logger.warning(f"Could not detect OS release of {image.source}: {e}")
        return None


def _collect(
    image: Image, names: Tuple[str, ...], outcomes: List[Any]
) -> Tuple[Dict[str, ParseResult], Dict[str, Exception]]:
    """Split gathered parser outcomes into results and analyzer errors."""
    parsed: Dict[str, ParseResult] = {}
    errors: Dict[str, Exception] = {}

    for name, outcome in zip(names, outcomes):
        if isinstance(outcome, InventoryError):
            logger.error(f"{name} analyzer failed on {image.source}: {outcome}")
            errors[name] = outcome
        elif isinstance(outcome, Exception):
            logger.error(
                f"{name} analyzer crashed on {image.source}: {outcome!r}",
                exc_info=outcome,
            )
            errors[name] = outcome
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            for anomaly in outcome.anomalies:
                logger.warning(f"{name} analyzer, {image.source}: {anomaly}")
            parsed[name] = outcome

    return parsed, errors


async def analyze_image(image: Image, config: AnalyzerConfig) -> ImageReport:
    """Run every configured analyzer on an image concurrently.

    A failing analyzer is reported in ``errors`` without affecting the
    others.

    Args:
        image: Materialized image filesystem
        config: Analyzer configuration

    Returns:
        ImageReport keyed by analyzer name

    Raises:
        ConfigurationError: If the configuration is invalid
    """
    config.validate()
    names = config.analyzers
    parsers = [get_parser(name) for name in names]

    os_release, outcomes = await asyncio.gather(
        _detect_os_release(image),
        asyncio.gather(
            *(parser.parse(image.fs_path) for parser in parsers),
            return_exceptions=True,
        ),
    )
    parsed, errors = _collect(image, names, outcomes)

    return ImageReport(
        image=image,
        os_release=os_release,
        results={
            name: analyze(result.inventory, name, image.source, os_release)
            for name, result in parsed.items()
        },
        errors=errors,
        anomalies={name: result.anomalies for name, result in parsed.items()},
    )


async def diff_images(image1: Image, image2: Image, config: AnalyzerConfig) -> DiffReport:
    """Diff the inventories of two images for every configured analyzer.

    Both images are analyzed concurrently. An analyzer that failed on either
    image is reported in ``errors`` and has no diff result.

    Raises:
        ConfigurationError: If the configuration is invalid
    """
    config.validate()
    before, after = await asyncio.gather(
        analyze_image(image1, config), analyze_image(image2, config)
    )

    results: Dict[str, DiffResult] = {}
    errors: Dict[str, Exception] = {}
    for name in config.analyzers:
        error = before.errors.get(name) or after.errors.get(name)
        if error is not None:
            errors[name] = error
            continue
        results[name] = diff(
            before.results[name].inventory,
            after.results[name].inventory,
            name,
            image1.source,
            image2.source,
        )

    return DiffReport(before=before, after=after, results=results, errors=errors)
