"""Container Inventory - package inventories and diffs of container images."""

__version__ = "0.1.0"

from .analysis import (
    AnalysisResult,
    DiffReport,
    DiffResult,
    ImageReport,
    analyze,
    analyze_image,
    diff,
    diff_images,
    prepare_image,
    prepare_image_from_archive,
)
from .core.types import AnalyzerConfig, Image, OSRelease
from .exceptions import (
    ArchiveError,
    ConfigurationError,
    DatabaseReadError,
    ExtractionError,
    ImageNotFoundError,
    InventoryError,
    LayerReadError,
    OSReleaseError,
    PathEscapeError,
)
from .output import build_report, to_json
from .packages import ANALYZERS, PackageInfo, get_parser
from .tar.extractor import extract_layers

__all__ = [
    "ANALYZERS",
    "AnalysisResult",
    "AnalyzerConfig",
    "ArchiveError",
    "ConfigurationError",
    "DatabaseReadError",
    "DiffReport",
    "DiffResult",
    "ExtractionError",
    "Image",
    "ImageNotFoundError",
    "ImageReport",
    "InventoryError",
    "LayerReadError",
    "OSRelease",
    "OSReleaseError",
    "PackageInfo",
    "PathEscapeError",
    "analyze",
    "analyze_image",
    "build_report",
    "diff",
    "diff_images",
    "extract_layers",
    "get_parser",
    "to_json",
]
