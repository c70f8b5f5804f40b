"""Package inventory analysis and diffing."""

from .engine import analyze, diff, diff_package
from .models import AnalysisResult, DiffResult, FieldChange, PackageChange, PackageEntry
from .runner import (
    DiffReport,
    ImageReport,
    analyze_image,
    diff_images,
    prepare_image,
    prepare_image_from_archive,
)

__all__ = [
    "AnalysisResult",
    "DiffReport",
    "DiffResult",
    "FieldChange",
    "ImageReport",
    "PackageChange",
    "PackageEntry",
    "analyze",
    "analyze_image",
    "diff",
    "diff_images",
    "diff_package",
    "prepare_image",
    "prepare_image_from_archive",
]
