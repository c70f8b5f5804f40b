"""Report serialization."""

import json
from typing import Any, Dict, Optional, Union

from .analysis.runner import DiffReport, ImageReport
from .core.types import OSRelease


def _os_release(release: Optional[OSRelease]) -> Optional[Dict[str, str]]:
    return release.to_dict() if release else None


def _errors(errors: Dict[str, Exception]) -> Dict[str, str]:
    return {name: str(errors[name]) for name in sorted(errors)}


def _image_id(report: ImageReport) -> str:
    return report.image.image_id or report.image.source


def build_analysis_report(report: ImageReport) -> Dict[str, Any]:
    """Build the JSON-ready report of a single image analysis."""
    return {
        "imageId": _image_id(report),
        "osRelease": _os_release(report.os_release),
        "results": [report.results[name].to_dict() for name in sorted(report.results)],
        "errors": _errors(report.errors),
    }


def build_diff_report(report: DiffReport) -> Dict[str, Any]:
    """Build the JSON-ready report of a two-image diff."""
    return {
        "imageIds": [_image_id(report.before), _image_id(report.after)],
        "osReleases": [
            _os_release(report.before.os_release),
            _os_release(report.after.os_release),
        ],
        "results": [report.results[name].to_dict() for name in sorted(report.results)],
        "errors": _errors(report.errors),
    }


def build_report(report: Union[ImageReport, DiffReport]) -> Dict[str, Any]:
    """Build the JSON-ready report of an analysis or a diff."""
    if isinstance(report, DiffReport):
        return build_diff_report(report)
    return build_analysis_report(report)


def to_json(report: Union[ImageReport, DiffReport, Dict[str, Any]], indent: int = 2) -> str:
    """Render a report as JSON."""
    if not isinstance(report, dict):
        report = build_report(report)
    return json.dumps(report, indent=indent)
