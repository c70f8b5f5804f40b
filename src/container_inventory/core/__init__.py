"""Core types."""

from .types import DEFAULT_ANALYZERS, AnalyzerConfig, Image, OSRelease

__all__ = ["DEFAULT_ANALYZERS", "AnalyzerConfig", "Image", "OSRelease"]
