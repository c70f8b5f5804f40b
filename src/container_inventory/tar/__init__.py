"""Image layer extraction and ``docker save`` archive reading."""

from .extractor import extract_layer, extract_layers, open_layer, resolve_in_root
from .models import ImageInfo, LayerInfo
from .reader import ImageArchiveReader

__all__ = [
    "ImageArchiveReader",
    "ImageInfo",
    "LayerInfo",
    "extract_layer",
    "extract_layers",
    "open_layer",
    "resolve_in_root",
]
