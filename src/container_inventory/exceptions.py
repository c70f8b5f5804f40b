"""Custom exceptions for container inventory analysis."""


class InventoryError(Exception):
    """Base exception for all inventory-related errors."""

    pass


class ConfigurationError(InventoryError):
    """Raised when the analyzer configuration is invalid."""

    pass


class ExtractionError(InventoryError):
    """Raised when a layer cannot be applied to the target directory."""

    pass


class PathEscapeError(ExtractionError):
    """Raised when a tar entry or symlink would resolve outside the extraction root."""

    pass


class LayerReadError(ExtractionError):
    """Raised when unable to open or read a layer tar stream."""

    pass


class ArchiveError(InventoryError):
    """Raised when an image archive is missing or malformed."""

    pass


class ImageNotFoundError(InventoryError):
    """Raised when an image filesystem root does not exist."""

    pass


class DatabaseReadError(InventoryError):
    """Raised when a package database exists but cannot be read."""

    pass


class OSReleaseError(InventoryError):
    """Raised when the OS release of an image cannot be detected."""

    pass
