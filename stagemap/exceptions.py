"""Common exceptions for stagemap.

The engine core never raises for malformed input; it degrades gracefully.
The exceptions below are raised by the outer surfaces only: settings
parsing, file loading and snapshot handling.
"""

from typing import Any


class StageMapError(Exception):
    """Base exception for all stagemap-related errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        """Initialize exception with message and optional context."""
        super().__init__(message)
        self.context = context or {}


class ConfigurationError(StageMapError):
    """Raised when map settings are structurally invalid."""

    def __init__(
        self,
        message: str,
        config_section: str | None = None,
        config_key: str | None = None,
        context: dict[str, Any] | None = None
    ):
        """Initialize configuration error with details."""
        super().__init__(message, context)
        self.config_section = config_section
        self.config_key = config_key


class LoadError(StageMapError):
    """Raised when a map or snapshot file cannot be read or parsed."""

    def __init__(
        self,
        message: str,
        file_path: str | None = None,
        context: dict[str, Any] | None = None
    ):
        """Initialize load error with details."""
        super().__init__(message, context)
        self.file_path = file_path


class SnapshotError(StageMapError):
    """Raised when a snapshot does not have the persisted shape."""

    def __init__(
        self,
        message: str,
        section: str | None = None,
        context: dict[str, Any] | None = None
    ):
        """Initialize snapshot error with details."""
        super().__init__(message, context)
        self.section = section


__all__ = [
    'StageMapError',
    'ConfigurationError',
    'LoadError',
    'SnapshotError',
]
