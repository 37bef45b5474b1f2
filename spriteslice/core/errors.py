"""Domain-specific exceptions for the sprite slicer."""

from pathlib import Path


class InvalidImageError(ValueError):
    """Raised when the selected image file is missing or unreadable."""

    def __init__(self, path: Path, reason: str | None = None):
        message = f"Invalid image file: {path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class ValidationError(ValueError):
    """Raised when user-provided settings or rectangles fail validation."""


class ProcessingError(RuntimeError):
    """Raised when the pipeline fails unexpectedly."""
