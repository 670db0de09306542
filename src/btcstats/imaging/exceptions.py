"""Custom exceptions for image loading.

These exceptions wrap low-level Pillow errors with the path of the file
that failed.
"""

from pathlib import Path


class ImageLoadError(Exception):
    """Raised when an image or mask file cannot be read.

    This error is raised when:
    - The file does not exist
    - The file format is not supported by Pillow
    - The decoded image is not two-dimensional after conversion
    """

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        """Initialize load error with optional path context.

        Args:
            message: Human-readable error description.
            path: Path to the file that caused the error.
        """
        self.path = Path(path) if path else None
        self.message = message
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with path context if available."""
        if self.path:
            return f"{self.message} (path: {self.path})"
        return self.message
