"""btcstats configuration using pydantic-settings.

All configuration is strongly typed and supports environment variables
and .env files.
"""

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when an analysis option is missing, malformed or inconsistent.

    Configuration errors are fatal: they are raised before any image or
    patch is processed and are never retried.

    Example:
        >>> raise ConfigurationError("min_patch_used", "must lie in [0, 1]")
        Traceback (most recent call last):
        ...
        btcstats.config.ConfigurationError: Invalid min_patch_used: must lie in [0, 1]
    """

    def __init__(self, option: str, reason: str) -> None:
        """Initialize configuration error.

        Args:
            option: Name of the offending option.
            reason: Human-readable description of the problem.
        """
        self.option = option
        self.reason = reason
        super().__init__(f"Invalid {option}: {reason}")

    @classmethod
    def from_validation_error(cls, error: ValidationError) -> "ConfigurationError":
        """Convert the first pydantic validation failure into a ConfigurationError."""
        first = error.errors()[0]
        option = ".".join(str(part) for part in first["loc"]) or error.title
        return cls(option, first["msg"])


class Settings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"  # "console" or "json"

    # Analysis defaults
    DEFAULT_N_LEVELS: int = 3  # ternary textures
    DEFAULT_MIN_PATCH_USED: float = 0.0
    DEFAULT_BLOCK_AF: int = 1

    # A resampled mask cell is valid only if its average is >= 1 - tolerance
    MASK_COVERAGE_TOLERANCE: float = 1e-6

    # Image copies are kept by default only for small image sets
    IMAGE_COPIES_MAX_IMAGES: int = 10


# Singleton instance for import convenience
settings = Settings()
