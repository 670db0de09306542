"""Shared pytest fixtures and configuration."""

from collections.abc import Iterator

import numpy as np
import numpy.typing as npt
import pytest

from btcstats.config import Settings
from btcstats.utils.logging import clear_correlation_context, configure_logging


@pytest.fixture(autouse=True)
def reset_logging_context() -> Iterator[None]:
    """Reset correlation context between tests."""
    clear_correlation_context()
    yield
    clear_correlation_context()


@pytest.fixture
def test_settings() -> Settings:
    """Create a Settings instance with test-safe defaults."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        LOG_LEVEL="DEBUG",
        LOG_FORMAT="console",
    )


@pytest.fixture
def configure_test_logging() -> Iterator[None]:
    """Configure logging for tests with console output."""
    configure_logging(level="DEBUG", log_format="console")
    yield


@pytest.fixture
def ternary_image() -> npt.NDArray[np.float64]:
    """A 12x12 image of random ternary level indices."""
    rng = np.random.default_rng(1234)
    return rng.integers(0, 3, size=(12, 12)).astype(np.float64)


@pytest.fixture
def checkerboard() -> npt.NDArray[np.float64]:
    """A 4x4 binary checkerboard."""
    return (np.indices((4, 4)).sum(axis=0) % 2).astype(np.float64)
