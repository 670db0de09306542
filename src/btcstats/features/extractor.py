"""Per-patch texture statistics.

The analysis engine treats feature extraction as a pluggable step behind
the FeatureExtractor protocol. The default implementation computes the
ternary (more generally n-ary) correlation statistics of a quantized patch.
"""

from __future__ import annotations

from numbers import Integral
from typing import Protocol

import numpy as np
import numpy.typing as npt

from btcstats.config import ConfigurationError
from btcstats.features.coordinates import COORDINATES

_MIN_LEVELS = 2


class FeatureExtractor(Protocol):
    """Protocol for per-patch feature extraction.

    Implementations must tolerate NaN-holed input and signal an undefined
    statistic by returning NaN entries rather than raising.
    """

    def n_features(self, n_levels: int) -> int:
        """Return the length of the feature vector for n_levels."""
        ...

    def __call__(
        self,
        patch: npt.NDArray[np.floating],
        n_levels: int,
    ) -> npt.NDArray[np.float64]:
        """Compute the feature vector of one patch."""
        ...


def check_n_levels(n_levels: int) -> int:
    """Validate a number of quantization levels.

    Raises:
        ConfigurationError: If n_levels is not an integer >= 2.
    """
    if (
        isinstance(n_levels, bool)
        or not isinstance(n_levels, Integral)
        or n_levels < _MIN_LEVELS
    ):
        raise ConfigurationError("n_levels", f"must be an integer >= 2, got {n_levels!r}")
    return int(n_levels)


def _harmonics(n_levels: int) -> list[tuple[int, bool]]:
    """List (k, imaginary) pairs of the independent character components."""
    components: list[tuple[int, bool]] = []
    for k in range(1, (n_levels - 1) // 2 + 1):
        components.append((k, False))
        components.append((k, True))
    if n_levels % 2 == 0:
        components.append((n_levels // 2, False))
    return components


class TernaryCorrelationExtractor:
    """Correlation statistics over 2x2 gliders of a quantized patch.

    Patch values are level indices 0..n_levels-1; NaN marks pixels that
    must be ignored. Only gliders whose four pixels are all valid are used.

    For every coordinate in the dictionary, the glider values in the
    coordinate's subset are summed modulo n_levels, and the average of
    omega**(k * sum), omega = exp(2 pi i / n_levels), is reported for each
    independent harmonic k. This yields n_levels - 1 numbers per coordinate:
    for binary images these are the usual +/-1 correlations, for ternary
    images the real and imaginary parts of the complex correlation.
    """

    __slots__ = ()

    def n_features(self, n_levels: int) -> int:
        """Return 10 * (n_levels - 1)."""
        n_levels = check_n_levels(n_levels)
        return len(COORDINATES) * (n_levels - 1)

    def feature_names(self, n_levels: int) -> list[str]:
        """Return a name for every entry of the feature vector."""
        n_levels = check_n_levels(n_levels)
        if n_levels == _MIN_LEVELS:
            return [coord.code for coord in COORDINATES]
        names: list[str] = []
        for coord in COORDINATES:
            for k, imaginary in _harmonics(n_levels):
                names.append(f"{coord.code}_{'im' if imaginary else 're'}{k}")
        return names

    def __call__(
        self,
        patch: npt.NDArray[np.floating],
        n_levels: int,
    ) -> npt.NDArray[np.float64]:
        """Compute the correlation statistics of one patch.

        Args:
            patch: 2D array of level indices, NaN for excluded pixels.
            n_levels: Number of quantization levels.

        Returns:
            Vector of length n_features(n_levels); all NaN if the patch
            has no fully valid 2x2 glider.
        """
        n_features = self.n_features(n_levels)
        undefined = np.full(n_features, np.nan)

        values = np.asarray(patch, dtype=float)
        if values.ndim != 2 or values.shape[0] < 2 or values.shape[1] < 2:  # noqa: PLR2004
            return undefined

        corners = {
            "A": values[:-1, :-1],
            "B": values[:-1, 1:],
            "C": values[1:, :-1],
            "D": values[1:, 1:],
        }
        valid = ~np.any([np.isnan(c) for c in corners.values()], axis=0)
        if not valid.any():
            return undefined

        gliders = {
            name: np.mod(np.rint(c[valid]).astype(np.int64), n_levels)
            for name, c in corners.items()
        }
        harmonics = _harmonics(n_levels)

        features = np.empty(n_features)
        i = 0
        for coord in COORDINATES:
            total = np.mod(sum(gliders[p] for p in coord.positions), n_levels)
            for k, imaginary in harmonics:
                phase = 2 * np.pi * k * total / n_levels
                features[i] = np.mean(np.sin(phase)) if imaginary else np.mean(np.cos(phase))
                i += 1
        return features


def process_block(
    patch: npt.NDArray[np.floating],
    n_levels: int,
) -> npt.NDArray[np.float64]:
    """Convenience function computing the default texture statistics.

    Args:
        patch: 2D array of level indices, NaN for excluded pixels.
        n_levels: Number of quantization levels.

    Returns:
        Feature vector (see TernaryCorrelationExtractor).
    """
    return TernaryCorrelationExtractor()(patch, n_levels)
