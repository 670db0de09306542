"""Texture feature extraction for btcstats.

Provides the coordinate dictionary and the default ternary correlation
extractor used to compute one feature vector per patch.
"""

from __future__ import annotations

from btcstats.features.coordinates import (
    COORDINATES,
    ORDER_KINDS,
    Coordinate,
    coordinate_kinds,
    get_coordinate,
)
from btcstats.features.extractor import (
    FeatureExtractor,
    TernaryCorrelationExtractor,
    check_n_levels,
    process_block,
)

__all__ = [
    "COORDINATES",
    "ORDER_KINDS",
    "Coordinate",
    "FeatureExtractor",
    "TernaryCorrelationExtractor",
    "check_n_levels",
    "coordinate_kinds",
    "get_coordinate",
    "process_block",
]
