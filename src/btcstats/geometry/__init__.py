"""Geometry module for btcstats.

This package provides the coordinate primitives and the mapping between
image pixels, crop rectangles and (possibly coarser) mask grids.

Key Components:
    - Primitives: PatchSize and MaskCrop models (1-based, inclusive)
    - Transforms: CoordinateMapper and crop composition
    - Validators: bounds checking for patch placements

Example:
    from btcstats.geometry import CoordinateMapper, MaskCrop

    # A 50x50 image drawn from rows/cols 11..110 of a mask
    crop = MaskCrop(row1=11, col1=11, row2=110, col2=110)
    mapper = CoordinateMapper.from_crop(crop, (50, 50))  # step == 2
    mapper.image_to_mask((1, 4), (1, 4))  # MaskCrop(11, 11, 18, 18)
"""

from btcstats.geometry.primitives import MaskCrop, PatchSize
from btcstats.geometry.transforms import CoordinateMapper, compose_crop
from btcstats.geometry.validators import patches_within_bounds

__all__ = [
    "CoordinateMapper",
    "MaskCrop",
    "PatchSize",
    "compose_crop",
    "patches_within_bounds",
]
