"""Imaging module for btcstats.

Loading of image sets and the preprocessing chain (log transform, block
averaging, filtering, quantization) that precedes texture analysis.
"""

from __future__ import annotations

from btcstats.imaging.exceptions import ImageLoadError
from btcstats.imaging.preprocess import (
    PreprocessedImage,
    apply_filter,
    block_average,
    log_transform,
    preprocess_image,
    quantize,
)
from btcstats.imaging.sources import (
    SourceImage,
    image_count,
    iter_images,
    load_image,
    load_mask,
)

__all__ = [
    "ImageLoadError",
    "PreprocessedImage",
    "SourceImage",
    "apply_filter",
    "block_average",
    "image_count",
    "iter_images",
    "load_image",
    "load_mask",
    "log_transform",
    "preprocess_image",
    "quantize",
]
