"""Per-object patch analysis over a labeled mask."""

from __future__ import annotations

from typing import Any

import numpy as np
import numpy.typing as npt

from btcstats.analysis.patches import analyze_patches
from btcstats.analysis.results import ObjectStatistics, concatenate_statistics
from btcstats.config import ConfigurationError
from btcstats.features.extractor import (
    FeatureExtractor,
    TernaryCorrelationExtractor,
    check_n_levels,
)
from btcstats.geometry.primitives import MaskCrop, PatchSize
from btcstats.utils.logging import get_logger, set_correlation_context

logger = get_logger(__name__)


def object_ids(mask: npt.NDArray[Any] | None) -> list[int]:
    """Object ids present in a mask, in ascending order.

    A boolean mask is a single object with id 1. In a labeled mask every
    distinct non-zero value is an object; 0 is background.
    """
    if mask is None:
        return [1]
    mask = np.asarray(mask)
    if mask.dtype == bool:
        return [1] if mask.any() else []
    return [int(v) for v in np.unique(mask) if v != 0]


def _object_mask(mask: npt.NDArray[Any], obj_id: int) -> npt.NDArray[np.bool_]:
    mask = np.asarray(mask)
    if mask.dtype == bool:
        return mask
    return mask == obj_id


def analyze_objects(  # noqa: PLR0913
    image: npt.NDArray[Any],
    n_levels: int,
    mask: npt.NDArray[Any] | None = None,
    patch_size: int | tuple[int, int] | PatchSize | None = None,
    *,
    mask_crop: MaskCrop | tuple[int, int, int, int] | None = None,
    min_patch_used: float = 0.0,
    overlapping: bool = False,
    extractor: FeatureExtractor | None = None,
) -> ObjectStatistics:
    """Run the patch analysis once per object of a labeled mask.

    Args:
        image: 2D quantized image.
        n_levels: Number of quantization levels.
        mask: Boolean or integer-labeled mask; None is one object covering
            the whole image.
        patch_size: Patch size. None analyzes each object as a single patch
            spanning the whole image (overlapping is then disabled).
        mask_crop: Region of the mask covered by the image.
        min_patch_used: Minimum valid fraction of a patch.
        overlapping: Use overlapping patches.
        extractor: Feature extractor.

    Returns:
        ObjectStatistics with rows ordered by ascending object id.
    """
    image = np.asarray(image, dtype=np.float64)
    if image.ndim != 2:  # noqa: PLR2004
        raise ConfigurationError("image", f"must be 2D, got shape {image.shape}")
    n_levels = check_n_levels(n_levels)
    extractor = extractor or TernaryCorrelationExtractor()

    whole_image = patch_size is None
    size: Any = image.shape if whole_image else patch_size
    if whole_image:
        overlapping = False
        if min(image.shape, default=0) == 0:
            size = (max(image.shape[0], 1), max(image.shape[1], 1))

    ids = object_ids(mask)
    tables = []
    for obj_id in ids:
        set_correlation_context(object_id=obj_id)
        patches = analyze_patches(
            image,
            n_levels,
            size,
            None if mask is None else _object_mask(mask, obj_id),
            mask_crop=mask_crop,
            min_patch_used=min_patch_used,
            overlapping=overlapping,
            extractor=extractor,
        )
        table = ObjectStatistics.from_patches(
            patches, obj_id, None if whole_image else patches.patch_size
        )
        logger.debug("Analyzed object", patches=table.n_patches)
        tables.append(table)

    if not tables:
        # Validate the options even when there is nothing to analyze
        empty = analyze_patches(
            image,
            n_levels,
            size,
            np.zeros(np.asarray(mask).shape, dtype=bool),
            mask_crop=mask_crop,
            min_patch_used=min_patch_used,
            overlapping=overlapping,
            extractor=extractor,
        )
        return ObjectStatistics.from_patches(empty, 0, None if whole_image else empty.patch_size)

    return concatenate_statistics(tables)  # type: ignore[return-value]
