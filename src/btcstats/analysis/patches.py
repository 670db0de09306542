"""Patch extraction and masked texture statistics.

Implements the per-image analysis engine:

1. Locate candidate patches, either on a non-overlapping grid or centered
   on every valid pixel (overlapping mode).
2. For each candidate, measure how much of it is covered by the mask,
   reject patches with insufficient coverage, blank out the invalid pixels
   and compute the patch's feature vector.
3. Reject patches whose statistics are undefined and collect the rest,
   together with their location in image and in mask coordinates.

Coordinates in the results are 1-based, and candidates are ordered
column-major (row index varying fastest).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

import numpy as np
import numpy.typing as npt

from btcstats.analysis.options import PatchOptions
from btcstats.analysis.results import PatchStatistics, RejectionCounts, empty_columns
from btcstats.config import ConfigurationError
from btcstats.features.extractor import (
    FeatureExtractor,
    TernaryCorrelationExtractor,
    check_n_levels,
)
from btcstats.geometry.primitives import MaskCrop, PatchSize
from btcstats.geometry.transforms import CoordinateMapper
from btcstats.geometry.validators import patches_within_bounds
from btcstats.imaging.preprocess import block_average
from btcstats.utils.logging import get_logger

logger = get_logger(__name__)

PatchStatus = Literal["accepted", "low_coverage", "undefined"]


@dataclass(frozen=True)
class CandidatePatches:
    """Candidate patch corners produced by the locator.

    Attributes:
        corners: (n, 2) int array of 1-based (row, col) top-left corners.
        out_of_bounds: Overlapping-mode candidates discarded because the
            patch would extend past the image.
    """

    corners: npt.NDArray[np.int64]
    out_of_bounds: int = 0


@dataclass(frozen=True)
class PatchEvaluation:
    """Outcome of evaluating one candidate patch.

    Attributes:
        status: "accepted", or the reason the patch was rejected.
        valid_pixels: Number of patch pixels fully covered by the mask.
        features: Feature vector for accepted patches, None otherwise.
    """

    status: PatchStatus
    valid_pixels: int
    features: npt.NDArray[np.float64] | None = None


def locate_patches(
    image_shape: tuple[int, ...],
    patch_size: PatchSize,
    *,
    overlapping: bool,
    mask: npt.NDArray[np.bool_],
    mapper: CoordinateMapper,
) -> CandidatePatches:
    """Enumerate candidate patch corners.

    Args:
        image_shape: (rows, cols) of the image.
        patch_size: Size of the patches.
        overlapping: If False, tile the image (bottom/right remainders are
            dropped). If True, center one patch on every pixel whose
            subsampled mask cell is True.
        mask: Boolean mask in mask coordinates.
        mapper: Image-to-mask coordinate mapping.

    Returns:
        The candidates, in column-major order.
    """
    rows, cols = int(image_shape[0]), int(image_shape[1])
    if rows == 0 or cols == 0:
        return CandidatePatches(corners=np.zeros((0, 2), dtype=np.int64))

    if not overlapping:
        n_rows = rows // patch_size.height
        n_cols = cols // patch_size.width
        grid_rows = np.tile(np.arange(n_rows), n_cols)
        grid_cols = np.repeat(np.arange(n_cols), n_rows)
        corners = np.column_stack(
            [grid_rows * patch_size.height + 1, grid_cols * patch_size.width + 1]
        ).astype(np.int64)
        return CandidatePatches(corners=corners.reshape(-1, 2))

    valid = mapper.sample_mask(mask, image_shape)
    center_cols, center_rows = np.nonzero(valid.T)
    corners = np.column_stack(
        [
            center_rows + 1 - patch_size.height // 2,
            center_cols + 1 - patch_size.width // 2,
        ]
    ).astype(np.int64).reshape(-1, 2)
    fits = patches_within_bounds(corners, patch_size, image_shape)
    return CandidatePatches(corners=corners[fits], out_of_bounds=int((~fits).sum()))


def evaluate_patch(  # noqa: PLR0913
    image: npt.NDArray[np.float64],
    mask: npt.NDArray[np.bool_],
    corner: tuple[int, int],
    patch_size: PatchSize,
    *,
    mapper: CoordinateMapper,
    n_levels: int,
    extractor: FeatureExtractor,
    min_patch_used: float,
    coverage_tolerance: float,
) -> PatchEvaluation:
    """Validate one candidate patch and compute its features.

    A pixel counts as valid only if every mask cell it maps to is True;
    partially covered pixels are treated as invalid.

    Args:
        image: Image being analyzed.
        mask: Boolean mask in mask coordinates.
        corner: 1-based (row, col) top-left corner of the patch.
        patch_size: Size of the patch.
        mapper: Image-to-mask coordinate mapping.
        n_levels: Number of quantization levels.
        extractor: Feature extractor.
        min_patch_used: Minimum valid fraction of the patch.
        coverage_tolerance: Tolerance when binarizing the resampled mask.

    Returns:
        The evaluation outcome.
    """
    row, col = int(corner[0]), int(corner[1])
    row_range = (row, row + patch_size.height - 1)
    col_range = (col, col + patch_size.width - 1)

    coverage = block_average(mapper.mask_block(mask, row_range, col_range), mapper.step)
    valid = coverage >= 1.0 - coverage_tolerance
    valid_pixels = int(valid.sum())
    if valid_pixels / patch_size.area < min_patch_used:
        return PatchEvaluation(status="low_coverage", valid_pixels=valid_pixels)

    patch = image[row - 1 : row_range[1], col - 1 : col_range[1]].astype(np.float64, copy=True)
    patch[~valid] = np.nan
    features = np.asarray(extractor(patch, n_levels), dtype=np.float64)
    if np.isnan(features).any():
        return PatchEvaluation(status="undefined", valid_pixels=valid_pixels)
    return PatchEvaluation(status="accepted", valid_pixels=valid_pixels, features=features)


def _resolve_mask(
    image_shape: tuple[int, ...],
    mask: npt.NDArray[Any] | None,
    mask_crop: MaskCrop | None,
) -> tuple[npt.NDArray[np.bool_], MaskCrop | None]:
    if mask is None:
        if mask_crop is not None:
            logger.debug("Ignoring mask_crop without a mask", mask_crop=mask_crop.to_tuple())
        return np.ones(image_shape, dtype=bool), None

    mask_arr = np.asarray(mask)
    if mask_arr.ndim != 2 or mask_arr.size == 0:  # noqa: PLR2004
        raise ConfigurationError(
            "mask", f"must be a non-empty 2D array, got shape {mask_arr.shape}"
        )
    if mask_crop is None:
        mask_crop = MaskCrop.full(mask_arr.shape)
    return mask_arr.astype(bool), mask_crop


def analyze_patches(  # noqa: PLR0913
    image: npt.NDArray[Any],
    n_levels: int,
    patch_size: int | tuple[int, int] | PatchSize,
    mask: npt.NDArray[Any] | None = None,
    *,
    mask_crop: MaskCrop | tuple[int, int, int, int] | None = None,
    min_patch_used: float = 0.0,
    overlapping: bool = False,
    extractor: FeatureExtractor | None = None,
    options: PatchOptions | None = None,
) -> PatchStatistics:
    """Calculate texture statistics for patches of an image.

    Splits the image into non-overlapping patches (or, with overlapping=True,
    one patch centered on every usable pixel) and computes one feature
    vector per patch. With a mask, only the parts of the image contained
    within the mask are analyzed.

    Args:
        image: 2D image of quantized level indices; NaN marks invalid samples.
        n_levels: Number of quantization levels.
        patch_size: Patch size, (rows, cols) or a scalar for square patches.
        mask: Boolean mask, same or coarser resolution than the image.
            None analyzes the whole image.
        mask_crop: [row1, col1, row2, col2] region of the mask corresponding
            to the image (1-based, inclusive). Defaults to the whole mask.
            If larger than the image it also encodes a scaling, which must
            be the same along rows and columns.
        min_patch_used: Minimum fraction of a patch that must lie within
            the mask. Patches without a fully valid 2x2 block are always
            dropped since their statistics are undefined.
        overlapping: Use overlapping patches, one centered on each pixel.
            Patches extending past the image are not considered.
        extractor: Feature extractor; defaults to TernaryCorrelationExtractor.
        options: Pre-validated options; overrides patch_size, mask_crop,
            min_patch_used and overlapping.

    Returns:
        PatchStatistics for the accepted patches, in candidate order.

    Raises:
        ConfigurationError: If any option is invalid. Raised before any
            patch is processed.
    """
    if options is None:
        options = PatchOptions.create(
            patch_size=patch_size,
            mask_crop=mask_crop,
            min_patch_used=min_patch_used,
            overlapping=overlapping,
        )
    n_levels = check_n_levels(n_levels)
    extractor = extractor or TernaryCorrelationExtractor()
    n_features = extractor.n_features(n_levels)

    image = np.asarray(image, dtype=np.float64)
    if image.ndim != 2:  # noqa: PLR2004
        raise ConfigurationError("image", f"must be 2D, got shape {image.shape}")

    mask_arr, crop = _resolve_mask(image.shape, mask, options.mask_crop)
    mapper = CoordinateMapper.from_crop(crop, image.shape)
    size = options.patch_size

    if not options.overlapping:
        rows = (image.shape[0] // size.height) * size.height
        cols = (image.shape[1] // size.width) * size.width
        image = image[:rows, :cols]

    candidates = locate_patches(
        image.shape,
        size,
        overlapping=options.overlapping,
        mask=mask_arr,
        mapper=mapper,
    )

    n_candidates = len(candidates.corners)
    ev = np.empty((n_candidates, n_features), dtype=np.float64)
    px_per_patch = np.zeros(n_candidates, dtype=np.int64)
    accepted = np.zeros(n_candidates, dtype=bool)
    low_coverage = 0
    undefined = 0

    for i, corner in enumerate(candidates.corners):
        outcome = evaluate_patch(
            image,
            mask_arr,
            (corner[0], corner[1]),
            size,
            mapper=mapper,
            n_levels=n_levels,
            extractor=extractor,
            min_patch_used=options.min_patch_used,
            coverage_tolerance=options.coverage_tolerance,
        )
        if outcome.status == "low_coverage":
            low_coverage += 1
            continue
        px_per_patch[i] = outcome.valid_pixels
        if outcome.status == "undefined":
            undefined += 1
            continue
        ev[i] = outcome.features
        accepted[i] = True

    rejections = RejectionCounts(
        out_of_bounds=candidates.out_of_bounds,
        low_coverage=low_coverage,
        undefined=undefined,
    )
    logger.debug(
        "Analyzed patches",
        candidates=n_candidates,
        accepted=int(accepted.sum()),
        out_of_bounds=rejections.out_of_bounds,
        low_coverage=rejections.low_coverage,
        undefined=rejections.undefined,
    )

    if not accepted.any():
        columns = empty_columns(n_features)
    else:
        locations = candidates.corners[accepted]
        columns = {
            "locations": locations,
            "locations_orig": mapper.patch_rectangles(locations, size),
            "ev": ev[accepted],
            "px_per_patch": px_per_patch[accepted],
        }

    return PatchStatistics(
        **columns,
        patch_size=size,
        n_levels=n_levels,
        overlapping=options.overlapping,
        min_patch_used=options.min_patch_used,
        rejections=rejections,
    )
