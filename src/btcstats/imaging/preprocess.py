"""Image preprocessing ahead of texture analysis.

The preprocessing chain is

    log transform -> block averaging -> filtering -> quantization

Stages that shrink the image report the region of their input that their
output covers, so the final image can be located in the original frame
(where masks are drawn).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

import cv2
import numpy as np
import numpy.typing as npt

from btcstats.config import ConfigurationError
from btcstats.features.extractor import check_n_levels
from btcstats.geometry.primitives import MaskCrop, PatchSize
from btcstats.geometry.transforms import compose_crop

AverageType = Literal["mean", "median"]
FilterType = Literal["same", "valid"]
QuantType = Literal["equalize", "uniform"]

SUPPORTED_AVERAGE_TYPES: frozenset[str] = frozenset({"mean", "median"})
SUPPORTED_FILTER_TYPES: frozenset[str] = frozenset({"same", "valid"})
SUPPORTED_QUANT_TYPES: frozenset[str] = frozenset({"equalize", "uniform"})


def block_average(
    grid: npt.NDArray[Any],
    factor: int,
    average_type: AverageType = "mean",
) -> npt.NDArray[np.float64]:
    """Downsample a grid by averaging non-overlapping factor x factor blocks.

    Rows and columns that do not fill a whole block (bottom and right
    edges) are dropped. A block containing NaN averages to NaN.

    Args:
        grid: 2D array (boolean grids are averaged as 0/1).
        factor: Block size, a positive integer.
        average_type: "mean" or "median".

    Returns:
        Float array of shape (rows // factor, cols // factor).

    Raises:
        ConfigurationError: If factor or average_type is invalid.
    """
    if isinstance(factor, bool) or int(factor) != factor or factor < 1:
        raise ConfigurationError("block_af", f"must be a positive integer, got {factor!r}")
    if average_type not in SUPPORTED_AVERAGE_TYPES:
        raise ConfigurationError(
            "average_type",
            f"unsupported '{average_type}', supported: {sorted(SUPPORTED_AVERAGE_TYPES)}",
        )
    factor = int(factor)
    values = np.asarray(grid, dtype=np.float64)
    if factor == 1:
        return values.copy()

    rows, cols = values.shape[0] // factor, values.shape[1] // factor
    blocks = values[: rows * factor, : cols * factor].reshape(rows, factor, cols, factor)
    if average_type == "median":
        return np.median(blocks, axis=(1, 3))
    return blocks.mean(axis=(1, 3))


def log_transform(
    image: npt.NDArray[Any],
    threshold: float | None = None,
) -> npt.NDArray[np.float64]:
    """Take the natural log of an image, clipping small values first.

    Args:
        image: 2D array of non-negative intensities.
        threshold: Values below this are raised to it before the log. By
            default the smallest positive value in the image is used.

    Returns:
        Log-transformed image; NaN samples stay NaN.
    """
    values = np.asarray(image, dtype=np.float64)
    if threshold is None:
        positive = values[values > 0]
        threshold = float(positive.min()) if positive.size else 1.0
    if threshold <= 0:
        raise ConfigurationError("threshold", f"must be > 0 for a log transform, got {threshold}")
    with np.errstate(invalid="ignore"):
        return np.log(np.maximum(values, threshold))


def apply_filter(
    image: npt.NDArray[Any],
    kernel: npt.NDArray[Any],
    filter_type: FilterType = "same",
) -> tuple[npt.NDArray[np.float64], MaskCrop | None]:
    """Filter an image with a 2D kernel.

    Args:
        image: 2D float array.
        kernel: 2D filter kernel (applied as a correlation, centered).
        filter_type: "same" keeps the image size using reflected borders;
            "valid" keeps only pixels whose neighborhood is inside the image.

    Returns:
        (filtered image, crop) where crop is the region of the input covered
        by the output. The crop is None (and the image empty) when the image
        is smaller than the kernel in "valid" mode.
    """
    if filter_type not in SUPPORTED_FILTER_TYPES:
        raise ConfigurationError(
            "filter_type",
            f"unsupported '{filter_type}', supported: {sorted(SUPPORTED_FILTER_TYPES)}",
        )
    values = np.asarray(image, dtype=np.float64)
    kernel = np.asarray(kernel, dtype=np.float64)
    if kernel.ndim != 2 or kernel.size == 0:  # noqa: PLR2004
        raise ConfigurationError("filter", f"must be a non-empty 2D kernel, got shape {kernel.shape}")

    filtered = cv2.filter2D(values, cv2.CV_64F, kernel, borderType=cv2.BORDER_REFLECT)
    rows, cols = values.shape
    if filter_type == "same":
        return filtered, MaskCrop.full((rows, cols))

    k_rows, k_cols = kernel.shape
    top, left = k_rows // 2, k_cols // 2
    bottom, right = k_rows - 1 - top, k_cols - 1 - left
    if rows - top - bottom < 1 or cols - left - right < 1:
        return np.empty((0, 0)), None
    crop = MaskCrop(row1=top + 1, col1=left + 1, row2=rows - bottom, col2=cols - right)
    return filtered[top : rows - bottom, left : cols - right], crop


def _quantize_values(
    values: npt.NDArray[np.float64],
    n_levels: int,
    quant_type: QuantType,
) -> npt.NDArray[np.float64]:
    out = np.full(values.shape, np.nan)
    finite = np.isfinite(values)
    if not finite.any():
        return out
    samples = values[finite]
    if quant_type == "uniform":
        lo, hi = samples.min(), samples.max()
        edges = np.linspace(lo, hi, n_levels + 1)[1:-1]
    else:
        edges = np.quantile(samples, np.arange(1, n_levels) / n_levels)
    out[finite] = np.searchsorted(edges, samples, side="right")
    return out


def quantize(
    image: npt.NDArray[Any],
    n_levels: int,
    patch_size: PatchSize | None = None,
    quant_type: QuantType = "equalize",
) -> npt.NDArray[np.float64]:
    """Quantize an image to level indices 0..n_levels-1.

    With "equalize" the thresholds are quantiles of the data, so that every
    level is (as far as ties allow) equally populated; with "uniform" the
    range of the data is split into equal bins.

    Args:
        image: 2D float array; NaN samples are ignored and stay NaN.
        n_levels: Number of levels (>= 2).
        patch_size: If given, quantization is done independently for each
            tile of this size (edge tiles may be smaller).
        quant_type: "equalize" or "uniform".

    Returns:
        Float array of level indices, NaN where the input was not finite.
    """
    n_levels = check_n_levels(n_levels)
    if quant_type not in SUPPORTED_QUANT_TYPES:
        raise ConfigurationError(
            "quant_type",
            f"unsupported '{quant_type}', supported: {sorted(SUPPORTED_QUANT_TYPES)}",
        )
    values = np.asarray(image, dtype=np.float64)
    if patch_size is None:
        return _quantize_values(values, n_levels, quant_type)

    out = np.full(values.shape, np.nan)
    rows, cols = values.shape
    for r in range(0, rows, patch_size.height):
        for c in range(0, cols, patch_size.width):
            tile = (slice(r, r + patch_size.height), slice(c, c + patch_size.width))
            out[tile] = _quantize_values(values[tile], n_levels, quant_type)
    return out


@dataclass(frozen=True)
class PreprocessedImage:
    """Every stage of one preprocessed image.

    Attributes:
        original: Input image.
        log: After the (optional) log transform.
        averaged: After block averaging.
        filtered: After the (optional) filter.
        final: Quantized image handed to the analysis.
        crop: Region of the original image covered by `final`.
    """

    original: npt.NDArray[np.float64]
    log: npt.NDArray[np.float64]
    averaged: npt.NDArray[np.float64]
    filtered: npt.NDArray[np.float64]
    final: npt.NDArray[np.float64]
    crop: MaskCrop


def preprocess_image(  # noqa: PLR0913
    image: npt.NDArray[Any],
    *,
    n_levels: int,
    block_af: int = 1,
    kernel: npt.NDArray[Any] | None = None,
    do_log: bool = False,
    threshold: float | None = None,
    average_type: AverageType = "mean",
    filter_type: FilterType = "same",
    quant_type: QuantType = "equalize",
    quant_patch_size: PatchSize | None = None,
) -> PreprocessedImage | None:
    """Run the preprocessing chain on one image.

    Returns:
        The preprocessed image, or None if a stage left nothing to analyze
        (image smaller than the block size or the filter kernel).
    """
    original = np.asarray(image, dtype=np.float64)
    crop = MaskCrop.full(original.shape)

    logged = log_transform(original, threshold) if do_log else original

    averaged = block_average(logged, block_af, average_type)
    if averaged.size == 0:
        return None
    averaged_crop = MaskCrop.full(
        (averaged.shape[0] * block_af, averaged.shape[1] * block_af)
    )
    crop = compose_crop(crop, averaged_crop, logged.shape)

    filtered = averaged
    if kernel is not None:
        filtered, filter_crop = apply_filter(averaged, kernel, filter_type)
        if filter_crop is None:
            return None
        crop = compose_crop(crop, filter_crop, averaged.shape)

    final = quantize(filtered, n_levels, quant_patch_size, quant_type)
    return PreprocessedImage(
        original=original,
        log=logged,
        averaged=averaged,
        filtered=filtered,
        final=final,
        crop=crop,
    )
