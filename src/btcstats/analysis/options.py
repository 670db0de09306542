"""Immutable option models for the analysis pipeline.

Options are validated once, before any image or patch is touched, and are
then passed by argument through every stage. Validation failures surface as
ConfigurationError.
"""

from __future__ import annotations

from collections.abc import Sequence
from numbers import Integral, Real
from typing import Any, Self

import numpy as np
import numpy.typing as npt
from pydantic import (
    BaseModel,
    Field,
    StrictBool,
    ValidationError,
    field_validator,
    model_validator,
)

from btcstats.config import ConfigurationError, settings
from btcstats.geometry.primitives import MaskCrop, PatchSize
from btcstats.imaging.preprocess import AverageType, FilterType, QuantType


def _coerce_patch_size(value: Any) -> Any:
    if value is None or isinstance(value, PatchSize):
        return value
    if isinstance(value, np.ndarray):
        value = value.tolist()
    return PatchSize.coerce(value)


def _check_fraction(value: Any) -> Any:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ValueError(f"must be a number, got {type(value).__name__}")
    return float(value)


def _check_count(value: Any) -> Any:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise ValueError(f"must be an integer, got {type(value).__name__}")
    return int(value)


class PatchOptions(BaseModel, frozen=True, extra="forbid"):
    """Options of a single patch analysis.

    Attributes:
        patch_size: Patch size; a scalar is broadcast to a square patch.
        overlapping: One patch centered on every valid pixel instead of a
            non-overlapping tiling.
        min_patch_used: Minimum fraction of a patch that must be covered by
            the mask for the patch to be analyzed.
        mask_crop: Rectangle of the mask covered by the image.
        coverage_tolerance: Numeric tolerance used when binarizing the
            resampled mask.
    """

    patch_size: PatchSize
    overlapping: StrictBool = False
    min_patch_used: float = Field(default=settings.DEFAULT_MIN_PATCH_USED, ge=0.0, le=1.0)
    mask_crop: MaskCrop | None = None
    coverage_tolerance: float = Field(
        default=settings.MASK_COVERAGE_TOLERANCE, ge=0.0, lt=1.0
    )

    @field_validator("patch_size", mode="before")
    @classmethod
    def _patch_size(cls, value: Any) -> Any:
        return _coerce_patch_size(value)

    @field_validator("min_patch_used", mode="before")
    @classmethod
    def _min_patch_used(cls, value: Any) -> Any:
        return _check_fraction(value)

    @field_validator("mask_crop", mode="before")
    @classmethod
    def _mask_crop(cls, value: Any) -> Any:
        if value is None or isinstance(value, MaskCrop):
            return value
        if isinstance(value, np.ndarray):
            value = value.tolist()
        if isinstance(value, Sequence) and not isinstance(value, str):
            return MaskCrop.from_tuple(value)
        return value

    @classmethod
    def create(cls, **kwargs: Any) -> Self:
        """Validate options, raising ConfigurationError on failure."""
        try:
            return cls(**kwargs)
        except ValidationError as e:
            raise ConfigurationError.from_validation_error(e) from e
        except (TypeError, ValueError) as e:
            raise ConfigurationError("options", str(e)) from e


class AnalysisOptions(BaseModel, frozen=True, extra="forbid"):
    """Options of an image-set analysis.

    Attributes:
        n_levels: Number of quantization levels.
        block_af: Block-averaging factor applied before analysis.
        patch_size: Patch size; None analyzes whole images (or objects).
        overlapping: Use overlapping patches (ignored without patch_size).
        min_patch_used: Minimum valid fraction of a patch.
        covariances: Compute covariance matrices of the feature vectors.
        image_copies: Keep intermediate images; None means "only for small
            image sets".
        do_log: Log-transform images before block averaging.
        threshold: Lower clip applied before the log transform.
        average_type: Block averaging statistic.
        kernel: Optional filter applied after block averaging.
        filter_type: Border handling of the filter.
        quant_type: Quantization method.
        quant_patch_size: Tile size for quantization; defaults to
            patch_size, else the kernel shape, else the whole image.
    """

    n_levels: int = Field(default=settings.DEFAULT_N_LEVELS, ge=2)
    block_af: int = Field(default=settings.DEFAULT_BLOCK_AF, ge=1)
    patch_size: PatchSize | None = None
    overlapping: StrictBool = False
    min_patch_used: float = Field(default=settings.DEFAULT_MIN_PATCH_USED, ge=0.0, le=1.0)
    covariances: StrictBool = True
    image_copies: StrictBool | None = None
    do_log: StrictBool = False
    threshold: float | None = None
    average_type: AverageType = "mean"
    kernel: tuple[tuple[float, ...], ...] | None = None
    filter_type: FilterType = "same"
    quant_type: QuantType = "equalize"
    quant_patch_size: PatchSize | None = None

    @field_validator("patch_size", "quant_patch_size", mode="before")
    @classmethod
    def _patch_sizes(cls, value: Any) -> Any:
        return _coerce_patch_size(value)

    @field_validator("n_levels", "block_af", mode="before")
    @classmethod
    def _counts(cls, value: Any) -> Any:
        return _check_count(value)

    @field_validator("min_patch_used", mode="before")
    @classmethod
    def _min_patch_used(cls, value: Any) -> Any:
        return _check_fraction(value)

    @field_validator("kernel", mode="before")
    @classmethod
    def _kernel(cls, value: Any) -> Any:
        if value is None:
            return value
        arr = np.asarray(value, dtype=np.float64)
        if arr.ndim != 2 or arr.size == 0:  # noqa: PLR2004
            raise ValueError(f"kernel must be a non-empty 2D array, got shape {arr.shape}")
        return tuple(tuple(row) for row in arr.tolist())

    @model_validator(mode="after")
    def _validate_kernel_rows(self) -> Self:
        if self.kernel is not None and len({len(row) for row in self.kernel}) != 1:
            raise ValueError("kernel rows must all have the same length")
        return self

    @property
    def kernel_array(self) -> npt.NDArray[np.float64] | None:
        """The filter kernel as an array, if any."""
        if self.kernel is None:
            return None
        return np.asarray(self.kernel, dtype=np.float64)

    @property
    def resolved_quant_patch_size(self) -> PatchSize | None:
        """Tile size actually used for quantization."""
        if self.quant_patch_size is not None:
            return self.quant_patch_size
        if self.patch_size is not None:
            return self.patch_size
        if self.kernel is not None:
            return PatchSize(height=len(self.kernel), width=len(self.kernel[0]))
        return None

    def keep_image_copies(self, n_images: int) -> bool:
        """Whether intermediate images should be kept for a set of n_images."""
        if self.image_copies is not None:
            return self.image_copies
        return n_images <= settings.IMAGE_COPIES_MAX_IMAGES

    @classmethod
    def create(cls, **kwargs: Any) -> Self:
        """Validate options, raising ConfigurationError on failure."""
        try:
            return cls(**kwargs)
        except ValidationError as e:
            raise ConfigurationError.from_validation_error(e) from e
        except (TypeError, ValueError) as e:
            raise ConfigurationError("options", str(e)) from e
