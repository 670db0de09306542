"""Geometry primitives for btcstats.

This module provides immutable Pydantic models for patch sizes and crop
rectangles. Following the conventions of the analysis results, all public
coordinates are 1-based and rectangles are inclusive of both corners: the
top-left pixel of an image is (1, 1) and a rectangle [1, 1, 4, 4] covers a
4x4 block.
"""

from __future__ import annotations

from collections.abc import Sequence
from numbers import Integral
from typing import Any, Self

from pydantic import BaseModel, Field, StrictInt, model_validator


def _plain(value: Any) -> Any:
    """Unwrap numpy integer scalars so pydantic sees builtin ints."""
    if isinstance(value, Integral) and not isinstance(value, bool):
        return int(value)
    return value


class PatchSize(BaseModel, frozen=True):
    """Size of an analysis patch, height (rows) first.

    Attributes:
        height: Number of rows in a patch.
        width: Number of columns in a patch.
    """

    height: StrictInt = Field(..., gt=0, description="Rows per patch")
    width: StrictInt = Field(..., gt=0, description="Columns per patch")

    @property
    def area(self) -> int:
        """Number of pixels in a patch."""
        return self.height * self.width

    def to_tuple(self) -> tuple[int, int]:
        """Convert to (height, width) tuple."""
        return (self.height, self.width)

    @classmethod
    def coerce(cls, value: int | Sequence[int] | PatchSize) -> Self:
        """Build a PatchSize from a scalar (square patch) or a pair.

        Args:
            value: A positive integer, a (height, width) pair, or an
                existing PatchSize.

        Returns:
            The corresponding PatchSize.

        Raises:
            pydantic.ValidationError: If the value is not a positive integer
                or a pair of positive integers.
            TypeError: If the value is neither a scalar nor a sequence.
        """
        if isinstance(value, PatchSize):
            return cls(height=value.height, width=value.width)
        if isinstance(value, Sequence) and not isinstance(value, str):
            if len(value) == 1:
                return cls(height=_plain(value[0]), width=_plain(value[0]))
            if len(value) != 2:  # noqa: PLR2004
                raise ValueError(f"patch size must have 1 or 2 entries, got {len(value)}")
            return cls(height=_plain(value[0]), width=_plain(value[1]))
        return cls(height=_plain(value), width=_plain(value))


class MaskCrop(BaseModel, frozen=True):
    """Rectangle locating an image inside a (possibly coarser) mask.

    The rectangle is 1-based and inclusive: [row1, col1, row2, col2].
    When its extent differs from the image size it also encodes an integer
    scaling from image pixels to mask cells.

    Attributes:
        row1: First mask row covered by the image.
        col1: First mask column covered by the image.
        row2: Last mask row covered by the image.
        col2: Last mask column covered by the image.
    """

    row1: int = Field(..., ge=1, description="Top row (1-based, inclusive)")
    col1: int = Field(..., ge=1, description="Left column (1-based, inclusive)")
    row2: int = Field(..., ge=1, description="Bottom row (1-based, inclusive)")
    col2: int = Field(..., ge=1, description="Right column (1-based, inclusive)")

    @model_validator(mode="after")
    def _validate_corners(self) -> Self:
        """Ensure the rectangle is not inverted."""
        if self.row2 < self.row1 or self.col2 < self.col1:
            raise ValueError(
                "mask crop must satisfy row2 >= row1 and col2 >= col1, "
                f"got {self.to_tuple()}"
            )
        return self

    @property
    def height(self) -> int:
        """Number of mask rows covered."""
        return self.row2 - self.row1 + 1

    @property
    def width(self) -> int:
        """Number of mask columns covered."""
        return self.col2 - self.col1 + 1

    @property
    def origin(self) -> tuple[int, int]:
        """Return the top-left corner as (row, col)."""
        return (self.row1, self.col1)

    def to_tuple(self) -> tuple[int, int, int, int]:
        """Convert to (row1, col1, row2, col2) tuple."""
        return (self.row1, self.col1, self.row2, self.col2)

    @classmethod
    def from_tuple(cls, crop: Sequence[int]) -> Self:
        """Create MaskCrop from a [row1, col1, row2, col2] sequence."""
        if len(crop) != 4:  # noqa: PLR2004
            raise ValueError(f"mask crop must have 4 entries, got {len(crop)}")
        row1, col1, row2, col2 = (_plain(v) for v in crop)
        return cls(row1=row1, col1=col1, row2=row2, col2=col2)

    @classmethod
    def full(cls, shape: tuple[int, ...]) -> Self:
        """Create the crop covering an entire grid of the given (rows, cols)."""
        return cls(row1=1, col1=1, row2=_plain(shape[0]), col2=_plain(shape[1]))
