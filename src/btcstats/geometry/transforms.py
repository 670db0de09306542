"""Coordinate transformation utilities for btcstats.

Three coordinate systems meet during a masked patch analysis:

Coordinate Systems:
    - Image: pixels of the (preprocessed) image being analyzed
    - Mask: cells of the mask, which may be coarser-grained than the
      original image but never finer than the analyzed image
    - Original: the frame of the image before preprocessing; masks are
      drawn in this frame, so mask and original coordinates coincide

A MaskCrop places the whole image inside the mask. When the crop is larger
than the image, each image pixel covers an s x s block of mask cells, where
the integer step s must be the same along rows and columns.

Transform Direction Conventions:
    - image_to_mask: multiply by the step and offset by the crop origin
    - compose_crop: accumulate a preprocessing stage's crop into the
      original frame
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from btcstats.config import ConfigurationError
from btcstats.geometry.primitives import MaskCrop, PatchSize

__all__ = [
    "CoordinateMapper",
    "compose_crop",
]


@dataclass(frozen=True)
class CoordinateMapper:
    """Affine map from 1-based image pixels to 1-based mask cells.

    Attributes:
        origin_row: Mask row of the image's top-left pixel.
        origin_col: Mask column of the image's top-left pixel.
        step: Number of mask cells per image pixel along each axis.
    """

    origin_row: int = 1
    origin_col: int = 1
    step: int = 1

    @classmethod
    def identity(cls) -> CoordinateMapper:
        """Mapper used when there is no mask: image and mask coincide."""
        return cls()

    @classmethod
    def from_crop(
        cls,
        mask_crop: MaskCrop | None,
        image_shape: tuple[int, ...],
    ) -> CoordinateMapper:
        """Derive the mapping implied by a crop rectangle.

        Args:
            mask_crop: Rectangle in mask coordinates covered by the image.
                None means the identity mapping.
            image_shape: (rows, cols) of the image.

        Returns:
            The corresponding CoordinateMapper.

        Raises:
            ConfigurationError: If the row and column scale factors differ.
        """
        if mask_crop is None:
            return cls.identity()

        rows, cols = int(image_shape[0]), int(image_shape[1])
        row_step = max(1, mask_crop.height // max(rows, 1))
        col_step = max(1, mask_crop.width // max(cols, 1))
        if row_step != col_step:
            raise ConfigurationError(
                "mask_crop",
                "non-aspect-preserving scaling from mask to image "
                f"(row step {row_step}, column step {col_step})",
            )
        return cls(origin_row=mask_crop.row1, origin_col=mask_crop.col1, step=row_step)

    def image_to_mask(
        self,
        row_range: tuple[int, int],
        col_range: tuple[int, int],
    ) -> MaskCrop:
        """Map inclusive 1-based image ranges to the mask cells they cover.

        Args:
            row_range: (first_row, last_row) in image pixels.
            col_range: (first_col, last_col) in image pixels.

        Returns:
            Inclusive rectangle in mask coordinates.
        """
        first_row, last_row = row_range
        first_col, last_col = col_range
        return MaskCrop(
            row1=self.origin_row + (first_row - 1) * self.step,
            col1=self.origin_col + (first_col - 1) * self.step,
            row2=self.origin_row + last_row * self.step - 1,
            col2=self.origin_col + last_col * self.step - 1,
        )

    def patch_rectangles(
        self,
        corners: npt.NDArray[np.int_],
        patch_size: PatchSize,
    ) -> npt.NDArray[np.int64]:
        """Vectorized image_to_mask for patches given by their corners.

        Args:
            corners: (n, 2) array of 1-based (row, col) top-left corners.
            patch_size: Size of every patch.

        Returns:
            (n, 4) array of inclusive [row1, col1, row2, col2] mask rectangles.
        """
        corners = np.asarray(corners, dtype=np.int64).reshape(-1, 2)
        row1 = self.origin_row + (corners[:, 0] - 1) * self.step
        col1 = self.origin_col + (corners[:, 1] - 1) * self.step
        row2 = row1 + patch_size.height * self.step - 1
        col2 = col1 + patch_size.width * self.step - 1
        return np.column_stack([row1, col1, row2, col2]).astype(np.int64)

    def mask_block(
        self,
        mask: npt.NDArray[np.bool_],
        row_range: tuple[int, int],
        col_range: tuple[int, int],
    ) -> npt.NDArray[np.bool_]:
        """Extract the mask cells covering an image range.

        Cells that fall outside the mask are reported as False.

        Returns:
            Boolean array of shape (n_rows * step, n_cols * step).
        """
        rect = self.image_to_mask(row_range, col_range)
        return _window(mask, rect)

    def sample_mask(
        self,
        mask: npt.NDArray[np.bool_],
        image_shape: tuple[int, ...],
    ) -> npt.NDArray[np.bool_]:
        """Subsample the mask at one cell per image pixel.

        Each image pixel is represented by the top-left cell of its
        step x step block.

        Returns:
            Boolean array with the same (rows, cols) as the image.
        """
        rows, cols = int(image_shape[0]), int(image_shape[1])
        rect = self.image_to_mask((1, rows), (1, cols))
        return _window(mask, rect)[:: self.step, :: self.step]


def _window(
    mask: npt.NDArray[np.bool_],
    rect: MaskCrop,
) -> npt.NDArray[np.bool_]:
    """Return mask[rect] as a fresh array, padding out-of-range cells with False."""
    out = np.zeros((rect.height, rect.width), dtype=bool)
    mask_rows, mask_cols = mask.shape
    src_r0, src_c0 = rect.row1 - 1, rect.col1 - 1
    src_r1, src_c1 = min(rect.row2, mask_rows), min(rect.col2, mask_cols)
    if src_r1 <= src_r0 or src_c1 <= src_c0:
        return out
    out[: src_r1 - src_r0, : src_c1 - src_c0] = mask[src_r0:src_r1, src_c0:src_c1]
    return out


def compose_crop(
    crop: MaskCrop,
    sub_crop: MaskCrop,
    old_shape: tuple[int, ...],
) -> MaskCrop:
    """Accumulate a preprocessing stage's crop into the original frame.

    Args:
        crop: Region of the original image covered by the stage's input.
        sub_crop: Region of the stage's input covered by its output, in the
            input's own 1-based pixel coordinates.
        old_shape: (rows, cols) of the stage's input.

    Returns:
        Region of the original image covered by the stage's output.
    """
    scale_rows = crop.height / old_shape[0]
    scale_cols = crop.width / old_shape[1]
    row1 = crop.row1 + round(scale_rows * (sub_crop.row1 - 1))
    col1 = crop.col1 + round(scale_cols * (sub_crop.col1 - 1))
    row2 = row1 + round(scale_rows * sub_crop.height) - 1
    col2 = col1 + round(scale_cols * sub_crop.width) - 1
    return MaskCrop(row1=row1, col1=col1, row2=row2, col2=col2)
