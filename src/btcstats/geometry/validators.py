"""Bounds checking for patch placement.

Patches are placed by their 1-based top-left corner; a placement is valid
when the whole patch lies inside the image.
"""

from __future__ import annotations

import numpy as np
import numpy.typing as npt

from btcstats.geometry.primitives import PatchSize


def patches_within_bounds(
    corners: npt.NDArray[np.int_],
    patch_size: PatchSize,
    image_shape: tuple[int, ...],
) -> npt.NDArray[np.bool_]:
    """Check which patch placements lie entirely inside the image.

    Checks that, for every corner (row, col):
    1. row >= 1 and col >= 1
    2. row + height - 1 <= image rows
    3. col + width - 1 <= image cols

    Args:
        corners: (n, 2) array of 1-based (row, col) top-left corners.
        patch_size: Size of each patch.
        image_shape: (rows, cols) of the image.

    Returns:
        Boolean vector of length n, True where the patch fits.
    """
    corners = np.asarray(corners).reshape(-1, 2)
    rows, cols = image_shape[0], image_shape[1]
    return (
        (corners[:, 0] >= 1)
        & (corners[:, 1] >= 1)
        & (corners[:, 0] + patch_size.height - 1 <= rows)
        & (corners[:, 1] + patch_size.width - 1 <= cols)
    )
