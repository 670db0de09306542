"""Covariance of accumulated feature vectors."""

from __future__ import annotations

from typing import Any

import numpy as np
import numpy.typing as npt


def safe_cov(ev: npt.NDArray[Any]) -> npt.NDArray[np.float64] | None:
    """Sample covariance of feature vectors, rows being observations.

    Args:
        ev: (n, F) feature table.

    Returns:
        None if there are no rows, an all-NaN F x F matrix for a single row,
        otherwise the F x F sample covariance.
    """
    ev = np.asarray(ev, dtype=np.float64)
    if ev.ndim != 2:  # noqa: PLR2004
        ev = ev.reshape(len(ev), -1)
    n_rows, n_features = ev.shape
    if n_rows == 0:
        return None
    if n_rows == 1:
        return np.full((n_features, n_features), np.nan)
    return np.atleast_2d(np.cov(ev, rowvar=False))


def covariance_per_object(
    ev: npt.NDArray[Any],
    obj_ids: npt.NDArray[np.int64],
) -> dict[int, npt.NDArray[np.float64] | None]:
    """safe_cov of the rows of each object id, keyed by id in ascending order."""
    ev = np.asarray(ev, dtype=np.float64)
    obj_ids = np.asarray(obj_ids)
    return {int(obj_id): safe_cov(ev[obj_ids == obj_id]) for obj_id in np.unique(obj_ids)}
