"""Patch analysis for btcstats.

The analysis is layered:
    - analyze_patches: masked patch statistics of one image
    - analyze_objects: one analyze_patches run per object of a labeled mask
    - analyze_image_set: preprocessing, per-object analysis and covariance
      aggregation over a set of images

Example:
    >>> import numpy as np
    >>> from btcstats.analysis import analyze_patches
    >>> image = np.indices((4, 4)).sum(axis=0) % 3
    >>> stats = analyze_patches(image, n_levels=3, patch_size=2)
    >>> stats.locations.tolist()
    [[1, 1], [3, 1], [1, 3], [3, 3]]
"""

from __future__ import annotations

from btcstats.analysis.covariance import covariance_per_object, safe_cov
from btcstats.analysis.image_set import analyze_image_set
from btcstats.analysis.objects import analyze_objects, object_ids
from btcstats.analysis.options import AnalysisOptions, PatchOptions
from btcstats.analysis.patches import (
    CandidatePatches,
    PatchEvaluation,
    analyze_patches,
    evaluate_patch,
    locate_patches,
)
from btcstats.analysis.results import (
    ImageCopies,
    ImageSetStatistics,
    ObjectStatistics,
    PatchStatistics,
    RejectionCounts,
    SchemaMismatchError,
    concatenate_statistics,
    save_statistics,
)

__all__ = [
    "AnalysisOptions",
    "CandidatePatches",
    "ImageCopies",
    "ImageSetStatistics",
    "ObjectStatistics",
    "PatchEvaluation",
    "PatchOptions",
    "PatchStatistics",
    "RejectionCounts",
    "SchemaMismatchError",
    "analyze_image_set",
    "analyze_objects",
    "analyze_patches",
    "concatenate_statistics",
    "covariance_per_object",
    "evaluate_patch",
    "locate_patches",
    "object_ids",
    "safe_cov",
]
