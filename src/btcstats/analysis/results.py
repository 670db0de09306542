"""Result tables produced by the analysis pipeline.

Each pipeline stage produces a frozen dataclass with an explicitly declared
set of row-aligned columns (COLUMNS). Tables of the same kind can be merged
by stacking their columns, after checking that they describe the same
analysis (feature width and echoed parameters).

Column conventions (n = number of accepted patches, F = feature width):
    - locations: (n, 2) int, 1-based (row, col) of each patch's top-left
      pixel in image coordinates
    - locations_orig: (n, 4) int, inclusive [row1, col1, row2, col2] of each
      patch in mask/original coordinates
    - ev: (n, F) float, one feature vector per patch
    - px_per_patch: (n,) int, number of mask-valid pixels in each patch
    - obj_ids: (n,) int, object label the patch belongs to
    - img_ids: (n,) int, 1-based index of the source image
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar, Self

import numpy as np
import numpy.typing as npt

from btcstats.geometry.primitives import PatchSize

if TYPE_CHECKING:
    from btcstats.analysis.options import AnalysisOptions
    from btcstats.imaging.preprocess import PreprocessedImage


class SchemaMismatchError(ValueError):
    """Raised when merging result tables that describe different analyses."""


@dataclass(frozen=True)
class RejectionCounts:
    """Number of candidate patches dropped, by reason.

    Attributes:
        out_of_bounds: Overlapping-mode candidates extending past the image.
        low_coverage: Patches whose valid fraction was below min_patch_used.
        undefined: Patches whose feature vector contained NaN.
    """

    out_of_bounds: int = 0
    low_coverage: int = 0
    undefined: int = 0

    @property
    def total(self) -> int:
        """Total number of rejected candidates."""
        return self.out_of_bounds + self.low_coverage + self.undefined

    def __add__(self, other: RejectionCounts) -> RejectionCounts:
        return RejectionCounts(
            out_of_bounds=self.out_of_bounds + other.out_of_bounds,
            low_coverage=self.low_coverage + other.low_coverage,
            undefined=self.undefined + other.undefined,
        )


def empty_columns(n_features: int) -> dict[str, npt.NDArray[Any]]:
    """Zero-row patch columns with the right shapes and dtypes."""
    return {
        "locations": np.zeros((0, 2), dtype=np.int64),
        "locations_orig": np.zeros((0, 4), dtype=np.int64),
        "ev": np.zeros((0, n_features), dtype=np.float64),
        "px_per_patch": np.zeros(0, dtype=np.int64),
    }


@dataclass(frozen=True)
class _Table:
    """Shared behavior of the row-aligned result tables."""

    COLUMNS: ClassVar[tuple[str, ...]] = (
        "locations",
        "locations_orig",
        "ev",
        "px_per_patch",
    )

    locations: npt.NDArray[np.int64]
    locations_orig: npt.NDArray[np.int64]
    ev: npt.NDArray[np.float64]
    px_per_patch: npt.NDArray[np.int64]

    def __post_init__(self) -> None:
        lengths = {name: len(getattr(self, name)) for name in self.COLUMNS}
        if len(set(lengths.values())) > 1:
            raise SchemaMismatchError(f"Columns are not row-aligned: {lengths}")

    @property
    def n_patches(self) -> int:
        """Number of rows (accepted patches)."""
        return int(self.ev.shape[0])

    @property
    def n_features(self) -> int:
        """Width of the feature vectors."""
        return int(self.ev.shape[1])

    def columns(self) -> dict[str, npt.NDArray[Any]]:
        """Return the row-aligned columns by name."""
        return {name: getattr(self, name) for name in self.COLUMNS}


@dataclass(frozen=True)
class _StackableTable(_Table):
    """Table that can be merged with other tables of the same analysis."""

    # Echoed parameters that must agree for tables to be merged
    SCHEMA: ClassVar[tuple[str, ...]] = (
        "patch_size",
        "n_levels",
        "overlapping",
        "min_patch_used",
    )

    @classmethod
    def concatenate(cls, tables: Sequence[Self]) -> Self:
        """Stack tables of this kind vertically, preserving order.

        Args:
            tables: One or more tables with matching schema.

        Returns:
            A new table holding every row of every input.

        Raises:
            ValueError: If tables is empty.
            SchemaMismatchError: If the tables' feature widths or echoed
                parameters differ, or a table is of another kind.
        """
        if not tables:
            raise ValueError("No tables to concatenate")
        first = tables[0]
        for table in tables[1:]:
            if type(table) is not type(first):
                raise SchemaMismatchError(
                    f"Cannot merge {type(table).__name__} into {type(first).__name__}"
                )
            if table.n_features != first.n_features:
                raise SchemaMismatchError(
                    f"Feature width mismatch: {table.n_features} != {first.n_features}"
                )
            for name in cls.SCHEMA:
                if getattr(table, name) != getattr(first, name):
                    raise SchemaMismatchError(
                        f"Parameter '{name}' differs: "
                        f"{getattr(table, name)!r} != {getattr(first, name)!r}"
                    )

        stacked = {
            name: np.concatenate([getattr(t, name) for t in tables], axis=0)
            for name in cls.COLUMNS
        }
        rejections = sum((t.rejections for t in tables), RejectionCounts())  # type: ignore[attr-defined]
        return replace(first, **stacked, rejections=rejections)


@dataclass(frozen=True)
class PatchStatistics(_StackableTable):
    """Statistics for the accepted patches of one image (one mask).

    Attributes:
        patch_size: Patch size used.
        n_levels: Number of quantization levels.
        overlapping: Whether overlapping (one per pixel) patches were used.
        min_patch_used: Minimum valid fraction required of a patch.
        rejections: Candidates dropped, by reason.
    """

    patch_size: PatchSize = field(kw_only=True)
    n_levels: int = field(kw_only=True)
    overlapping: bool = field(kw_only=True)
    min_patch_used: float = field(kw_only=True)
    rejections: RejectionCounts = field(default_factory=RejectionCounts, kw_only=True)


@dataclass(frozen=True)
class ObjectStatistics(_StackableTable):
    """Patch statistics for every object of a labeled mask.

    Attributes:
        obj_ids: Object label of each row.
        patch_size: Patch size used, None when whole objects were analyzed.
        n_levels: Number of quantization levels.
        overlapping: Whether overlapping patches were used.
        min_patch_used: Minimum valid fraction required of a patch.
        rejections: Candidates dropped, by reason.
    """

    COLUMNS: ClassVar[tuple[str, ...]] = (*_Table.COLUMNS, "obj_ids")

    obj_ids: npt.NDArray[np.int64] = field(kw_only=True)
    patch_size: PatchSize | None = field(kw_only=True)
    n_levels: int = field(kw_only=True)
    overlapping: bool = field(kw_only=True)
    min_patch_used: float = field(kw_only=True)
    rejections: RejectionCounts = field(default_factory=RejectionCounts, kw_only=True)

    @classmethod
    def from_patches(
        cls,
        patches: PatchStatistics,
        obj_id: int,
        patch_size: PatchSize | None,
    ) -> ObjectStatistics:
        """Tag every row of a PatchStatistics with one object id."""
        return cls(
            **patches.columns(),
            obj_ids=np.full(patches.n_patches, obj_id, dtype=np.int64),
            patch_size=patch_size,
            n_levels=patches.n_levels,
            overlapping=patches.overlapping,
            min_patch_used=patches.min_patch_used,
            rejections=patches.rejections,
        )


@dataclass(frozen=True)
class ImageCopies:
    """Intermediate images kept for inspection.

    Attributes:
        image_id: 1-based index of the image in the set.
        stages: Every preprocessing stage of the image.
        mask: Mask used for the analysis (original resolution).
    """

    image_id: int
    stages: PreprocessedImage
    mask: npt.NDArray[Any]


@dataclass(frozen=True)
class ImageSetStatistics(_Table):
    """Patch statistics accumulated over an image set.

    Attributes:
        obj_ids: Object label of each row.
        img_ids: 1-based index of the source image of each row.
        options: Options of the analysis.
        image_count: Number of images in the set (including skipped ones).
        image_names: Source names when images were given as a list.
        cov: Covariance of all feature vectors (None if there are none).
        cov_per_obj: Covariance of the feature vectors of each object id.
        image_copies: Intermediate images, if requested.
        rejections: Candidates dropped, by reason.
    """

    COLUMNS: ClassVar[tuple[str, ...]] = (*_Table.COLUMNS, "obj_ids", "img_ids")

    obj_ids: npt.NDArray[np.int64] = field(kw_only=True)
    img_ids: npt.NDArray[np.int64] = field(kw_only=True)
    options: AnalysisOptions = field(kw_only=True)
    image_count: int = field(kw_only=True)
    image_names: list[str] | None = field(default=None, kw_only=True)
    cov: npt.NDArray[np.float64] | None = field(default=None, kw_only=True)
    cov_per_obj: Mapping[int, npt.NDArray[np.float64] | None] = field(
        default_factory=dict, kw_only=True
    )
    image_copies: list[ImageCopies] = field(default_factory=list, kw_only=True)
    rejections: RejectionCounts = field(default_factory=RejectionCounts, kw_only=True)


def concatenate_statistics(tables: Sequence[_StackableTable]) -> _StackableTable:
    """Merge result tables of the same kind by vertical stacking.

    Raises:
        ValueError: If tables is empty.
        SchemaMismatchError: If the tables describe different analyses.
    """
    if not tables:
        raise ValueError("No tables to concatenate")
    return type(tables[0]).concatenate(tables)


def save_statistics(result: _Table, path: str | Path) -> Path:
    """Save the columns (and covariances, if any) of a result to .npz.

    Args:
        result: Any result table.
        path: Destination file; ".npz" is appended by numpy if missing.

    Returns:
        The path written.
    """
    path = Path(path)
    arrays: dict[str, npt.NDArray[Any]] = dict(result.columns())
    cov = getattr(result, "cov", None)
    if cov is not None:
        arrays["cov"] = cov
    for obj_id, obj_cov in getattr(result, "cov_per_obj", {}).items():
        if obj_cov is not None:
            arrays[f"cov_obj_{obj_id}"] = obj_cov
    rejections = result.rejections  # type: ignore[attr-defined]
    arrays["rejections"] = np.array(
        [rejections.out_of_bounds, rejections.low_coverage, rejections.undefined]
    )
    np.savez(path, **arrays)
    if path.suffix != ".npz":
        path = path.with_name(path.name + ".npz")
    return path


__all__ = [
    "ImageCopies",
    "ImageSetStatistics",
    "ObjectStatistics",
    "PatchStatistics",
    "RejectionCounts",
    "SchemaMismatchError",
    "concatenate_statistics",
    "empty_columns",
    "save_statistics",
]
