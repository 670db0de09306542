"""CLI runners for image-set analysis.

This module provides the execution logic for the CLI commands,
bridging the CLI interface to the analysis pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from btcstats.analysis.image_set import analyze_image_set
from btcstats.analysis.results import save_statistics
from btcstats.utils.logging import get_logger

if TYPE_CHECKING:
    from btcstats.cli.main import AverageMethod, QuantMethod


@dataclass(frozen=True)
class AnalysisSummary:
    """Result from `btcstats analyze`."""

    n_images: int
    n_patches: int
    n_features: int
    n_objects: int
    rejected: dict[str, int]
    output_path: Path | None = None

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable view of the summary."""
        return {
            "n_images": self.n_images,
            "n_patches": self.n_patches,
            "n_features": self.n_features,
            "n_objects": self.n_objects,
            "rejected": self.rejected,
            "output_path": str(self.output_path) if self.output_path else None,
        }


def run_analysis(  # noqa: PLR0913
    *,
    images: list[Path],
    masks: list[Path] | None,
    n_levels: int,
    block_af: int,
    patch_size: int | None,
    overlapping: bool,
    min_patch_used: float,
    do_log: bool,
    average_type: AverageMethod,
    quant_type: QuantMethod,
    output: Path | None,
) -> AnalysisSummary:
    """Analyze an image set from files and optionally save the columns."""
    logger = get_logger(__name__)

    result = analyze_image_set(
        images,
        masks=masks,
        n_levels=n_levels,
        block_af=block_af,
        patch_size=patch_size,
        overlapping=overlapping,
        min_patch_used=min_patch_used,
        do_log=do_log,
        average_type=average_type.value,
        quant_type=quant_type.value,
        image_copies=False,
    )

    output_path = None
    if output is not None:
        output_path = save_statistics(result, output)
        logger.info("Statistics saved", path=str(output_path))

    return AnalysisSummary(
        n_images=result.image_count,
        n_patches=result.n_patches,
        n_features=result.n_features,
        n_objects=len({int(i) for i in result.obj_ids}),
        rejected={
            "out_of_bounds": result.rejections.out_of_bounds,
            "low_coverage": result.rejections.low_coverage,
            "undefined": result.rejections.undefined,
        },
        output_path=output_path,
    )
