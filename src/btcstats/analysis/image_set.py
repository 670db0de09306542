"""Texture statistics over an image set.

Each image is preprocessed (log transform, block averaging, filtering,
quantization), analyzed object by object, and the per-image tables are
merged into one ImageSetStatistics with image and object provenance.
Covariances of the accumulated feature vectors are computed last.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import numpy as np
import numpy.typing as npt

from btcstats.analysis.covariance import covariance_per_object, safe_cov
from btcstats.analysis.objects import analyze_objects
from btcstats.analysis.options import AnalysisOptions
from btcstats.analysis.results import (
    ImageCopies,
    ImageSetStatistics,
    ObjectStatistics,
    RejectionCounts,
    empty_columns,
)
from btcstats.config import ConfigurationError
from btcstats.features.extractor import FeatureExtractor, TernaryCorrelationExtractor
from btcstats.imaging.preprocess import preprocess_image
from btcstats.imaging.sources import ImageSource, image_count, image_names, iter_images, load_mask
from btcstats.utils.logging import (
    clear_correlation_context,
    get_logger,
    set_correlation_context,
)

logger = get_logger(__name__)

MaskLike = str | Path | npt.NDArray[Any] | None


def _resolve_options(
    options: AnalysisOptions | None,
    overrides: dict[str, Any],
) -> AnalysisOptions:
    if options is None:
        return AnalysisOptions.create(**overrides)
    if not overrides:
        return options
    return AnalysisOptions.create(**{**dict(options), **overrides})


def _load_mask(value: MaskLike) -> npt.NDArray[Any] | None:
    if value is None or isinstance(value, np.ndarray):
        return value
    if isinstance(value, (str, Path)):
        return load_mask(value)
    return np.asarray(value)


def analyze_image_set(
    images: ImageSource,
    options: AnalysisOptions | None = None,
    masks: Sequence[MaskLike] | None = None,
    *,
    extractor: FeatureExtractor | None = None,
    run_id: str | None = None,
    **option_kwargs: Any,
) -> ImageSetStatistics:
    """Calculate texture statistics for every image of a set.

    Args:
        images: Image paths or arrays, or a (count, generator) pair where
            generator(i) returns the i-th image (1-based).
        options: Analysis options. Keyword arguments matching AnalysisOptions
            fields override (or, without options, define) them.
        masks: Optional masks aligned with images, drawn at the images'
            original resolution. Masks may be boolean or carry integer
            object ids; a None entry skips the corresponding image. Without
            masks every image is analyzed in full.
        extractor: Feature extractor; defaults to TernaryCorrelationExtractor.
        run_id: Correlation id attached to the log events of this run.

    Returns:
        ImageSetStatistics over all analyzed images.

    Raises:
        ConfigurationError: If the options are invalid or the number of
            masks does not match the number of images.
        ImageLoadError: If an image or mask file cannot be read.
    """
    options = _resolve_options(options, option_kwargs)
    extractor = extractor or TernaryCorrelationExtractor()
    n_images = image_count(images)
    if masks is not None and len(masks) != n_images:
        raise ConfigurationError(
            "masks", f"got {len(masks)} masks for {n_images} images"
        )

    run_id = run_id or datetime.now(UTC).strftime("%Y%m%d_%H%M%S")
    keep_copies = options.keep_image_copies(n_images)
    kernel = options.kernel_array
    quant_patch_size = options.resolved_quant_patch_size
    patch_size = options.patch_size.to_tuple() if options.patch_size else None

    tables: list[ObjectStatistics] = []
    img_ids: list[npt.NDArray[np.int64]] = []
    copies: list[ImageCopies] = []

    try:
        for source in iter_images(images):
            clear_correlation_context()
            set_correlation_context(
                run_id=run_id,
                image_id=source.index,
                n_levels=options.n_levels,
                patch_size=patch_size,
            )

            if masks is not None:
                mask = _load_mask(masks[source.index - 1])
                if mask is None:
                    logger.info("Skipping image without mask")
                    continue
            else:
                mask = np.ones(source.data.shape, dtype=bool)

            pre = preprocess_image(
                source.data,
                n_levels=options.n_levels,
                block_af=options.block_af,
                kernel=kernel,
                do_log=options.do_log,
                threshold=options.threshold,
                average_type=options.average_type,
                filter_type=options.filter_type,
                quant_type=options.quant_type,
                quant_patch_size=quant_patch_size,
            )
            if pre is None:
                logger.warning("Image too small to analyze", shape=source.data.shape)
                continue

            table = analyze_objects(
                pre.final,
                options.n_levels,
                mask,
                options.patch_size,
                mask_crop=pre.crop,
                min_patch_used=options.min_patch_used,
                overlapping=options.overlapping,
                extractor=extractor,
            )
            tables.append(table)
            img_ids.append(np.full(table.n_patches, source.index, dtype=np.int64))
            if keep_copies:
                copies.append(ImageCopies(image_id=source.index, stages=pre, mask=mask))

            logger.info(
                "Analyzed image",
                shape=source.data.shape,
                patches=table.n_patches,
                rejected=table.rejections.total,
            )
    finally:
        clear_correlation_context()

    if tables:
        merged = ObjectStatistics.concatenate(tables)
        columns = merged.columns()
        rejections = merged.rejections
        ids = np.concatenate(img_ids)
    else:
        columns = {
            **empty_columns(extractor.n_features(options.n_levels)),
            "obj_ids": np.zeros(0, dtype=np.int64),
        }
        rejections = RejectionCounts()
        ids = np.zeros(0, dtype=np.int64)

    cov = None
    cov_per_obj: dict[int, npt.NDArray[np.float64] | None] = {}
    if options.covariances:
        cov = safe_cov(columns["ev"])
        if masks is not None:
            cov_per_obj = covariance_per_object(columns["ev"], columns["obj_ids"])

    logger.info(
        "Analyzed image set",
        run_id=run_id,
        images=n_images,
        analyzed=len(tables),
        patches=len(ids),
    )
    return ImageSetStatistics(
        **columns,
        img_ids=ids,
        options=options,
        image_count=n_images,
        image_names=image_names(images),
        cov=cov,
        cov_per_obj=cov_per_obj,
        image_copies=copies,
        rejections=rejections,
    )
