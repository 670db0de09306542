"""Tests for image-set analysis."""

from __future__ import annotations

import json

import numpy as np
import numpy.typing as npt
import pytest

from btcstats.analysis import AnalysisOptions, analyze_image_set
from btcstats.config import ConfigurationError
from btcstats.features import TernaryCorrelationExtractor
from btcstats.utils.logging import configure_logging, get_logger


@pytest.fixture
def images() -> list[npt.NDArray[np.float64]]:
    rng = np.random.default_rng(7)
    return [rng.random((8, 8)) for _ in range(2)]


class TestAnalyzeImageSet:
    """Tests for analyze_image_set."""

    def test_without_masks(self, images: list[npt.NDArray[np.float64]]) -> None:
        result = analyze_image_set(images, n_levels=3, patch_size=4)
        assert result.n_patches == 8
        assert result.img_ids.tolist() == [1] * 4 + [2] * 4
        assert set(result.obj_ids.tolist()) == {1}
        assert result.image_count == 2
        assert result.image_names == ["<array 1>", "<array 2>"]
        assert result.cov is not None
        assert result.cov.shape == (20, 20)
        assert result.cov_per_obj == {}
        assert [copy.image_id for copy in result.image_copies] == [1, 2]

    def test_whole_images(self, images: list[npt.NDArray[np.float64]]) -> None:
        result = analyze_image_set(images, n_levels=2)
        assert result.n_patches == 2
        assert result.px_per_patch.tolist() == [64, 64]
        assert result.ev.shape == (2, 10)

    def test_options_and_overrides(self, images: list[npt.NDArray[np.float64]]) -> None:
        result = analyze_image_set(images, AnalysisOptions(n_levels=2), n_levels=3)
        assert result.options.n_levels == 3
        assert result.n_features == 20

    def test_mask_none_skips_image(self, images: list[npt.NDArray[np.float64]]) -> None:
        result = analyze_image_set(
            images,
            masks=[None, np.ones((8, 8), dtype=bool)],
            n_levels=3,
            patch_size=4,
        )
        assert result.img_ids.tolist() == [2] * 4
        assert result.image_count == 2

    def test_block_averaging_maps_to_original_mask(
        self, images: list[npt.NDArray[np.float64]]
    ) -> None:
        mask = np.zeros((8, 8), dtype=bool)
        mask[:, :4] = True
        result = analyze_image_set(
            images[:1],
            masks=[mask],
            n_levels=3,
            block_af=2,
            patch_size=2,
            min_patch_used=1.0,
        )
        assert result.locations.tolist() == [[1, 1], [3, 1]]
        assert result.locations_orig.tolist() == [[1, 1, 4, 4], [5, 1, 8, 4]]
        assert result.rejections.low_coverage == 2

    def test_covariance_per_object(self, images: list[npt.NDArray[np.float64]]) -> None:
        labels = np.ones((8, 8), dtype=np.int64)
        labels[:, 4:] = 3
        result = analyze_image_set(
            images,
            masks=[labels, labels],
            n_levels=3,
            patch_size=4,
            min_patch_used=1.0,
        )
        assert sorted(result.cov_per_obj) == [1, 3]
        assert result.obj_ids.tolist() == [1, 1, 3, 3, 1, 1, 3, 3]
        for cov in result.cov_per_obj.values():
            assert cov is not None
            assert cov.shape == (20, 20)

    def test_covariances_disabled(self, images: list[npt.NDArray[np.float64]]) -> None:
        result = analyze_image_set(images, n_levels=3, patch_size=4, covariances=False)
        assert result.cov is None

    def test_single_patch_covariance_is_nan(
        self, images: list[npt.NDArray[np.float64]]
    ) -> None:
        result = analyze_image_set(images[:1], n_levels=3)
        assert result.cov is not None
        assert np.isnan(result.cov).all()

    def test_generator_source(self) -> None:
        calls: list[int] = []

        def generate(i: int) -> npt.NDArray[np.float64]:
            calls.append(i)
            return np.random.default_rng(i).random((6, 6))

        result = analyze_image_set((3, generate), n_levels=3, patch_size=3)
        assert calls == [1, 2, 3]
        assert result.image_names is None
        assert sorted(set(result.img_ids.tolist())) == [1, 2, 3]

    def test_empty_set(self) -> None:
        result = analyze_image_set([], n_levels=3, patch_size=4)
        assert result.n_patches == 0
        assert result.ev.shape == (0, 20)
        assert result.img_ids.shape == (0,)
        assert result.cov is None

    def test_image_too_small_is_skipped(self) -> None:
        result = analyze_image_set([np.ones((2, 2))], n_levels=3, block_af=4)
        assert result.n_patches == 0
        assert result.image_copies == []

    def test_image_copies_default_off_for_large_sets(self) -> None:
        small = [np.random.default_rng(i).random((4, 4)) for i in range(11)]
        result = analyze_image_set(small, n_levels=2, patch_size=2)
        assert result.image_copies == []
        assert result.image_count == 11

    def test_image_copies_keep_stages(self, images: list[npt.NDArray[np.float64]]) -> None:
        result = analyze_image_set(images[:1], n_levels=3, block_af=2, image_copies=True)
        copy = result.image_copies[0]
        np.testing.assert_array_equal(copy.stages.original, images[0])
        assert copy.stages.final.shape == (4, 4)
        assert copy.mask.shape == (8, 8)


class TestValidation:
    """Errors are raised before any image is processed."""

    def test_mask_count_mismatch(self, images: list[npt.NDArray[np.float64]]) -> None:
        with pytest.raises(ConfigurationError, match="masks"):
            analyze_image_set(images, masks=[np.ones((8, 8), dtype=bool)], n_levels=3)

    def test_invalid_option_before_loading(self) -> None:
        calls: list[int] = []

        def generate(i: int) -> npt.NDArray[np.float64]:
            calls.append(i)
            return np.zeros((4, 4))

        with pytest.raises(ConfigurationError):
            analyze_image_set((2, generate), n_levels=1)
        assert calls == []

    def test_unknown_option(self, images: list[npt.NDArray[np.float64]]) -> None:
        with pytest.raises(ConfigurationError, match="not_an_option"):
            analyze_image_set(images, n_levels=3, not_an_option=1)

    def test_patch_events_carry_run_parameters(
        self,
        images: list[npt.NDArray[np.float64]],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        configure_logging(level="INFO", log_format="json")
        patch_logger = get_logger("test.image_set.patches")
        default = TernaryCorrelationExtractor()

        class _LoggingExtractor:
            def n_features(self, n_levels: int) -> int:
                return default.n_features(n_levels)

            def __call__(
                self, patch: npt.NDArray[np.float64], n_levels: int
            ) -> npt.NDArray[np.float64]:
                patch_logger.info("patch", rows=patch.shape[0])
                return default(patch, n_levels)

        analyze_image_set(
            images,
            n_levels=3,
            patch_size=(4, 2),
            run_id="run-7",
            extractor=_LoggingExtractor(),
        )

        events = [
            json.loads(line)
            for line in capsys.readouterr().out.splitlines()
            if line.strip().startswith("{")
        ]
        patches = [e for e in events if e.get("event") == "patch"]
        assert {e["image_id"] for e in patches} == {1, 2}
        assert all(e["run_id"] == "run-7" for e in patches)
        assert all(e["n_levels"] == 3 for e in patches)
        assert all(e["patch_size"] == "4x2" for e in patches)
