"""Unit tests for geometry coordinate transforms."""

from __future__ import annotations

import numpy as np
import pytest
from hypothesis import given
from hypothesis import strategies as st

from btcstats.config import ConfigurationError
from btcstats.geometry import CoordinateMapper, MaskCrop, PatchSize, compose_crop


class TestFromCrop:
    """Tests for deriving a mapper from a crop rectangle."""

    def test_none_is_identity(self) -> None:
        assert CoordinateMapper.from_crop(None, (5, 5)) == CoordinateMapper.identity()

    def test_same_size_crop_has_unit_step(self) -> None:
        mapper = CoordinateMapper.from_crop(MaskCrop(row1=3, col1=2, row2=7, col2=6), (5, 5))
        assert mapper.step == 1
        assert (mapper.origin_row, mapper.origin_col) == (3, 2)

    def test_integer_upscaling(self) -> None:
        mapper = CoordinateMapper.from_crop(MaskCrop.full((8, 12)), (4, 6))
        assert mapper.step == 2

    def test_step_is_floored(self) -> None:
        mapper = CoordinateMapper.from_crop(MaskCrop.full((9, 9)), (4, 4))
        assert mapper.step == 2

    def test_crop_smaller_than_image_clamps_to_one(self) -> None:
        mapper = CoordinateMapper.from_crop(MaskCrop.full((2, 2)), (4, 4))
        assert mapper.step == 1

    def test_aspect_mismatch_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="non-aspect-preserving"):
            CoordinateMapper.from_crop(MaskCrop.full((8, 4)), (4, 4))


class TestImageToMask:
    """Tests for the forward image-to-mask mapping."""

    def test_identity(self) -> None:
        rect = CoordinateMapper.identity().image_to_mask((2, 3), (4, 6))
        assert rect.to_tuple() == (2, 4, 3, 6)

    def test_scaled(self) -> None:
        mapper = CoordinateMapper(origin_row=1, origin_col=1, step=2)
        assert mapper.image_to_mask((1, 2), (1, 2)).to_tuple() == (1, 1, 4, 4)

    def test_offset_and_scaled(self) -> None:
        mapper = CoordinateMapper(origin_row=3, origin_col=5, step=2)
        assert mapper.image_to_mask((2, 2), (1, 1)).to_tuple() == (5, 5, 6, 6)

    @given(
        origin=st.tuples(st.integers(1, 50), st.integers(1, 50)),
        step=st.integers(1, 5),
        first=st.integers(1, 20),
        length=st.integers(1, 20),
    )
    def test_extent_scales_with_step(
        self, origin: tuple[int, int], step: int, first: int, length: int
    ) -> None:
        mapper = CoordinateMapper(origin_row=origin[0], origin_col=origin[1], step=step)
        rect = mapper.image_to_mask((first, first + length - 1), (first, first + length - 1))
        assert rect.height == length * step
        assert rect.width == length * step
        assert rect.row1 == origin[0] + (first - 1) * step


class TestPatchRectangles:
    """Tests for the vectorized patch mapping."""

    def test_matches_image_to_mask(self) -> None:
        mapper = CoordinateMapper(origin_row=1, origin_col=1, step=2)
        rects = mapper.patch_rectangles(np.array([[1, 1], [3, 1]]), PatchSize(height=2, width=2))
        assert rects.tolist() == [[1, 1, 4, 4], [5, 1, 8, 4]]
        assert rects[1].tolist() == list(mapper.image_to_mask((3, 4), (1, 2)).to_tuple())

    def test_empty(self) -> None:
        rects = CoordinateMapper.identity().patch_rectangles(
            np.zeros((0, 2), dtype=np.int64), PatchSize(height=2, width=2)
        )
        assert rects.shape == (0, 4)


class TestMaskSampling:
    """Tests for mask_block and sample_mask."""

    def test_mask_block_pads_outside_mask(self) -> None:
        mask = np.ones((4, 4), dtype=bool)
        block = CoordinateMapper.identity().mask_block(mask, (3, 5), (1, 2))
        assert block.shape == (3, 2)
        assert block[:2].all()
        assert not block[2].any()

    def test_mask_block_scaled_shape(self) -> None:
        mask = np.ones((8, 8), dtype=bool)
        mapper = CoordinateMapper(step=2)
        assert mapper.mask_block(mask, (1, 3), (2, 3)).shape == (6, 4)

    def test_sample_mask_uses_top_left_cell_of_each_block(self) -> None:
        mask = np.zeros((8, 8), dtype=bool)
        mask[2, 4] = True
        sampled = CoordinateMapper(step=2).sample_mask(mask, (4, 4))
        assert sampled.shape == (4, 4)
        assert sampled[1, 2]
        assert sampled.sum() == 1

    def test_sample_mask_ignores_off_grid_cells(self) -> None:
        mask = np.zeros((8, 8), dtype=bool)
        mask[3, 5] = True
        assert not CoordinateMapper(step=2).sample_mask(mask, (4, 4)).any()

    def test_sample_mask_respects_origin(self) -> None:
        mask = np.zeros((6, 6), dtype=bool)
        mask[2, 3] = True
        mapper = CoordinateMapper(origin_row=3, origin_col=3, step=1)
        sampled = mapper.sample_mask(mask, (4, 4))
        assert sampled[0, 1]
        assert sampled.sum() == 1


class TestComposeCrop:
    """Tests for accumulating preprocessing crops."""

    def test_same_resolution(self) -> None:
        crop = compose_crop(
            MaskCrop.full((10, 10)), MaskCrop(row1=2, col1=3, row2=9, col2=8), (10, 10)
        )
        assert crop.to_tuple() == (2, 3, 9, 8)

    def test_after_downsampling(self) -> None:
        crop = compose_crop(
            MaskCrop.full((10, 10)), MaskCrop(row1=2, col1=2, row2=4, col2=4), (5, 5)
        )
        assert crop.to_tuple() == (3, 3, 8, 8)

    def test_chained(self) -> None:
        first = compose_crop(
            MaskCrop.full((12, 12)), MaskCrop(row1=1, col1=1, row2=10, col2=10), (12, 12)
        )
        second = compose_crop(first, MaskCrop(row1=2, col1=2, row2=4, col2=4), (5, 5))
        assert second.to_tuple() == (3, 3, 8, 8)
