"""Tests for image sources and file loading."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from btcstats.config import ConfigurationError
from btcstats.imaging import ImageLoadError, image_count, iter_images, load_image, load_mask
from btcstats.imaging.sources import image_names, is_generator_source


@pytest.fixture
def grey_png(tmp_path: Path) -> Path:
    path = tmp_path / "grey.png"
    data = np.arange(12, dtype=np.uint8).reshape(3, 4) * 20
    Image.fromarray(data).save(path)
    return path


class TestLoadImage:
    """Tests for load_image."""

    def test_greyscale(self, grey_png: Path) -> None:
        image = load_image(grey_png)
        assert image.dtype == np.float64
        assert image.shape == (3, 4)
        assert image[2, 3] == 220.0

    def test_rgb_converted_to_luminance(self, tmp_path: Path) -> None:
        path = tmp_path / "rgb.png"
        Image.new("RGB", (5, 2), color=(255, 255, 255)).save(path)
        image = load_image(path)
        assert image.shape == (2, 5)
        np.testing.assert_array_equal(image, 255.0)

    def test_missing_file(self, tmp_path: Path) -> None:
        missing = tmp_path / "missing.png"
        with pytest.raises(ImageLoadError, match="File not found") as exc_info:
            load_image(missing)
        assert exc_info.value.path == missing

    def test_corrupt_file(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.png"
        path.write_bytes(b"not an image")
        with pytest.raises(ImageLoadError, match="Cannot decode image"):
            load_image(path)


class TestLoadMask:
    """Tests for load_mask."""

    def test_bilevel_is_boolean(self, tmp_path: Path) -> None:
        path = tmp_path / "mask.png"
        mask = np.zeros((4, 4), dtype=bool)
        mask[1:3, 1:3] = True
        Image.fromarray(mask).save(path)
        loaded = load_mask(path)
        assert loaded.dtype == bool
        np.testing.assert_array_equal(loaded, mask)

    def test_labels(self, tmp_path: Path) -> None:
        path = tmp_path / "labels.png"
        labels = np.array([[0, 1], [2, 2]], dtype=np.uint8)
        Image.fromarray(labels).save(path)
        loaded = load_mask(path)
        assert loaded.dtype == np.int64
        np.testing.assert_array_equal(loaded, labels)


class TestImageSources:
    """Tests for iterating image sources."""

    def test_arrays(self) -> None:
        images = [np.zeros((2, 2)), np.ones((3, 3))]
        sources = list(iter_images(images))
        assert [s.index for s in sources] == [1, 2]
        assert sources[1].data.shape == (3, 3)
        assert sources[0].name is None
        assert image_count(images) == 2

    def test_paths(self, grey_png: Path) -> None:
        sources = list(iter_images([grey_png]))
        assert sources[0].name == "grey.png"
        assert image_names([grey_png]) == [str(grey_png)]

    def test_generator(self) -> None:
        calls: list[int] = []

        def generate(i: int) -> np.ndarray:
            calls.append(i)
            return np.full((2, 2), float(i))

        source = (3, generate)
        assert is_generator_source(source)
        assert image_count(source) == 3
        images = list(iter_images(source))
        assert calls == [1, 2, 3]
        assert [img.data[0, 0] for img in images] == [1.0, 2.0, 3.0]
        assert image_names(source) is None

    def test_pair_of_arrays_is_not_a_generator(self) -> None:
        assert not is_generator_source((np.zeros((2, 2)), np.zeros((2, 2))))

    def test_negative_generator_count(self) -> None:
        with pytest.raises(ConfigurationError, match="images"):
            image_count((-1, lambda i: np.zeros((2, 2))))

    def test_non_2d_array(self) -> None:
        with pytest.raises(ImageLoadError, match="must be 2D"):
            list(iter_images([np.zeros((2, 2, 3))]))
