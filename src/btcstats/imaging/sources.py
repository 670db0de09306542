"""Image sources for image-set analysis.

An image set can be given as
    - file paths, loaded as greyscale luminance with Pillow;
    - in-memory 2D arrays, used as-is;
    - a pair (count, generator), where generator(i) returns image i
      (1-based) on the fly.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeAlias

import numpy as np
import numpy.typing as npt
from PIL import Image, UnidentifiedImageError

from btcstats.config import ConfigurationError
from btcstats.imaging.exceptions import ImageLoadError

ImageLike: TypeAlias = str | Path | npt.NDArray[Any]
ImageGenerator: TypeAlias = Callable[[int], npt.NDArray[Any]]
ImageSource: TypeAlias = Sequence[ImageLike] | tuple[int, ImageGenerator]


@dataclass(frozen=True)
class SourceImage:
    """One image drawn from an image source.

    Attributes:
        index: 1-based position in the image set.
        data: Image samples as a float array.
        name: File name for path sources, None otherwise.
    """

    index: int
    data: npt.NDArray[np.float64]
    name: str | None = None


def _open(path: Path) -> Image.Image:
    if not path.exists():
        raise ImageLoadError("File not found", path)
    try:
        img = Image.open(path)
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ImageLoadError(f"Cannot decode image: {e}", path) from e
    return img


def load_image(path: str | Path) -> npt.NDArray[np.float64]:
    """Load an image file as a 2D luminance array.

    Args:
        path: Path to any image format Pillow can decode.

    Returns:
        Float array of shape (rows, cols).

    Raises:
        ImageLoadError: If the file is missing or cannot be decoded.
    """
    path = Path(path)
    img = _open(path)
    if img.mode not in ("F", "I", "I;16", "L"):
        img = img.convert("L")
    return np.asarray(img, dtype=np.float64)


def load_mask(path: str | Path) -> npt.NDArray[Any]:
    """Load a mask file.

    Bilevel images become boolean masks; any other image is read as a grid
    of integer object ids (0 = background).

    Raises:
        ImageLoadError: If the file is missing or cannot be decoded.
    """
    path = Path(path)
    img = _open(path)
    if img.mode == "1":
        return np.asarray(img, dtype=bool)
    if img.mode not in ("I", "I;16", "L", "P"):
        img = img.convert("L")
    return np.asarray(img).astype(np.int64)


def _as_image(value: ImageLike, index: int) -> SourceImage:
    if isinstance(value, (str, Path)):
        return SourceImage(index=index, data=load_image(value), name=Path(value).name)
    data = np.asarray(value, dtype=np.float64)
    if data.ndim != 2:  # noqa: PLR2004
        raise ImageLoadError(f"Image {index} must be 2D, got shape {data.shape}")
    return SourceImage(index=index, data=data)


def is_generator_source(images: object) -> bool:
    """Return True for a (count, generator) image source."""
    return (
        isinstance(images, tuple)
        and len(images) == 2  # noqa: PLR2004
        and isinstance(images[0], (int, np.integer))
        and not isinstance(images[0], bool)
        and callable(images[1])
    )


def image_count(images: ImageSource) -> int:
    """Number of images in a source."""
    if is_generator_source(images):
        count = int(images[0])  # type: ignore[arg-type]
        if count < 0:
            raise ConfigurationError("images", f"image count must be >= 0, got {count}")
        return count
    return len(images)


def iter_images(images: ImageSource) -> Iterator[SourceImage]:
    """Yield the images of a source in order, loading them lazily.

    Args:
        images: Paths, arrays, or a (count, generator) pair.

    Yields:
        SourceImage for each image, with 1-based indices.
    """
    if is_generator_source(images):
        count, generator = images  # type: ignore[misc]
        for i in range(1, image_count(images) + 1):
            yield _as_image(generator(i), i)
        return

    for i, value in enumerate(images, start=1):  # type: ignore[arg-type]
        yield _as_image(value, i)


def image_names(images: ImageSource) -> list[str] | None:
    """Names of path-based sources, None for generated sources."""
    if is_generator_source(images):
        return None
    return [
        str(value) if isinstance(value, (str, Path)) else f"<array {i}>"
        for i, value in enumerate(images, start=1)  # type: ignore[arg-type]
    ]
