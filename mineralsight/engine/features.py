"""Per-pixel feature extraction: grayscale, HSV, gradient and the composite foreground index."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from mineralsight.engine.config import SegmentationConfig
from mineralsight.engine.errors import InvalidInputError
from mineralsight.utils.imaging import gradient_magnitude, to_grayscale, to_hsv

logger = logging.getLogger(__name__)


def validate_image(image: object) -> NDArray[np.uint8]:
    """Return the image as an (H, W, 3) uint8 array or raise InvalidInputError."""
    if image is None:
        raise InvalidInputError("No image supplied")
    arr = np.asarray(image)
    if arr.ndim != 3 or arr.shape[2] not in (3, 4):
        raise InvalidInputError(f"Expected an RGB image of shape (H, W, 3), got {arr.shape}")
    if arr.shape[0] == 0 or arr.shape[1] == 0:
        raise InvalidInputError("Image has zero width or height")
    if arr.dtype != np.uint8:
        raise InvalidInputError(f"Expected 8-bit channels, got {arr.dtype}")
    if arr.shape[2] == 4:
        arr = arr[..., :3]
    return np.ascontiguousarray(arr)


@dataclass(frozen=True)
class PixelSample:
    """Derived values for one pixel."""

    x: int
    y: int
    r: int
    g: int
    b: int
    h: float
    s: float
    v: float
    gray: float = 0.0
    gradient: float = 0.0
    composite_index: float = 0.0

    @classmethod
    def from_rgb(cls, r: int, g: int, b: int, x: int = 0, y: int = 0) -> PixelSample:
        h, s, v = to_hsv(np.array([[[r, g, b]]], dtype=np.uint8))[0, 0]
        gray = float(to_grayscale(np.array([r, g, b], dtype=np.uint8)))
        return cls(x=x, y=y, r=r, g=g, b=b, h=float(h), s=float(s), v=float(v), gray=gray)


@dataclass(frozen=True, eq=False)
class PixelBatch:
    """Flat (N, 3) RGB and HSV rows handed to classifiers."""

    rgb: NDArray[np.uint8]
    hsv: NDArray[np.float64]

    def __len__(self) -> int:
        return len(self.rgb)

    @classmethod
    def from_samples(cls, samples: list[PixelSample]) -> PixelBatch:
        rgb = np.array([[p.r, p.g, p.b] for p in samples], dtype=np.uint8).reshape(-1, 3)
        hsv = np.array([[p.h, p.s, p.v] for p in samples], dtype=np.float64).reshape(-1, 3)
        return cls(rgb=rgb, hsv=hsv)


@dataclass(frozen=True, eq=False)
class PixelFeatureFrame:
    """Whole-frame feature arrays, indexed [y, x]."""

    rgb: NDArray[np.uint8]
    gray: NDArray[np.float64]
    hsv: NDArray[np.float64]
    gradient: NDArray[np.float64]
    composite_index: NDArray[np.float64]
    # Pixels that take part in the threshold statistics
    valid: NDArray[np.bool_]
    background_rgb: tuple[float, float, float]

    @property
    def width(self) -> int:
        return int(self.rgb.shape[1])

    @property
    def height(self) -> int:
        return int(self.rgb.shape[0])

    def sample(self, x: int, y: int) -> PixelSample:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Pixel ({x}, {y}) outside {self.width}x{self.height}")
        r, g, b = (int(c) for c in self.rgb[y, x])
        h, s, v = (float(c) for c in self.hsv[y, x])
        return PixelSample(
            x=x,
            y=y,
            r=r,
            g=g,
            b=b,
            h=h,
            s=s,
            v=v,
            gray=float(self.gray[y, x]),
            gradient=float(self.gradient[y, x]),
            composite_index=float(self.composite_index[y, x]),
        )

    def batch(self, selection: NDArray[np.bool_]) -> PixelBatch:
        """Rows for the selected pixels, in raster order."""
        return PixelBatch(rgb=self.rgb[selection], hsv=self.hsv[selection])


class PixelFeatureExtractor:
    """Computes the per-pixel features the segmentation threshold works on."""

    def __init__(self, config: SegmentationConfig | None = None) -> None:
        self.config = config or SegmentationConfig()

    def extract(self, image: object) -> PixelFeatureFrame:
        rgb = validate_image(image)
        gray = to_grayscale(rgb)
        hsv = to_hsv(rgb)
        grad = gradient_magnitude(gray)
        background = self.estimate_background(rgb)
        index, valid = self.composite_index(rgb, gray, hsv, grad, background)
        logger.debug(
            "Features: %dx%d, background=(%.0f, %.0f, %.0f), %d valid pixels",
            rgb.shape[1],
            rgb.shape[0],
            *background,
            int(np.count_nonzero(valid)),
        )
        return PixelFeatureFrame(
            rgb=rgb,
            gray=gray,
            hsv=hsv,
            gradient=grad,
            composite_index=index,
            valid=valid,
            background_rgb=background,
        )

    def estimate_background(self, rgb: NDArray[np.uint8]) -> tuple[float, float, float]:
        """Mean color of the outer frame band."""
        h, w = rgb.shape[:2]
        band = max(1, self.config.border_band)
        frame = np.zeros((h, w), dtype=bool)
        frame[:band, :] = True
        frame[-band:, :] = True
        frame[:, :band] = True
        frame[:, -band:] = True
        mean = rgb[frame].astype(np.float64).mean(axis=0)
        return (float(mean[0]), float(mean[1]), float(mean[2]))

    def composite_index(
        self,
        rgb: NDArray[np.uint8],
        gray: NDArray[np.float64],
        hsv: NDArray[np.float64],
        grad: NDArray[np.float64],
        background: tuple[float, float, float],
    ) -> tuple[NDArray[np.float64], NDArray[np.bool_]]:
        """Composite foreground index plus the mask of pixels used for statistics."""
        cfg = self.config
        sat = hsv[..., 1]
        val = hsv[..., 2]

        index = (255.0 - gray) * cfg.texture_weight + grad * cfg.gradient_weight
        index = index + np.where(sat > cfg.min_saturation, sat * cfg.saturation_boost, 0.0)

        diff = rgb.astype(np.float64) - np.asarray(background, dtype=np.float64)
        distance = np.sqrt(np.sum(diff * diff, axis=-1))
        index = np.where(distance < cfg.near_background_distance, index * cfg.near_background_factor, index)
        index = np.where(distance > cfg.far_background_distance, index * cfg.far_background_factor, index)

        valid = (val <= cfg.max_value_clip) & (val >= cfg.min_value_clip)
        index = np.where(valid, index, 0.0)
        return index, valid
