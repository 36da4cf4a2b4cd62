"""Per-pixel color math on RGB rasters. No engine imports."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from skimage.color import rgb2hsv

# ITU-R BT.601 luma
_LUMA = np.array([0.299, 0.587, 0.114])


def to_grayscale(rgb: NDArray[np.uint8]) -> NDArray[np.float64]:
    """Weighted luminance 0.299R + 0.587G + 0.114B, as float."""
    return rgb.astype(np.float64) @ _LUMA


def to_hsv(rgb: NDArray[np.uint8]) -> NDArray[np.float64]:
    """HSV with H in degrees [0, 360), S and V in [0, 1].

    Gray pixels (max == min) get H = 0; black pixels get S = 0.
    """
    hsv = rgb2hsv(np.asarray(rgb, dtype=np.uint8))
    hsv[..., 0] *= 360.0
    return hsv


def gradient_magnitude(gray: NDArray[np.float64]) -> NDArray[np.float64]:
    """Central-difference gradient magnitude; frame pixels are left at 0."""
    grad = np.zeros_like(gray, dtype=np.float64)
    if gray.shape[0] < 3 or gray.shape[1] < 3:
        return grad
    gx = gray[1:-1, 2:] - gray[1:-1, :-2]
    gy = gray[2:, 1:-1] - gray[:-2, 1:-1]
    grad[1:-1, 1:-1] = np.sqrt(gx * gx + gy * gy)
    return grad


def blend(
    pixels: NDArray[np.uint8], color: tuple[int, int, int], alpha: float | NDArray[np.float64]
) -> NDArray[np.uint8]:
    """int(src * (1 - alpha) + color * alpha) per channel."""
    alpha = np.asarray(alpha, dtype=np.float64)
    if alpha.ndim > 0:
        alpha = alpha[..., np.newaxis]
    mixed = pixels.astype(np.float64) * (1.0 - alpha) + np.asarray(color, dtype=np.float64) * alpha
    return np.clip(mixed, 0, 255).astype(np.uint8)


def desaturate(pixels: NDArray[np.uint8], amount: float = 1.0) -> NDArray[np.uint8]:
    """Pull pixels toward their own luminance; amount=1 gives pure gray."""
    gray = to_grayscale(pixels)[..., np.newaxis]
    mixed = pixels.astype(np.float64) * (1.0 - amount) + gray * amount
    return np.clip(mixed, 0, 255).astype(np.uint8)
