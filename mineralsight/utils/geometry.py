"""Leaf-node shape helpers for pixel clusters. No engine imports."""

from __future__ import annotations

import math

import numpy as np
from numpy.typing import NDArray


def circularity(area: float, perimeter: float) -> float:
    """4*pi*A / P^2, clamped to [0, 1]. Zero perimeter gives 0."""
    if perimeter <= 0:
        return 0.0
    return float(min(1.0, max(0.0, 4.0 * math.pi * area / (perimeter * perimeter))))


def principal_axes(xs: NDArray[np.float64], ys: NDArray[np.float64]) -> tuple[float, float]:
    """Major/minor axis lengths (4 * sqrt(eigenvalue)) of the coordinate covariance."""
    if len(xs) < 2:
        return (0.0, 0.0)
    coords = np.vstack([xs, ys]).astype(np.float64)
    cov = np.cov(coords, bias=True)
    eigenvalues = np.linalg.eigvalsh(cov)
    eigenvalues = np.clip(eigenvalues, 0.0, None)
    minor, major = sorted(eigenvalues)
    return (4.0 * math.sqrt(major), 4.0 * math.sqrt(minor))


def aspect_ratio(major: float, minor: float) -> float:
    """major / minor with the minor axis floored at one pixel."""
    if major <= 0:
        return 1.0
    return float(max(major, 1.0) / max(minor, 1.0))


def bounding_box(xs: NDArray[np.int64], ys: NDArray[np.int64]) -> tuple[int, int, int, int]:
    """(x, y, width, height) of the inclusive pixel extent."""
    if len(xs) == 0:
        return (0, 0, 0, 0)
    x0, x1 = int(xs.min()), int(xs.max())
    y0, y1 = int(ys.min()), int(ys.max())
    return (x0, y0, x1 - x0 + 1, y1 - y0 + 1)
