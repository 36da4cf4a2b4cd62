"""SampleMask: which pixels belong to the specimen, plus per-cell diagnostics."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray


@dataclass(frozen=True)
class SegmentationStats:
    background_rgb: tuple[float, float, float] = (0.0, 0.0, 0.0)
    index_mean: float = 0.0
    index_std: float = 0.0
    threshold: float = 0.0
    candidate_pixels: int = 0
    border_removed_pixels: int = 0
    small_region_removed_pixels: int = 0
    holes_filled_pixels: int = 0
    component_count: int = 0


@dataclass(frozen=True)
class SampleMaskCell:
    is_sample: bool
    composite_index: float
    gradient_magnitude: float


@dataclass(frozen=True, eq=False)
class SampleMask:
    """Boolean sample grid indexed [y, x]. Frame cells are never sample."""

    width: int
    height: int
    is_sample: NDArray[np.bool_]
    composite_index: NDArray[np.float64]
    gradient_magnitude: NDArray[np.float64]
    threshold: float = 0.0
    stats: SegmentationStats = field(default_factory=SegmentationStats)

    def __post_init__(self) -> None:
        for arr in (self.is_sample, self.composite_index, self.gradient_magnitude):
            if arr.shape != (self.height, self.width):
                raise ValueError(f"Grid shape {arr.shape} does not match {self.width}x{self.height}")
            arr.flags.writeable = False

    @classmethod
    def empty(cls, width: int, height: int) -> SampleMask:
        return cls(
            width=width,
            height=height,
            is_sample=np.zeros((height, width), dtype=bool),
            composite_index=np.zeros((height, width)),
            gradient_magnitude=np.zeros((height, width)),
        )

    @property
    def sample_count(self) -> int:
        return int(np.count_nonzero(self.is_sample))

    @property
    def foreground_fraction(self) -> float:
        total = self.width * self.height
        return self.sample_count / total if total else 0.0

    def index(self, x: int, y: int) -> int:
        """Row-major flat offset of (x, y)."""
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Cell ({x}, {y}) outside {self.width}x{self.height}")
        return y * self.width + x

    def cell(self, x: int, y: int) -> SampleMaskCell:
        self.index(x, y)
        return SampleMaskCell(
            is_sample=bool(self.is_sample[y, x]),
            composite_index=float(self.composite_index[y, x]),
            gradient_magnitude=float(self.gradient_magnitude[y, x]),
        )
