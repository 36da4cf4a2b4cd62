"""Per-pixel classification output.

PixelLabelGrid stores a frame's labels as parallel arrays with an interned
material vocabulary; PixelLabel objects are only built on access.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace

import numpy as np
from numpy.typing import NDArray

NO_MATERIAL = -1


class MaterialType(enum.IntEnum):
    NONE = 0
    METAL = 1
    CRYSTAL = 2
    GEM = 3
    BACKGROUND = 4
    GANGUE = 5
    SULFIDE = 6
    SILICATE = 7


# Materials the secondary classifier can emit without being configured
_KNOWN_TYPES = {
    "sulfeto": MaterialType.SULFIDE,
    "sulfide": MaterialType.SULFIDE,
    "silicato": MaterialType.SILICATE,
    "silicate": MaterialType.SILICATE,
    "ganga": MaterialType.GANGUE,
    "gangue": MaterialType.GANGUE,
}


def infer_material_type(material_id: str) -> MaterialType:
    return _KNOWN_TYPES.get(material_id.lower(), MaterialType.METAL)


@dataclass(frozen=True)
class PixelLabel:
    is_sample: bool = False
    particle_id: int = 0
    material_id: str | None = None
    material_type: MaterialType = MaterialType.NONE
    material_confidence: float = 0.0
    raw_score: float = 0.0
    heuristic_score: float = 0.0
    secondary_score: float = 0.0
    h: float = 0.0
    s: float = 0.0
    v: float = 0.0
    r: int = 0
    g: int = 0
    b: int = 0
    material_probabilities: dict[str, float] | None = None


@dataclass(frozen=True, eq=False)
class PixelLabelGrid:
    width: int
    height: int
    # Interned vocabulary; material_index points into these
    material_ids: tuple[str, ...]
    material_types: tuple[MaterialType, ...]
    is_sample: NDArray[np.bool_]
    material_index: NDArray[np.int16]
    confidence: NDArray[np.float64]
    raw_score: NDArray[np.float64]
    heuristic_score: NDArray[np.float64]
    secondary_score: NDArray[np.float64]
    rgb: NDArray[np.uint8]
    hsv: NDArray[np.float64]
    particle_id: NDArray[np.int32]
    # Heuristic probability rows for sample pixels; sample_row maps [y, x] to a row (-1 = none)
    probability_ids: tuple[str, ...] = ()
    probabilities: NDArray[np.float64] = field(default_factory=lambda: np.zeros((0, 0)))
    sample_row: NDArray[np.int32] | None = None
    # True where the fused label came from the heuristic classifier
    heuristic_won: NDArray[np.bool_] | None = None

    def __post_init__(self) -> None:
        for arr in (
            self.is_sample,
            self.material_index,
            self.confidence,
            self.raw_score,
            self.heuristic_score,
            self.secondary_score,
            self.particle_id,
        ):
            if arr.shape != (self.height, self.width):
                raise ValueError(f"Label array shape {arr.shape} does not match {self.width}x{self.height}")
            arr.flags.writeable = False
        if self.heuristic_won is not None and self.heuristic_won.shape != (self.height, self.width):
            raise ValueError(f"Label array shape {self.heuristic_won.shape} does not match {self.width}x{self.height}")

    @classmethod
    def empty(cls, width: int, height: int, rgb: NDArray[np.uint8], hsv: NDArray[np.float64]) -> PixelLabelGrid:
        shape = (height, width)
        return cls(
            width=width,
            height=height,
            material_ids=(),
            material_types=(),
            is_sample=np.zeros(shape, dtype=bool),
            material_index=np.full(shape, NO_MATERIAL, dtype=np.int16),
            confidence=np.zeros(shape),
            raw_score=np.zeros(shape),
            heuristic_score=np.zeros(shape),
            secondary_score=np.zeros(shape),
            rgb=rgb,
            hsv=hsv,
            particle_id=np.zeros(shape, dtype=np.int32),
        )

    @property
    def sample_count(self) -> int:
        return int(np.count_nonzero(self.is_sample))

    def index_of(self, material_id: str | None) -> int | None:
        """Vocabulary position of ``material_id``, case-insensitive."""
        if not material_id:
            return None
        wanted = material_id.strip().lower()
        for i, mid in enumerate(self.material_ids):
            if mid.lower() == wanted:
                return i
        return None

    def material_mask(self, material_id: str, min_confidence: float = 0.0) -> NDArray[np.bool_]:
        """Sample pixels labeled ``material_id`` with confidence >= ``min_confidence``."""
        idx = self.index_of(material_id)
        if idx is None:
            return np.zeros((self.height, self.width), dtype=bool)
        return self.is_sample & (self.material_index == idx) & (self.confidence >= min_confidence)

    def material_counts(self) -> dict[str, int]:
        """Labeled pixel count per material, vocabulary order."""
        labeled = self.material_index[self.is_sample]
        labeled = labeled[labeled >= 0]
        counts = np.bincount(labeled, minlength=len(self.material_ids))
        return {mid: int(counts[i]) for i, mid in enumerate(self.material_ids)}

    def probabilities_at(self, x: int, y: int) -> dict[str, float] | None:
        if self.sample_row is None:
            return None
        row = int(self.sample_row[y, x])
        if row < 0:
            return None
        return {mid: float(p) for mid, p in zip(self.probability_ids, self.probabilities[row])}

    def top2_margin(self) -> NDArray[np.float64] | None:
        """Gap between the two largest probabilities per pixel; None without probabilities."""
        if self.sample_row is None or self.probabilities.shape[1] < 2:
            return None
        ordered = np.sort(self.probabilities, axis=1)
        gaps = ordered[:, -1] - ordered[:, -2]
        margin = np.zeros((self.height, self.width))
        rows = self.sample_row >= 0
        margin[rows] = gaps[self.sample_row[rows]]
        return margin

    def label_at(self, x: int, y: int) -> PixelLabel:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Pixel ({x}, {y}) outside {self.width}x{self.height}")
        idx = int(self.material_index[y, x])
        r, g, b = (int(c) for c in self.rgb[y, x])
        h, s, v = (float(c) for c in self.hsv[y, x])
        return PixelLabel(
            is_sample=bool(self.is_sample[y, x]),
            particle_id=int(self.particle_id[y, x]),
            material_id=self.material_ids[idx] if idx >= 0 else None,
            material_type=self.material_types[idx] if idx >= 0 else MaterialType.NONE,
            material_confidence=float(self.confidence[y, x]),
            raw_score=float(self.raw_score[y, x]),
            heuristic_score=float(self.heuristic_score[y, x]),
            secondary_score=float(self.secondary_score[y, x]),
            h=h,
            s=s,
            v=v,
            r=r,
            g=g,
            b=b,
            material_probabilities=self.probabilities_at(x, y),
        )

    def with_particle_ids(self, particle_id: NDArray[np.int32]) -> PixelLabelGrid:
        return replace(self, particle_id=np.array(particle_id, dtype=np.int32))
