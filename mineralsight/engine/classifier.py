"""HSV-range pixel classifiers.

Score per candidate = hue (0.4) + saturation (0.3) + value (0.3). A component in
range gets its full weight; out of range it decays linearly with the distance to
the nearer bound (60 degrees for hue, 0.3 for S/V). A constant "MetalOther"
candidate is appended, scores are normalized to probabilities, and the first
maximum wins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import numpy as np
from numpy.typing import NDArray

from mineralsight.engine.config import ClassifierConfig
from mineralsight.engine.features import PixelBatch, PixelSample
from mineralsight.engine.materials import HsvRange, MaterialsConfig

logger = logging.getLogger(__name__)

OTHER_MATERIAL_ID = "MetalOther"

# Fixed ranges of the built-in secondary classifier
STUB_RANGES: dict[str, HsvRange] = {
    "Au": HsvRange(30, 80, 0.18, 1.0, 0.35, 1.0),
    "Pt": HsvRange(0, 360, 0.0, 0.20, 0.20, 0.92),
    "Sulfeto": HsvRange(20, 60, 0.3, 0.8, 0.2, 0.7),
    "Silicato": HsvRange(180, 240, 0.1, 0.5, 0.3, 0.8),
    "Ganga": HsvRange(0, 360, 0.0, 0.15, 0.4, 0.9),
}

# Gold / PGM shortcut thresholds
_GOLD_HUE = (35.0, 75.0)
_GOLD_MIN_SAT = 0.15
_GOLD_VALUE = (0.25, 0.98)
_PGM_MAX_SAT = 0.20
_PGM_VALUE = (0.2, 0.95)
_PGM_MAX_SPREAD = 40


@dataclass(frozen=True)
class ClassificationResult:
    material_id: str
    confidence: float
    raw_score: float
    probabilities: dict[str, float]


@dataclass(frozen=True, eq=False)
class BatchClassification:
    """Vectorized results; ``winner`` indexes into ``material_ids``."""

    material_ids: tuple[str, ...]
    winner: NDArray[np.int64]
    confidence: NDArray[np.float64]
    probabilities: NDArray[np.float64]

    def __len__(self) -> int:
        return len(self.winner)

    def result(self, i: int) -> ClassificationResult:
        conf = float(self.confidence[i])
        return ClassificationResult(
            material_id=self.material_ids[int(self.winner[i])],
            confidence=conf,
            raw_score=conf,
            probabilities={m: float(p) for m, p in zip(self.material_ids, self.probabilities[i])},
        )


@runtime_checkable
class SecondaryClassifier(Protocol):
    """Pluggable second opinion; a trained model would implement this."""

    @property
    def is_using_real_model(self) -> bool: ...

    @property
    def model_info(self) -> str: ...

    def classify(self, sample: PixelSample) -> ClassificationResult: ...

    def classify_batch(self, batch: PixelBatch) -> BatchClassification: ...


def range_scores(
    hsv: NDArray[np.float64], ranges: NDArray[np.float64], config: ClassifierConfig
) -> NDArray[np.float64]:
    """(N, K) raw scores in [0, 1] for N pixels against K HSV ranges."""
    h = hsv[:, 0:1]
    s = hsv[:, 1:2]
    v = hsv[:, 2:3]
    h_min, h_max, s_min, s_max, v_min, v_max = (ranges[:, i][np.newaxis, :] for i in range(6))

    wraps = h_min > h_max
    in_hue = np.where(wraps, (h >= h_min) | (h <= h_max), (h >= h_min) & (h <= h_max))
    hue_dist = np.minimum(np.abs(h - h_min), np.abs(h - h_max))
    hue = np.where(
        in_hue,
        config.hue_weight,
        config.hue_weight * np.maximum(0.0, 1.0 - hue_dist / config.hue_falloff),
    )

    def _linear(x, lo, hi, weight):
        inside = (x >= lo) & (x <= hi)
        dist = np.minimum(np.abs(x - lo), np.abs(x - hi))
        return np.where(inside, weight, weight * np.maximum(0.0, 1.0 - dist / config.sv_falloff))

    score = hue + _linear(s, s_min, s_max, config.saturation_weight) + _linear(
        v, v_min, v_max, config.value_weight
    )
    return np.clip(score, 0.0, 1.0)


def looks_like_gold(rgb: NDArray[np.uint8], hsv: NDArray[np.float64]) -> NDArray[np.bool_]:
    """Warm, balanced R/G over B in the yellow hue band."""
    r, g, b = (rgb[:, i].astype(np.float64) for i in range(3))
    h, s, v = hsv[:, 0], hsv[:, 1], hsv[:, 2]
    return (
        (h >= _GOLD_HUE[0])
        & (h <= _GOLD_HUE[1])
        & (s >= _GOLD_MIN_SAT)
        & (v >= _GOLD_VALUE[0])
        & (v <= _GOLD_VALUE[1])
        & ((r + g) / 2.0 > b + 10)
        & (np.abs(r - g) <= 60)
        & ~((r < 100) & (g < 80))
        & (r >= b * 1.2)
        & (g >= b * 1.1)
    )


def looks_like_pgm(rgb: NDArray[np.uint8], hsv: NDArray[np.float64]) -> NDArray[np.bool_]:
    """Neutral metallic gray, excluding near-white."""
    hi = rgb.max(axis=1).astype(np.int64)
    lo = rgb.min(axis=1).astype(np.int64)
    s, v = hsv[:, 1], hsv[:, 2]
    return (
        (s <= _PGM_MAX_SAT)
        & (v >= _PGM_VALUE[0])
        & (v <= _PGM_VALUE[1])
        & (hi - lo <= _PGM_MAX_SPREAD)
        & ~((hi > 250) & (lo > 240))
        & (hi >= 60)
    )


class RangeClassifier:
    """Scores pixels against an ordered list of (material id, HSV range)."""

    def __init__(
        self, candidates: list[tuple[str, HsvRange]], config: ClassifierConfig | None = None
    ) -> None:
        self.config = config or ClassifierConfig()
        self.candidates = list(candidates)
        self.material_ids: tuple[str, ...] = tuple(mid for mid, _ in self.candidates) + (
            OTHER_MATERIAL_ID,
        )
        self._ranges = np.array([r.as_row() for _, r in self.candidates], dtype=np.float64).reshape(
            -1, 6
        )

    def raw_scores(self, batch: PixelBatch) -> NDArray[np.float64]:
        """(N, K + 1) scores, last column the fallback."""
        n = len(batch)
        scores = range_scores(batch.hsv.reshape(-1, 3), self._ranges, self.config)
        fallback = np.full((n, 1), self.config.fallback_score)
        return np.hstack([scores.reshape(n, len(self.candidates)), fallback])

    def classify_batch(self, batch: PixelBatch) -> BatchClassification:
        scores = self.raw_scores(batch)
        totals = scores.sum(axis=1, keepdims=True)
        probabilities = scores / np.where(totals > 0, totals, 1.0)
        winner = np.argmax(probabilities, axis=1)
        confidence = probabilities[np.arange(len(batch)), winner]
        return BatchClassification(
            material_ids=self.material_ids,
            winner=winner,
            confidence=confidence,
            probabilities=probabilities,
        )

    def classify(self, sample: PixelSample) -> ClassificationResult:
        return self.classify_batch(PixelBatch.from_samples([sample])).result(0)


class HeuristicClassifier(RangeClassifier):
    """Primary classifier over the configured materials."""

    def __init__(self, materials: MaterialsConfig, config: ClassifierConfig | None = None) -> None:
        candidates = [(m.id, m.hsv) for m in materials.classifiable()]
        super().__init__(candidates, config)
        lowered = [mid.lower() for mid, _ in candidates]
        self._au = lowered.index("au") if "au" in lowered else None
        self._pt = lowered.index("pt") if "pt" in lowered else None

    def raw_scores(self, batch: PixelBatch) -> NDArray[np.float64]:
        scores = super().raw_scores(batch)
        if not self.config.use_metal_heuristics or len(batch) == 0:
            return scores
        rgb = batch.rgb.reshape(-1, 3)
        hsv = batch.hsv.reshape(-1, 3)
        gold = looks_like_gold(rgb, hsv)
        if self._au is not None:
            scores[gold, self._au] = np.maximum(scores[gold, self._au], self.config.gold_boost_score)
        if self._pt is not None:
            pgm = looks_like_pgm(rgb, hsv) & ~gold
            scores[pgm, self._pt] = np.maximum(scores[pgm, self._pt], self.config.pgm_boost_score)
        return scores


class HeuristicStubClassifier(RangeClassifier):
    """Stand-in secondary classifier with a fixed range table; no model behind it."""

    MODEL_INFO = "HVS-Heuristic-Stub-v1.0"

    def __init__(self, config: ClassifierConfig | None = None) -> None:
        super().__init__(list(STUB_RANGES.items()), config)

    @property
    def is_using_real_model(self) -> bool:
        return False

    @property
    def model_info(self) -> str:
        return self.MODEL_INFO
