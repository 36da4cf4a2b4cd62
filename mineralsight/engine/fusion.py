"""Heuristic/secondary score fusion.

Agreement: both weighted scores add up, times a 1.1 bonus, capped at 1.
Disagreement: the larger weighted score wins and keeps half of the loser's.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from mineralsight.engine.config import ClassifierConfig


@dataclass(frozen=True)
class FusedScore:
    material_id: str
    confidence: float
    raw_score: float


class ScoreFusion:
    def __init__(
        self,
        heuristic_weight: float = 0.7,
        secondary_weight: float = 0.3,
        agreement_bonus: float = 1.1,
        loser_share: float = 0.5,
    ) -> None:
        self.heuristic_weight = heuristic_weight
        self.secondary_weight = secondary_weight
        self.agreement_bonus = agreement_bonus
        self.loser_share = loser_share

    @classmethod
    def from_config(cls, config: ClassifierConfig) -> ScoreFusion:
        return cls(
            heuristic_weight=config.heuristic_weight,
            secondary_weight=config.secondary_weight,
            agreement_bonus=config.agreement_bonus,
            loser_share=config.loser_share,
        )

    def fuse(
        self,
        heuristic_material: str,
        heuristic_score: float,
        secondary_material: str,
        secondary_score: float,
    ) -> FusedScore:
        hw = heuristic_score * self.heuristic_weight
        sw = secondary_score * self.secondary_weight
        if heuristic_material.lower() == secondary_material.lower():
            fused = min(1.0, (hw + sw) * self.agreement_bonus)
            return FusedScore(heuristic_material, fused, fused)
        if hw >= sw:
            return FusedScore(heuristic_material, hw + sw * self.loser_share, hw)
        return FusedScore(secondary_material, sw + hw * self.loser_share, sw)

    def fuse_heuristic_only(self, material_id: str, score: float) -> FusedScore:
        return FusedScore(material_id, score, score)

    def fuse_batch(
        self,
        agree: NDArray[np.bool_],
        heuristic_score: NDArray[np.float64],
        secondary_score: NDArray[np.float64],
    ) -> tuple[NDArray[np.bool_], NDArray[np.float64], NDArray[np.float64]]:
        """Vectorized fuse. Returns (heuristic_wins, confidence, raw_score).

        ``agree`` marks pixels where both classifiers named the same material
        (compared case-insensitively by the caller).
        """
        hw = heuristic_score * self.heuristic_weight
        sw = secondary_score * self.secondary_weight
        agreed = np.minimum(1.0, (hw + sw) * self.agreement_bonus)
        heuristic_wins = agree | (hw >= sw)
        confidence = np.where(
            agree, agreed, np.where(hw >= sw, hw + sw * self.loser_share, sw + hw * self.loser_share)
        )
        raw = np.where(agree, agreed, np.where(hw >= sw, hw, sw))
        return heuristic_wins, confidence, raw
